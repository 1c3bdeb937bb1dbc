"""Shared constants and literal types for the portfolio chat backend."""

import re
from typing import Literal

AWS_REGION = "ap-northeast-1"
LANGSMITH_API_KEY_PARAMETER_NAME = "/portfolio-chat/langsmith-api-key"
LANGSMITH_PROJECT = "portfolio-chat"

DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.7
REQUEST_TIMEOUT_SECONDS = 30.0
ATTEMPT_TIMEOUT_SECONDS = 15.0

MAX_ATTEMPTS = 3
BASE_RETRY_DELAY_SECONDS = 1.0
MAX_RETRY_DELAY_SECONDS = 5.0

HISTORY_LIMIT = 50
LOG_BODY_EXCERPT_LENGTH = 500

ASSISTANT_NAME = "WOODY AI Assistant"
SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

OrchestratorName = Literal["direct", "langgraph"]
Role = Literal["user", "assistant"]
