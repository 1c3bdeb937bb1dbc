"""Canned assistant replies used when no provider can answer."""

import random
from collections.abc import Sequence
from typing import Protocol

CANNED_RESPONSES: tuple[str, ...] = (
    "I'd be happy to help you learn more about my projects and technical expertise!",
    "That's a great question about my work. Let me tell you about my experience with "
    "modern web technologies.",
    "I specialize in full-stack development with React, Next.js, and various backend "
    "technologies. What specific aspect interests you?",
    "My portfolio showcases projects in web development, mobile apps, and AI integration. "
    "Each project demonstrates different technical skills and problem-solving approaches.",
    "I have extensive experience with TypeScript, Python, and cloud technologies like AWS. "
    "I'm always excited to discuss technical implementations and best practices.",
    "As a professional developer, I focus on creating scalable, maintainable solutions "
    "using modern development practices and clean code principles.",
    "I'm passionate about leveraging AI and machine learning to create innovative "
    "solutions. My projects often incorporate cutting-edge technologies.",
    "Quality and user experience are paramount in my development approach. I believe in "
    "thorough testing, documentation, and continuous improvement.",
)


class CannedResponder(Protocol):
    def pick(self, message: str) -> str:
        """Return a non-empty reply for ``message``."""
        ...


class RandomCannedResponder:
    def __init__(
        self,
        responses: Sequence[str] = CANNED_RESPONSES,
        rng: random.Random | None = None,
    ) -> None:
        if not responses:
            raise ValueError("responses must not be empty")
        self._responses = tuple(responses)
        self._rng = rng or random.Random()

    def pick(self, message: str) -> str:
        return self._rng.choice(self._responses)
