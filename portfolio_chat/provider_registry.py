"""Registry of configured OpenAI-compatible chat-completion providers."""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PROVIDER_ORDER_ENV = "CHAT_PROVIDER_ORDER"


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    credential: str
    base_endpoint: str
    model: str

    def __repr__(self) -> str:
        # Keep credentials out of logs and tracebacks.
        return (
            f"ProviderConfig(name={self.name!r}, base_endpoint={self.base_endpoint!r}, "
            f"model={self.model!r})"
        )


@dataclass(frozen=True)
class ProviderDefinition:
    name: str
    base_endpoint: str
    model: str
    api_key_env: str
    api_key_parameter_name: str
    model_env: str
    base_endpoint_env: str


PROVIDER_DEFINITIONS: tuple[ProviderDefinition, ...] = (
    ProviderDefinition(
        name="deepseek",
        base_endpoint="https://api.deepseek.com",
        model="deepseek-chat",
        api_key_env="DEEPSEEK_API_KEY",
        api_key_parameter_name="/portfolio-chat/deepseek-api-key",
        model_env="DEEPSEEK_MODEL",
        base_endpoint_env="DEEPSEEK_BASE_URL",
    ),
    ProviderDefinition(
        name="xai",
        base_endpoint="https://api.x.ai/v1",
        model="grok-3-mini",
        api_key_env="XAI_API_KEY",
        api_key_parameter_name="/portfolio-chat/xai-api-key",
        model_env="XAI_MODEL",
        base_endpoint_env="XAI_BASE_URL",
    ),
    ProviderDefinition(
        name="openai",
        base_endpoint="https://api.openai.com/v1",
        model="gpt-4.1-mini",
        api_key_env="OPENAI_API_KEY",
        api_key_parameter_name="/portfolio-chat/openai-api-key",
        model_env="OPENAI_MODEL",
        base_endpoint_env="OPENAI_BASE_URL",
    ),
)
PROVIDER_DEFINITIONS_BY_NAME = {definition.name: definition for definition in PROVIDER_DEFINITIONS}


class ProviderRegistry:
    """Ordered, read-only snapshot of the providers to try for each request."""

    def __init__(self, providers: Iterable[ProviderConfig] = ()) -> None:
        self._providers = tuple(providers)

    @property
    def providers(self) -> tuple[ProviderConfig, ...]:
        return self._providers

    @property
    def names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __bool__(self) -> bool:
        return bool(self._providers)


def _ordered_definitions(environ: Mapping[str, str]) -> list[ProviderDefinition]:
    order = environ.get(PROVIDER_ORDER_ENV, "").strip()
    if not order:
        return list(PROVIDER_DEFINITIONS)

    definitions: list[ProviderDefinition] = []
    for raw_name in order.split(","):
        name = raw_name.strip().lower()
        if not name:
            continue
        definition = PROVIDER_DEFINITIONS_BY_NAME.get(name)
        if definition is None:
            logger.warning("Ignoring unknown provider in order list", extra={"provider": name})
            continue
        definitions.append(definition)
    return definitions


def build_provider_registry(
    environ: Mapping[str, str],
    get_secure_parameter: Callable[[str], str | None] | None = None,
) -> ProviderRegistry:
    """Resolve provider credentials once and build the registry.

    Credentials come from the provider's environment variable first, then from
    ``get_secure_parameter`` (an SSM lookup in production) when given.
    Providers without a credential are left out.
    """
    providers: list[ProviderConfig] = []
    for definition in _ordered_definitions(environ):
        credential = environ.get(definition.api_key_env) or None
        if credential is None and get_secure_parameter is not None:
            credential = get_secure_parameter(definition.api_key_parameter_name)
        if not credential:
            logger.info(
                "Provider has no credential; skipping",
                extra={"provider": definition.name},
            )
            continue

        providers.append(
            ProviderConfig(
                name=definition.name,
                credential=credential,
                base_endpoint=environ.get(definition.base_endpoint_env)
                or definition.base_endpoint,
                model=environ.get(definition.model_env) or definition.model,
            )
        )

    logger.info(
        "Provider registry built",
        extra={"providers": [provider.name for provider in providers]},
    )
    return ProviderRegistry(providers)
