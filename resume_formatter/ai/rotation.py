from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from openai import OpenAIError, RateLimitError

from resume_formatter.ai.providers.openai_provider import OpenAIToolProvider
from resume_formatter.ai.types import ChatMessage, ToolInvoker, ToolSpec
from resume_formatter.core.errors import ConfigurationError, ProviderError, RotationExhaustedError

logger = logging.getLogger(__name__)

# Priority order; the first entry is tried first on every call.
DEFAULT_MODELS: tuple[str, ...] = ("gpt-4o-mini", "gpt-4.1-mini", "gpt-4o")
MAX_ATTEMPTS = 3

_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "quota", "resource_exhausted", "resource exhausted", "too many requests")

ProviderFactory = Callable[[str, str], ToolInvoker]


def is_rate_limit_error(exc: BaseException) -> bool:
    if isinstance(exc, RateLimitError):
        return True
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if status == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def _default_provider_factory(model: str, api_key: str) -> ToolInvoker:
    return OpenAIToolProvider(model=model, api_key=api_key)


class RotatingToolInvoker:
    """Credential/model fallback for tool calls.

    Models are tried in priority order and, for each model, credentials are
    tried round-robin starting from the cursor left by the previous call.
    Only rate-limit failures rotate; anything else propagates at once. The
    total number of attempts per call is capped at ``max_attempts``.
    """

    def __init__(
        self,
        credentials: Sequence[str],
        models: Sequence[str] = DEFAULT_MODELS,
        *,
        provider_factory: ProviderFactory | None = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self._credentials = tuple(credentials)
        self._models = tuple(models)
        self._provider_factory = provider_factory or _default_provider_factory
        self._max_attempts = max(1, int(max_attempts))
        self._providers: dict[tuple[str, int], ToolInvoker] = {}
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def pool_size(self) -> int:
        return len(self._credentials)

    def reset(self) -> None:
        self._cursor = 0
        self._providers.clear()

    def _provider(self, model: str, index: int) -> ToolInvoker:
        key = (model, index)
        provider = self._providers.get(key)
        if provider is None:
            provider = self._provider_factory(model, self._credentials[index])
            self._providers[key] = provider
        return provider

    def _advance(self) -> None:
        self._cursor = (self._cursor + 1) % len(self._credentials)

    async def invoke_tool(
        self, messages: Sequence[ChatMessage], tool: ToolSpec
    ) -> dict[str, Any] | None:
        if not self._credentials:
            raise ConfigurationError("No API credentials configured. Set OPENAI_API_KEY in the environment.")
        if not self._models:
            raise ConfigurationError("No model identifiers configured.")

        attempts = 0
        failures: list[str] = []
        for model in self._models:
            for _ in range(len(self._credentials)):
                if attempts >= self._max_attempts:
                    break
                index = self._cursor
                attempts += 1
                try:
                    result = await self._provider(model, index).invoke_tool(messages, tool)
                except Exception as exc:
                    if not is_rate_limit_error(exc):
                        if isinstance(exc, OpenAIError):
                            logger.warning(
                                "ai_tool_call_failed tool=%s model=%s key_index=%s: %s", tool.name, model, index, exc
                            )
                            raise ProviderError(
                                f"The AI provider request failed ({type(exc).__name__}). Please try again."
                            ) from exc
                        raise
                    failures.append(f"{model} key#{index + 1}: {exc}")
                    logger.warning(
                        "ai_rate_limited tool=%s model=%s key_index=%s attempt=%s/%s",
                        tool.name,
                        model,
                        index,
                        attempts,
                        self._max_attempts,
                    )
                    self._advance()
                    continue
                logger.info("ai_tool_call_ok tool=%s model=%s key_index=%s attempts=%s", tool.name, model, index, attempts)
                return result
            if attempts >= self._max_attempts:
                break

        raise RotationExhaustedError(
            f"All API keys/models exhausted after {attempts} attempts. Please wait a minute and try again.",
            attempts=attempts,
            errors=failures,
        )
