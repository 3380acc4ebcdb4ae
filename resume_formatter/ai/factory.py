from functools import lru_cache

from resume_formatter.ai.providers.openai_provider import OpenAIToolProvider
from resume_formatter.ai.rotation import DEFAULT_MODELS, RotatingToolInvoker
from resume_formatter.ai.types import ToolInvoker
from resume_formatter.core.config import load_credential_pool, settings


def _provider_factory(model: str, api_key: str) -> ToolInvoker:
    return OpenAIToolProvider(
        model=model,
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout_s=settings.openai_timeout_s,
    )


@lru_cache(maxsize=1)
def get_tool_invoker() -> RotatingToolInvoker:
    return RotatingToolInvoker(
        credentials=load_credential_pool(),
        models=DEFAULT_MODELS,
        provider_factory=_provider_factory,
    )


def reset_tool_invoker() -> None:
    get_tool_invoker.cache_clear()
