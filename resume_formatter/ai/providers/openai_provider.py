from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from openai import AsyncOpenAI

from resume_formatter.ai.types import ChatMessage, ToolSpec

logger = logging.getLogger(__name__)


class OpenAIToolProvider:
    """One credential, one model: a single forced tool call per request."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout_s: float = 90.0,
        temperature: float = 0.1,
    ):
        if not api_key:
            raise RuntimeError("OpenAIToolProvider requires an API key")
        self._model = model
        self._temperature = temperature
        # Retries belong to the rotation layer.
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=0,
        )

    @property
    def model(self) -> str:
        return self._model

    async def invoke_tool(
        self, messages: Sequence[ChatMessage], tool: ToolSpec
    ) -> dict[str, Any] | None:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=payload,
            temperature=self._temperature,
            tools=[tool.as_openai_tool()],
            tool_choice={"type": "function", "function": {"name": tool.name}},
        )
        if not response.choices:
            return None

        for call in response.choices[0].message.tool_calls or []:
            function = getattr(call, "function", None)
            if function is None or function.name != tool.name:
                continue
            try:
                arguments = json.loads(function.arguments or "{}")
            except json.JSONDecodeError as exc:
                logger.warning("tool_arguments_invalid_json model=%s tool=%s: %s", self._model, tool.name, exc)
                return None
            return arguments if isinstance(arguments, dict) else None
        return None
