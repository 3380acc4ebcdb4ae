from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence, Union


Role = Literal["system", "user", "assistant"]
MessageContent = Union[str, list[dict[str, Any]]]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: MessageContent


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def as_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolInvoker(Protocol):
    async def invoke_tool(
        self, messages: Sequence[ChatMessage], tool: ToolSpec
    ) -> dict[str, Any] | None: ...
