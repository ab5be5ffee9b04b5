# src/portfolio_chat/core/messages.py
"""
Conversation model for the Anthropic Messages API.

Content blocks are a closed union (TextBlock | ToolUseBlock | ToolResultBlock);
`to_wire()` / `block_from_wire()` convert to and from the JSON the model speaks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Tuple, Union


@dataclass(frozen=True)
class TextBlock:
    text: str

    def to_wire(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)

    # compared by value but never hashed; `input` is a plain dict
    __hash__ = None

    def to_wire(self) -> Dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": dict(self.input)}


@dataclass(frozen=True)
class ToolResultBlock:
    tool_use_id: str
    content: str

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": [{"type": "text", "text": self.content}],
        }


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]
Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationMessage:
    role: Role
    content: Tuple[ContentBlock, ...]

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "content": [b.to_wire() for b in self.content]}


@dataclass(frozen=True)
class ModelResponse:
    stop_reason: str
    content: Tuple[ContentBlock, ...]

    @property
    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == "tool_use" and bool(self.tool_uses)

    def first_text(self) -> str | None:
        for b in self.content:
            if isinstance(b, TextBlock):
                return b.text
        return None


def user_text(text: str) -> ConversationMessage:
    return ConversationMessage(role="user", content=(TextBlock(text),))


def _result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return "".join(p.get("text", "") for p in content or [] if p.get("type") == "text")


def block_from_wire(raw: Dict[str, Any]) -> ContentBlock:
    kind = raw.get("type")
    if kind == "text":
        return TextBlock(raw.get("text", ""))
    if kind == "tool_use":
        return ToolUseBlock(id=raw["id"], name=raw["name"], input=raw.get("input") or {})
    if kind == "tool_result":
        return ToolResultBlock(tool_use_id=raw["tool_use_id"], content=_result_text(raw.get("content")))
    raise ValueError(f"unknown content block type: {kind!r}")
