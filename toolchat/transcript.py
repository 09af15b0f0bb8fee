"""Conversation turns and the append-only transcript sent to the model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class ToolRequest:
    """A model's request to invoke a named capability."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    #: Backend-assigned id, when the backend provides one.
    call_id: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return {"function": {"name": self.name, "arguments": dict(self.arguments)}}


@dataclass(frozen=True, slots=True)
class Turn:
    """One role-tagged message in the transcript."""

    role: Role
    content: str = ""
    tool_requests: Tuple[ToolRequest, ...] = ()
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str = "", tool_requests: Optional[List[ToolRequest]] = None) -> Turn:
        return cls(Role.ASSISTANT, content, tuple(tool_requests or ()))

    @classmethod
    def tool(cls, content: str, tool_call_id: Optional[str] = None) -> Turn:
        return cls(Role.TOOL, content, tool_call_id=tool_call_id)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_requests)

    def to_message(self) -> Dict[str, Any]:
        """Render the turn in the role-tagged chat message shape."""
        message: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_requests:
            message["tool_calls"] = [request.to_message() for request in self.tool_requests]
        return message


class Transcript:
    """
    Ordered conversation history for a single chat request.

    Turns can only be appended; existing turns are never replaced or reordered.
    """

    def __init__(self, turns: Optional[List[Turn]] = None) -> None:
        self._turns: List[Turn] = list(turns or [])

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def to_messages(self) -> List[Dict[str, Any]]:
        return [turn.to_message() for turn in self._turns]
