"""Conversation data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from vectorlink.remote.protocol import Citation, FileSearchResult

DEFAULT_CONVERSATION_ID = "default"


@dataclass
class ConversationState:
    """A named conversation and the pointer to its most recent turn."""

    id: str
    name: str
    head_pointer: str | None = None
    prompt_override: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "head_pointer": self.head_pointer,
            "prompt_override": self.prompt_override,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationState:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            head_pointer=data.get("head_pointer"),
            prompt_override=data.get("prompt_override"),
        )


@dataclass(frozen=True)
class Turn:
    """One assistant response, linked to its predecessor."""

    id: str
    role: str
    content: str
    continuation_pointer: str | None = None
    annotations: tuple[Citation, ...] = ()
    search_results: tuple[FileSearchResult, ...] | None = None


@dataclass(frozen=True)
class InputMessage:
    """The user input paired with a turn."""

    id: str | None
    role: str
    content: str


@dataclass(frozen=True)
class TranscriptMessage:
    """A message as displayed in a transcript.

    ``kind`` tags where it came from: the input sent with a turn
    (``input_item``) or the turn's response (``response_item``).
    """

    kind: Literal["input_item", "response_item"]
    turn_id: str
    role: str
    content: str
    continuation_pointer: str | None = None
    annotations: tuple[Citation, ...] = ()
    search_results: tuple[FileSearchResult, ...] | None = None

    @classmethod
    def from_turn(cls, turn: Turn) -> TranscriptMessage:
        return cls(
            kind="response_item",
            turn_id=turn.id,
            role=turn.role,
            content=turn.content,
            continuation_pointer=turn.continuation_pointer,
            annotations=turn.annotations,
            search_results=turn.search_results,
        )

    @classmethod
    def from_input(cls, turn_id: str, message: InputMessage) -> TranscriptMessage:
        return cls(
            kind="input_item",
            turn_id=turn_id,
            role=message.role,
            content=message.content,
        )


@dataclass(frozen=True)
class Transcript:
    """Messages of one conversation, oldest first."""

    conversation_id: str | None = None
    messages: tuple[TranscriptMessage, ...] = field(default_factory=tuple)

    @property
    def turns(self) -> list[TranscriptMessage]:
        return [m for m in self.messages if m.kind == "response_item"]

    def __len__(self) -> int:
        return len(self.messages)
