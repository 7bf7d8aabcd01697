"""Conversation state store.

Holds the list of conversations, the current selection and each
conversation's head pointer. The store is injected into the components
that need it instead of being shared as global settings; persistence
happens only at explicit load/save boundaries.

Stored as JSON:
    {"selected": "<id>", "conversations": [{"id": ..., "name": ..., ...}]}
"""

import asyncio
import json
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from vectorlink.conversations.models import (
    DEFAULT_CONVERSATION_ID,
    ConversationState,
)

logger = logging.getLogger(__name__)


class ConversationStore:
    """JSON-backed store of conversations.

    A conversation with id ``default`` always exists and cannot be deleted.

    Args:
        path: JSON file to persist to. ``None`` keeps the store in memory.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else None
        self._conversations: dict[str, ConversationState] = {}
        self._selected = DEFAULT_CONVERSATION_ID
        self._head_locks: dict[str, asyncio.Lock] = {}
        self._ensure_default()

    def _ensure_default(self) -> None:
        if DEFAULT_CONVERSATION_ID not in self._conversations:
            self._conversations[DEFAULT_CONVERSATION_ID] = ConversationState(
                id=DEFAULT_CONVERSATION_ID, name="Default"
            )
        if self._selected not in self._conversations:
            self._selected = DEFAULT_CONVERSATION_ID

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load conversations from disk, replacing in-memory state."""
        self._conversations = {}
        self._selected = DEFAULT_CONVERSATION_ID

        if self.path is not None and self.path.exists():
            try:
                data = json.loads(self.path.read_text())
                for entry in data.get("conversations", []):
                    state = ConversationState.from_dict(entry)
                    self._conversations[state.id] = state
                self._selected = data.get("selected") or DEFAULT_CONVERSATION_ID
                logger.debug(
                    f"Loaded {len(self._conversations)} conversations from {self.path}"
                )
            except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Failed to load conversations from {self.path}: {e}")
                self._conversations = {}
                self._selected = DEFAULT_CONVERSATION_ID

        self._ensure_default()

    def save(self) -> None:
        """Write conversations to disk (no-op for in-memory stores)."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "selected": self._selected,
            "conversations": [c.to_dict() for c in self._conversations.values()],
        }
        self.path.write_text(json.dumps(data, indent=2) + "\n")

    @contextmanager
    def editing(self) -> Iterator["ConversationStore"]:
        """Load, let the caller mutate, then save.

        The store is saved only if the block exits without an exception.
        """
        self.load()
        yield self
        self.save()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_conversations(self) -> list[ConversationState]:
        return list(self._conversations.values())

    def get(self, conversation_id: str) -> ConversationState | None:
        return self._conversations.get(conversation_id)

    @property
    def selected_id(self) -> str:
        return self._selected

    @property
    def selected(self) -> ConversationState:
        return self._conversations[self._selected]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def select(self, conversation_id: str) -> ConversationState:
        """Make a conversation the current selection.

        Raises:
            KeyError: If the conversation does not exist
        """
        if conversation_id not in self._conversations:
            raise KeyError(f"Unknown conversation: {conversation_id}")
        self._selected = conversation_id
        return self._conversations[conversation_id]

    def create(self, name: str, prompt_override: str | None = None) -> ConversationState:
        """Add a conversation and select it."""
        conversation_id = f"conv-{int(time.time() * 1000)}"
        # Two creates within the same millisecond
        while conversation_id in self._conversations:
            conversation_id += "-1"
        state = ConversationState(
            id=conversation_id, name=name, prompt_override=prompt_override
        )
        self._conversations[conversation_id] = state
        self._selected = conversation_id
        logger.info(f"Created conversation {conversation_id} ({name})")
        return state

    def update(
        self,
        conversation_id: str,
        *,
        name: str | None = None,
        prompt_override: str | None = None,
    ) -> ConversationState:
        """Rename a conversation and/or change its prompt override.

        Raises:
            KeyError: If the conversation does not exist
        """
        state = self._conversations.get(conversation_id)
        if state is None:
            raise KeyError(f"Unknown conversation: {conversation_id}")
        if name is not None:
            state.name = name
        if prompt_override is not None:
            state.prompt_override = prompt_override or None
        return state

    def delete(self, conversation_id: str) -> None:
        """Delete a conversation.

        If it was selected, the selection falls back to the first remaining
        conversation.

        Raises:
            ValueError: If asked to delete the default conversation
            KeyError: If the conversation does not exist
        """
        if conversation_id == DEFAULT_CONVERSATION_ID:
            raise ValueError("Cannot delete the default conversation")
        if conversation_id not in self._conversations:
            raise KeyError(f"Unknown conversation: {conversation_id}")

        del self._conversations[conversation_id]
        self._head_locks.pop(conversation_id, None)
        if self._selected == conversation_id:
            self._selected = next(iter(self._conversations), DEFAULT_CONVERSATION_ID)
        logger.info(f"Deleted conversation {conversation_id}")

    def head_lock(self, conversation_id: str) -> asyncio.Lock:
        """Lock serialising head pointer writes for one conversation.

        A sender should hold it from reading the head pointer until the new
        head is recorded with ``set_head``.
        """
        lock = self._head_locks.get(conversation_id)
        if lock is None:
            lock = self._head_locks[conversation_id] = asyncio.Lock()
        return lock

    def set_head(self, conversation_id: str, response_id: str | None) -> None:
        """Record a new head pointer and persist it.

        Raises:
            KeyError: If the conversation does not exist
        """
        state = self._conversations.get(conversation_id)
        if state is None:
            raise KeyError(f"Unknown conversation: {conversation_id}")
        state.head_pointer = response_id
        self.save()

    async def advance_head(self, conversation_id: str, response_id: str) -> None:
        """Record a new head pointer after a successful exchange.

        Waits for any other writer of the same conversation to finish.
        """
        async with self.head_lock(conversation_id):
            self.set_head(conversation_id, response_id)
