"""Conversations and their history.

- ConversationStore: Named conversations and their head pointers
- ThreadReconstructor: Walks a turn chain into a transcript
- HistoryLoader: Loads transcripts, dropping superseded walks
"""

from vectorlink.conversations.history import HistoryLoader
from vectorlink.conversations.models import (
    DEFAULT_CONVERSATION_ID,
    ConversationState,
    InputMessage,
    Transcript,
    TranscriptMessage,
    Turn,
)
from vectorlink.conversations.reconstructor import (
    CancelToken,
    GenerationCounter,
    ThreadReconstructor,
    WalkResult,
    WalkState,
)
from vectorlink.conversations.store import ConversationStore

__all__ = [
    "DEFAULT_CONVERSATION_ID",
    "CancelToken",
    "ConversationState",
    "ConversationStore",
    "GenerationCounter",
    "HistoryLoader",
    "InputMessage",
    "ThreadReconstructor",
    "Transcript",
    "TranscriptMessage",
    "Turn",
    "WalkResult",
    "WalkState",
]
