"""History loader.

Owns the transcript shown for the selected conversation. Every load issues
a new generation token, so when the user switches conversations while a
walk is still running, the old walk's result is dropped instead of being
mixed into the new one.
"""

import logging

from vectorlink.conversations.models import Transcript
from vectorlink.conversations.reconstructor import (
    GenerationCounter,
    ThreadReconstructor,
    WalkResult,
    WalkState,
)
from vectorlink.conversations.store import ConversationStore

logger = logging.getLogger(__name__)


class HistoryLoader:
    """Load conversation transcripts, discarding superseded walks."""

    def __init__(self, store: ConversationStore, reconstructor: ThreadReconstructor):
        self.store = store
        self.reconstructor = reconstructor
        self.transcript = Transcript()
        self.state = WalkState.IDLE
        self.error: Exception | None = None
        self._generations = GenerationCounter()

    @property
    def loading(self) -> bool:
        return self.state == WalkState.WALKING

    def cancel(self) -> None:
        """Abandon the walk in flight, if any."""
        self._generations.invalidate()
        if self.state == WalkState.WALKING:
            self.state = WalkState.CANCELLED

    async def load(
        self,
        conversation_id: str | None = None,
        keep_partial: bool = False,
        max_depth: int | None = None,
    ) -> WalkResult:
        """Rebuild the transcript of a conversation.

        Args:
            conversation_id: Conversation to load (defaults to the selection)
            keep_partial: On failure, show the hops fetched before the error
            max_depth: Override the reconstructor's hop cap

        Returns:
            The walk result. Its transcript is committed to ``self.transcript``
            only if no newer load started meanwhile.
        """
        token = self._generations.issue()
        conversation_id = conversation_id or self.store.selected_id
        state = self.store.get(conversation_id)

        # Never show one conversation's messages under another
        if self.transcript.conversation_id != conversation_id:
            self.transcript = Transcript(conversation_id)

        if state is None or not state.head_pointer:
            if state is None:
                logger.warning(f"Unknown conversation: {conversation_id}")
            result = WalkResult(Transcript(conversation_id), WalkState.COMPLETED)
            self._commit(result, keep_partial)
            return result

        self.state = WalkState.WALKING
        self.error = None
        result = await self.reconstructor.reconstruct(
            state.head_pointer,
            max_depth=max_depth,
            cancel_token=token,
            conversation_id=conversation_id,
        )

        if token.cancelled:
            logger.debug(f"Discarding superseded history of {conversation_id}")
            return WalkResult(
                Transcript(conversation_id), WalkState.CANCELLED, hops=result.hops
            )

        self._commit(result, keep_partial)
        return result

    async def switch(self, conversation_id: str, keep_partial: bool = False) -> WalkResult:
        """Select a conversation, persist the selection and load it.

        Raises:
            KeyError: If the conversation does not exist
        """
        self.store.select(conversation_id)
        self.store.save()
        return await self.load(conversation_id, keep_partial=keep_partial)

    def _commit(self, result: WalkResult, keep_partial: bool) -> None:
        self.state = result.state
        self.error = result.error
        if result.state == WalkState.FAILED and not keep_partial:
            self.transcript = Transcript(result.transcript.conversation_id)
        else:
            self.transcript = result.transcript
