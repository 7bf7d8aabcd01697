"""Conversation thread reconstruction.

A conversation is stored remotely as a chain of turns, each pointing back
at its predecessor. Only the newest turn id (the head pointer) is kept
locally, so showing a conversation means walking the chain backwards one
hop at a time. Each hop's pointer is only known once the previous hop has
been fetched, so hops are strictly sequential; within a hop, the turn and
the input that produced it are fetched concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from vectorlink.config import MAX_HISTORY_DEPTH
from vectorlink.conversations.models import (
    InputMessage,
    Transcript,
    TranscriptMessage,
    Turn,
)
from vectorlink.exceptions import CancellationError

if TYPE_CHECKING:
    from vectorlink.remote.turn_client import RemoteTurnClient

logger = logging.getLogger(__name__)


class WalkState(str, Enum):
    """Lifecycle of one walk: idle -> walking -> completed/cancelled/failed."""

    IDLE = "idle"
    WALKING = "walking"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class GenerationCounter:
    """Issues cancel tokens; issuing a new one invalidates all older ones."""

    def __init__(self) -> None:
        self._generation = 0

    @property
    def current(self) -> int:
        return self._generation

    def issue(self) -> "CancelToken":
        self._generation += 1
        return CancelToken(self, self._generation)

    def invalidate(self) -> None:
        """Invalidate every outstanding token without issuing a new one."""
        self._generation += 1


class CancelToken:
    """Generation captured when a walk starts."""

    def __init__(self, counter: GenerationCounter, generation: int):
        self._counter = counter
        self.generation = generation

    @property
    def cancelled(self) -> bool:
        return self._counter.current != self.generation

    def check(self) -> None:
        """Raise CancellationError if a newer request has been issued."""
        if self.cancelled:
            raise CancellationError(
                f"Walk generation {self.generation} superseded by "
                f"{self._counter.current}"
            )


@dataclass
class WalkResult:
    """Outcome of a walk.

    ``transcript`` is empty for cancelled walks. For failed walks it holds
    the hops assembled before the failure, for callers that want a partial
    display.
    """

    transcript: Transcript
    state: WalkState
    hops: int = 0
    error: Exception | None = None


def pair_input(inputs: list[InputMessage]) -> InputMessage:
    """Pick the user message that produced a turn."""
    for message in inputs:
        if message.role == "user":
            return message
    return InputMessage(id=None, role="user", content="")


def assemble(
    hops: list[tuple[Turn, InputMessage]], conversation_id: str | None = None
) -> Transcript:
    """Build an oldest-first transcript from hops collected newest-first."""
    messages: list[TranscriptMessage] = []
    for turn, message in reversed(hops):
        messages.append(TranscriptMessage.from_input(turn.id, message))
        messages.append(TranscriptMessage.from_turn(turn))
    return Transcript(conversation_id=conversation_id, messages=tuple(messages))


class ThreadReconstructor:
    """Walk a turn chain backwards into an ordered transcript."""

    def __init__(self, client: "RemoteTurnClient", max_depth: int = MAX_HISTORY_DEPTH):
        """Initialize reconstructor.

        Args:
            client: Remote turn client
            max_depth: Default maximum number of hops per walk
        """
        self.client = client
        self.max_depth = max_depth

    async def _fetch_hop(self, pointer: str) -> tuple[Turn, list[InputMessage]]:
        turn_task = asyncio.ensure_future(self.client.retrieve_turn(pointer))
        inputs_task = asyncio.ensure_future(self.client.list_inputs_for_turn(pointer))
        try:
            turn, inputs = await asyncio.gather(turn_task, inputs_task)
        except BaseException:
            turn_task.cancel()
            inputs_task.cancel()
            raise
        return turn, inputs

    async def reconstruct(
        self,
        head_pointer: str | None,
        max_depth: int | None = None,
        cancel_token: CancelToken | None = None,
        conversation_id: str | None = None,
    ) -> WalkResult:
        """Rebuild a transcript starting at ``head_pointer``.

        Args:
            head_pointer: Id of the newest turn (None yields an empty transcript)
            max_depth: Hop cap for this walk (defaults to the instance cap)
            cancel_token: Token checked before every hop and after every join
            conversation_id: Recorded on the transcript

        Returns:
            WalkResult; this method does not raise for remote failures
        """
        depth = self.max_depth if max_depth is None else max_depth
        hops: list[tuple[Turn, InputMessage]] = []
        pointer = head_pointer
        state = WalkState.WALKING
        logger.debug(f"Walking history from {head_pointer} (max {depth} hops)")

        try:
            while pointer and len(hops) < depth:
                if cancel_token is not None:
                    cancel_token.check()

                turn, inputs = await self._fetch_hop(pointer)

                if cancel_token is not None:
                    cancel_token.check()

                hops.append((turn, pair_input(inputs)))
                pointer = turn.continuation_pointer

        except CancellationError as e:
            logger.debug(f"History walk cancelled after {len(hops)} hops: {e}")
            state = WalkState.CANCELLED
            return WalkResult(Transcript(conversation_id), state, hops=len(hops))

        except Exception as e:
            if cancel_token is not None and cancel_token.cancelled:
                # Errors of a superseded walk are not reported
                state = WalkState.CANCELLED
                return WalkResult(Transcript(conversation_id), state, hops=len(hops))
            logger.error(f"History walk failed at {pointer} after {len(hops)} hops: {e}")
            state = WalkState.FAILED
            return WalkResult(
                assemble(hops, conversation_id), state, hops=len(hops), error=e
            )

        state = WalkState.COMPLETED
        logger.debug(f"History walk completed with {len(hops)} hops")
        return WalkResult(assemble(hops, conversation_id), state, hops=len(hops))
