"""Remote turn client.

Retrieves stored turns (OpenAI Responses) and the input messages that
produced them, converting the wire payloads into conversation models.
"""

import logging
from abc import ABC, abstractmethod

from vectorlink.config import VectorLinkConfig
from vectorlink.conversations.models import InputMessage, Turn
from vectorlink.remote.http import OpenAIHTTPClient
from vectorlink.remote.protocol import (
    InputItemList,
    OutputText,
    ResponseObject,
    parse_payload,
)

logger = logging.getLogger(__name__)

FILE_SEARCH_INCLUDE = "file_search_call.results"


class RemoteTurnClient(ABC):
    """Operations the thread reconstructor needs from the remote service."""

    @abstractmethod
    async def retrieve_turn(self, turn_id: str) -> Turn:
        """Fetch one turn by id."""

    @abstractmethod
    async def list_inputs_for_turn(self, turn_id: str) -> list[InputMessage]:
        """Fetch the input messages sent with a turn."""


def turn_from_wire(response: ResponseObject) -> Turn:
    """Convert a stored response into a Turn."""
    message = response.first_message()
    annotations = []
    if message is not None:
        for part in message.content:
            if isinstance(part, OutputText):
                annotations.extend(part.annotations)
                break

    results = response.file_search_results()
    return Turn(
        id=response.id,
        role=message.role if message is not None else "assistant",
        content=response.output_text,
        continuation_pointer=response.previous_response_id,
        annotations=tuple(annotations),
        search_results=tuple(results) if results is not None else None,
    )


class OpenAITurnClient(RemoteTurnClient):
    """Turn client backed by the OpenAI Responses API."""

    def __init__(self, http: OpenAIHTTPClient):
        self.http = http

    @classmethod
    def from_config(cls, config: VectorLinkConfig) -> "OpenAITurnClient":
        """Build a client, failing fast if the API key is missing."""
        http = OpenAIHTTPClient(
            config.require_api_key(),
            base_url=config.base_url,
            organization=config.organization,
            project=config.project,
        )
        return cls(http)

    async def retrieve_turn(self, turn_id: str) -> Turn:
        data = await self.http.request_json(
            "GET",
            f"/responses/{turn_id}",
            params={"include[]": FILE_SEARCH_INCLUDE},
        )
        return turn_from_wire(parse_payload(ResponseObject, data))

    async def list_inputs_for_turn(self, turn_id: str) -> list[InputMessage]:
        data = await self.http.request_json("GET", f"/responses/{turn_id}/input_items")
        items = parse_payload(InputItemList, data)
        return [
            InputMessage(id=item.id, role=item.role, content=item.text)
            for item in items.data
        ]

    async def aclose(self) -> None:
        await self.http.aclose()
