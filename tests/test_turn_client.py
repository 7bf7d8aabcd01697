"""Tests for the OpenAI Responses turn client."""

import httpx
import pytest

from vectorlink.exceptions import NetworkError
from vectorlink.remote.http import OpenAIHTTPClient
from vectorlink.remote.protocol import FileCitation
from vectorlink.remote.turn_client import OpenAITurnClient


def make_client(handler) -> OpenAITurnClient:
    http = OpenAIHTTPClient(
        "sk-test", base_url="https://api.test/v1", transport=httpx.MockTransport(handler)
    )
    return OpenAITurnClient(http)


RESPONSE = {
    "id": "resp_2",
    "previous_response_id": "resp_1",
    "output": [
        {
            "type": "file_search_call",
            "id": "fs_1",
            "status": "completed",
            "queries": ["tomatoes"],
            "results": [{"file_id": "file-9", "filename": "garden.md", "score": 0.8}],
        },
        {
            "type": "message",
            "id": "msg_9",
            "role": "assistant",
            "content": [
                {
                    "type": "output_text",
                    "text": "In spring.",
                    "annotations": [
                        {"type": "file_citation", "file_id": "file-9", "filename": "garden.md", "index": 9}
                    ],
                }
            ],
        },
    ],
}


class TestRetrieveTurn:
    """Tests for retrieve_turn()."""

    @pytest.mark.asyncio
    async def test_maps_response(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=RESPONSE)

        turn = await make_client(handler).retrieve_turn("resp_2")

        assert seen[0].url.path == "/v1/responses/resp_2"
        assert seen[0].url.params["include[]"] == "file_search_call.results"
        assert turn.id == "resp_2"
        assert turn.role == "assistant"
        assert turn.content == "In spring."
        assert turn.continuation_pointer == "resp_1"
        assert [type(a) for a in turn.annotations] == [FileCitation]
        assert [r.filename for r in turn.search_results] == ["garden.md"]

    @pytest.mark.asyncio
    async def test_first_turn_has_no_pointer(self):
        payload = {"id": "resp_1", "previous_response_id": None, "output": []}

        turn = await make_client(lambda r: httpx.Response(200, json=payload)).retrieve_turn("resp_1")

        assert turn.continuation_pointer is None
        assert turn.search_results is None
        assert turn.content == ""

    @pytest.mark.asyncio
    async def test_error_raises_network_error(self):
        client = make_client(
            lambda r: httpx.Response(404, json={"error": {"message": "Response not found"}})
        )

        with pytest.raises(NetworkError) as exc_info:
            await client.retrieve_turn("resp_missing")

        assert exc_info.value.status == 404


class TestListInputs:
    """Tests for list_inputs_for_turn()."""

    @pytest.mark.asyncio
    async def test_maps_input_items(self):
        payload = {
            "object": "list",
            "data": [
                {"type": "message", "id": "msg_sys", "role": "developer", "content": "Be brief"},
                {
                    "type": "message",
                    "id": "msg_1",
                    "role": "user",
                    "content": [{"type": "input_text", "text": "When to plant?"}],
                },
            ],
            "has_more": False,
        }
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=payload)

        inputs = await make_client(handler).list_inputs_for_turn("resp_2")

        assert seen[0].url.path == "/v1/responses/resp_2/input_items"
        assert [(m.id, m.role, m.content) for m in inputs] == [
            ("msg_sys", "developer", "Be brief"),
            ("msg_1", "user", "When to plant?"),
        ]
