"""Tests for wire payload validation."""

import pytest

from vectorlink.exceptions import NetworkError
from vectorlink.remote.protocol import (
    FileCitation,
    FileSearchCall,
    InputItemList,
    OutputMessage,
    ResponseObject,
    URLCitation,
    VectorStoreFileList,
    parse_payload,
)

RESPONSE = {
    "id": "resp_2",
    "object": "response",
    "previous_response_id": "resp_1",
    "output": [
        {"type": "reasoning", "id": "rs_1", "summary": []},
        {
            "type": "file_search_call",
            "id": "fs_1",
            "status": "completed",
            "queries": ["gardening"],
            "results": [
                {"file_id": "file-9", "filename": "garden.md", "score": 0.9, "text": "Tomatoes"}
            ],
        },
        {
            "type": "message",
            "id": "msg_1",
            "role": "assistant",
            "status": "completed",
            "content": [
                {
                    "type": "output_text",
                    "text": "Plant tomatoes in spring.",
                    "annotations": [
                        {"type": "file_citation", "file_id": "file-9", "filename": "garden.md", "index": 24},
                        {"type": "url_citation", "url": "https://example.com", "title": "Ex", "start_index": 0, "end_index": 5},
                        {"type": "future_citation", "foo": "bar"},
                    ],
                },
                {"type": "hologram", "data": "?"},
            ],
        },
    ],
}


class TestResponseObject:
    """Tests for ResponseObject parsing."""

    def test_parses_known_items(self):
        response = parse_payload(ResponseObject, RESPONSE)

        assert response.previous_response_id == "resp_1"
        assert [type(item) for item in response.output] == [FileSearchCall, OutputMessage]

    def test_unknown_items_skipped(self):
        """Unknown output, content and annotation types are dropped."""
        response = parse_payload(ResponseObject, RESPONSE)

        message = response.first_message()
        assert len(message.content) == 1
        annotations = message.content[0].annotations
        assert [type(a) for a in annotations] == [FileCitation, URLCitation]

    def test_output_text(self):
        assert parse_payload(ResponseObject, RESPONSE).output_text == "Plant tomatoes in spring."

    def test_file_search_results(self):
        results = parse_payload(ResponseObject, RESPONSE).file_search_results()

        assert [r.filename for r in results] == ["garden.md"]

    def test_file_search_results_absent(self):
        response = parse_payload(ResponseObject, {"id": "resp_1", "output": []})

        assert response.file_search_results() is None
        assert response.first_message() is None
        assert response.output_text == ""

    def test_malformed_payload(self):
        with pytest.raises(NetworkError):
            parse_payload(ResponseObject, {"output": []})


class TestInputItems:
    """Tests for InputItemList parsing."""

    def test_string_content(self):
        items = parse_payload(
            InputItemList,
            {"data": [{"type": "message", "id": "msg_1", "role": "user", "content": "Hello"}]},
        )

        assert items.data[0].text == "Hello"

    def test_parts_content(self):
        items = parse_payload(
            InputItemList,
            {
                "data": [
                    {
                        "type": "message",
                        "id": "msg_1",
                        "role": "user",
                        "content": [
                            {"type": "input_image", "image_url": "x"},
                            {"type": "input_text", "text": "What grows?"},
                        ],
                    },
                    {"type": "function_call_output", "call_id": "c1", "output": "{}"},
                ]
            },
        )

        assert len(items.data) == 1
        assert items.data[0].text == "What grows?"


class TestVectorStoreFileList:
    def test_attributes(self):
        page = parse_payload(
            VectorStoreFileList,
            {
                "object": "list",
                "data": [
                    {
                        "id": "file-1",
                        "status": "completed",
                        "attributes": {"name": "a.md", "updated_at": 1700000000123.0},
                    }
                ],
                "first_id": "file-1",
                "last_id": "file-1",
                "has_more": False,
            },
        )

        assert page.data[0].attributes["name"] == "a.md"
        assert page.last_id == "file-1"
