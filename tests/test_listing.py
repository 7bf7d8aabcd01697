"""Tests for the paginated remote listing."""

from unittest.mock import AsyncMock

import pytest

from vectorlink.sync.listing import list_all_records
from vectorlink.sync.models import RecordPage, RecordStatus, RemoteRecord


def record(record_id, name="a.md", status=RecordStatus.COMPLETED):
    return RemoteRecord(external_id=record_id, name=name, updated_at=1, status=status)


class TestListAllRecords:
    """Tests for list_all_records()."""

    @pytest.mark.asyncio
    async def test_walks_all_pages(self, fake_index):
        """250 records with page size 100 take three requests."""
        for n in range(250):
            fake_index.seed(f"doc{n}.md", n)

        records = await list_all_records(fake_index)

        assert len(records) == 250
        assert [r.name for r in records[:2]] == ["doc0.md", "doc1.md"]
        cursors = fake_index.calls_to("list_page")
        assert cursors == [None, "file-100", "file-200"]

    @pytest.mark.asyncio
    async def test_single_page(self, fake_index):
        fake_index.seed("a.md", 1)

        records = await list_all_records(fake_index)

        assert [r.name for r in records] == ["a.md"]
        assert fake_index.calls_to("list_page") == [None]

    @pytest.mark.asyncio
    async def test_empty_index(self, fake_index):
        assert await list_all_records(fake_index) == []

    @pytest.mark.asyncio
    async def test_falls_back_to_last_item_id(self):
        """Without next_cursor, the last record's id continues the walk."""
        client = AsyncMock()
        client.list_page.side_effect = [
            RecordPage(items=[record("f1"), record("f2")], has_more=True),
            RecordPage(items=[record("f3")], has_more=False),
        ]

        records = await list_all_records(client)

        assert [r.external_id for r in records] == ["f1", "f2", "f3"]
        assert client.list_page.await_args_list[1].kwargs["cursor"] == "f2"

    @pytest.mark.asyncio
    async def test_stops_without_cursor(self):
        """An empty page that claims more results does not loop forever."""
        client = AsyncMock()
        client.list_page.return_value = RecordPage(items=[], has_more=True)

        assert await list_all_records(client) == []
        assert client.list_page.await_count == 1

    @pytest.mark.asyncio
    async def test_keeps_only_completed(self):
        client = AsyncMock()
        client.list_page.return_value = RecordPage(
            items=[
                record("f1"),
                record("f2", status=RecordStatus.IN_PROGRESS),
                record("f3", status=RecordStatus.FAILED),
            ]
        )

        records = await list_all_records(client)

        assert [r.external_id for r in records] == ["f1"]
