"""Shared fixtures: in-memory remote index and turn store, temp vaults."""

import asyncio
import os
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from vectorlink.config import PAGE_SIZE, REMOTE_FILTER
from vectorlink.conversations.models import InputMessage, Turn
from vectorlink.remote.index_client import RemoteIndexClient
from vectorlink.remote.turn_client import RemoteTurnClient
from vectorlink.sync.models import RecordPage, RecordStatus, RemoteRecord


class FakeIndexClient(RemoteIndexClient):
    """Remote index kept in a dict, in insertion (listing) order.

    ``failures`` maps (method, key) to an exception raised by that call.
    The key is the filename for create_blob, the record name for
    register_record and the id for the delete methods.
    """

    def __init__(self, page_size: int = PAGE_SIZE):
        self.page_size = page_size
        self.records: dict[str, RemoteRecord] = {}
        self.blobs: dict[str, bytes] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.register_status = RecordStatus.COMPLETED
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"file-{self._counter}"

    def _maybe_fail(self, method: str, key: str) -> None:
        error = self.failures.get((method, key))
        if error is not None:
            raise error

    def seed(
        self,
        name: str,
        updated_at: int,
        status: RecordStatus = RecordStatus.COMPLETED,
    ) -> RemoteRecord:
        """Add a record (and its blob) without recording a call."""
        record_id = self._next_id()
        self.blobs[record_id] = b""
        record = RemoteRecord(
            external_id=record_id,
            name=name,
            updated_at=updated_at,
            status=status,
            blob_id=record_id,
        )
        self.records[record_id] = record
        return record

    def by_name(self, name: str) -> list[RemoteRecord]:
        return [r for r in self.records.values() if r.name == name]

    def calls_to(self, method: str) -> list[str | None]:
        return [key for name, key in self.calls if name == method]

    async def list_page(
        self, cursor: str | None = None, filter: str = REMOTE_FILTER
    ) -> RecordPage:
        self.calls.append(("list_page", cursor))
        items = [r for r in self.records.values() if r.status.value == filter]
        start = 0
        if cursor:
            ids = [r.external_id for r in items]
            start = ids.index(cursor) + 1
        chunk = items[start : start + self.page_size]
        return RecordPage(
            items=chunk,
            has_more=start + self.page_size < len(items),
            next_cursor=chunk[-1].external_id if chunk else None,
        )

    async def create_blob(self, content: bytes, filename: str) -> str:
        self.calls.append(("create_blob", filename))
        self._maybe_fail("create_blob", filename)
        blob_id = self._next_id()
        self.blobs[blob_id] = content
        return blob_id

    async def register_record(self, blob_id, attributes) -> RemoteRecord:
        self.calls.append(("register_record", attributes["name"]))
        self._maybe_fail("register_record", attributes["name"])
        record = RemoteRecord(
            external_id=blob_id,
            name=attributes["name"],
            updated_at=attributes["updated_at"],
            status=self.register_status,
            blob_id=blob_id,
        )
        self.records[blob_id] = record
        return record

    async def delete_record(self, record_id: str) -> bool:
        self.calls.append(("delete_record", record_id))
        self._maybe_fail("delete_record", record_id)
        return self.records.pop(record_id, None) is not None

    async def delete_blob(self, blob_id: str) -> bool:
        self.calls.append(("delete_blob", blob_id))
        self._maybe_fail("delete_blob", blob_id)
        return self.blobs.pop(blob_id, None) is not None


class FakeTurnClient(RemoteTurnClient):
    """Turn store kept in dicts.

    ``gates`` holds an asyncio.Event per turn id; retrieving that turn
    waits until the event is set. ``errors`` maps a turn id to an
    exception raised when it is retrieved.
    """

    def __init__(self):
        self.turns: dict[str, Turn] = {}
        self.inputs: dict[str, list[InputMessage]] = {}
        self.retrieved: list[str] = []
        self.input_requests: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.errors: dict[str, Exception] = {}

    def add_chain(self, length: int, prefix: str = "resp") -> str | None:
        """Add turns ``{prefix}_1`` (oldest) to ``{prefix}_{length}``.

        Returns:
            Id of the newest turn
        """
        previous = None
        for n in range(1, length + 1):
            turn_id = f"{prefix}_{n}"
            self.turns[turn_id] = Turn(
                id=turn_id,
                role="assistant",
                content=f"{prefix} answer {n}",
                continuation_pointer=previous,
            )
            self.inputs[turn_id] = [
                InputMessage(id=f"msg_{prefix}_{n}", role="user", content=f"{prefix} question {n}")
            ]
            previous = turn_id
        return previous

    async def retrieve_turn(self, turn_id: str) -> Turn:
        self.retrieved.append(turn_id)
        gate = self.gates.get(turn_id)
        if gate is not None:
            await gate.wait()
        if turn_id in self.errors:
            raise self.errors[turn_id]
        return self.turns[turn_id]

    async def list_inputs_for_turn(self, turn_id: str) -> list[InputMessage]:
        self.input_requests.append(turn_id)
        return list(self.inputs.get(turn_id, []))


def write_doc(root: Path, rel_path: str, text: str, mtime_ms: int) -> Path:
    """Write a document and pin its mtime to ``mtime_ms`` milliseconds."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def vault(temp_dir):
    """An empty vault directory."""
    path = temp_dir / "vault"
    path.mkdir()
    return path


@pytest.fixture
def fake_index():
    return FakeIndexClient()


@pytest.fixture
def fake_turns():
    return FakeTurnClient()


@pytest.fixture
def doc_writer(vault):
    """Write documents into the vault: ``doc_writer("a.md", "text", mtime_ms)``."""

    def _write(rel_path: str, text: str, mtime_ms: int) -> Path:
        return write_doc(vault, rel_path, text, mtime_ms)

    return _write
