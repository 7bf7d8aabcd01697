"""Remote index client.

``RemoteIndexClient`` is the interface the sync engine talks to;
``OpenAIIndexClient`` implements it on top of an OpenAI vector store,
where each record is a vector store file whose ``attributes`` carry the
local path (``name``) and mtime (``updated_at``).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from vectorlink.config import PAGE_SIZE, REMOTE_FILTER, VectorLinkConfig
from vectorlink.remote.http import OpenAIHTTPClient
from vectorlink.remote.protocol import (
    DeletionStatus,
    FileObject,
    VectorStoreFile,
    VectorStoreFileList,
    parse_payload,
)
from vectorlink.sync.models import RecordPage, RecordStatus, RemoteRecord

logger = logging.getLogger(__name__)

BLOB_PURPOSE = "user_data"


class RemoteIndexClient(ABC):
    """Operations the reconciliation engine needs from the remote index."""

    @abstractmethod
    async def list_page(
        self, cursor: str | None = None, filter: str = REMOTE_FILTER
    ) -> RecordPage:
        """Fetch one page (at most PAGE_SIZE records) of the index.

        Args:
            cursor: Continue after this cursor (None for the first page)
            filter: Record status to list
        """

    @abstractmethod
    async def create_blob(self, content: bytes, filename: str) -> str:
        """Upload document bytes and return the blob id."""

    @abstractmethod
    async def register_record(
        self, blob_id: str, attributes: dict[str, Any]
    ) -> RemoteRecord:
        """Attach an uploaded blob to the index with ``{name, updated_at}``."""

    @abstractmethod
    async def delete_record(self, record_id: str) -> bool:
        """Remove a record from the index. Returns True if deleted."""

    @abstractmethod
    async def delete_blob(self, blob_id: str) -> bool:
        """Delete the blob backing a record. Returns True if deleted."""


def _as_timestamp(value: Any) -> int | None:
    """Attribute numbers come back as floats; compare them as integers."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value) if float(value).is_integer() else None
    return None


def record_from_wire(item: VectorStoreFile) -> RemoteRecord:
    """Convert a vector store file into a RemoteRecord."""
    attributes = item.attributes or {}
    name = attributes.get("name")
    try:
        status = RecordStatus(item.status)
    except ValueError:
        logger.warning(f"Unknown status {item.status!r} for record {item.id}")
        status = RecordStatus.PENDING
    return RemoteRecord(
        external_id=item.id,
        name=name if isinstance(name, str) else None,
        updated_at=_as_timestamp(attributes.get("updated_at")),
        status=status,
        blob_id=item.id,
    )


class OpenAIIndexClient(RemoteIndexClient):
    """Remote index backed by an OpenAI vector store."""

    def __init__(
        self,
        http: OpenAIHTTPClient,
        vector_store_id: str,
        *,
        poll_interval: float = 1.0,
        processing_timeout: float = 60.0,
    ):
        """Initialize client.

        Args:
            http: Shared HTTP client
            vector_store_id: Vector store holding the records
            poll_interval: Seconds between status checks after registration
            processing_timeout: Give up waiting for ``in_progress`` records
                after this many seconds (0 disables waiting)
        """
        self.http = http
        self.vector_store_id = vector_store_id
        self.poll_interval = poll_interval
        self.processing_timeout = processing_timeout

    @classmethod
    def from_config(cls, config: VectorLinkConfig) -> "OpenAIIndexClient":
        """Build a client, failing fast if settings are missing.

        Raises:
            ConfigurationError: If the API key or vector store id is unset
        """
        vector_store_id = config.require_vector_store_id()
        http = OpenAIHTTPClient(
            config.require_api_key(),
            base_url=config.base_url,
            organization=config.organization,
            project=config.project,
        )
        return cls(http, vector_store_id)

    @property
    def _files_path(self) -> str:
        return f"/vector_stores/{self.vector_store_id}/files"

    async def list_page(
        self, cursor: str | None = None, filter: str = REMOTE_FILTER
    ) -> RecordPage:
        params: dict[str, Any] = {"limit": PAGE_SIZE, "filter": filter}
        if cursor:
            params["after"] = cursor

        data = await self.http.request_json("GET", self._files_path, params=params)
        page = parse_payload(VectorStoreFileList, data)

        next_cursor = page.last_id or (page.data[-1].id if page.data else None)
        return RecordPage(
            items=[record_from_wire(item) for item in page.data],
            has_more=page.has_more,
            next_cursor=next_cursor,
        )

    async def create_blob(self, content: bytes, filename: str) -> str:
        data = await self.http.request_json(
            "POST",
            "/files",
            files={"file": (filename, content)},
            data={"purpose": BLOB_PURPOSE},
        )
        blob = parse_payload(FileObject, data)
        logger.debug(f"Uploaded {filename} as {blob.id}")
        return blob.id

    async def register_record(
        self, blob_id: str, attributes: dict[str, Any]
    ) -> RemoteRecord:
        data = await self.http.request_json(
            "POST",
            self._files_path,
            json={"file_id": blob_id, "attributes": attributes},
        )
        record = record_from_wire(parse_payload(VectorStoreFile, data))
        return await self._wait_for_processing(record)

    async def _wait_for_processing(self, record: RemoteRecord) -> RemoteRecord:
        """Poll until the record leaves the pending/in_progress states.

        A record that is still processing is not yet listed as completed,
        so returning early would make the next sync create it again.
        """
        if self.processing_timeout <= 0:
            return record

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.processing_timeout

        while record.status in (RecordStatus.PENDING, RecordStatus.IN_PROGRESS):
            if loop.time() >= deadline:
                logger.warning(
                    f"Record {record.external_id} still {record.status.value} "
                    f"after {self.processing_timeout:.0f}s"
                )
                break
            await asyncio.sleep(self.poll_interval)
            data = await self.http.request_json(
                "GET", f"{self._files_path}/{record.external_id}"
            )
            record = record_from_wire(parse_payload(VectorStoreFile, data))

        return record

    async def delete_record(self, record_id: str) -> bool:
        data = await self.http.request_json(
            "DELETE", f"{self._files_path}/{record_id}"
        )
        return parse_payload(DeletionStatus, data).deleted

    async def delete_blob(self, blob_id: str) -> bool:
        data = await self.http.request_json("DELETE", f"/files/{blob_id}")
        return parse_payload(DeletionStatus, data).deleted

    async def aclose(self) -> None:
        await self.http.aclose()
