"""Reconciliation executor.

Applies a ReconciliationPlan against the remote index, one item at a time.
Each item is isolated: a failure is logged, recorded in the report with
the remote step that failed, and execution moves on to the next item.

Only one run may be active at a time. ``execute(plan, queue=False)``
raises SyncInProgress while another run holds the guard;
``queue=True`` waits for it instead.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import PurePosixPath
from typing import Any, AsyncIterator, Awaitable, Callable

from vectorlink.exceptions import RemoteOperationError, SyncInProgress
from vectorlink.remote.index_client import RemoteIndexClient
from vectorlink.sync.models import (
    LocalDocument,
    ReconciliationPlan,
    RecordStatus,
    RemoteRecord,
    SyncFailure,
    SyncReport,
    SyncState,
)
from vectorlink.sync.operation_log import SyncOperationLog

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str, SyncState], None]


class ReconciliationExecutor:
    """Execute reconciliation plans against a remote index."""

    def __init__(
        self,
        client: RemoteIndexClient,
        read_bytes: Callable[[str], bytes],
        operation_log: SyncOperationLog | None = None,
        on_sync_status_changed: StatusCallback | None = None,
    ):
        """Initialize executor.

        Args:
            client: Remote index client
            read_bytes: Reads a local document's content by path
            operation_log: Optional log every step is appended to
            on_sync_status_changed: Called with (path, state) as items progress
        """
        self.client = client
        self.read_bytes = read_bytes
        self.operation_log = operation_log
        self.on_sync_status_changed = on_sync_status_changed
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        """Whether a run currently holds the exclusivity guard."""
        return self._lock.locked()

    @asynccontextmanager
    async def exclusive(self, queue: bool = False) -> AsyncIterator[None]:
        """Hold the sync guard for the duration of the block.

        Args:
            queue: Wait for an active run instead of failing

        Raises:
            SyncInProgress: If a run is active and ``queue`` is False
        """
        if self._lock.locked() and not queue:
            raise SyncInProgress()
        async with self._lock:
            yield

    async def execute(self, plan: ReconciliationPlan, queue: bool = False) -> SyncReport:
        """Apply a plan while holding the sync guard."""
        async with self.exclusive(queue):
            return await self.apply(plan)

    async def apply(self, plan: ReconciliationPlan) -> SyncReport:
        """Apply a plan. The caller is responsible for holding the guard.

        Creates and updates run in plan order, followed by deletes.
        """
        start_time = time.time()
        report = SyncReport()
        logger.info(
            f"Applying plan: {len(plan.to_create)} creates, "
            f"{len(plan.to_update)} updates, {len(plan.to_delete)} deletes"
        )

        for document in plan.to_create:
            await self._run_item(
                "create", document.path, self._create(document), report.created, report
            )

        for document, stale in plan.to_update:
            await self._run_item(
                "update",
                document.path,
                self._update(document, stale),
                report.updated,
                report,
            )

        for record in plan.to_delete:
            await self._run_item(
                "delete",
                record.name or record.external_id,
                self._delete(record),
                report.deleted,
                report,
                done_state=SyncState.DELETED,
            )

        report.duration = time.time() - start_time
        logger.info(
            f"Sync finished in {report.duration:.1f}s: {report.succeeded} succeeded, "
            f"{len(report.failures)} failed"
        )
        return report

    async def _run_item(
        self,
        action: str,
        path: str,
        operation: Awaitable[dict[str, Any]],
        succeeded: list[str],
        report: SyncReport,
        done_state: SyncState = SyncState.SYNCED,
    ) -> None:
        self._notify(path, SyncState.SYNCING)
        try:
            metadata = await operation
        except Exception as e:
            stage = getattr(e, "stage", None)
            logger.error(f"{action.capitalize()} failed for {path}: {e}")
            report.failures.append(
                SyncFailure(action=action, path=path, reason=str(e), stage=stage)
            )
            self._log(action, path, "failed", error=str(e), metadata={"stage": stage})
            self._notify(path, SyncState.FAILED)
            return

        logger.info(f"{action.capitalize()}d {path}")
        succeeded.append(path)
        self._log(action, path, "success", metadata=metadata)
        self._notify(path, done_state)

    async def _step(self, stage: str, awaitable: Awaitable[Any]) -> Any:
        """Await one remote step, tagging any failure with the step name."""
        try:
            return await awaitable
        except RemoteOperationError:
            raise
        except Exception as e:
            raise RemoteOperationError(f"{stage} failed: {e}", stage=stage) from e

    async def _upload(self, document: LocalDocument) -> RemoteRecord:
        """Upload a document and register it in the index."""
        try:
            content = self.read_bytes(document.path)
        except Exception as e:
            raise RemoteOperationError(str(e), stage="read") from e

        filename = PurePosixPath(document.path).name
        blob_id = await self._step(
            "create_blob", self.client.create_blob(content, filename)
        )
        record = await self._step(
            "register_record",
            self.client.register_record(
                blob_id,
                {"name": document.path, "updated_at": document.last_modified},
            ),
        )
        if record.status in (RecordStatus.FAILED, RecordStatus.CANCELLED):
            raise RemoteOperationError(
                f"Remote index rejected {document.path} (status {record.status.value})",
                stage="register_record",
            )
        return record

    async def _create(self, document: LocalDocument) -> dict[str, Any]:
        record = await self._upload(document)
        return {"record_id": record.external_id}

    async def _update(
        self, document: LocalDocument, stale: RemoteRecord
    ) -> dict[str, Any]:
        # The new record is registered before the stale one is removed, so a
        # failure part way leaves a duplicate rather than a gap.
        record = await self._upload(document)
        await self._remove(stale)
        return {"record_id": record.external_id, "replaced": stale.external_id}

    async def _delete(self, record: RemoteRecord) -> dict[str, Any]:
        await self._remove(record)
        return {"record_id": record.external_id}

    async def _remove(self, record: RemoteRecord) -> None:
        """Delete a record, then its blob. The blob is kept if the record survives."""
        deleted = await self._step(
            "delete_record", self.client.delete_record(record.external_id)
        )
        if not deleted:
            raise RemoteOperationError(
                f"Record {record.external_id} was not deleted", stage="delete_record"
            )

        deleted = await self._step(
            "delete_blob", self.client.delete_blob(record.backing_blob_id)
        )
        if not deleted:
            raise RemoteOperationError(
                f"Blob {record.backing_blob_id} was not deleted", stage="delete_blob"
            )

    def _notify(self, path: str, state: SyncState) -> None:
        if self.on_sync_status_changed is None:
            return
        try:
            self.on_sync_status_changed(path, state)
        except Exception as e:
            logger.warning(f"Sync status callback failed for {path}: {e}")

    def _log(
        self,
        action: str,
        path: str,
        status: str,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.operation_log is None:
            return
        try:
            self.operation_log.log_operation(
                action, path, status, error=error, metadata=metadata
            )
        except Exception as e:
            logger.warning(f"Could not record {action} of {path}: {e}")
