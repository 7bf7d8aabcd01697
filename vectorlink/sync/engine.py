"""Sync engine.

Runs a full reconciliation: scan the local collection, list the remote
index, plan, and execute. The executor's guard is held for the whole
sequence so two runs never interleave their listings and writes.
"""

import logging
import time

from vectorlink.remote.index_client import RemoteIndexClient
from vectorlink.sync.executor import ReconciliationExecutor, StatusCallback
from vectorlink.sync.listing import list_all_records
from vectorlink.sync.models import (
    ReconciliationPlan,
    RemoteRecord,
    SyncReport,
    SyncState,
)
from vectorlink.sync.operation_log import SyncOperationLog
from vectorlink.sync.planner import plan, sync_states
from vectorlink.sync.scanner import LocalCollectionScanner

logger = logging.getLogger(__name__)


class SyncEngine:
    """Keep a remote index aligned with a local document collection."""

    def __init__(
        self,
        scanner: LocalCollectionScanner,
        client: RemoteIndexClient,
        executor: ReconciliationExecutor | None = None,
        operation_log: SyncOperationLog | None = None,
        on_sync_status_changed: StatusCallback | None = None,
    ):
        """Initialize sync engine.

        Args:
            scanner: Local collection scanner
            client: Remote index client
            executor: Executor to use (built from the client if omitted)
            operation_log: Operation log (defaults to one in the vault root)
            on_sync_status_changed: Status hook for a default executor
        """
        self.scanner = scanner
        self.client = client
        self.operation_log = operation_log or SyncOperationLog(scanner.root)
        self.executor = executor or ReconciliationExecutor(
            client,
            scanner.read_bytes,
            operation_log=self.operation_log,
            on_sync_status_changed=on_sync_status_changed,
        )

    async def list_remote_records(self) -> list[RemoteRecord]:
        """List every completed record in the remote index."""
        return await list_all_records(self.client)

    async def analyze(self) -> ReconciliationPlan:
        """Compute the plan a sync would execute, without executing it."""
        documents = self.scanner.scan()
        remotes = await self.list_remote_records()
        return plan(documents, remotes)

    async def sync(self, queue: bool = False) -> SyncReport:
        """Run a full sync.

        Args:
            queue: Wait for a sync already in progress instead of failing

        Raises:
            SyncInProgress: If a sync is running and ``queue`` is False
            ScanError: If the local collection cannot be scanned
            RemoteError: If the remote listing fails
        """
        start_time = time.time()
        async with self.executor.exclusive(queue):
            sync_plan = await self.analyze()
            if sync_plan.is_empty:
                logger.info("Remote index is up to date")
                return SyncReport(duration=time.time() - start_time)
            report = await self.executor.apply(sync_plan)

        report.duration = time.time() - start_time
        try:
            self.operation_log.truncate()
        except OSError as e:
            logger.warning(f"Failed to truncate operation log: {e}")
        return report

    async def status(self) -> dict[str, SyncState]:
        """Classify each local document as synced or unsynced."""
        documents = self.scanner.scan()
        remotes = await self.list_remote_records()
        return sync_states(documents, remotes)
