"""Vault to vector store synchronization.

This package provides:
- LocalCollectionScanner: Enumerates local documents
- plan: Diffs local documents against remote records
- ReconciliationExecutor (sync.executor): Applies plans to the remote index
- SyncEngine (sync.engine): Runs scan, listing, planning and execution
- SyncOperationLog: JSONL record of sync steps
"""

from vectorlink.sync.models import (
    LocalDocument,
    ReconciliationPlan,
    RecordPage,
    RecordStatus,
    RemoteRecord,
    SyncFailure,
    SyncReport,
    SyncState,
)
from vectorlink.sync.operation_log import SyncOperation, SyncOperationLog
from vectorlink.sync.planner import plan, sync_states
from vectorlink.sync.scanner import LocalCollectionScanner

__all__ = [
    # Models
    "LocalDocument",
    "ReconciliationPlan",
    "RecordPage",
    "RecordStatus",
    "RemoteRecord",
    "SyncFailure",
    "SyncReport",
    "SyncState",
    # Operation log
    "SyncOperation",
    "SyncOperationLog",
    # Planning
    "plan",
    "sync_states",
    # Scanning
    "LocalCollectionScanner",
]
