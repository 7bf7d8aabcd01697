"""Data models shared by the scanner, planner and executor."""

from dataclasses import dataclass, field
from enum import Enum


class RecordStatus(str, Enum):
    """Processing status of a record in the remote index."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SyncState(str, Enum):
    """Per-document status reported to UI collaborators."""

    SYNCED = "synced"
    UNSYNCED = "unsynced"
    SYNCING = "syncing"
    FAILED = "failed"
    DELETED = "deleted"


@dataclass(frozen=True)
class LocalDocument:
    """A document in the local collection.

    ``last_modified`` is the file mtime in integer milliseconds.
    """

    path: str
    last_modified: int


@dataclass(frozen=True)
class RemoteRecord:
    """A record in the remote index, bound to a local document by ``name``."""

    external_id: str
    name: str | None
    updated_at: int | None
    status: RecordStatus = RecordStatus.COMPLETED
    blob_id: str | None = None

    @property
    def backing_blob_id(self) -> str:
        """Id of the uploaded blob (the remote store reuses the record id)."""
        return self.blob_id or self.external_id

    @property
    def is_completed(self) -> bool:
        return self.status == RecordStatus.COMPLETED


@dataclass(frozen=True)
class RecordPage:
    """One page of a remote listing."""

    items: list[RemoteRecord]
    has_more: bool = False
    next_cursor: str | None = None


@dataclass(frozen=True)
class ReconciliationPlan:
    """Create/update/delete actions needed to align local and remote state."""

    to_create: tuple[LocalDocument, ...] = ()
    to_update: tuple[tuple[LocalDocument, RemoteRecord], ...] = ()
    to_delete: tuple[RemoteRecord, ...] = ()

    @property
    def total_operations(self) -> int:
        """Get total number of operations in plan."""
        return len(self.to_create) + len(self.to_update) + len(self.to_delete)

    @property
    def is_empty(self) -> bool:
        return self.total_operations == 0


@dataclass
class SyncFailure:
    """A single plan item that did not complete.

    Attributes:
        action: "create", "update" or "delete"
        path: Local path (or remote record name for deletes)
        reason: Cause of the failure
        stage: Remote step that failed, if known
    """

    action: str
    path: str | None
    reason: str
    stage: str | None = None


@dataclass
class SyncReport:
    """Result of executing a reconciliation plan."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failures: list[SyncFailure] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total(self) -> int:
        """Get total number of items attempted."""
        return (
            len(self.created)
            + len(self.updated)
            + len(self.deleted)
            + len(self.failures)
        )

    @property
    def succeeded(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total == 0:
            return 100.0
        return (self.succeeded / self.total) * 100.0
