"""Append-only log of sync operations.

Every remote step the executor performs is recorded as one JSON line, so a
failed run can be inspected after the fact.

Stored as: <base_dir>/.sync-log.jsonl
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

LOG_FILENAME = ".sync-log.jsonl"


@dataclass
class SyncOperation:
    """Record of a single sync step."""

    op_id: str
    op_type: str  # "create", "update", "delete"
    path: str
    status: str  # "success", "failed"
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op_id": self.op_id,
            "op_type": self.op_type,
            "path": self.path,
            "status": self.status,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> "SyncOperation":
        return cls(
            op_id=entry["op_id"],
            op_type=entry["op_type"],
            path=entry["path"],
            status=entry["status"],
            error=entry.get("error"),
            timestamp=datetime.fromisoformat(entry["timestamp"]),
            metadata=entry.get("metadata", {}),
        )


class SyncOperationLog:
    """Transaction log for sync operations in JSONL format."""

    def __init__(self, base_dir: Path):
        """Initialize sync operation log.

        Args:
            base_dir: Directory holding the log file
        """
        self.base_dir = Path(base_dir)
        self.log_file = self.base_dir / LOG_FILENAME

    def log_operation(
        self,
        op_type: str,
        path: str,
        status: str,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Append an operation to the log.

        Args:
            op_type: Operation type ("create", "update", "delete")
            path: Document path or record name
            status: "success" or "failed"
            error: Error message if failed
            metadata: Extra details (record ids, failing stage)

        Returns:
            Operation ID
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now(timezone.utc)
        op_id = f"{int(timestamp.timestamp() * 1000)}_{hashlib.md5(os.fsencode(path)).hexdigest()[:8]}"
        operation = SyncOperation(
            op_id=op_id,
            op_type=op_type,
            path=path,
            status=status,
            error=error,
            timestamp=timestamp,
            metadata=metadata or {},
        )

        try:
            with open(self.log_file, "a") as f:
                f.write(json.dumps(operation.to_dict()) + "\n")
        except OSError as e:
            logger.error(f"Failed to write to operation log: {e}")
            raise

        logger.debug(f"Logged {op_type} operation: {path} ({status})")
        return op_id

    def get_failed_operations(self) -> list[SyncOperation]:
        """Get all failed operations."""
        return self._filter_operations(lambda op: op.status == "failed")

    def get_recent_operations(self, limit: int = 50) -> list[SyncOperation]:
        """Get the most recent operations, newest first."""
        operations = self._read_all_operations()
        return operations[-limit:][::-1]

    def get_operations_for_path(self, path: str) -> list[SyncOperation]:
        """Get all operations recorded for a path."""
        return self._filter_operations(lambda op: op.path == path)

    def get_statistics(self) -> dict[str, Any]:
        """Count operations by type and status, plus failures in the last day."""
        operations = self._read_all_operations()

        stats: dict[str, Any] = {
            "total_operations": len(operations),
            "by_type": {},
            "by_status": {},
            "recent_failures": 0,
        }
        for op in operations:
            stats["by_type"][op.op_type] = stats["by_type"].get(op.op_type, 0) + 1
            stats["by_status"][op.status] = stats["by_status"].get(op.status, 0) + 1

        recent_threshold = datetime.now(timezone.utc) - timedelta(hours=24)
        stats["recent_failures"] = sum(
            1
            for op in operations
            if op.status == "failed" and op.timestamp > recent_threshold
        )
        return stats

    def truncate(self, keep_days: int = 7) -> int:
        """Drop successful operations older than ``keep_days``.

        Failed operations are always kept.

        Returns:
            Number of operations removed
        """
        if not self.log_file.exists():
            return 0

        operations = self._read_all_operations()
        cutoff = datetime.now(timezone.utc) - timedelta(days=keep_days)
        kept = [
            op for op in operations if op.status != "success" or op.timestamp > cutoff
        ]
        removed = len(operations) - len(kept)

        if removed > 0:
            with open(self.log_file, "w") as f:
                for op in kept:
                    f.write(json.dumps(op.to_dict()) + "\n")
            logger.info(f"Truncated operation log: removed {removed} old entries")

        return removed

    def _read_all_operations(self) -> list[SyncOperation]:
        if not self.log_file.exists():
            return []

        operations = []
        try:
            with open(self.log_file, "r") as f:
                for line in f:
                    if not line.strip():
                        continue
                    try:
                        operations.append(SyncOperation.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, KeyError, ValueError) as e:
                        logger.warning(f"Skipping invalid log entry: {e}")
        except OSError as e:
            logger.error(f"Failed to read operation log: {e}")
            return []

        return operations

    def _filter_operations(
        self, predicate: Callable[[SyncOperation], bool]
    ) -> list[SyncOperation]:
        return [op for op in self._read_all_operations() if predicate(op)]
