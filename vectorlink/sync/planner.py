"""Reconciliation planner.

Computes the create/update/delete actions that converge the remote index
on the local collection. The planner is pure: it sees only the scan result
and a full remote listing, and never touches the network.
"""

import logging
from typing import Iterable

from vectorlink.sync.models import (
    LocalDocument,
    ReconciliationPlan,
    RemoteRecord,
    SyncState,
)

logger = logging.getLogger(__name__)


def index_remotes(
    remotes: Iterable[RemoteRecord],
) -> tuple[dict[str, RemoteRecord], list[RemoteRecord]]:
    """Index completed records by name.

    Record names are expected to be unique. When they are not, the first
    record in listing order wins and the rest are returned as duplicates.

    Returns:
        Tuple of (records by name, duplicate records in listing order)
    """
    by_name: dict[str, RemoteRecord] = {}
    duplicates: list[RemoteRecord] = []

    for record in remotes:
        if not record.is_completed or not record.name:
            continue
        if record.name in by_name:
            logger.warning(
                f"Duplicate remote records for {record.name}: keeping "
                f"{by_name[record.name].external_id}, ignoring {record.external_id}"
            )
            duplicates.append(record)
            continue
        by_name[record.name] = record

    return by_name, duplicates


def plan(
    local_documents: Iterable[LocalDocument],
    remotes: Iterable[RemoteRecord],
) -> ReconciliationPlan:
    """Diff local documents against remote records.

    Creates and updates follow local scan order; deletes follow remote
    listing order and come after them.

    Args:
        local_documents: Output of the local collection scanner
        remotes: Full remote listing (non-completed records are ignored)

    Returns:
        ReconciliationPlan to hand to the executor
    """
    remotes = list(remotes)
    by_name, duplicates = index_remotes(remotes)

    to_create: list[LocalDocument] = []
    to_update: list[tuple[LocalDocument, RemoteRecord]] = []
    local_paths: set[str] = set()

    for document in local_documents:
        local_paths.add(document.path)
        remote = by_name.get(document.path)
        if remote is None:
            to_create.append(document)
        elif remote.updated_at != document.last_modified:
            to_update.append((document, remote))

    duplicate_ids = {record.external_id for record in duplicates}
    to_delete = [
        record
        for record in remotes
        if record.is_completed
        and record.name
        and (record.name not in local_paths or record.external_id in duplicate_ids)
    ]

    result = ReconciliationPlan(
        to_create=tuple(to_create),
        to_update=tuple(to_update),
        to_delete=tuple(to_delete),
    )
    logger.debug(
        f"Planned {len(result.to_create)} creates, {len(result.to_update)} updates, "
        f"{len(result.to_delete)} deletes"
    )
    return result


def sync_states(
    local_documents: Iterable[LocalDocument],
    remotes: Iterable[RemoteRecord],
) -> dict[str, SyncState]:
    """Classify each local document as synced or unsynced."""
    by_name, _ = index_remotes(remotes)
    states = {}
    for document in local_documents:
        remote = by_name.get(document.path)
        if remote is not None and remote.updated_at == document.last_modified:
            states[document.path] = SyncState.SYNCED
        else:
            states[document.path] = SyncState.UNSYNCED
    return states
