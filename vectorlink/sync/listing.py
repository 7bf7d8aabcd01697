"""Full listing of the remote index."""

import logging

from vectorlink.config import REMOTE_FILTER
from vectorlink.remote.index_client import RemoteIndexClient
from vectorlink.sync.models import RemoteRecord

logger = logging.getLogger(__name__)


async def list_all_records(
    client: RemoteIndexClient, filter: str = REMOTE_FILTER
) -> list[RemoteRecord]:
    """Walk every page of the remote index.

    Pages are requested until the service reports no more. The cursor for
    the next page is the page's ``next_cursor``, or the id of its last
    record when the service does not supply one.

    Returns:
        Completed records in listing order
    """
    records: list[RemoteRecord] = []
    cursor: str | None = None
    pages = 0

    while True:
        page = await client.list_page(cursor=cursor, filter=filter)
        pages += 1
        records.extend(page.items)

        if not page.has_more:
            break

        next_cursor = page.next_cursor or (
            page.items[-1].external_id if page.items else None
        )
        if next_cursor is None or next_cursor == cursor:
            logger.warning(
                f"Remote listing reported more pages without a usable cursor; "
                f"stopping after {pages} pages"
            )
            break
        cursor = next_cursor

    completed = [record for record in records if record.is_completed]
    logger.debug(
        f"Listed {len(completed)} completed records ({len(records)} total, {pages} pages)"
    )
    return completed
