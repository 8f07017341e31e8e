"""Delta watermark predicate and paged retrieval of changed objects."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from idsync.domain.model import ConnectedSystemObject
    from idsync.domain.ports import ConnectedSystemObjectRepository, PagedResult
    from idsync.domain.sync.cancellation import CancellationSignal

log = logging.getLogger(__name__)

# sentinel for "never synced": every object qualifies
MIN_WATERMARK = datetime.min.replace(tzinfo=UTC)


def is_modified_since(cso: ConnectedSystemObject, watermark: datetime) -> bool:
    """Strictly-after predicate; an object stamped exactly at the watermark is excluded."""

    if cso.created > watermark:
        return True
    return cso.last_updated is not None and cso.last_updated > watermark


def iter_modified_pages(
    repository: ConnectedSystemObjectRepository,
    connected_system_id: int,
    watermark: datetime,
    page_size: int,
    cancellation: CancellationSignal | None = None,
) -> Iterator[PagedResult[ConnectedSystemObject]]:
    """Yield pages of objects changed after ``watermark``.

    The count is queried first and nothing is paged when it is zero. Pages are
    fetched lazily so the caller's commits between pages are visible to the
    following queries; cancellation is checked before each page.
    """

    total = repository.count_modified_since(connected_system_id, watermark)
    if total == 0:
        log.info("No objects changed in connected system %s since %s", connected_system_id, watermark)
        return

    total_pages = -(-total // page_size)
    log.info(
        "%d object(s) changed in connected system %s since %s (%d page(s))",
        total,
        connected_system_id,
        watermark,
        total_pages,
    )
    for page in range(1, total_pages + 1):
        if cancellation is not None and cancellation.is_cancelled:
            log.info("Cancelled before page %d of %d", page, total_pages)
            return
        result = repository.get_modified_since(connected_system_id, watermark, page, page_size)
        if not result.results:
            return
        yield result
