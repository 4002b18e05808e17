"""Generic page walkers shared by every listing endpoint.

Two pagination idioms are covered:

- cursor pagination, where each page hands back an opaque continuation token
  and a missing token marks the last page (Google APIs; Cloudflare after its
  page numbers are adapted into a cursor by the call site);
- page-number pagination, where pages 1, 2, ... are requested until an empty
  page comes back (GitHub).

Neither walker guards against an endpoint that never terminates.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

T = TypeVar("T")

# An opaque continuation token. Call sites decide what it contains.
Cursor = Any

PageFetch = Callable[[Cursor | None, int | None], Awaitable[tuple[list[T], Cursor | None]]]
NumberedPageFetch = Callable[[int], Awaitable[list[T]]]


async def walk_pages(
    fetch: PageFetch[T],
    *,
    page_size: int | None = None,
    description: str = "items",
    log: "Logger | None" = None,
) -> list[T]:
    """Collect every item of a cursor-paginated listing, in page-arrival order.

    Args:
        fetch: Called with (cursor, page_size), first with a cursor of None.
            Returns the page items and the next cursor (None or "" on the last page).
        page_size: Passed through to fetch unchanged.
        description: What is being listed, used in the per-page log line.
        log: Logger to report page counts to.
    """
    log = log or logger
    items: list[T] = []
    cursor: Cursor | None = None
    while True:
        page, cursor = await fetch(cursor, page_size)
        items.extend(page)
        log.info("Fetched {} {}", len(page), description)
        if cursor is None or cursor == "":
            return items


async def walk_numbered_pages(
    fetch_page: NumberedPageFetch[T],
    *,
    first_page: int = 1,
    description: str = "items",
    log: "Logger | None" = None,
) -> list[T]:
    """Collect pages first_page, first_page + 1, ... until one comes back empty."""
    log = log or logger
    items: list[T] = []
    page_number = first_page
    while True:
        page = await fetch_page(page_number)
        if not page:
            return items
        log.info("Fetched {} {}", len(page), description)
        items.extend(page)
        page_number += 1
