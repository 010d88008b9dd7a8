"""Lazy consumption of paged provider listings."""

from collections.abc import Callable, Iterator
from typing import Any

from zonekeeper._logging import get_logger
from zonekeeper.exceptions import ProviderApiError
from zonekeeper.models import PageCursor, PageResult

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10


def walk_pages(
    fetch_page: Callable[[PageCursor], dict[str, Any] | PageResult],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[dict[str, Any]]:
    """Yield every item of a paged listing, one page at a time.

    Pages are requested strictly in order starting from page 1. All
    items of a page are yielded before the next page is requested, and
    the walk stops after the page whose number equals ``total_pages``.
    Stopping iteration early never triggers another fetch.

    Args:
        fetch_page: Called with the cursor of the page to fetch; returns
            the provider's response envelope.
        page_size: Number of items requested per page.

    Yields:
        Raw item dicts in provider order.

    Raises:
        ProviderApiError: If a page reports ``success: false``. Not retried.
    """
    page = 1
    while True:
        response = fetch_page(PageCursor(page=page, per_page=page_size))
        result = (
            response if isinstance(response, PageResult) else PageResult.model_validate(response)
        )

        if not result.success:
            logger.error(
                "Paged listing failed",
                extra={"page": page, "errors": result.errors},
            )
            raise ProviderApiError(result.errors, message="DNS provider API error.")

        logger.debug(
            "Fetched page",
            extra={"page": page, "count": len(result.result or [])},
        )
        yield from result.result or []

        total_pages = result.result_info.total_pages if result.result_info else page
        if page >= total_pages:
            return
        page += 1
