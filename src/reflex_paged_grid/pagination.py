"""Pagination window and record-range arithmetic."""

from reflex_paged_grid.models import PageLink

FIRST_PAGE_LABEL: str = "«"
PREVIOUS_PAGE_LABEL: str = "‹"
NEXT_PAGE_LABEL: str = "›"
LAST_PAGE_LABEL: str = "»"


def compute_page_window(current_page: int, page_count: int) -> list[PageLink]:
    """Return the pagination controls for *current_page* of *page_count* pages.

    The numbered window starts up to three pages before the current page and
    extends three pages past it, widened near the start so the first pages
    always show a window of about seven links.  Jump links are added around
    it:

    * ``«`` to page 1 when the current page is past page 2,
    * ``‹`` to the previous page when not on page 1,
    * ``›`` to the next page when a next page exists,
    * ``»`` to the last page when it is more than one page away.

    Links are not de-duplicated: on page 5 of 10 both ``‹`` and the numbered
    link target page 4.

    Args:
        current_page: The 1-based page being displayed.
        page_count: Total number of pages for the current filter.

    Returns:
        The ordered list of :class:`PageLink` objects.
    """
    start_at_page = max(1, current_page - 3)
    end_at_page = min(page_count, current_page + 3 + max(3 - current_page, 1))
    next_page = current_page + 1

    links: list[PageLink] = []
    if current_page > 2:
        links.append(PageLink(False, FIRST_PAGE_LABEL, 1))
    if current_page > 1:
        links.append(PageLink(False, PREVIOUS_PAGE_LABEL, current_page - 1))

    for i in range(start_at_page, end_at_page + 1):
        links.append(PageLink(i == current_page, str(i), i))

    if page_count + 1 > next_page:
        links.append(PageLink(False, NEXT_PAGE_LABEL, next_page))
    if page_count - 1 > current_page:
        links.append(PageLink(False, LAST_PAGE_LABEL, page_count))

    return links


def records_range(page: int, page_size: int, record_count: int) -> tuple[int, int]:
    """Return the 1-based ``(from, to)`` record numbers shown on *page*."""
    records_from = (page - 1) * page_size + 1
    records_to = min(record_count, page * page_size)
    return records_from, records_to
