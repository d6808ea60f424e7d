"""Pagination walker for catalog listing pages."""

import logging
from enum import Enum
from typing import Iterator, Optional, Set

from partscrape.config import BASE_URL, MAX_CATALOG_PAGES
from partscrape.errors import FetchError
from partscrape.fetcher import FetchFunc
from partscrape.html_utils import canonical_url, parse_listing_page
from partscrape.logging_config import get_logger, log_scrape_event
from partscrape.models import GroupKey, PageResult, RunContext
from partscrape.rate import LISTING, RateGovernor

__all__ = ["WalkOutcome", "PaginationWalker"]

logger = get_logger("walker")


class WalkOutcome(str, Enum):
    """Why a walk stopped."""

    PAGE_LIMIT = "page_limit"
    EMPTY_PAGE = "empty_page"
    CYCLE = "cycle"
    EXHAUSTED = "exhausted"
    FETCH_FAILED = "fetch_failed"
    STOPPED = "stopped"

    @property
    def reached_end(self) -> bool:
        """True when the walk ended because the catalog ran out of pages."""
        return self in (WalkOutcome.EMPTY_PAGE, WalkOutcome.CYCLE, WalkOutcome.EXHAUSTED)


class PaginationWalker:
    """Lazily walks listing pages by following "next page" links.

    Iterating yields one PageResult per fetched page. After each page the
    walk stops, in this order, when:

    1. the page ceiling is reached (logged as a warning);
    2. a page other than the first has no products;
    3. the next link resolves to the current URL or an already visited one
       (compared after normalising the query string);
    4. there is no next link.

    An empty first page is yielded and the walk carries on if a next link
    exists. A page that cannot be fetched (after the fetcher's own retries)
    ends the walk with FETCH_FAILED rather than being taken as the end of
    the catalog. ``outcome`` holds the reason once iteration is done.

    Usage:
        walker = PaginationWalker(start_url, fetch)
        for page in walker:
            ...
        if walker.outcome is WalkOutcome.FETCH_FAILED:
            ...
    """

    def __init__(
        self,
        start_url: str,
        fetch: FetchFunc,
        max_pages: int = MAX_CATALOG_PAGES,
        governor: Optional[RateGovernor] = None,
        ctx: Optional[RunContext] = None,
        group: Optional[GroupKey] = None,
        base_url: str = BASE_URL,
    ) -> None:
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self.start_url = start_url
        self.fetch = fetch
        self.max_pages = max_pages
        self.governor = governor or RateGovernor()
        self.ctx = ctx
        self.group = group
        self.base_url = base_url

        self.outcome: Optional[WalkOutcome] = None
        self.pages_fetched = 0
        self.last_url: Optional[str] = None

    def __iter__(self) -> Iterator[PageResult]:
        current_url: Optional[str] = self.start_url
        page_number = 0
        visited: Set[str] = set()

        try:
            while current_url:
                page_number += 1
                self.last_url = current_url
                visited.add(canonical_url(current_url))
                logger.info(f"  Page {page_number}: {current_url}")

                try:
                    html = self.fetch(current_url)
                except FetchError as e:
                    logger.error(f"  Failed to fetch listing page {page_number}: {e}")
                    log_scrape_event("page_error", {
                        "url": current_url,
                        "page": page_number,
                        "status": e.status,
                        "transient": e.transient,
                        "error": str(e),
                    }, level=logging.DEBUG)
                    self.outcome = WalkOutcome.FETCH_FAILED
                    return

                self.pages_fetched += 1
                if self.ctx is not None:
                    self.ctx.pages_fetched += 1

                listing = parse_listing_page(
                    html, current_url, base_url=self.base_url, group=self.group
                )
                log_scrape_event("page_fetched", {
                    "url": current_url,
                    "page": page_number,
                    "products": len(listing.summaries),
                    "next_url": listing.next_url,
                }, level=logging.DEBUG)

                page = PageResult(
                    url=current_url,
                    page_number=page_number,
                    summaries=listing.summaries,
                    next_url=listing.next_url,
                )

                terminal: Optional[WalkOutcome] = None
                if page_number >= self.max_pages:
                    logger.warning(f"  Reached max pages limit ({self.max_pages})")
                    terminal = WalkOutcome.PAGE_LIMIT
                elif not page.summaries and page_number > 1:
                    logger.info(f"  No products on page {page_number}, stopping pagination")
                    terminal = WalkOutcome.EMPTY_PAGE
                elif page.next_url and canonical_url(page.next_url) in visited:
                    logger.info(f"  Next page URL was already visited, stopping: {page.next_url}")
                    terminal = WalkOutcome.CYCLE
                elif not page.next_url:
                    terminal = WalkOutcome.EXHAUSTED

                if terminal is not None:
                    self.outcome = terminal

                if terminal is not WalkOutcome.EMPTY_PAGE:
                    logger.info(f"    Found {len(page.summaries)} products on page {page_number}")
                    yield page

                if terminal is not None:
                    return

                self.governor.pause(LISTING)
                current_url = page.next_url
        finally:
            if self.outcome is None:
                # Consumer stopped iterating early (budget or per-leaf cap)
                self.outcome = WalkOutcome.STOPPED
            log_scrape_event("walk_complete", {
                "start_url": self.start_url,
                "pages": self.pages_fetched,
                "outcome": self.outcome.value,
            }, level=logging.DEBUG)
