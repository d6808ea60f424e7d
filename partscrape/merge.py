"""Detail merge stage: enrich listing summaries from product detail pages."""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from partscrape.config import BASE_URL
from partscrape.errors import FetchError
from partscrape.fetcher import FetchFunc
from partscrape.html_utils import parse_detail_page, placeholder_image_url
from partscrape.logging_config import get_logger, log_scrape_event
from partscrape.models import MergedProduct, ProductSummary, RunContext
from partscrape.rate import DETAIL, RateGovernor

__all__ = [
    "DetailOptions",
    "CATALOG_DETAIL_OPTIONS",
    "GROUPED_DETAIL_OPTIONS",
    "merge_summary",
    "merge_summaries",
]

logger = get_logger("merge")


@dataclass(frozen=True)
class DetailOptions:
    """Which fields to trust from the detail page.

    The manufacturer code is always taken from the detail page. With
    ``read_stock``/``read_images`` off, the listing's stock hint and preview
    image are final.
    """

    read_stock: bool = True
    read_images: bool = True


CATALOG_DETAIL_OPTIONS = DetailOptions(read_stock=True, read_images=True)
GROUPED_DETAIL_OPTIONS = DetailOptions(read_stock=False, read_images=False)


def merge_summary(
    summary: ProductSummary,
    fetch: FetchFunc,
    options: DetailOptions = CATALOG_DETAIL_OPTIONS,
    governor: Optional[RateGovernor] = None,
    ctx: Optional[RunContext] = None,
    base_url: str = BASE_URL,
) -> MergedProduct:
    """Fold one listing summary and its detail page into a MergedProduct.

    Never raises for a single item: a missing URL, a failed fetch or an
    unparseable page all produce a record with the detail fields left None,
    so the listing data (name, price, stock hint) is never lost. Any error
    raised while reading the detail markup counts as unparseable.
    """
    placeholder = placeholder_image_url(base_url)
    label = summary.item_key or summary.name or "(unnamed)"

    if not summary.item_url:
        logger.warning(f"    Skipping detail fetch for {label} - missing URL")
        return MergedProduct.from_summary(summary, placeholder_image_url=placeholder)

    logger.debug(f"    -> Fetching details from: {summary.item_url}")
    try:
        html = fetch(summary.item_url)
    except FetchError as e:
        logger.error(f"    -> Error fetching product details page {summary.item_url}: {e}")
        _record_failure(ctx, summary, str(e), e.status)
        return MergedProduct.from_summary(summary, placeholder_image_url=placeholder)
    finally:
        if governor is not None:
            governor.pause(DETAIL)

    try:
        detail = parse_detail_page(
            html,
            base_url=base_url,
            read_stock=options.read_stock,
            read_images=options.read_images,
        )
    except Exception as e:
        logger.error(f"    -> Error parsing product details page {summary.item_url}: {e}")
        _record_failure(ctx, summary, f"parse error: {e}", None)
        return MergedProduct.from_summary(summary, placeholder_image_url=placeholder)

    if ctx is not None:
        ctx.details_fetched += 1
    return MergedProduct.from_summary(summary, detail, placeholder_image_url=placeholder)


def _record_failure(
    ctx: Optional[RunContext],
    summary: ProductSummary,
    error: str,
    status: Optional[int],
) -> None:
    if ctx is not None:
        ctx.detail_failures += 1
    log_scrape_event("detail_error", {
        "url": summary.item_url,
        "item_key": summary.item_key,
        "status": status,
        "error": error,
    }, level=logging.DEBUG)


def merge_summaries(
    summaries: Iterable[ProductSummary],
    fetch: FetchFunc,
    options: DetailOptions = CATALOG_DETAIL_OPTIONS,
    governor: Optional[RateGovernor] = None,
    ctx: Optional[RunContext] = None,
    base_url: str = BASE_URL,
) -> Iterator[MergedProduct]:
    """Merge summaries one at a time, in order."""
    for summary in summaries:
        yield merge_summary(
            summary, fetch, options=options, governor=governor, ctx=ctx, base_url=base_url
        )
