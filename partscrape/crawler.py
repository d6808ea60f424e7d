"""Crawl orchestration: single-catalog and brand/model/year grouped runs."""

import os
from typing import List, Optional, Tuple
from urllib.parse import quote

from partscrape.brand_models import count_leaves, fetch_brand_models, iter_group_keys
from partscrape.config import (
    BASE_URL,
    CATALOG_PATH,
    CATALOG_URL,
    MAX_CATALOG_PAGES,
    MAX_PAGES_PER_GROUP,
    STATE_DB_PATH,
)
from partscrape.csv_utils import BatchWriter
from partscrape.errors import BatchWriteError
from partscrape.fetcher import FetchFunc
from partscrape.logging_config import get_logger, log_scrape_event
from partscrape.merge import (
    CATALOG_DETAIL_OPTIONS,
    GROUPED_DETAIL_OPTIONS,
    DetailOptions,
    merge_summary,
)
from partscrape.models import BrandModelTree, GroupKey, MergedProduct, RunContext
from partscrape.rate import GROUP, RateGovernor
from partscrape.state import clear_state, get_completed_batches, mark_batch_complete
from partscrape.walker import PaginationWalker, WalkOutcome

__all__ = [
    "build_group_url",
    "crawl_listing",
    "scrape_group",
    "crawl_groups",
    "run_catalog",
    "run_grouped",
]

logger = get_logger("crawler")


def _min_limit(*limits: Optional[int]) -> Optional[int]:
    values = [limit for limit in limits if limit is not None]
    return min(values) if values else None


def build_group_url(key: GroupKey, base_url: str = BASE_URL) -> str:
    """Filtered listing URL for one (brand, model, year-range) leaf."""
    return (
        f"{base_url}{CATALOG_PATH}"
        f"?brand={quote(key.brand_code, safe='')}"
        f"&model={quote(key.model_name, safe='')}"
        f"&year={quote(key.year_range, safe='')}"
    )


def crawl_listing(
    start_url: str,
    fetch: FetchFunc,
    ctx: RunContext,
    governor: RateGovernor,
    options: DetailOptions,
    max_pages: int,
    limit: Optional[int] = None,
    group: Optional[GroupKey] = None,
    base_url: str = BASE_URL,
) -> Tuple[List[MergedProduct], WalkOutcome]:
    """Walk a listing and merge up to ``limit`` products (None = all).

    Summaries beyond the limit are dropped before their detail pages are
    fetched.
    """
    if limit is not None and limit <= 0:
        return [], WalkOutcome.STOPPED

    walker = PaginationWalker(
        start_url,
        fetch,
        max_pages=max_pages,
        governor=governor,
        ctx=ctx,
        group=group,
        base_url=base_url,
    )
    products: List[MergedProduct] = []

    pages = iter(walker)
    try:
        for page in pages:
            summaries = page.summaries
            if limit is not None:
                summaries = summaries[:max(limit - len(products), 0)]
            if summaries:
                logger.info(
                    f"  Fetching details for {len(summaries)} products from page {page.page_number}"
                )

            for i, summary in enumerate(summaries, start=1):
                logger.info(
                    f"    [{page.page_number}-{i}/{len(summaries)}] {summary.item_key} ({summary.name})"
                )
                products.append(merge_summary(
                    summary, fetch, options=options, governor=governor, ctx=ctx, base_url=base_url
                ))

            if limit is not None and len(products) >= limit:
                logger.info(f"  Reached item limit ({limit}) for this listing")
                break
    finally:
        pages.close()

    return products, walker.outcome or WalkOutcome.STOPPED


def scrape_group(
    key: GroupKey,
    fetch: FetchFunc,
    ctx: RunContext,
    governor: RateGovernor,
    per_group_limit: Optional[int] = None,
    max_pages: int = MAX_PAGES_PER_GROUP,
    options: DetailOptions = GROUPED_DETAIL_OPTIONS,
    base_url: str = BASE_URL,
) -> Tuple[List[MergedProduct], WalkOutcome]:
    """Crawl one leaf, bounded by its own cap and the remaining run budget."""
    logger.info(f"--- Scraping car: {key.brand_code} / {key.model_name} / {key.year_range} ---")
    limit = _min_limit(per_group_limit, ctx.remaining())

    products, outcome = crawl_listing(
        build_group_url(key, base_url),
        fetch,
        ctx,
        governor,
        options,
        max_pages=max_pages,
        limit=limit,
        group=key,
        base_url=base_url,
    )

    logger.info(
        f"--- Finished car: {key.brand_code} / {key.model_name} / {key.year_range}. "
        f"Found {len(products)} products ({outcome.value}) ---"
    )
    return products, outcome


def crawl_groups(
    tree: BrandModelTree,
    fetch: FetchFunc,
    writer: BatchWriter,
    ctx: RunContext,
    governor: RateGovernor,
    per_group_limit: Optional[int] = None,
    max_pages: int = MAX_PAGES_PER_GROUP,
    brands: Optional[List[str]] = None,
    completed: Optional[List[str]] = None,
    state_db: Optional[str] = STATE_DB_PATH,
    options: DetailOptions = GROUPED_DETAIL_OPTIONS,
    base_url: str = BASE_URL,
) -> RunContext:
    """Crawl every leaf of the tree, writing one batch per brand.

    Stops issuing leaves as soon as the run budget is spent; the leaf that
    spends it is truncated to exactly the remaining budget. Each brand's
    batch is persisted (and recorded in the cursor) before the next brand
    starts.

    Raises:
        BatchWriteError: If a batch cannot be persisted
    """
    skip = set(completed or [])

    for brand_code, leaves in iter_group_keys(tree, brands):
        if ctx.exhausted:
            break
        if brand_code in skip:
            logger.info(f"Skipping brand {brand_code}: already completed in a previous run")
            continue

        logger.info(f"Processing brand: {brand_code} ({len(leaves)} model/year combinations)")
        brand_products: List[MergedProduct] = []

        for key in leaves:
            if ctx.exhausted:
                break

            products, outcome = scrape_group(
                key,
                fetch,
                ctx,
                governor,
                per_group_limit=per_group_limit,
                max_pages=max_pages,
                options=options,
                base_url=base_url,
            )
            brand_products.extend(products)
            ctx.total_scraped += len(products)
            if outcome is WalkOutcome.FETCH_FAILED:
                ctx.failed_groups.append(key)

            if ctx.exhausted:
                logger.info(
                    f"Reached MAX_TOTAL_PRODUCTS limit ({ctx.budget}) during "
                    f"{key.brand_code} {key.model_name} {key.year_range}"
                )
                break

            governor.pause(GROUP)

        _write_batch(writer, brand_products, brand_code, ctx, state_db)

    return ctx


def _write_batch(
    writer: BatchWriter,
    products: List[MergedProduct],
    batch_key: str,
    ctx: RunContext,
    state_db: Optional[str],
) -> None:
    if products:
        logger.info(f"Saving batch for brand {batch_key} ({len(products)} products)")
    try:
        written = writer.append(products, batch_label=batch_key)
    except BatchWriteError:
        log_scrape_event("batch_error", {
            "path": writer.path,
            "batch": batch_key,
            "rows": len(products),
        })
        raise

    if written:
        ctx.rows_written += written
        ctx.batches_written += 1
    if state_db:
        mark_batch_complete(state_db, writer.path, batch_key, written)


def _finish(ctx: RunContext, output_path: str) -> RunContext:
    logger.info(
        f"Scraping finished. Total products saved: {ctx.rows_written} "
        f"({ctx.pages_fetched} listing pages, {ctx.details_fetched} detail pages, "
        f"{ctx.detail_failures} detail failures)"
    )
    if ctx.failed_groups:
        logger.warning(f"{len(ctx.failed_groups)} listing(s) stopped on a fetch failure:")
        for key in ctx.failed_groups:
            logger.warning(f"  {key.brand_code} / {key.model_name} / {key.year_range}")
    logger.info(f"Output file: {output_path}")
    log_scrape_event("run_complete", {**ctx.as_dict(), "output": output_path})
    return ctx


def run_catalog(
    fetch: FetchFunc,
    output_path: str,
    start_url: str = CATALOG_URL,
    budget: Optional[int] = None,
    max_pages: int = MAX_CATALOG_PAGES,
    governor: Optional[RateGovernor] = None,
    options: DetailOptions = CATALOG_DETAIL_OPTIONS,
    base_url: str = BASE_URL,
) -> RunContext:
    """Crawl the single category-filtered catalog and write it as one batch.

    Raises:
        BatchWriteError: If the output cannot be written
    """
    governor = governor or RateGovernor()
    ctx = RunContext(budget=budget)
    logger.info(f"Starting catalog scrape: {start_url}")
    log_scrape_event("run_start", {
        "mode": "catalog",
        "start_url": start_url,
        "output": output_path,
        "budget": budget,
        "max_pages": max_pages,
    })

    products, outcome = crawl_listing(
        start_url,
        fetch,
        ctx,
        governor,
        options,
        max_pages=max_pages,
        limit=budget,
        base_url=base_url,
    )
    ctx.total_scraped = len(products)
    logger.info(f"Catalog walk ended ({outcome.value}) with {len(products)} products")

    if products:
        logger.info("Converting data to WooCommerce CSV format...")
    writer = BatchWriter(output_path)
    written = writer.append(products, batch_label="catalog")
    ctx.rows_written += written
    ctx.batches_written += 1 if written else 0
    return _finish(ctx, output_path)


def run_grouped(
    fetch: FetchFunc,
    output_path: str,
    budget: Optional[int] = None,
    per_group_limit: Optional[int] = None,
    max_pages: int = MAX_PAGES_PER_GROUP,
    governor: Optional[RateGovernor] = None,
    brands: Optional[List[str]] = None,
    state_db: str = STATE_DB_PATH,
    fresh: bool = False,
    tree: Optional[BrandModelTree] = None,
    options: DetailOptions = GROUPED_DETAIL_OPTIONS,
    base_url: str = BASE_URL,
) -> RunContext:
    """Grouped crawl with per-brand batches and resume support.

    If the cursor lists completed brands for ``output_path`` and the file
    still exists, the run resumes: completed brands are skipped and their
    rows count against the budget, and the header is written only if the
    file is still empty. Otherwise (or with ``fresh``) the output starts
    empty. The cursor is cleared once the run completes.

    Raises:
        BrandModelsError: If the brand/model data cannot be loaded
        BatchWriteError: If the output cannot be written
    """
    governor = governor or RateGovernor()

    completed = {} if fresh else get_completed_batches(state_db, output_path)
    resuming = bool(completed) and os.path.exists(output_path)
    if not resuming:
        clear_state(state_db, output_path)
        completed = {}

    if tree is None:
        tree = fetch_brand_models(fetch, f"{base_url}{CATALOG_PATH}")

    ctx = RunContext(budget=budget, total_scraped=sum(completed.values()))
    # A cursor can list brands that wrote nothing, leaving the file empty
    header_written = resuming and os.path.getsize(output_path) > 0
    writer = BatchWriter(output_path, header_written=header_written)
    if resuming:
        logger.info(
            f"Resuming: {len(completed)} brand(s) already saved "
            f"({ctx.total_scraped} products) in {output_path}"
        )
    else:
        writer.initialize()

    log_scrape_event("run_start", {
        "mode": "grouped",
        "output": output_path,
        "budget": budget,
        "per_group_limit": per_group_limit,
        "brands": len(tree),
        "leaves": count_leaves(tree),
        "resumed_batches": len(completed),
    })

    crawl_groups(
        tree,
        fetch,
        writer,
        ctx,
        governor,
        per_group_limit=per_group_limit,
        max_pages=max_pages,
        brands=brands,
        completed=list(completed),
        state_db=state_db,
        options=options,
        base_url=base_url,
    )
    ctx.rows_written += sum(completed.values())

    clear_state(state_db, output_path)
    return _finish(ctx, output_path)
