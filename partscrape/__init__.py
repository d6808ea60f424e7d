"""fastdeliverycarparts.com catalog scraper package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from partscrape.config import BASE_URL, CATALOG_URL, GROUPED_OUTPUT_PATH, OUTPUT_PATH
from partscrape.crawler import crawl_groups, run_catalog, run_grouped, scrape_group
from partscrape.csv_utils import WOOCOMMERCE_COLUMNS, BatchWriter, product_to_row
from partscrape.merge import DetailOptions, merge_summary
from partscrape.models import (
    GroupKey,
    MergedProduct,
    ProductDetail,
    ProductSummary,
    RunContext,
)
from partscrape.walker import PaginationWalker, WalkOutcome

__all__ = [
    # Version
    "__version__",
    # Config
    "BASE_URL",
    "CATALOG_URL",
    "OUTPUT_PATH",
    "GROUPED_OUTPUT_PATH",
    # Models
    "GroupKey",
    "ProductSummary",
    "ProductDetail",
    "MergedProduct",
    "RunContext",
    # Core
    "PaginationWalker",
    "WalkOutcome",
    "DetailOptions",
    "merge_summary",
    "BatchWriter",
    "product_to_row",
    "WOOCOMMERCE_COLUMNS",
    "scrape_group",
    "crawl_groups",
    "run_catalog",
    "run_grouped",
]
