"""Data models for products and crawl runs."""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional
from urllib.parse import urlparse

from partscrape.config import PLACEHOLDER_IMAGE_NAME

__all__ = [
    "BrandModelTree",
    "GroupKey",
    "ProductSummary",
    "ProductDetail",
    "MergedProduct",
    "ListingPage",
    "PageResult",
    "RunContext",
]

# brand code -> model name -> year ranges
BrandModelTree = Dict[str, Dict[str, List[str]]]

_WHITESPACE_RE = re.compile(r"\s+")


class GroupKey(NamedTuple):
    """One (brand, model, year-range) leaf of the brand/model tree."""

    brand_code: str
    model_name: str
    year_range: str


@dataclass
class ProductSummary:
    """Abbreviated product entry as shown on a listing page."""

    name: Optional[str] = None
    site_code: Optional[str] = None
    price: Optional[Decimal] = None
    item_url: Optional[str] = None
    preview_image_urls: List[str] = field(default_factory=list)
    in_stock_hint: bool = False

    # Set in grouped mode only
    group: Optional[GroupKey] = None

    @property
    def item_id(self) -> Optional[str]:
        """Numeric id from the trailing path segment of ``item_url``."""
        if not self.item_url:
            return None
        segments = [s for s in urlparse(self.item_url).path.split("/") if s]
        if segments and segments[-1].isdigit():
            return segments[-1]
        return None

    @property
    def name_slug(self) -> Optional[str]:
        if not self.name:
            return None
        return _WHITESPACE_RE.sub("-", self.name.strip())

    @property
    def item_key(self) -> Optional[str]:
        """Canonical identity: site id from the URL, then site code, then name slug."""
        return self.item_id or self.site_code or self.name_slug


@dataclass
class ProductDetail:
    """Enrichment fields only present on a product's detail page."""

    manufacturer_code: Optional[str] = None
    # None when stock was not read from the detail page
    in_stock: Optional[bool] = None
    image_urls: List[str] = field(default_factory=list)


@dataclass
class MergedProduct:
    """A listing summary folded together with its (optional) detail fields."""

    summary: ProductSummary
    manufacturer_code: Optional[str] = None
    authoritative_in_stock: Optional[bool] = None
    detail_image_urls: Optional[List[str]] = None
    detail_fetched: bool = False

    # Image used when neither page yields a real picture
    placeholder_image_url: Optional[str] = None

    @classmethod
    def from_summary(
        cls,
        summary: ProductSummary,
        detail: Optional[ProductDetail] = None,
        placeholder_image_url: Optional[str] = None,
    ) -> "MergedProduct":
        if detail is None:
            return cls(summary=summary, placeholder_image_url=placeholder_image_url)
        return cls(
            summary=summary,
            manufacturer_code=detail.manufacturer_code,
            authoritative_in_stock=detail.in_stock,
            detail_image_urls=list(detail.image_urls) if detail.image_urls else None,
            detail_fetched=True,
            placeholder_image_url=placeholder_image_url,
        )

    @property
    def in_stock(self) -> bool:
        if self.authoritative_in_stock is not None:
            return self.authoritative_in_stock
        return self.summary.in_stock_hint

    @property
    def image_urls(self) -> List[str]:
        """Real detail images, else real preview images, else the placeholder."""
        for candidates in (self.detail_image_urls, self.summary.preview_image_urls):
            real = [u for u in candidates or [] if PLACEHOLDER_IMAGE_NAME not in u]
            if real:
                return real
        if self.placeholder_image_url:
            return [self.placeholder_image_url]
        return []


@dataclass
class ListingPage:
    """Everything the listing extractor finds on one page."""

    summaries: List[ProductSummary]
    next_url: Optional[str] = None


@dataclass
class PageResult:
    """One page yielded by the pagination walker."""

    url: str
    page_number: int
    summaries: List[ProductSummary]
    next_url: Optional[str] = None


@dataclass
class RunContext:
    """Run-scoped counters, passed explicitly through each crawl stage.

    ``budget`` is the global item cap for the run; None means unlimited.
    """

    budget: Optional[int] = None
    total_scraped: int = 0
    pages_fetched: int = 0
    details_fetched: int = 0
    detail_failures: int = 0
    batches_written: int = 0
    rows_written: int = 0
    failed_groups: List[GroupKey] = field(default_factory=list)

    def remaining(self) -> Optional[int]:
        """Items still allowed before the budget runs out (None = unlimited)."""
        if self.budget is None:
            return None
        return max(self.budget - self.total_scraped, 0)

    @property
    def exhausted(self) -> bool:
        return self.budget is not None and self.total_scraped >= self.budget

    def as_dict(self) -> Dict[str, object]:
        return {
            "budget": self.budget,
            "total_scraped": self.total_scraped,
            "pages_fetched": self.pages_fetched,
            "details_fetched": self.details_fetched,
            "detail_failures": self.detail_failures,
            "batches_written": self.batches_written,
            "rows_written": self.rows_written,
            "failed_groups": len(self.failed_groups),
        }
