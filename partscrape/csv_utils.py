"""WooCommerce CSV row projection and incremental batch writing."""

import csv
import io
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from partscrape.config import brand_display_name
from partscrape.errors import BatchWriteError
from partscrape.logging_config import get_logger, log_scrape_event
from partscrape.models import GroupKey, MergedProduct

__all__ = [
    "WOOCOMMERCE_COLUMNS",
    "LINE_TERMINATOR",
    "build_category",
    "build_description",
    "format_price",
    "product_to_row",
    "rows_to_csv",
    "BatchWriter",
]

logger = get_logger("csv")

WOOCOMMERCE_COLUMNS: List[str] = [
    "ID",
    "Type",
    "SKU",
    "Name",
    "Published",
    "Is featured?",
    "Visibility in catalog",
    "Short description",
    "Description",
    "Date sale price starts",
    "Date sale price ends",
    "Tax status",
    "Tax class",
    "In stock?",
    "Stock",
    "Low stock amount",
    "Backorders allowed?",
    "Sold individually?",
    "Weight (kg)",
    "Length (cm)",
    "Width (cm)",
    "Height (cm)",
    "Allow customer reviews?",
    "Purchase note",
    "Sale price",
    "Regular price",
    "Categories",
    "Tags",
    "Shipping class",
    "Images",
    "Download limit",
    "Download expiry days",
    "Parent",
    "Grouped products",
    "Upsells",
    "Cross-sells",
    "External URL",
    "Button text",
    "Position",
]

# Columns with a fixed value on every row
CONSTANT_COLUMNS: Dict[str, str] = {
    "ID": "",
    "Type": "simple",
    "Published": "1",
    "Is featured?": "0",
    "Visibility in catalog": "visible",
    "Tax status": "taxable",
    "Backorders allowed?": "0",
    "Sold individually?": "0",
    "Allow customer reviews?": "1",
    "Position": "0",
}

LINE_TERMINATOR = "\r\n"
CATEGORY_SEPARATOR = " > "


def build_category(group: Optional[GroupKey]) -> str:
    """Build "Brand > Model > Year-range", skipping empty segments."""
    if group is None:
        return ""
    segments = [
        brand_display_name(group.brand_code),
        group.model_name or "",
        (group.year_range or "").replace("->", "-"),
    ]
    return CATEGORY_SEPARATOR.join(s for s in segments if s)


def build_description(product: MergedProduct) -> str:
    return (
        f"Manufacturer Code: {product.manufacturer_code or 'N/A'}\n"
        f"Site Code: {product.summary.site_code or 'N/A'}"
    )


def format_price(product: MergedProduct) -> str:
    price = product.summary.price
    if price is None:
        return ""
    # Decimal("12.50") -> "12.5", Decimal("40.00") -> "40"
    return format(price.normalize(), "f")


def product_to_row(product: MergedProduct, position: int = 0) -> Dict[str, str]:
    """Project a MergedProduct onto the WooCommerce import columns.

    Args:
        product: The merged product
        position: Index within the batch, used in SKU/name fallbacks
    """
    summary = product.summary
    fallback_id = summary.site_code or str(position)

    row = {column: "" for column in WOOCOMMERCE_COLUMNS}
    row.update(CONSTANT_COLUMNS)
    row.update({
        "SKU": summary.item_key or f"MISSING-SKU-{fallback_id}",
        "Name": summary.name or f"Unnamed Product {fallback_id}",
        "Description": build_description(product),
        "In stock?": "1" if product.in_stock else "0",
        "Regular price": format_price(product),
        "Categories": build_category(summary.group),
        "Images": ",".join(product.image_urls),
    })
    return row


def rows_to_csv(rows: Sequence[Dict[str, str]], include_header: bool) -> str:
    """Serialize rows with every field quoted and CRLF line endings."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=WOOCOMMERCE_COLUMNS,
        quoting=csv.QUOTE_ALL,
        quotechar='"',
        doublequote=True,
        delimiter=",",
        lineterminator=LINE_TERMINATOR,
    )
    if include_header:
        writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def _ends_with_newline(path: str) -> bool:
    with open(path, "rb") as f:
        f.seek(-1, os.SEEK_END)
        return f.read(1) in (b"\n", b"\r")


class BatchWriter:
    """Appends batches of merged products to one CSV file.

    The first non-empty batch creates (or truncates) the file and writes the
    header; later batches are appended without it. Whether the header has
    been written is tracked on the instance for the duration of a run, not
    re-derived from the file. A resumed run passes ``header_written=True``
    when the file already holds rows.

    Usage:
        writer = BatchWriter("data/out.csv")
        writer.append(brand_products)
        writer.append(next_brand_products)
    """

    def __init__(self, path: str, header_written: bool = False) -> None:
        self.path = path
        self.header_written = header_written
        self.rows_written = 0
        self.batches_written = 0

    def initialize(self) -> None:
        """Create the output file empty, discarding output from earlier runs.

        Raises:
            BatchWriteError: If the file cannot be created
        """
        try:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", newline="", encoding="utf-8"):
                pass
        except OSError as e:
            logger.error(f"Error initializing output file {self.path}: {e}")
            raise BatchWriteError(self.path, f"Failed to initialize output: {e}") from e
        self.header_written = False
        logger.info(f"Initialized output file: {self.path}")

    def append(self, records: Iterable[MergedProduct], batch_label: str = "") -> int:
        """Persist one batch. Returns the number of rows written.

        An empty batch is a no-op and leaves the file untouched.

        Raises:
            BatchWriteError: If the file cannot be written
        """
        records = list(records)
        if not records:
            logger.info(f"No products in batch {batch_label or '(unnamed)'}, skipping save")
            return 0

        rows = [product_to_row(product, index) for index, product in enumerate(records)]
        label = batch_label or f"#{self.batches_written + 1}"

        try:
            if not self.header_written:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w", newline="", encoding="utf-8") as f:
                    f.write(rows_to_csv(rows, include_header=True))
                self.header_written = True
                logger.info(f"Header written and first batch saved ({len(rows)} rows) to {self.path}")
            else:
                data = rows_to_csv(rows, include_header=False)
                prefix = ""
                if os.path.exists(self.path) and os.path.getsize(self.path) > 0:
                    if not _ends_with_newline(self.path):
                        prefix = LINE_TERMINATOR
                with open(self.path, "a", newline="", encoding="utf-8") as f:
                    f.write(prefix + data)
                logger.info(f"Appended batch {label} ({len(rows)} rows) to {self.path}")
        except OSError as e:
            logger.error(f"Error writing batch {label} to {self.path}: {e}")
            raise BatchWriteError(self.path, f"Failed to write batch {label}: {e}") from e

        self.rows_written += len(rows)
        self.batches_written += 1
        log_scrape_event("batch_written", {
            "path": self.path,
            "batch": label,
            "rows": len(rows),
            "total_rows": self.rows_written,
            "message": f"batch_written {label}",
        }, level=logging.DEBUG)
        return len(rows)
