"""HTML parsing and extraction utilities for listing and detail pages."""

import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from partscrape.config import (
    BASE_URL,
    FILTER_PARAMS,
    PLACEHOLDER_IMAGE_NAME,
    PLACEHOLDER_IMAGE_PATH,
)
from partscrape.logging_config import get_logger
from partscrape.models import GroupKey, ListingPage, ProductDetail, ProductSummary
from partscrape.url_validation import absolute_url, is_safe_url

__all__ = [
    "parse_listing_page",
    "parse_product_item",
    "extract_site_code",
    "extract_price",
    "has_stock_marker",
    "extract_next_page_url",
    "carry_filter_params",
    "canonical_url",
    "parse_detail_page",
    "extract_image_urls",
    "placeholder_image_url",
]

logger = get_logger("html")

# Localized label on listing items: "Detaļas kods: 12345-AB"
SITE_CODE_RE = re.compile(r"Detaļas kods:\s*(.*)")

# Thumbnail size segment in image paths, e.g. /images/__300/abc.jpg
THUMB_SIZE_RE = re.compile(r"__\d+/")

DIGIT_RE = re.compile(r"\d+")

# Per-items-page parameter; always follows the current URL when present
PAGE_SIZE_PARAM = "pp"


def _text(el: Optional[Tag]) -> Optional[str]:
    if el is None:
        return None
    text = el.get_text(strip=True)
    return text or None


def _attr(el: Optional[Tag], name: str) -> Optional[str]:
    if el is None:
        return None
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if not value or not isinstance(value, str):
        return None
    return value.strip() or None


def placeholder_image_url(base_url: str = BASE_URL) -> str:
    """Absolute URL of the site's "no image" placeholder."""
    return absolute_url(PLACEHOLDER_IMAGE_PATH, base_url) or PLACEHOLDER_IMAGE_PATH


# =============================================================================
# Listing pages
# =============================================================================

def extract_site_code(label: Optional[str]) -> Optional[str]:
    """Pull the part code out of a "Detaļas kods: <code>" label."""
    if not label:
        return None
    match = SITE_CODE_RE.search(label)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_price(raw: Optional[str]) -> Optional[Decimal]:
    """Parse the raw numeric price attribute; None if it is not a number."""
    if not raw:
        return None
    try:
        price = Decimal(raw.strip().replace(",", "."))
    except InvalidOperation:
        return None
    if not price.is_finite():
        return None
    return price


def has_stock_marker(container: Optional[Tag]) -> bool:
    """True if any green availability span holds a quantity."""
    if container is None:
        return False
    for span in container.select("span.green"):
        if DIGIT_RE.search(span.get_text(strip=True)):
            return True
    return False


def parse_product_item(
    item: Tag,
    base_url: str = BASE_URL,
    group: Optional[GroupKey] = None,
) -> Optional[ProductSummary]:
    """Turn one ``.product-grid .item`` element into a ProductSummary.

    Returns None only for an item that carries none of the expected fields.
    """
    name = _text(item.select_one(".product-name"))
    site_code = extract_site_code(_text(item.select_one(".detail-code")))
    price = extract_price(_attr(item.select_one(".price .currency"), "data-orig"))

    item_url = absolute_url(_attr(item.select_one(".product_info a"), "href"), base_url)
    if item_url and not is_safe_url(item_url):
        logger.warning(f"Ignoring off-site product link: {item_url}")
        item_url = None

    preview_images: List[str] = []
    image_url = absolute_url(_attr(item.select_one(".img-holder img"), "src"), base_url)
    if image_url:
        preview_images.append(image_url)

    in_stock_hint = has_stock_marker(item.select_one(".availability"))

    if not any((name, site_code, price is not None, item_url)):
        return None

    if not (name and site_code and price is not None and item_url):
        logger.debug(
            f"Listing item with missing data kept: name={name!r} "
            f"site_code={site_code!r} price={price} url={item_url!r}"
        )

    return ProductSummary(
        name=name,
        site_code=site_code,
        price=price,
        item_url=item_url,
        preview_image_urls=preview_images,
        in_stock_hint=in_stock_hint,
        group=group,
    )


def parse_listing_page(
    html: str,
    page_url: str,
    base_url: str = BASE_URL,
    group: Optional[GroupKey] = None,
) -> ListingPage:
    """Extract product summaries and the next-page URL from a listing page."""
    soup = BeautifulSoup(html, "html.parser")

    summaries: List[ProductSummary] = []
    for item in soup.select(".product-grid .item"):
        summary = parse_product_item(item, base_url=base_url, group=group)
        if summary is not None:
            summaries.append(summary)

    return ListingPage(
        summaries=summaries,
        next_url=extract_next_page_url(soup, page_url, base_url=base_url),
    )


# =============================================================================
# Pagination
# =============================================================================

def carry_filter_params(next_url: str, current_url: str) -> str:
    """Copy the active listing filter from ``current_url`` into ``next_url``.

    Filter parameters (category list, brand/model/year) are only added when
    the next link omits them; the page-size parameter always follows the
    current URL.
    """
    current_params = dict(parse_qsl(urlparse(current_url).query, keep_blank_values=True))
    parsed = urlparse(next_url)
    next_params = parse_qsl(parsed.query, keep_blank_values=True)
    present = {key for key, _ in next_params}

    for key in FILTER_PARAMS:
        if key in current_params and key not in present:
            next_params.append((key, current_params[key]))

    if PAGE_SIZE_PARAM in current_params:
        next_params = [(k, v) for k, v in next_params if k != PAGE_SIZE_PARAM]
        next_params.append((PAGE_SIZE_PARAM, current_params[PAGE_SIZE_PARAM]))

    return urlunparse(parsed._replace(query=urlencode(next_params, safe=",")))


def canonical_url(url: str) -> str:
    """Key under which two spellings of the same listing URL compare equal.

    Query values are decoded and re-encoded in sorted order, so
    ``model=3%20Series`` and ``model=3+Series`` give the same key. The
    fragment is dropped.
    """
    parsed = urlparse(url)
    params = sorted(parse_qsl(parsed.query, keep_blank_values=True))
    return urlunparse(parsed._replace(query=urlencode(params, safe=","), fragment=""))


def extract_next_page_url(
    soup: BeautifulSoup,
    current_url: str,
    base_url: str = BASE_URL,
) -> Optional[str]:
    """Find the "next page" link and resolve it, keeping the active filter.

    Returns None if there is no next page or the link cannot be resolved.
    """
    href = _attr(soup.select_one(".pagination .next a"), "href")
    if not href:
        return None

    # Relative links resolve against the page they appear on
    next_url = absolute_url(href, current_url or base_url)
    if not next_url:
        logger.warning(f"Could not construct next page URL from: {href}")
        return None
    return carry_filter_params(next_url, current_url)


# =============================================================================
# Detail pages
# =============================================================================

def _usable_image(url: Optional[str]) -> bool:
    return bool(url) and PLACEHOLDER_IMAGE_NAME not in url


def extract_image_urls(soup: BeautifulSoup, base_url: str = BASE_URL) -> List[str]:
    """Collect the full image set of a detail page.

    Main picture first (thumbnail size segment stripped), then gallery
    thumbs built from ``data-path`` + ``data-filename``. Duplicates and the
    placeholder image are dropped. May return an empty list.
    """
    image_urls: List[str] = []

    main_src = _attr(soup.select_one("#single-item-card-left-column-main-picture img"), "src")
    main_url = absolute_url(main_src, base_url)
    if main_url:
        main_url = THUMB_SIZE_RE.sub("", main_url)
        if _usable_image(main_url):
            image_urls.append(main_url)
    elif main_src:
        logger.warning(f"Could not parse main image URL: {main_src}")

    for thumb in soup.select("#single-item-card-left-column-thumbs img"):
        data_path = _attr(thumb, "data-path")
        filename = _attr(thumb, "data-filename")
        if not (data_path and filename):
            continue
        thumb_url = absolute_url(data_path + filename, base_url)
        if not thumb_url:
            logger.warning(f"Could not build thumb image URL from {data_path!r} + {filename!r}")
            continue
        if _usable_image(thumb_url) and thumb_url not in image_urls:
            image_urls.append(thumb_url)

    return image_urls


def parse_detail_page(
    html: str,
    base_url: str = BASE_URL,
    read_stock: bool = True,
    read_images: bool = True,
) -> ProductDetail:
    """Extract the enrichment fields from a product detail page.

    The manufacturer code is always read. Stock and images are only read
    when requested; otherwise they stay None / empty so the listing values
    are kept. When images are read and none are usable, the placeholder is
    substituted.
    """
    soup = BeautifulSoup(html, "html.parser")

    detail = ProductDetail(manufacturer_code=_text(soup.select_one("#tabs2-horizontal")))

    if read_stock:
        availability = soup.select_one("#single-item-card-right-column-blue-aviability")
        if availability is None:
            logger.debug("Availability block not found on detail page")
        detail.in_stock = has_stock_marker(availability)

    if read_images:
        detail.image_urls = extract_image_urls(soup, base_url) or [placeholder_image_url(base_url)]

    return detail
