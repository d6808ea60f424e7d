"""Configuration and constants for the scraper.

Every value can be overridden through the environment or a ``.env`` file in
the project root.
"""

import os
from pathlib import Path
from typing import Dict, FrozenSet, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

__all__ = [
    "BASE_URL",
    "CATALOG_PATH",
    "CATALOG_URL",
    "BRAND_MODELS_URL",
    "CATEGORY_IDS",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "RETRY_BACKOFF_BASE",
    "MAX_RETRY_BACKOFF",
    "RETRY_STATUS_CODES",
    "MAX_CATALOG_PAGES",
    "MAX_PAGES_PER_GROUP",
    "DELAY_LISTING",
    "DELAY_DETAIL",
    "DELAY_GROUP",
    "MAX_TOTAL_PRODUCTS",
    "MAX_PRODUCTS_PER_GROUP",
    "PLACEHOLDER_IMAGE_PATH",
    "PLACEHOLDER_IMAGE_NAME",
    "FILTER_PARAMS",
    "OUTPUT_PATH",
    "GROUPED_OUTPUT_PATH",
    "STATE_DB_PATH",
    "ALLOWED_DOMAINS",
    "BRAND_CODE_TO_NAME",
    "brand_display_name",
]

_PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_limit(name: str, default: Optional[int]) -> Optional[int]:
    """Read an item limit; empty, ``none`` or a negative value mean unlimited."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in ("", "none", "inf", "infinity"):
        return None
    value = int(raw)
    return value if value >= 0 else None


BASE_URL = os.getenv("PARTSCRAPE_BASE_URL", "https://www.fastdeliverycarparts.com")
CATALOG_PATH = "/katalogs/"

# Category ids crawled in single-catalog mode
CATEGORY_IDS = os.getenv(
    "PARTSCRAPE_CATEGORY_IDS",
    "38,4,23,95,1107,98,8,9,13,35,70,76,40,1103,1101,3,11,5,9000000423,"
    "9000000421,9000000422,32,14,19,16,15,31,20,99,97,46,47,71,41,80,85,79,"
    "78,84,81,1106,39,49,37,50,1116,54,51,105,57,52,58,59,60,67,68,30,1102,"
    "75,1104,66,101,102,64,109,36,18,34,1109,69,65,72,1108,2,104,42,6,1117,"
    "29,1118,43,17,7,45,10,44,24,28,22,106,108,55,96,92,1105,93,12,1112,94,"
    "86,88,89,87,91,77,63,21,103,27,61,107,25,1110,1113,1111,1114,56,1115",
)
CATALOG_URL = f"{BASE_URL}{CATALOG_PATH}?cat={CATEGORY_IDS}"

# Page carrying the embedded brand -> model -> year-range data
BRAND_MODELS_URL = f"{BASE_URL}{CATALOG_PATH}"

# Browser-like headers; the site serves stale listings to aggressive caches
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.9"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Expires": "0",
}

# Request timeout (seconds)
REQUEST_TIMEOUT = _env_float("PARTSCRAPE_REQUEST_TIMEOUT", 20.0)

# Retry settings with exponential backoff
MAX_RETRIES = _env_int("PARTSCRAPE_MAX_RETRIES", 3)
RETRY_BACKOFF_BASE = _env_float("PARTSCRAPE_RETRY_BACKOFF_BASE", 2.0)
MAX_RETRY_BACKOFF = _env_float("PARTSCRAPE_MAX_RETRY_BACKOFF", 60.0)
RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Pagination safety limits
MAX_CATALOG_PAGES = _env_int("PARTSCRAPE_MAX_CATALOG_PAGES", 1000)
MAX_PAGES_PER_GROUP = _env_int("PARTSCRAPE_MAX_PAGES_PER_GROUP", 1000)

# Fixed delays after each network-bound step (seconds)
DELAY_LISTING = _env_float("PARTSCRAPE_DELAY_LISTING", 0.1)
DELAY_DETAIL = _env_float("PARTSCRAPE_DELAY_DETAIL", 0.5)
DELAY_GROUP = _env_float("PARTSCRAPE_DELAY_GROUP", 0.2)

# Item budgets (None = unlimited)
MAX_TOTAL_PRODUCTS = _env_limit("PARTSCRAPE_MAX_TOTAL_PRODUCTS", 1500)
MAX_PRODUCTS_PER_GROUP = _env_limit("PARTSCRAPE_MAX_PRODUCTS_PER_GROUP", None)

PLACEHOLDER_IMAGE_PATH = "/img/default-image.png"
PLACEHOLDER_IMAGE_NAME = "default-image.png"

# Query parameters that encode the active listing filter. Pagination links do
# not always carry them, so they are copied forward from the current URL.
FILTER_PARAMS = ("cat", "brand", "model", "year")

# Output paths
OUTPUT_PATH = os.getenv("PARTSCRAPE_OUTPUT_PATH", "data/woocommerce_products.csv")
GROUPED_OUTPUT_PATH = os.getenv(
    "PARTSCRAPE_GROUPED_OUTPUT_PATH", "data/woocommerce_products_by_car.csv"
)
STATE_DB_PATH = os.getenv("PARTSCRAPE_STATE_DB_PATH", "data/crawl_state.db")

ALLOWED_DOMAINS: FrozenSet[str] = frozenset({
    "www.fastdeliverycarparts.com",
    "fastdeliverycarparts.com",
    urlparse(BASE_URL).hostname or "",
}) - {""}

# =============================================================================
# Brand code -> display name
# =============================================================================
# Codes as they appear in the site's brandModels data. "BU " carries a
# trailing space on the site itself.

BRAND_CODE_TO_NAME: Dict[str, str] = {
    "AC": "Acura",
    "AF": "Alfa Romeo",
    "AD": "Audi",
    "AT": "Austin",
    "BMW": "BMW",
    "BU ": "Buick",
    "CD": "Cadillac",
    "CV": "Chevrolet",
    "CH": "Chrysler",
    "CT": "Citroen",
    "DC": "Dacia",
    "DA": "Daewoo",
    "DAF": "DAF",
    "DH": "Daihatsu",
    "DG": "Dodge",
    "DS": "DS",
    "FT": "Fiat",
    "FD": "Ford",
    "HN": "Honda",
    "HUMMER": "Hummer",
    "HY": "Hyundai",
    "IN": "Infiniti",
    "IS": "Isuzu",
    "IV": "Iveco",
    "JG": "Jaguar",
    "JP": "Jeep",
    "KS": "Kassbohrer",
    "KIA": "KIA",
    "LN": "Lancia",
    "LR": "Land Rover",
    "LX": "Lexus",
    "LC": "Lincoln",
    "MA": "MA",
    "MAN": "MAN",
    "MZ": "Mazda",
    "MB": "Mercedes-Benz",
    "MINI": "Mini",
    "MT": "Mitsubishi",
    "MOS": "Moskvitch",
    "NS": "Nissan",
    "OL": "Oldsmobile",
    "OP": "Opel",
    "PG": "Peugeot",
    "PL": "Plymouth",
    "PT": "Pontiac",
    "PO": "Porsche",
    "RN": "Renault",
    "RO": "Rover",
    "SAAB": "SAAB",
    "SC": "Scania",
    "SE": "Seat",
    "SETRA": "Setra",
    "SK": "Skoda",
    "SMART": "Smart",
    "SY": "SsangYong",
    "SB": "Subaru",
    "SZ": "Suzuki",
    "TESLA": "Tesla",
    "TT": "Toyota",
    "TRIUMPH": "TRIUMPH",
    "VAZ": "VAZ",
    "VW": "Volkswagen",
    "VV": "Volvo",
    "ZAZ": "Zaz",
}


def brand_display_name(brand_code: Optional[str]) -> str:
    """Get the display name for a brand code, falling back to the code itself."""
    if not brand_code:
        return ""
    return BRAND_CODE_TO_NAME.get(brand_code, brand_code)
