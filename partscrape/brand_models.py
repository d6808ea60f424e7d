"""Brand -> model -> year-range data embedded in the catalog page.

The site ships this tree as a script literal (``var brandModels = {...};``).
It is pulled out with a regex and read by a small literal parser that only
understands strings, bare keys, objects and arrays; nothing is executed.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from partscrape.config import BRAND_MODELS_URL
from partscrape.errors import BrandModelsError, FetchError
from partscrape.fetcher import FetchFunc
from partscrape.logging_config import get_logger, log_scrape_event
from partscrape.models import BrandModelTree, GroupKey

__all__ = [
    "extract_brand_models_literal",
    "parse_literal",
    "parse_brand_models",
    "fetch_brand_models",
    "iter_group_keys",
    "count_leaves",
]

logger = get_logger("brand_models")

BRAND_MODELS_RE = re.compile(
    r"<script[^>]*>[\s\S]*?var\s+brandModels\s*=\s*(\{[\s\S]*?\});[\s\S]*?</script>",
    re.IGNORECASE,
)

_BARE_KEY_RE = re.compile(r"[A-Za-z_$][\w$]*|\d+")

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def extract_brand_models_literal(html: str) -> str:
    """Return the ``{...}`` source assigned to ``brandModels``.

    Raises:
        BrandModelsError: If no such assignment is present
    """
    match = BRAND_MODELS_RE.search(html)
    if not match:
        raise BrandModelsError("Could not find brandModels data in page")
    return match.group(1)


class _LiteralParser:
    """Recursive-descent reader for object/array/string literals."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    def error(self, message: str) -> BrandModelsError:
        snippet = self.source[self.pos:self.pos + 30]
        return BrandModelsError(f"{message} at offset {self.pos} near {snippet!r}")

    def skip_ignored(self) -> None:
        src = self.source
        while self.pos < len(src):
            ch = src[self.pos]
            if ch.isspace():
                self.pos += 1
            elif src.startswith("//", self.pos):
                end = src.find("\n", self.pos)
                self.pos = len(src) if end == -1 else end + 1
            elif src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 2
            else:
                break

    def peek(self) -> str:
        self.skip_ignored()
        if self.pos >= len(self.source):
            raise self.error("Unexpected end of data")
        return self.source[self.pos]

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            raise self.error(f"Expected {ch!r}")
        self.pos += 1

    def parse_value(self) -> Any:
        ch = self.peek()
        if ch == "{":
            return self.parse_object()
        if ch == "[":
            return self.parse_array()
        if ch in ("'", '"'):
            return self.parse_string()
        raise self.error("Unsupported value")

    def parse_string(self) -> str:
        quote = self.source[self.pos]
        self.pos += 1
        chars: List[str] = []
        src = self.source
        while self.pos < len(src):
            ch = src[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(chars)
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(src):
                    break
                esc = src[self.pos]
                if esc == "u":
                    digits = src[self.pos + 1:self.pos + 5]
                    if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                        raise self.error("Invalid unicode escape")
                    chars.append(chr(int(digits, 16)))
                    self.pos += 5
                    continue
                chars.append(_ESCAPES.get(esc, esc))
                self.pos += 1
                continue
            if ch == "\n":
                raise self.error("Newline in string")
            chars.append(ch)
            self.pos += 1
        raise self.error("Unterminated string")

    def parse_key(self) -> str:
        ch = self.peek()
        if ch in ("'", '"'):
            return self.parse_string()
        match = _BARE_KEY_RE.match(self.source, self.pos)
        if not match:
            raise self.error("Invalid object key")
        self.pos = match.end()
        return match.group(0)

    def parse_object(self) -> Dict[str, Any]:
        self.expect("{")
        result: Dict[str, Any] = {}
        while True:
            if self.peek() == "}":
                self.pos += 1
                return result
            key = self.parse_key()
            self.expect(":")
            result[key] = self.parse_value()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "}":
                raise self.error("Expected ',' or '}'")

    def parse_array(self) -> List[Any]:
        self.expect("[")
        items: List[Any] = []
        while True:
            if self.peek() == "]":
                self.pos += 1
                return items
            items.append(self.parse_value())
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "]":
                raise self.error("Expected ',' or ']'")

    def parse(self) -> Any:
        value = self.parse_value()
        self.skip_ignored()
        if self.pos != len(self.source):
            raise self.error("Trailing data after literal")
        return value


def parse_literal(source: str) -> Any:
    """Parse a JS-style object/array/string literal into Python values."""
    return _LiteralParser(source).parse()


def parse_brand_models(html: str) -> BrandModelTree:
    """Extract and validate the brand/model tree from the catalog page HTML.

    Raises:
        BrandModelsError: If the data is missing or not a mapping of
            brand -> model -> list of year ranges
    """
    data = parse_literal(extract_brand_models_literal(html))
    if not isinstance(data, dict):
        raise BrandModelsError("brandModels is not an object")

    tree: BrandModelTree = {}
    for brand_code, models in data.items():
        if not isinstance(models, dict):
            raise BrandModelsError(f"Models for brand {brand_code!r} are not an object")
        tree[brand_code] = {}
        for model_name, year_ranges in models.items():
            if not isinstance(year_ranges, list) or not all(
                isinstance(y, str) for y in year_ranges
            ):
                raise BrandModelsError(
                    f"Year ranges for {brand_code!r}/{model_name!r} are not a list of strings"
                )
            tree[brand_code][model_name] = list(year_ranges)
    return tree


def fetch_brand_models(fetch: FetchFunc, url: str = BRAND_MODELS_URL) -> BrandModelTree:
    """Fetch the catalog page once and parse its brand/model tree.

    Raises:
        BrandModelsError: If the page cannot be fetched or parsed. Grouped
            crawls cannot proceed without it.
    """
    logger.info(f"Fetching brand/model data from {url}")
    try:
        html = fetch(url)
    except FetchError as e:
        raise BrandModelsError(f"Could not fetch brand/model data: {e}") from e

    tree = parse_brand_models(html)
    logger.info(
        f"Parsed brand/model data: {len(tree)} brands, {count_leaves(tree)} model/year leaves"
    )
    log_scrape_event("brand_models_loaded", {
        "url": url,
        "brands": len(tree),
        "leaves": count_leaves(tree),
    })
    return tree


def iter_group_keys(
    tree: BrandModelTree,
    brands: Optional[List[str]] = None,
) -> List[Tuple[str, List[GroupKey]]]:
    """Flatten the tree into ``(brand_code, leaves)`` pairs in tree order."""
    result: List[Tuple[str, List[GroupKey]]] = []
    for brand_code, models in tree.items():
        if brands is not None and brand_code not in brands:
            continue
        leaves = [
            GroupKey(brand_code, model_name, year_range)
            for model_name, year_ranges in models.items()
            for year_range in year_ranges
        ]
        result.append((brand_code, leaves))
    return result


def count_leaves(tree: BrandModelTree) -> int:
    return sum(len(years) for models in tree.values() for years in models.values())
