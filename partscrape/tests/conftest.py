"""Shared test helpers: inline HTML builders, a stub fetcher and a recording governor."""

from typing import Dict, List, Optional, Union

from partscrape.errors import FetchError
from partscrape.rate import RateGovernor


def make_item(
    name: Optional[str] = "Brake Pad Set",
    code: Optional[str] = "BP-1001",
    price: Optional[str] = "25.50",
    href: Optional[str] = "/katalogs/brake-pad-set/1001",
    img: Optional[str] = "/images/__300/bp1001.jpg",
    stock: Optional[str] = "5",
) -> str:
    """HTML for one listing-grid item; pass None to leave a field out."""
    parts = ['<div class="item">']
    if img is not None:
        parts.append(f'<div class="img-holder"><img src="{img}"></div>')
    if href is not None:
        parts.append(f'<div class="product_info"><a href="{href}">Details</a></div>')
    if name is not None:
        parts.append(f'<div class="product-name"> {name} </div>')
    if code is not None:
        parts.append(f'<div class="detail-code">Detaļas kods: {code}</div>')
    if price is not None:
        parts.append(
            f'<div class="price"><span class="currency" data-orig="{price}">{price} €</span></div>'
        )
    if stock is not None:
        parts.append(f'<div class="availability"><span class="green">{stock}</span></div>')
    parts.append("</div>")
    return "".join(parts)


def make_listing(items: List[str], next_href: Optional[str] = None) -> str:
    """HTML for a listing page with the given items and optional next link."""
    pagination = ""
    if next_href is not None:
        pagination = (
            '<ul class="pagination"><li class="prev"><a href="#">&laquo;</a></li>'
            f'<li class="next"><a href="{next_href}">&raquo;</a></li></ul>'
        )
    return (
        "<html><body>"
        f'<div class="product-grid">{"".join(items)}</div>'
        f"{pagination}"
        "</body></html>"
    )


def make_detail(
    manufacturer_code: Optional[str] = "MANU-123",
    main_img: Optional[str] = "/images/__600/main.jpg",
    thumbs: Optional[List[tuple]] = None,
    stock: Optional[str] = "3 gab.",
) -> str:
    """HTML for a product detail page."""
    parts = ["<html><body>"]
    if main_img is not None:
        parts.append(
            f'<div id="single-item-card-left-column-main-picture"><img src="{main_img}"></div>'
        )
    if thumbs:
        thumb_html = "".join(
            f'<img data-path="{path}" data-filename="{filename}">' for path, filename in thumbs
        )
        parts.append(f'<div id="single-item-card-left-column-thumbs">{thumb_html}</div>')
    if stock is not None:
        parts.append(
            '<div id="single-item-card-right-column-blue-aviability">'
            f'<span class="green">{stock}</span></div>'
        )
    if manufacturer_code is not None:
        parts.append(f'<div id="tabs2-horizontal"> {manufacturer_code} </div>')
    parts.append("</body></html>")
    return "".join(parts)


class StubFetcher:
    """Serves canned pages by URL and records every request.

    Unknown URLs fail like a 404. A value that is an exception instance is
    raised instead of returned.
    """

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None) -> None:
        self.pages: Dict[str, Union[str, Exception]] = dict(pages or {})
        self.calls: List[str] = []

    def __call__(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.pages:
            raise FetchError(url, f"HTTP Error 404: Not Found ({url})", status=404)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class RecordingGovernor(RateGovernor):
    """A governor that never sleeps but records every pause."""

    def __init__(self) -> None:
        super().__init__(listing=0.1, detail=0.5, group=0.2, sleep=lambda seconds: None)
        self.pauses: List[str] = []

    def pause(self, site: str) -> None:
        self.pauses.append(site)
        super().pause(site)
