"""
Pagination tests for the fastdeliverycarparts.com listing pages.
This test verifies that:
1. The "next page" link is found and resolved against the site root
2. The active filter (categories, brand/model/year) survives pagination
3. The page-size parameter always follows the current URL
"""
import pytest
from bs4 import BeautifulSoup

from conftest import make_item, make_listing
from partscrape.html_utils import (
    canonical_url,
    carry_filter_params,
    extract_next_page_url,
    parse_listing_page,
)

BASE = "https://www.fastdeliverycarparts.com"


class TestPaginationExtraction:
    """Test next-page extraction from listing markup."""

    @pytest.fixture
    def catalog_url(self):
        return f"{BASE}/katalogs/?cat=38,4,23"

    def test_extract_next_page_relative_link(self, catalog_url):
        """A relative next link is made absolute and keeps the category filter."""
        soup = BeautifulSoup(make_listing([make_item()], next_href="/katalogs/?page=2"), "html.parser")

        next_url = extract_next_page_url(soup, catalog_url, base_url=BASE)

        assert next_url == f"{BASE}/katalogs/?page=2&cat=38,4,23", \
            "Category list should be carried into the next page URL"

    def test_no_next_link_means_last_page(self, catalog_url):
        """Pages without a .pagination .next link have no next page."""
        soup = BeautifulSoup(make_listing([make_item()]), "html.parser")

        assert extract_next_page_url(soup, catalog_url, base_url=BASE) is None

    def test_empty_href_is_ignored(self, catalog_url):
        """An empty href is treated as no next page."""
        soup = BeautifulSoup(make_listing([make_item()], next_href=""), "html.parser")

        assert extract_next_page_url(soup, catalog_url, base_url=BASE) is None

    def test_parse_listing_page_reports_next_url(self, catalog_url):
        """parse_listing_page returns the products and the resolved next URL together."""
        html = make_listing([make_item(), make_item(code="X-2")], next_href="?page=3")

        page = parse_listing_page(html, catalog_url, base_url=BASE)

        assert len(page.summaries) == 2
        assert page.next_url == f"{BASE}/katalogs/?page=3&cat=38,4,23"


class TestFilterCarryForward:
    """Test that the listing filter is copied into pagination links."""

    def test_existing_filter_in_link_wins(self):
        """A filter parameter already present in the link is not overwritten."""
        result = carry_filter_params(
            f"{BASE}/katalogs/?cat=1&page=2",
            f"{BASE}/katalogs/?cat=38,4",
        )

        assert result == f"{BASE}/katalogs/?cat=1&page=2"

    def test_brand_model_year_are_carried(self):
        """Grouped listings keep brand, model and year across pages."""
        result = carry_filter_params(
            f"{BASE}/katalogs/?page=2",
            f"{BASE}/katalogs/?brand=BMW&model=3%20Series&year=2010-2015",
        )

        assert result == f"{BASE}/katalogs/?page=2&brand=BMW&model=3+Series&year=2010-2015"

    def test_page_size_always_follows_current_url(self):
        """The pp parameter is overridden by the current URL's value."""
        result = carry_filter_params(
            f"{BASE}/katalogs/?page=2&pp=12",
            f"{BASE}/katalogs/?cat=5&pp=48",
        )

        assert result == f"{BASE}/katalogs/?page=2&cat=5&pp=48"

    def test_unfiltered_listing_is_unchanged(self):
        """Nothing is added when the current URL has no filter."""
        result = carry_filter_params(f"{BASE}/katalogs/?page=2", f"{BASE}/katalogs/")

        assert result == f"{BASE}/katalogs/?page=2"


class TestCanonicalUrl:
    """Test the key used to recognise an already visited listing URL."""

    def test_space_encodings_match(self):
        assert canonical_url(f"{BASE}/katalogs/?model=3%20Series") == canonical_url(
            f"{BASE}/katalogs/?model=3+Series"
        )

    def test_parameter_order_does_not_matter(self):
        assert canonical_url(f"{BASE}/katalogs/?page=2&cat=1") == canonical_url(
            f"{BASE}/katalogs/?cat=1&page=2"
        )

    def test_different_pages_stay_distinct(self):
        assert canonical_url(f"{BASE}/katalogs/?cat=1&page=2") != canonical_url(
            f"{BASE}/katalogs/?cat=1&page=3"
        )
