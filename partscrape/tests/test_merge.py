"""Tests for merging listing summaries with their detail pages."""
from decimal import Decimal

import pytest

from conftest import RecordingGovernor, StubFetcher, make_detail
from partscrape.errors import FetchError
from partscrape.merge import (
    CATALOG_DETAIL_OPTIONS,
    GROUPED_DETAIL_OPTIONS,
    merge_summaries,
    merge_summary,
)
from partscrape.models import GroupKey, MergedProduct, ProductDetail, ProductSummary, RunContext

BASE = "https://www.fastdeliverycarparts.com"
PLACEHOLDER = f"{BASE}/img/default-image.png"
DETAIL_URL = f"{BASE}/katalogs/brake-pad-set/1001"


@pytest.fixture
def summary():
    return ProductSummary(
        name="Brake Pad Set",
        site_code="BP-1001",
        price=Decimal("25.50"),
        item_url=DETAIL_URL,
        preview_image_urls=[f"{BASE}/images/__300/bp1001.jpg"],
        in_stock_hint=True,
    )


class TestMergeSummary:
    """Test detail enrichment for a single product."""

    def test_catalog_mode_reads_everything(self, summary):
        fetch = StubFetcher({DETAIL_URL: make_detail(stock="Nav")})
        ctx = RunContext()

        product = merge_summary(summary, fetch, CATALOG_DETAIL_OPTIONS, ctx=ctx, base_url=BASE)

        assert product.detail_fetched
        assert product.manufacturer_code == "MANU-123"
        assert product.in_stock is False, "Detail page stock overrides the listing hint"
        assert product.image_urls == [f"{BASE}/images/main.jpg"]
        assert ctx.details_fetched == 1

    def test_grouped_mode_keeps_listing_stock_and_image(self, summary):
        fetch = StubFetcher({DETAIL_URL: make_detail(stock="Nav")})

        product = merge_summary(summary, fetch, GROUPED_DETAIL_OPTIONS, base_url=BASE)

        assert product.manufacturer_code == "MANU-123"
        assert product.in_stock is True
        assert product.image_urls == [f"{BASE}/images/__300/bp1001.jpg"]

    def test_missing_url_is_not_fetched(self, summary):
        summary.item_url = None
        fetch = StubFetcher()

        product = merge_summary(summary, fetch, base_url=BASE)

        assert fetch.calls == []
        assert product.manufacturer_code is None
        assert not product.detail_fetched
        assert product.summary.price == Decimal("25.50")

    def test_fetch_failure_keeps_listing_data(self, summary):
        fetch = StubFetcher({DETAIL_URL: FetchError(DETAIL_URL, "HTTP Error 500", status=500, transient=True)})
        ctx = RunContext()

        product = merge_summary(summary, fetch, ctx=ctx, base_url=BASE)

        assert product.manufacturer_code is None
        assert product.in_stock is True
        assert product.summary.name == "Brake Pad Set"
        assert ctx.detail_failures == 1
        assert ctx.details_fetched == 0

    def test_unreadable_detail_page_keeps_listing_data(self, summary, monkeypatch):
        def broken_parser(html, **kwargs):
            raise AttributeError("'NoneType' object has no attribute 'get_text'")

        monkeypatch.setattr("partscrape.merge.parse_detail_page", broken_parser)
        fetch = StubFetcher({DETAIL_URL: make_detail()})
        ctx = RunContext()

        product = merge_summary(summary, fetch, ctx=ctx, base_url=BASE)

        assert product.summary.name == "Brake Pad Set"
        assert product.manufacturer_code is None
        assert product.detail_fetched is False
        assert ctx.detail_failures == 1
        assert ctx.details_fetched == 0

    def test_pause_after_each_detail_fetch(self, summary):
        governor = RecordingGovernor()
        fetch = StubFetcher({DETAIL_URL: FetchError(DETAIL_URL, "boom")})

        merge_summary(summary, fetch, governor=governor, base_url=BASE)

        assert governor.pauses == ["detail"], "Failed fetches are paced too"

    def test_no_pause_without_fetch(self, summary):
        summary.item_url = None
        governor = RecordingGovernor()

        merge_summary(summary, StubFetcher(), governor=governor, base_url=BASE)

        assert governor.pauses == []

    def test_placeholder_when_no_image_anywhere(self, summary):
        summary.preview_image_urls = []

        product = merge_summary(summary, StubFetcher(), GROUPED_DETAIL_OPTIONS, base_url=BASE)

        assert product.image_urls == [PLACEHOLDER]


class TestMergeSummaries:
    """Test merging a page of summaries in order."""

    def test_second_item_without_url(self, summary):
        """Two listing items, the second without a link: two rows, one detail fetch."""
        second = ProductSummary(name="Oil Filter", site_code="OF-7", price=Decimal("9.99"))
        fetch = StubFetcher({DETAIL_URL: make_detail()})

        products = list(merge_summaries([summary, second], fetch, base_url=BASE))

        assert len(products) == 2
        assert products[0].manufacturer_code == "MANU-123"
        assert products[1].manufacturer_code is None
        assert products[1].summary.name == "Oil Filter"
        assert fetch.calls == [DETAIL_URL]


class TestMergedProduct:
    """Test the merged view of stock and images."""

    def test_placeholder_detail_image_falls_back_to_preview(self, summary):
        detail = ProductDetail(manufacturer_code="M", in_stock=None, image_urls=[PLACEHOLDER])

        product = MergedProduct.from_summary(summary, detail, placeholder_image_url=PLACEHOLDER)

        assert product.image_urls == [f"{BASE}/images/__300/bp1001.jpg"]

    def test_group_survives_merge(self, summary):
        summary.group = GroupKey("VW", "Golf", "2008-2012")

        product = MergedProduct.from_summary(summary)

        assert product.summary.group.model_name == "Golf"
