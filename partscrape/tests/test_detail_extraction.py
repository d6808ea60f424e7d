"""Tests for product detail page extraction."""
from conftest import make_detail
from partscrape.html_utils import parse_detail_page, placeholder_image_url

BASE = "https://www.fastdeliverycarparts.com"
PLACEHOLDER = f"{BASE}/img/default-image.png"


class TestDetailPage:
    """Test manufacturer code, stock and image extraction."""

    def test_manufacturer_code(self):
        detail = parse_detail_page(make_detail(), base_url=BASE)

        assert detail.manufacturer_code == "MANU-123"

    def test_missing_manufacturer_code(self):
        detail = parse_detail_page(make_detail(manufacturer_code=None), base_url=BASE)

        assert detail.manufacturer_code is None

    def test_stock_from_availability_block(self):
        assert parse_detail_page(make_detail(stock="3 gab."), base_url=BASE).in_stock is True
        assert parse_detail_page(make_detail(stock="Nav noliktavā"), base_url=BASE).in_stock is False

    def test_missing_availability_block_means_out_of_stock(self):
        assert parse_detail_page(make_detail(stock=None), base_url=BASE).in_stock is False

    def test_main_image_size_segment_is_stripped(self):
        """The main picture is taken at full size."""
        detail = parse_detail_page(make_detail(), base_url=BASE)

        assert detail.image_urls == [f"{BASE}/images/main.jpg"]

    def test_thumbs_are_appended_without_duplicates(self):
        """Gallery thumbs follow the main image; repeats and the placeholder are dropped."""
        html = make_detail(thumbs=[
            ("/images/", "main.jpg"),
            ("/images/", "side.jpg"),
            ("/images/", "side.jpg"),
            ("/img/", "default-image.png"),
        ])

        detail = parse_detail_page(html, base_url=BASE)

        assert detail.image_urls == [f"{BASE}/images/main.jpg", f"{BASE}/images/side.jpg"]

    def test_placeholder_when_no_real_image(self):
        """A page whose only picture is the placeholder gets the placeholder."""
        html = make_detail(main_img="/img/default-image.png")

        detail = parse_detail_page(html, base_url=BASE)

        assert detail.image_urls == [PLACEHOLDER]

    def test_placeholder_when_no_image_markup(self):
        detail = parse_detail_page(make_detail(main_img=None), base_url=BASE)

        assert detail.image_urls == [PLACEHOLDER]

    def test_stock_and_images_not_read_when_disabled(self):
        """Grouped crawls only take the manufacturer code from the detail page."""
        detail = parse_detail_page(make_detail(), base_url=BASE, read_stock=False, read_images=False)

        assert detail.manufacturer_code == "MANU-123"
        assert detail.in_stock is None
        assert detail.image_urls == []

    def test_placeholder_url(self):
        assert placeholder_image_url(BASE) == PLACEHOLDER
