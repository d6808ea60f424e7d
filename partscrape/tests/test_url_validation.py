"""Tests for URL resolution and vetting."""
import pytest

from partscrape.url_validation import URLValidationError, absolute_url, is_safe_url, validate_url

BASE = "https://www.fastdeliverycarparts.com"


class TestValidateUrl:

    def test_shop_urls_pass(self):
        assert validate_url(f"  {BASE}/katalogs/?cat=1\n") == f"{BASE}/katalogs/?cat=1"
        assert is_safe_url("https://fastdeliverycarparts.com/katalogs/")

    @pytest.mark.parametrize("url", [
        "",
        "javascript:alert(1)",
        "ftp://www.fastdeliverycarparts.com/file",
        "https://example.com/katalogs/",
        f"{BASE}/../etc/passwd",
        "https:///katalogs/",
    ])
    def test_rejected(self, url):
        with pytest.raises(URLValidationError):
            validate_url(url)

    def test_any_host_when_domains_empty(self):
        assert validate_url("https://example.com/x", allowed_domains=()) == "https://example.com/x"


class TestAbsoluteUrl:

    def test_relative_path(self):
        assert absolute_url("/images/a.jpg", BASE) == f"{BASE}/images/a.jpg"

    def test_relative_to_page(self):
        assert absolute_url("?page=2", f"{BASE}/katalogs/?cat=1") == f"{BASE}/katalogs/?page=2"

    def test_non_web_links(self):
        assert absolute_url("mailto:info@example.com", BASE) is None
        assert absolute_url("", BASE) is None
        assert absolute_url(None, BASE) is None
