# ==============================================================================
# Tests for Referrer Sanitizing and Request Helpers
# ==============================================================================
"""
Unit tests for referrer selection, page URL sanitizing, client IP and
client source detection.
"""

import pytest

from storefront.models.online_user import ClientSource
from storefront.tracking.referrer import (
    IMAGE_PLACEHOLDER,
    get_clean_referrer,
    get_client_ip,
    get_client_source,
    is_asset_url,
    is_image_url,
    is_valid_referrer,
    sanitize_page_url,
)
from tests.helpers import BROWSER_UA, make_request


# ==============================================================================
# URL predicates
# ==============================================================================


class TestUrlPredicates:

    @pytest.mark.parametrize("url", [
        "https://cdn.example.com/p/1.JPG",
        "https://shop.example.com/images/banner",
        "https://shop.example.com/uploads/BH436_image",
    ])
    def test_image_urls(self, url):
        assert is_image_url(url)

    def test_asset_url(self):
        assert is_asset_url("https://shop.example.com/assets/app.js")

    @pytest.mark.parametrize("url", [
        "",
        "https://shop.example.com/api/admin/orders",
        "https://shop.example.com/static/main.css",
        "https://shop.example.com/img/logo",
    ])
    def test_invalid_referrers(self, url):
        assert not is_valid_referrer(url)

    def test_page_is_valid_referrer(self):
        assert is_valid_referrer("https://shop.example.com/products/12")


# ==============================================================================
# Referrer selection
# ==============================================================================


class TestCleanReferrer:

    def test_ui_referrer_wins(self):
        headers = {"x-ui-referrer": "https://shop.example.com/cart", "referer": "https://shop.example.com/"}
        assert get_clean_referrer(headers) == "https://shop.example.com/cart"

    def test_invalid_ui_referrer_falls_back(self):
        headers = {"x-ui-referrer": "https://shop.example.com/images/a", "referer": "https://shop.example.com/"}
        assert get_clean_referrer(headers) == "https://shop.example.com/"

    def test_alternate_spelling(self):
        assert get_clean_referrer({"referrer": "https://shop.example.com/x"}) == "https://shop.example.com/x"

    def test_nothing_usable(self):
        assert get_clean_referrer({"referer": "https://shop.example.com/logo.png"}) == ""
        assert get_clean_referrer({}) == ""

    def test_image_page_url_replaced(self):
        assert sanitize_page_url("https://shop.example.com/p/1.webp") == IMAGE_PLACEHOLDER
        assert sanitize_page_url("https://shop.example.com/products/1") == "https://shop.example.com/products/1"


# ==============================================================================
# Request helpers
# ==============================================================================


class TestRequestHelpers:

    def test_forwarded_for_first_hop(self):
        request = make_request(headers={"x-forwarded-for": "198.51.100.9, 10.0.0.1"})
        assert get_client_ip(request) == "198.51.100.9"

    def test_real_ip(self):
        assert get_client_ip(make_request(headers={"x-real-ip": " 198.51.100.10 "})) == "198.51.100.10"

    def test_socket_address(self):
        assert get_client_ip(make_request(client_host="192.0.2.4")) == "192.0.2.4"

    def test_source_header_wins(self):
        request = make_request(headers={"x-client-source": "Mobile", "user-agent": BROWSER_UA})
        assert get_client_source(request) == ClientSource.MOBILE

    def test_okhttp_is_mobile(self):
        assert get_client_source(make_request(headers={"user-agent": "okhttp/4.9.0"})) == ClientSource.MOBILE

    def test_browser_is_web(self):
        assert get_client_source(make_request(headers={"user-agent": BROWSER_UA})) == ClientSource.WEB

    def test_unknown_client_with_origin_is_web(self):
        request = make_request(headers={"user-agent": "curl/8.0", "origin": "https://shop.example.com"})
        assert get_client_source(request) == ClientSource.WEB

    def test_unknown_client_is_mobile(self):
        assert get_client_source(make_request(headers={"user-agent": "curl/8.0"})) == ClientSource.MOBILE
