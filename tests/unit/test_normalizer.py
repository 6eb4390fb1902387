"""Tests for the sheet-row and document normalizers (no network, no DB)."""
import pytest

from contentsync.sources.normalizer import (
    DEFAULT_BOOK_COVER,
    PRODUCT_POSITIONAL_COLUMNS,
    book_cover_url,
    build_excerpt,
    build_pricing_info,
    cell,
    coerce_checkbox,
    convert_drive_url,
    extract_images,
    first_wins,
    generate_slug,
    map_product_header,
    normalize_product_row,
    normalize_setting_row,
    parse_currency,
    parse_price,
    strip_html,
)


class TestHelpers:
    def test_cell_short_row(self):
        assert cell(["a"], 3) == ""

    def test_cell_strips(self):
        assert cell(["  a "], 0) == "a"

    def test_first_wins(self):
        assert first_wins([("a", 1), ("b", 2), ("a", 3)]) == {"a": 1, "b": 2}

    @pytest.mark.parametrize("title, slug", [
        ("Hello World", "hello-world"),
        ("  C++ & Rust: a Tale!  ", "c-rust-a-tale"),
        ("multi   space--dash", "multi-space-dash"),
        ("!!!", ""),
    ])
    def test_generate_slug(self, title, slug):
        assert generate_slug(title) == slug

    def test_strip_html_removes_tags_and_css(self):
        html = "<style>@import url(x.css);</style><p>Hello <b>there</b></p>"
        assert strip_html(html) == "Hello there"

    def test_build_excerpt_short_text_untouched(self):
        assert build_excerpt("<p>short</p>", 200) == "short"

    def test_build_excerpt_ellipsis(self):
        assert build_excerpt("<p>abcdef</p>", 3) == "abc..."
        assert build_excerpt("<p>abcdef</p>", 3, ellipsis=False) == "abc"

    def test_extract_images(self):
        html = (
            '<p><img src="https://lh3.googleusercontent.com/docsz/x?a=1&amp;b=2" alt=""></p>'
            '<img src="/local.png">'
        )
        images = extract_images(html)
        assert images == [
            {"url": "https://lh3.googleusercontent.com/docsz/x?a=1&b=2", "caption": "", "position": 0},
            {"url": "/local.png", "caption": "", "position": 1},
        ]

    def test_extract_images_unescapes_docs_urls_only(self):
        url = "https://lh3.googleusercontent.com/x?a=1&amp;b=2"
        images = extract_images(f'<img src="{url}">')
        assert images[0]["url"] == url


class TestSettings:
    @pytest.mark.parametrize("raw, expected", [
        ("TRUE", True), ("true", True), ("Checked", True), ("yes", True), ("1", True),
        ("FALSE", False), ("false", False), ("unchecked", False), ("No", False), ("", False),
        (None, False), ("Hello", "Hello"),
    ])
    def test_coerce_checkbox(self, raw, expected):
        assert coerce_checkbox(raw) == expected

    def test_normalize_setting_row(self):
        fields = normalize_setting_row(["Site Title", "My Site", "https://x"], "Settings")
        assert fields == {
            "field": "Site Title",
            "value": "My Site",
            "link": "https://x",
            "source_sheet": "Settings",
        }

    def test_normalize_setting_row_short(self):
        fields = normalize_setting_row(["Show Banner"], "Settings")
        assert fields["value"] is False
        assert fields["link"] == ""

    @pytest.mark.parametrize("row", [[], [""], ["  "], ["Field", "Value"]])
    def test_blank_and_header_rows_skipped(self, row):
        assert normalize_setting_row(row, "Settings") is None


class TestProducts:
    def test_header_mapping(self):
        columns = map_product_header(["ID", "Product Name", "Price (USD)", "Status"])
        assert columns == {"sheets_id": 0, "title": 1, "price_usd": 2, "status": 3}

    def test_repeated_header_keeps_first_column(self):
        columns = map_product_header(["Title", "Name"])
        assert columns == {"title": 0}

    def test_unrecognised_header_falls_back_to_positional(self):
        columns = map_product_header(["foo", "bar"])
        assert columns["title"] == 0
        assert columns["solution_link"] == len(PRODUCT_POSITIONAL_COLUMNS) - 1

    def test_row_uses_id_column(self):
        columns = {"sheets_id": 0, "title": 1}
        fields = normalize_product_row(["P-9", "Lamp"], columns, data_index=4)
        assert fields["sheets_id"] == "P-9"
        assert fields["sheets_row_number"] == 6

    def test_row_without_id_uses_row_number(self):
        columns = {"title": 0}
        fields = normalize_product_row(["Lamp"], columns, data_index=0)
        assert fields["sheets_id"] == "1"

    def test_defaults(self):
        fields = normalize_product_row(["Lamp"], {"title": 0}, data_index=0)
        assert fields["status"] == "Active"
        assert fields["product_type"] == "Soft"
        assert fields["price_usd"] == ""

    @pytest.mark.parametrize("raw, expected", [
        ("physical", "Physical"),
        ("Physical + Soft", "Physical + Soft"),
        ("Digital", "Soft"),
    ])
    def test_product_type(self, raw, expected):
        fields = normalize_product_row(["Lamp", raw], {"title": 0, "product_type": 1}, 0)
        assert fields["product_type"] == expected

    def test_blank_row_skipped(self):
        assert normalize_product_row(["", "  ", None], {"title": 0}, 0) is None

    def test_row_without_title_skipped(self):
        assert normalize_product_row(["", "summary"], {"title": 0, "summary": 1}, 0) is None


class TestBooks:
    @pytest.mark.parametrize("raw, price, currency", [
        ("USD 20", 20.0, "USD"),
        ("$12.50", 12.5, "USD"),
        ("INR 499", 499.0, "INR"),
        ("EUR 7", 7.0, "EUR"),
        ("Free", 0.0, "USD"),
        ("NULL", 0.0, "USD"),
        (None, 0.0, "USD"),
    ])
    def test_price_and_currency(self, raw, price, currency):
        assert parse_price(raw) == price
        assert parse_currency(raw) == currency

    def test_pricing_free_soft_copy(self):
        info = build_pricing_info({})
        assert info["soft_copy"]["price"] == "Free"
        assert info["soft_copy"]["display_text"] == "Soft Copy - Free"
        assert info["hard_copy"]["available"] is False
        assert info["hard_copy"]["availability_text"] == "Hard Copy Not Available"

    def test_pricing_with_hard_copy(self):
        info = build_pricing_info({
            "soft copy price": "USD 10",
            "hard copy available": "Yes",
            "hard copy price": "USD 25",
        })
        assert info["soft_copy"]["price"] == "USD 10"
        assert info["hard_copy"]["available"] is True
        assert info["hard_copy"]["display_text"] == "USD 25"

    def test_pricing_null_soft_price(self):
        info = build_pricing_info({"soft copy price": "NULL"})
        assert info["soft_copy"]["display_text"] == "Soft Copy Price - NULL"
        assert info["soft_copy"]["price"] == "Free"

    @pytest.mark.parametrize("url, expected", [
        (
            "https://drive.google.com/file/d/abc_123/view?usp=sharing",
            "https://lh3.googleusercontent.com/d/abc_123=w1000?authuser=0",
        ),
        (
            "https://drive.google.com/open?id=xyz",
            "https://lh3.googleusercontent.com/d/xyz=w1000?authuser=0",
        ),
        ("https://example.com/a.png", "https://example.com/a.png"),
        ("https://drive.google.com/uc?export=view&id=1", "https://drive.google.com/uc?export=view&id=1"),
    ])
    def test_convert_drive_url(self, url, expected):
        assert convert_drive_url(url) == expected

    def test_cover_prefers_sheet_image(self):
        url = book_cover_url({"Image": "https://example.com/c.jpg"}, "file-1")
        assert url == "https://example.com/c.jpg"

    def test_cover_falls_back_to_folder_image(self):
        assert book_cover_url({}, "file-1") == "https://drive.google.com/thumbnail?id=file-1&sz=w400"

    def test_cover_placeholder(self):
        assert book_cover_url({"Image": "NULL"}, None) == DEFAULT_BOOK_COVER
