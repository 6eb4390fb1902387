"""Tests for the settings and products sheet readers with a mocked client."""
from unittest.mock import AsyncMock

import pytest

from contentsync.sources.sheets import read_products, read_settings
from contentsync.sync.errors import ConfigurationError, SourceEmpty, SourceUnavailable
from contentsync.sync.records import RecordKind

SETTINGS_ROWS = [
    ["Field", "Value", "Link"],
    ["Site Title", "My Site"],
    ["Show Banner", "TRUE"],
    ["", "orphan value"],
    ["Site Title", "Duplicate"],
    ["Contact", "hello@example.com", "mailto:hello@example.com"],
]

PRODUCT_ROWS = [
    ["ID", "Title", "Summary", "Product Type", "Price INR", "Price USD"],
    ["10", "Lamp", "A lamp", "Physical", "999", "12"],
    [],
    ["", "Desk", "", "soft"],
    ["12", ""],
]


def make_mock_client(rows=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.get_sheet_values = AsyncMock(side_effect=error)
    else:
        client.get_sheet_values = AsyncMock(return_value=rows)
    return client


class TestReadSettings:
    @pytest.mark.asyncio
    async def test_reads_rows_after_header(self, settings):
        client = make_mock_client(SETTINGS_ROWS)
        records = await read_settings(client, settings)

        assert [r.fields["field"] for r in records] == ["Site Title", "Show Banner", "Contact"]
        assert all(r.kind == RecordKind.SETTINGS for r in records)
        client.get_sheet_values.assert_awaited_once_with(
            "settings-sheet", "SheetsProjectsSettings!A:C"
        )

    @pytest.mark.asyncio
    async def test_duplicate_field_keeps_first(self, settings):
        records = await read_settings(make_mock_client(SETTINGS_ROWS), settings)
        title = next(r for r in records if r.fields["field"] == "Site Title")
        assert title.fields["value"] == "My Site"

    @pytest.mark.asyncio
    async def test_checkbox_values_coerced(self, settings):
        records = await read_settings(make_mock_client(SETTINGS_ROWS), settings)
        banner = next(r for r in records if r.fields["field"] == "Show Banner")
        assert banner.fields["value"] is True

    @pytest.mark.asyncio
    async def test_header_only_is_empty(self, settings):
        with pytest.raises(SourceEmpty):
            await read_settings(make_mock_client([["Field", "Value", "Link"]]), settings)

    @pytest.mark.asyncio
    async def test_no_rows_is_empty(self, settings):
        with pytest.raises(SourceEmpty):
            await read_settings(make_mock_client([]), settings)

    @pytest.mark.asyncio
    async def test_missing_sheet_id(self, settings):
        settings = settings.model_copy(update={"settings_sheet_id": ""})
        client = make_mock_client(SETTINGS_ROWS)
        with pytest.raises(ConfigurationError):
            await read_settings(client, settings)
        client.get_sheet_values.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_source_unavailable_propagates(self, settings):
        client = make_mock_client(error=SourceUnavailable("403"))
        with pytest.raises(SourceUnavailable):
            await read_settings(client, settings)


class TestReadProducts:
    @pytest.mark.asyncio
    async def test_reads_products(self, settings):
        client = make_mock_client(PRODUCT_ROWS)
        records = await read_products(client, settings)

        assert [r.fields["title"] for r in records] == ["Lamp", "Desk"]
        client.get_sheet_values.assert_awaited_once_with("products-sheet", "Products!A:N")

    @pytest.mark.asyncio
    async def test_identity_column_and_row_fallback(self, settings):
        records = await read_products(make_mock_client(PRODUCT_ROWS), settings)
        lamp, desk = records
        assert lamp.fields["sheets_id"] == "10"
        # Desk has no ID: third data row
        assert desk.fields["sheets_id"] == "3"
        assert desk.fields["sheets_row_number"] == 4

    @pytest.mark.asyncio
    async def test_fields_mapped_from_header(self, settings):
        records = await read_products(make_mock_client(PRODUCT_ROWS), settings)
        lamp = records[0].fields
        assert lamp["summary"] == "A lamp"
        assert lamp["product_type"] == "Physical"
        assert lamp["price_inr"] == "999"
        assert lamp["price_usd"] == "12"
        assert records[1].fields["product_type"] == "Soft"

    @pytest.mark.asyncio
    async def test_header_only_is_empty(self, settings):
        with pytest.raises(SourceEmpty):
            await read_products(make_mock_client([PRODUCT_ROWS[0]]), settings)

    @pytest.mark.asyncio
    async def test_missing_sheet_id(self, settings):
        settings = settings.model_copy(update={"products_sheet_id": ""})
        with pytest.raises(ConfigurationError):
            await read_products(make_mock_client(PRODUCT_ROWS), settings)
