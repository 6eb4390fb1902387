"""Google Sheets readers: site settings and products."""
import logging
from typing import List

from contentsync.config import Settings
from contentsync.sources.google_client import GoogleWorkspaceClient, a1_range
from contentsync.sources.normalizer import (
    first_wins,
    map_product_header,
    normalize_product_row,
    normalize_setting_row,
)
from contentsync.sync.errors import ConfigurationError, SourceEmpty
from contentsync.sync.records import CandidateRecord, RecordKind

logger = logging.getLogger(__name__)


async def read_settings(client: GoogleWorkspaceClient, settings: Settings) -> List[CandidateRecord]:
    """
    Read the `Field | Value | Link` settings sheet.

    The first row is the header. Rows without a field name are skipped.
    A field that appears twice keeps its first row.

    Raises:
        ConfigurationError: SETTINGS_SHEET_ID is not set.
        SourceUnavailable: the Sheets API call failed.
        SourceEmpty: the sheet has no data rows.
    """
    if not settings.settings_sheet_id:
        raise ConfigurationError("SETTINGS_SHEET_ID is not set")

    cell_range = a1_range(settings.settings_sheet_name, settings.settings_sheet_range)
    rows = await client.get_sheet_values(settings.settings_sheet_id, cell_range)
    if len(rows) <= 1:
        raise SourceEmpty(f"No settings rows in {cell_range}")

    pairs = []
    for row in rows[1:]:
        fields = normalize_setting_row(row, settings.settings_sheet_name)
        if fields is not None:
            pairs.append((fields["field"], fields))
    by_field = first_wins(pairs, what="settings field")

    logger.info("Read %d settings from %s", len(by_field), cell_range)
    return [
        CandidateRecord(kind=RecordKind.SETTINGS, fields=fields)
        for fields in by_field.values()
    ]


async def read_products(client: GoogleWorkspaceClient, settings: Settings) -> List[CandidateRecord]:
    """
    Read the products sheet.

    The first row is the header and decides which column feeds which
    field (repeated header names keep their first column). Blank rows and
    rows without a title are skipped.

    Raises:
        ConfigurationError: PRODUCTS_SHEET_ID is not set.
        SourceUnavailable: the Sheets API call failed.
        SourceEmpty: the sheet has no data rows.
    """
    if not settings.products_sheet_id:
        raise ConfigurationError("PRODUCTS_SHEET_ID is not set")

    cell_range = a1_range(settings.products_sheet_name, settings.products_sheet_range)
    rows = await client.get_sheet_values(settings.products_sheet_id, cell_range)
    if len(rows) <= 1:
        raise SourceEmpty(f"No product rows in {cell_range}")

    columns = map_product_header(rows[0])
    products = []
    for data_index, row in enumerate(rows[1:]):
        fields = normalize_product_row(row, columns, data_index)
        if fields is not None:
            products.append(CandidateRecord(kind=RecordKind.PRODUCT, fields=fields))

    logger.info("Read %d products from %s (%d rows)", len(products), cell_range, len(rows) - 1)
    return products
