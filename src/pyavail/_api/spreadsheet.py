"""Miele availability from the published warehouse spreadsheet.

The workbook has one sheet per warehouse (named like ``"Forest Park, IL"``).
There is no authoritative key to look a model up by, so every row is
scored against the requested model number and the best match wins.
"""

from __future__ import annotations

import asyncio
import logging
import zipfile
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from pyavail._api._common import VendorAdapter, raise_for_status
from pyavail._constants import MIELE_SPREADSHEET_NAME, MIELE_SPREADSHEET_URL
from pyavail._files import atomic_write_bytes
from pyavail._transport import Transport
from pyavail.config import AvailConfig
from pyavail.exceptions import AvailNotFoundError, AvailParseError, AvailTransportError
from pyavail.matching import best_match
from pyavail.models.catalog import CatalogRecord, build_header_map
from pyavail.models.request import AvailabilityRequest, Manufacturer

_logger = logging.getLogger(__name__)


def load_catalog(path: Path, sheet_name: str) -> list[CatalogRecord]:
    """Parse the warehouse sheet of the workbook at *path* into records."""
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise AvailParseError(f"Failed to open Miele appliance availability spreadsheet: {exc}") from exc

    try:
        if sheet_name not in workbook.sheetnames:
            raise AvailNotFoundError(f"Error: worksheet {sheet_name!r} not found in Miele spreadsheet.")
        rows = workbook[sheet_name].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise AvailParseError("Failed to get row from Miele appliance availability spreadsheet.")
        columns = build_header_map(header)
        return [CatalogRecord.from_row(row, columns) for row in rows]
    finally:
        workbook.close()


def format_availability(record: CatalogRecord) -> str:
    if not record.next_available_date:
        return f"Next availability for {record.model_number} is unknown."
    return f"Found: {record.model_number}, Available: {record.next_available_date}"


class SpreadsheetAdapter(VendorAdapter):
    """Bulk download + fuzzy resolve; needs no portal session."""

    vendor = Manufacturer.MIELE
    requires_session = False

    def __init__(
        self,
        config: AvailConfig,
        transport: Transport,
        *,
        url: str = MIELE_SPREADSHEET_URL,
    ) -> None:
        super().__init__(config, transport)
        self._url = url

    @property
    def workbook_path(self) -> Path:
        return self._config.data_dir / MIELE_SPREADSHEET_NAME

    async def download(self) -> Path:
        """Fetch the workbook and persist it, replacing the previous copy."""
        response = await self._transport.request("GET", self._url)
        raise_for_status(response, vendor=self.vendor, action="get Miele appliance availability spreadsheet")
        if not response.body:
            raise AvailTransportError(
                "Failed to get Miele appliance availability spreadsheet: empty response",
                status_code=response.status,
                url=self._url,
            )
        path = self.workbook_path
        try:
            await asyncio.to_thread(atomic_write_bytes, path, response.body)
        except OSError as exc:
            raise AvailTransportError(
                f"Failed to write Miele appliance availability spreadsheet to file: {exc}"
            ) from exc
        _logger.debug("Saved Miele spreadsheet (%d bytes) to %s", len(response.body), path)
        return path

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        _, model_number = request.require_dispatchable()
        warehouse = request.require_warehouse()

        path = await self.download()
        records = await asyncio.to_thread(load_catalog, path, warehouse)
        winner = best_match(records, model_number)
        if winner is None:
            raise AvailNotFoundError(f"No Miele model matching {model_number} found at {warehouse}.")
        _logger.debug("Miele best match for %s: %s (score=%d)", model_number, winner.model_number, winner.score)
        return format_availability(winner)
