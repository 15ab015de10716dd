"""Miele availability spreadsheet rows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

#: Lower-cased spreadsheet header -> CatalogRecord field.
HEADER_FIELDS: dict[str, str] = {
    "timestamp": "timestamp",
    "sku#": "sku",
    "ean/upc": "upc",
    "category": "category",
    "subcategory": "subcategory",
    "model number": "model_number",
    "description": "description",
    "current umrp/map": "current_umrp",
    "new umrp/map": "new_umrp",
    "dealer cost level": "dealer_cost_level",
    "warehouse no": "warehouse_number",
    "available qty": "available_qty",
    "sales status": "sales_status",
    "next available qty": "next_available_qty",
    "next available date": "next_available_date",
}


def cell_to_str(value: Any) -> str:
    """Render a workbook cell the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.strftime("%m/%d/%Y")
        return value.strftime("%m/%d/%Y %I:%M:%S %p")
    if isinstance(value, date):
        return value.strftime("%m/%d/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def build_header_map(header_row: Sequence[Any]) -> dict[int, str]:
    """Map column index to CatalogRecord field for the known headers.

    Unknown headers are skipped.
    """
    columns: dict[int, str] = {}
    for index, cell in enumerate(header_row):
        field_name = HEADER_FIELDS.get(cell_to_str(cell).lower())
        if field_name is not None:
            columns[index] = field_name
    return columns


class CatalogRecord(BaseModel):
    """One product row of the Miele warehouse sheet.

    ``score`` is transient and only meaningful within one resolve call.
    """

    model_config = ConfigDict(extra="ignore")

    timestamp: str = ""
    sku: str = ""
    upc: str = ""
    category: str = ""
    subcategory: str = ""
    model_number: str = ""
    description: str = ""
    current_umrp: str = ""
    new_umrp: str = ""
    dealer_cost_level: str = ""
    warehouse_number: str = ""
    available_qty: str = ""
    sales_status: str = ""
    next_available_qty: str = ""
    next_available_date: str = ""
    score: int = 0

    @classmethod
    def from_row(cls, row: Sequence[Any], columns: Mapping[int, str]) -> CatalogRecord:
        """Build a record from a data row using a header map.

        Cells in unmapped columns are ignored.
        """
        values: dict[str, str] = {}
        for index, cell in enumerate(row):
            field_name = columns.get(index)
            if field_name is not None:
                values[field_name] = cell_to_str(cell)
        return cls(**values)
