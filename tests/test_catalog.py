from __future__ import annotations

from datetime import date, datetime

from pyavail.models.catalog import CatalogRecord, build_header_map, cell_to_str


def test_cell_to_str_renders_sheet_values() -> None:
    assert cell_to_str(None) == ""
    assert cell_to_str(True) == "true"
    assert cell_to_str(12.0) == "12"
    assert cell_to_str(12.5) == "12.5"
    assert cell_to_str(date(2024, 3, 9)) == "03/09/2024"
    assert cell_to_str(datetime(2024, 3, 9)) == "03/09/2024"
    assert cell_to_str(datetime(2024, 3, 9, 14, 30)) == "03/09/2024 02:30:00 PM"
    assert cell_to_str("  G7000 ") == "G7000"


def test_header_map_skips_unknown_columns() -> None:
    columns = build_header_map(["SKU#", "Notes", "Model Number", None, "Next Available Date"])
    assert columns == {0: "sku", 2: "model_number", 4: "next_available_date"}


def test_from_row_uses_header_map() -> None:
    columns = build_header_map(["Model Number", "Description", "Available Qty"])
    record = CatalogRecord.from_row(("G7000SCU", "Dishwasher", 4.0, "ignored"), columns)

    assert record.model_number == "G7000SCU"
    assert record.description == "Dishwasher"
    assert record.available_qty == "4"
    assert record.next_available_date == ""
    assert record.score == 0
