"""Data models for availability requests and vendor records."""

from pyavail.models.catalog import HEADER_FIELDS, CatalogRecord, build_header_map, cell_to_str
from pyavail.models.request import AvailabilityRequest, Manufacturer, RequestUser

__all__ = [
    "AvailabilityRequest",
    "CatalogRecord",
    "HEADER_FIELDS",
    "Manufacturer",
    "RequestUser",
    "build_header_map",
    "cell_to_str",
]
