"""Request enrichment ahead of vendor dispatch.

Turns ``(manufacturer, showroom, model_number)`` as typed by a user into
a dispatchable :class:`AvailabilityRequest`: the manufacturer is parsed,
the showroom is mapped to the vendor's own warehouse code, and the
request is stamped with the current UTC time.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pyavail.models.request import AvailabilityRequest, Manufacturer, RequestUser

TIME_FORMAT = "%m/%d/%Y %I:%M:%S %p"

#: showroom -> vendor -> vendor warehouse code (BSH ship-to, SubZero
#: distributor number, Miele spreadsheet sheet name).
SHOWROOM_WAREHOUSES: dict[str, dict[Manufacturer, str]] = {
    "houston": {
        Manufacturer.BSH: "US00002148",
        Manufacturer.SUBZERO: "99432040",
        Manufacturer.MIELE: "Forest Park, IL",
    },
    "florida": {
        Manufacturer.BSH: "US00000103",
        Manufacturer.SUBZERO: "99211620",
        Manufacturer.MIELE: "Pompano Beach, FL",
    },
    "los angeles": {
        Manufacturer.BSH: "US00003803",
        Manufacturer.SUBZERO: "99614560",
        Manufacturer.MIELE: "Stockton, CA",
    },
    "chicago": {
        Manufacturer.BSH: "US00001842",
        Manufacturer.SUBZERO: "99311630",
        Manufacturer.MIELE: "Forest Park, IL",
    },
    "new york": {
        Manufacturer.BSH: "US00002933",
        Manufacturer.SUBZERO: "99103710",
        Manufacturer.MIELE: "South Brunswick, NJ",
    },
    "dallas": {
        Manufacturer.BSH: "US00003189",
        Manufacturer.SUBZERO: "99411540",
        Manufacturer.MIELE: "Forest Park, IL",
    },
}


def lookup_warehouse(showroom: str | None, manufacturer: Manufacturer | None) -> str | None:
    if showroom is None or manufacturer is None:
        return None
    return SHOWROOM_WAREHOUSES.get(showroom.strip().lower(), {}).get(manufacturer)


def with_warehouse(request: AvailabilityRequest) -> AvailabilityRequest:
    """Fill ``warehouse`` from the showroom table (``None`` if unmapped)."""
    return request.evolve(warehouse=lookup_warehouse(request.showroom, request.manufacturer))


def with_time(request: AvailabilityRequest, now: datetime | None = None) -> AvailabilityRequest:
    """Stamp the request with the current UTC time."""
    if now is None:
        now = datetime.now(UTC)
    return request.evolve(utc_time=now.astimezone(UTC).strftime(TIME_FORMAT))


def prepare_request(
    manufacturer: str | Manufacturer | None,
    showroom: str | None,
    model_number: str | None,
    *,
    user: RequestUser | None = None,
    now: datetime | None = None,
) -> AvailabilityRequest:
    """Build an enriched request ready for :meth:`AvailabilityClient.resolve`."""
    request = AvailabilityRequest(
        manufacturer=manufacturer,
        showroom=showroom,
        model_number=model_number,
        user=user,
    )
    return with_time(with_warehouse(request), now)
