"""BSH B2B portal availability via the SAP OData simulate-order service.

Endpoints:
  - GET  .../SD_OM_SRV/           (anti-forgery token fetch)
  - POST .../SD_OM_SRV/SOSimulate (simulate a one-piece order)

The simulate call never creates an order; the backorder field of the
simulated item carries the expected availability.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from pyavail._api._common import VendorAdapter, raise_for_status, safe_header
from pyavail._constants import (
    BSH_MIN_AVAILABILITY_LENGTH,
    BSH_NOT_FOUND,
    BSH_ODATA_ROOT,
    BSH_SIMULATE_URL,
    CSRF_HEADER,
)
from pyavail._redact import redact_for_log
from pyavail._transport import Transport
from pyavail.config import AvailConfig
from pyavail.exceptions import AvailParseError, AvailSessionInvalidError
from pyavail.models.request import AvailabilityRequest, Manufacturer

_logger = logging.getLogger(__name__)


def build_simulate_document(
    *,
    sold_to: str,
    ship_to: str,
    material: str,
    today: date,
) -> dict[str, Any]:
    """Build the SOSimulate request body for a quantity-one order."""
    req_date = today.strftime("%Y%m%d")
    return {
        "Country": "US",
        "Brand": "A00",
        "Submodule": "APPS",
        "DocCategory": "ASTD",
        "PurchNo": "",
        "ReqDateH": req_date,
        "ComplDlv": "",
        "SoldTo": sold_to,
        "Language": "EN",
        "ShipTo": ship_to,
        "SOSimulateToItem": [
            {
                "Submodule": "APPS",
                "Material": material,
                "ReqQty": "1",
                "ReqDateI": req_date,
            }
        ],
    }


def extract_backorder(document: Any) -> str | None:
    """Read ``d.SOSimulateToItem.results[0].AvailBackorder``; ``None`` if absent."""
    try:
        value = document["d"]["SOSimulateToItem"]["results"][0]["AvailBackorder"]
    except (KeyError, IndexError, TypeError):
        return None
    if value is None:
        return None
    return str(value)


def clean_availability(raw: str | None) -> str:
    """Strip line-break escapes and spaces from a backorder value.

    Values shorter than ten characters after cleanup carry no date and
    are replaced with the not-found sentinel.
    """
    if raw is None:
        return BSH_NOT_FOUND
    cleaned = raw
    for token in ("\\n", "\n", "\\r", "\r", " "):
        cleaned = cleaned.replace(token, "")
    if len(cleaned) < BSH_MIN_AVAILABILITY_LENGTH:
        return BSH_NOT_FOUND
    return cleaned


class ODataAdapter(VendorAdapter):
    """Stateless simulate-order protocol.

    Idle -> TokenFetched -> Simulated -> Parsed, linear, no retries.
    """

    vendor = Manufacturer.BSH

    def __init__(
        self,
        config: AvailConfig,
        transport: Transport,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        super().__init__(config, transport)
        self._today = today

    async def fetch_csrf_token(self, cookie_header: str) -> str:
        headers = {
            "cookie": safe_header("cookie", cookie_header),
            CSRF_HEADER: "Fetch",
        }
        response = await self._transport.request("GET", BSH_ODATA_ROOT, headers=headers)
        raise_for_status(response, vendor=self.vendor, action="get x-csrf-token")

        token = response.headers.get(CSRF_HEADER, "").strip()
        # SAP answers "Required" when the session cookies were not accepted.
        if not token or token.lower() == "required":
            raise AvailSessionInvalidError(
                "BSH portal did not issue an x-csrf-token; session cookies rejected",
                vendor=self.vendor.value,
            )
        return token

    async def simulate(self, cookie_header: str, csrf_token: str, document: dict[str, Any]) -> Any:
        headers = {
            "cookie": safe_header("cookie", cookie_header),
            CSRF_HEADER: safe_header(CSRF_HEADER, csrf_token),
            "content-type": "application/json",
            "accept": "application/json",
        }
        _logger.debug("BSH simulate document=%s headers=%s", document, redact_for_log(headers))
        response = await self._transport.request(
            "POST",
            BSH_SIMULATE_URL,
            headers=headers,
            data=json.dumps(document),
        )
        raise_for_status(response, vendor=self.vendor, action="get availability response")
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise AvailParseError(f"Failed to parse availability response text: {response.text[:200]}") from exc

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        _, model_number = request.require_dispatchable()
        warehouse = request.require_warehouse()

        csrf_token = await self.fetch_csrf_token(cookie_header)
        document = build_simulate_document(
            sold_to=self._config.bsh_sold_to,
            ship_to=warehouse,
            material=model_number,
            today=self._today(),
        )
        payload = await self.simulate(cookie_header, csrf_token, document)
        availability = clean_availability(extract_backorder(payload))
        _logger.debug("BSH availability for %s at %s: %s", model_number, warehouse, availability)
        return availability
