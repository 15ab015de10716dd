"""pyavail - Async appliance availability lookups across vendor portals."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyavail")
except PackageNotFoundError:
    __version__ = "0+local"
from pyavail.client import AvailabilityClient
from pyavail.config import AvailConfig, VendorCredentials, credentials_from_env
from pyavail.enrich import prepare_request
from pyavail.exceptions import (
    AvailAuthenticationError,
    AvailConfigError,
    AvailError,
    AvailNotFoundError,
    AvailParseError,
    AvailSessionInvalidError,
    AvailTimeoutError,
    AvailTransportError,
    AvailValidationError,
)
from pyavail.models import AvailabilityRequest, CatalogRecord, Manufacturer, RequestUser
from pyavail.session import Cookie, SessionRecord
from pyavail.token_cache import TokenCache

__all__ = [
    "__version__",
    "AvailAuthenticationError",
    "AvailConfig",
    "AvailConfigError",
    "AvailError",
    "AvailNotFoundError",
    "AvailParseError",
    "AvailSessionInvalidError",
    "AvailTimeoutError",
    "AvailTransportError",
    "AvailValidationError",
    "AvailabilityClient",
    "AvailabilityRequest",
    "CatalogRecord",
    "Cookie",
    "Manufacturer",
    "RequestUser",
    "SessionRecord",
    "TokenCache",
    "VendorCredentials",
    "credentials_from_env",
    "prepare_request",
]
