"""Client library for the Open Source Initiative (OSI) License API.

Fetches the OSI license catalog, enriches each license with its plain-text
body, and serves cached, filtered and searchable views of the data.
"""

__version__ = "0.1.0"

from osi_licenses.catalog import LicenseFilter, OsiCatalogReader
from osi_licenses.client import OsiLicensesClient
from osi_licenses.config import OsiClientOptions
from osi_licenses.converters import OsiLicenseKeyword
from osi_licenses.exceptions import (
    ClientClosedError,
    OsiApiError,
    OsiDecodeError,
    OsiError,
    OsiInitializationError,
)
from osi_licenses.models import OsiHref, OsiLicense, OsiLicenseLinks
from osi_licenses.sync import SyncOsiLicensesClient

__all__ = [
    "ClientClosedError",
    "LicenseFilter",
    "OsiApiError",
    "OsiCatalogReader",
    "OsiClientOptions",
    "OsiDecodeError",
    "OsiError",
    "OsiHref",
    "OsiInitializationError",
    "OsiLicense",
    "OsiLicenseKeyword",
    "OsiLicenseLinks",
    "OsiLicensesClient",
    "SyncOsiLicensesClient",
    "__version__",
]
