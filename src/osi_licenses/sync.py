"""Blocking wrapper around OsiLicensesClient.

The async client runs on a private event loop in a daemon thread; each
blocking call submits a coroutine to that loop and waits for its result.
This works from plain synchronous code as well as from a thread that is
already running its own event loop.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, Optional, TypeVar, Union

from osi_licenses.catalog import LicenseFilter
from osi_licenses.client import OsiLicensesClient
from osi_licenses.config import OsiClientOptions
from osi_licenses.converters import OsiLicenseKeyword
from osi_licenses.exceptions import ClientClosedError
from osi_licenses.models import OsiLicense

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncOsiLicensesClient:
    """Synchronous OSI license client.

    Example:
        >>> with SyncOsiLicensesClient() as client:
        ...     mit = client.get_by_spdx("MIT")
    """

    def __init__(self, options: Optional[OsiClientOptions] = None) -> None:
        """Start the background loop and create the async client on it.

        Args:
            options: Client options passed to OsiLicensesClient.
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name="osi-licenses-loop",
            daemon=True,
        )
        self._thread.start()
        self._closed = False
        self._client: OsiLicensesClient = self._call(self._create_client(options))

    @staticmethod
    async def _create_client(options: Optional[OsiClientOptions]) -> OsiLicensesClient:
        # Built on the loop thread so asyncio primitives bind to that loop
        return OsiLicensesClient(options=options)

    def _call(self, coro: Coroutine[Any, Any, T]) -> T:
        if self._closed:
            coro.close()
            raise ClientClosedError("SyncOsiLicensesClient has already been closed")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    @property
    def licenses(self) -> tuple[OsiLicense, ...]:
        """The last published snapshot."""
        if self._closed:
            raise ClientClosedError("SyncOsiLicensesClient has already been closed")
        return self._client.licenses

    @property
    def is_initialized(self) -> bool:
        """True once initialize() has completed successfully."""
        if self._closed:
            raise ClientClosedError("SyncOsiLicensesClient has already been closed")
        return self._client.is_initialized

    def initialize(self) -> None:
        """Populate the catalog, raising OsiInitializationError on failure."""
        self._call(self._client.initialize())

    def get_all_licenses(self) -> tuple[OsiLicense, ...]:
        return self._call(self._client.get_all_licenses())

    def search(self, query: str) -> tuple[OsiLicense, ...]:
        return self._call(self._client.search(query))

    def get_by_spdx(self, key: str) -> Optional[OsiLicense]:
        return self._call(self._client.get_by_spdx(key))

    def fetch_filtered(
        self, license_filter: Union[LicenseFilter, str], value: str
    ) -> tuple[OsiLicense, ...]:
        return self._call(self._client.fetch_filtered(license_filter, value))

    def get_licenses_by_name(self, name: str) -> tuple[OsiLicense, ...]:
        return self._call(self._client.get_licenses_by_name(name))

    def get_licenses_by_keyword(
        self, keyword: Union[OsiLicenseKeyword, str]
    ) -> tuple[OsiLicense, ...]:
        return self._call(self._client.get_licenses_by_keyword(keyword))

    def get_licenses_by_steward(self, steward: str) -> tuple[OsiLicense, ...]:
        return self._call(self._client.get_licenses_by_steward(steward))

    def get_licenses_by_spdx_pattern(self, spdx_pattern: str) -> tuple[OsiLicense, ...]:
        return self._call(self._client.get_licenses_by_spdx_pattern(spdx_pattern))

    def close(self) -> None:
        """Close the async client and stop the background loop.

        Closing twice is a no-op.
        """
        if self._closed:
            return
        try:
            self._call(self._client.close())
        finally:
            self._closed = True
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()
            logger.debug("Stopped background event loop")

    def __enter__(self) -> "SyncOsiLicensesClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
