"""Caching OSI license client.

OsiLicensesClient keeps one authoritative, read-optimized snapshot of the
OSI license catalog. The snapshot is built lazily on first demand:

1. Stream the catalog from the API, indexing each license by SPDX id
   (or name when it has none).
2. If streaming failed or produced nothing, fall back to reading the response as a
   single JSON array.
3. Fetch the license text of every record from its HTML page, with a
   bounded number of requests in flight.
4. Sort by SPDX id/name (case-insensitive) and publish the result.

Read operations never raise for network or decode failures; they return
empty or partial results instead. Only initialize() reports a failed
population, as OsiInitializationError.
"""

import asyncio
import logging
import time
from typing import Iterable, Optional, Union

import aiohttp

from osi_licenses.catalog import LicenseFilter, OsiCatalogReader
from osi_licenses.config import OsiClientOptions
from osi_licenses.converters import OsiLicenseKeyword, keyword_token, parse_keyword
from osi_licenses.exceptions import (
    ClientClosedError,
    OsiError,
    OsiInitializationError,
)
from osi_licenses.models import OsiLicense
from osi_licenses.text import fetch_license_text


def _sorted(licenses: Iterable[OsiLicense]) -> tuple[OsiLicense, ...]:
    return tuple(sorted(licenses, key=lambda lic: lic.sort_key))


class OsiLicensesClient:
    """Client serving cached, searchable views of the OSI license catalog.

    The client is populate-once: after the first successful load every
    get_all_licenses() call returns the same snapshot without touching the
    network, unless caching is disabled in the options.

    Use as an async context manager or call close() when done. Sessions
    passed in by the caller are never closed by the client.

    Attributes:
        options: Effective client options.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        options: Optional[OsiClientOptions] = None,
        reader: Optional[OsiCatalogReader] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the client.

        Args:
            session: Optional externally managed aiohttp session.
            options: Client options; defaults target https://opensource.org/api/.
            reader: Optional pre-built catalog reader. Takes precedence over
                session, and its own session ownership rules apply.
            logger: Logger to report to; defaults to this module's logger.
        """
        if reader is None:
            reader = OsiCatalogReader(session=session, options=options)
        self.options = options or reader.options
        self._reader = reader
        self._logger = logger or logging.getLogger(__name__)

        self._by_key: dict[str, OsiLicense] = {}
        self._snapshot: tuple[OsiLicense, ...] = ()
        self._populate_lock = asyncio.Lock()
        self._throttle = asyncio.Semaphore(self.options.max_parallelism)
        self._initialized = False
        self._closed = False

    @property
    def licenses(self) -> tuple[OsiLicense, ...]:
        """The last published snapshot (empty until the first successful load)."""
        return self._snapshot

    @property
    def is_initialized(self) -> bool:
        """True once initialize() has completed successfully."""
        return self._initialized

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError("OsiLicensesClient has already been closed")

    async def initialize(self) -> None:
        """Ensure the snapshot is populated.

        Idempotent: once successful, later calls return immediately.

        Raises:
            OsiInitializationError: If the catalog could not be loaded.
            ClientClosedError: If the client has been closed.
        """
        self._ensure_open()
        if self._initialized:
            self._logger.debug("Already initialized, skipping")
            return

        self._logger.debug("Acquiring initialization lock")
        async with self._populate_lock:
            if self._initialized:
                return
            if self.options.use_cache and self._snapshot:
                self._initialized = True
                return
            self._logger.info("Initializing OsiLicensesClient")
            try:
                await self._populate({})
            except OsiError as e:
                self._logger.error("Failed to initialize OsiLicensesClient: %s", e)
                raise OsiInitializationError(
                    "Failed to initialize OsiLicensesClient"
                ) from e
            self._initialized = True
            self._logger.info("OsiLicensesClient initialization completed successfully")

    async def get_all_licenses(self) -> tuple[OsiLicense, ...]:
        """Return the complete, sorted license catalog.

        Populates the snapshot on first use. Later calls return the same
        tuple object without any request while caching is enabled.

        Returns:
            Licenses sorted by SPDX id/name, or whatever partial data was
            gathered (possibly nothing) if the catalog could not be loaded.
        """
        self._ensure_open()
        if self.options.use_cache and self._snapshot:
            self._logger.debug("Returning cached snapshot of %d licenses", len(self._snapshot))
            return self._snapshot

        async with self._populate_lock:
            if self.options.use_cache and self._snapshot:
                return self._snapshot
            gathered: dict[str, OsiLicense] = {}
            try:
                return await self._populate(gathered)
            except OsiError as e:
                self._logger.error("Failed to load licenses from OSI API: %s", e)
                return _sorted(gathered.values())

    async def search(self, query: str) -> tuple[OsiLicense, ...]:
        """Search licenses by name or OSI id (case-insensitive substring).

        Args:
            query: Text to look for. Blank queries match nothing.

        Returns:
            Matching licenses in snapshot order.
        """
        self._ensure_open()
        if not query or not query.strip():
            self._logger.debug("Search called with empty query, returning empty result")
            return ()

        needle = query.strip().casefold()
        self._logger.debug("Searching for licenses matching query: '%s'", needle)
        licenses = await self.get_all_licenses()
        results = tuple(
            lic
            for lic in licenses
            if needle in lic.name.casefold() or needle in lic.id.casefold()
        )
        self._logger.info("Search for '%s' returned %d result(s)", query, len(results))
        return results

    async def get_by_spdx(self, key: str) -> Optional[OsiLicense]:
        """Look up one license by its cache key (SPDX id, or name).

        Args:
            key: SPDX identifier such as "MIT"; names of licenses without an
                SPDX id and OSI ids are matched by the fallback scan.

        Returns:
            The matching license, or None.
        """
        self._ensure_open()
        if not key or not key.strip():
            self._logger.debug("get_by_spdx called with empty key")
            return None

        key = key.strip()
        self._logger.debug("Looking up license by SPDX ID: '%s'", key)
        licenses = await self.get_all_licenses()

        found = self._by_key.get(key.casefold())
        if found is not None:
            self._logger.debug("Found license '%s' via dictionary lookup", found.name)
            return found

        folded = key.casefold()
        for lic in licenses:
            if folded in (
                (lic.spdx_id or "").casefold(),
                lic.name.casefold(),
                lic.id.casefold(),
            ):
                self._logger.debug("Found license '%s' via fallback scan", lic.name)
                return lic

        self._logger.info("License with SPDX ID '%s' not found", key)
        return None

    async def fetch_filtered(
        self, license_filter: Union[LicenseFilter, str], value: str
    ) -> tuple[OsiLicense, ...]:
        """Fetch licenses through a server-side filter and enrich them.

        Args:
            license_filter: One of name, keyword, steward or spdx.
            value: Filter value. Blank values return nothing without a request.

        Returns:
            Enriched, sorted licenses; empty if the request failed.

        Raises:
            ValueError: If license_filter is not a known filter.
        """
        self._ensure_open()
        license_filter = LicenseFilter(license_filter)
        if not value or not value.strip():
            self._logger.debug(
                "fetch_filtered called with empty value for parameter '%s'",
                license_filter.value,
            )
            return ()

        started = time.monotonic()
        self._logger.debug(
            "Fetching licenses filtered by %s='%s'", license_filter.value, value
        )
        try:
            licenses = await self._reader.fetch_filtered(license_filter, value)
        except OsiError as e:
            self._logger.error(
                "Failed to fetch filtered licenses by %s='%s': %s",
                license_filter.value,
                value,
                e,
            )
            return ()

        if not licenses:
            self._logger.info(
                "No licenses found for %s='%s'", license_filter.value, value
            )
            return ()

        for lic in licenses:
            key = lic.index_key
            known = self._by_key.get(key.casefold()) if key else None
            if known is not None and known.license_text:
                lic.license_text = known.license_text
        await self._enrich(licenses)
        for lic in licenses:
            self._index(lic, self._by_key)

        results = _sorted(licenses)
        self._logger.info(
            "Fetched and enriched %d licenses filtered by %s='%s' in %.0f ms",
            len(results),
            license_filter.value,
            value,
            (time.monotonic() - started) * 1000,
        )
        return results

    async def get_licenses_by_name(self, name: str) -> tuple[OsiLicense, ...]:
        """Licenses whose name matches the server-side name filter."""
        return await self.fetch_filtered(LicenseFilter.NAME, name)

    async def get_licenses_by_keyword(
        self, keyword: Union[OsiLicenseKeyword, str]
    ) -> tuple[OsiLicense, ...]:
        """Licenses carrying a classification keyword.

        Args:
            keyword: Keyword enum value or API token such as
                "popular-strong-community". Unknown tokens match nothing and
                issue no request.
        """
        self._ensure_open()
        if not isinstance(keyword, OsiLicenseKeyword):
            parsed = parse_keyword(keyword)
            if parsed is None:
                self._logger.debug("Unknown keyword '%s', returning empty result", keyword)
                return ()
            keyword = parsed
        return await self.fetch_filtered(LicenseFilter.KEYWORD, keyword_token(keyword))

    async def get_licenses_by_steward(self, steward: str) -> tuple[OsiLicense, ...]:
        """Licenses maintained by a steward (e.g., "eclipse-foundation")."""
        return await self.fetch_filtered(LicenseFilter.STEWARD, steward)

    async def get_licenses_by_spdx_pattern(
        self, spdx_pattern: str
    ) -> tuple[OsiLicense, ...]:
        """Licenses whose SPDX id matches a pattern ("gpl*", "*bsd", "MIT")."""
        return await self.fetch_filtered(LicenseFilter.SPDX, spdx_pattern)

    async def _populate(self, by_key: dict[str, OsiLicense]) -> tuple[OsiLicense, ...]:
        """Load, enrich, sort and publish the catalog.

        Must be called with the populate lock held. Records are collected
        into by_key, which replaces the key map only when the pass succeeds.

        Args:
            by_key: Empty map to fill; holds the partial pass on failure.

        Raises:
            OsiError: If neither the streaming nor the array path succeeded.
        """
        started = time.monotonic()
        self._logger.info("Fetching all licenses from OSI API")

        count = 0
        streamed = False
        try:
            async for lic in self._reader.iter_all():
                if self._index(lic, by_key):
                    count += 1
            self._logger.debug("Streaming deserialization completed, loaded %d licenses", count)
            streamed = True
        except OsiError as e:
            self._logger.warning(
                "Streaming deserialization failed after %d licenses, falling back "
                "to array deserialization: %s",
                count,
                e,
            )

        if not streamed or count == 0:
            try:
                licenses = await self._reader.fetch_all()
            except OsiError:
                self._logger.error("Fallback deserialization failed")
                raise
            self._logger.debug(
                "Fallback deserialization successful, processing %d licenses",
                len(licenses),
            )
            for lic in licenses:
                self._index(lic, by_key)

        await self._enrich(list(by_key.values()))

        self._by_key = by_key
        self._snapshot = _sorted(by_key.values())
        self._logger.info(
            "Successfully loaded %d licenses in %.0f ms",
            len(self._snapshot),
            (time.monotonic() - started) * 1000,
        )
        return self._snapshot

    def _index(self, lic: OsiLicense, by_key: dict[str, OsiLicense]) -> bool:
        key = lic.index_key
        if key is None:
            self._logger.warning("Skipping license %s without SPDX id or name", lic.id)
            return False
        by_key[key.casefold()] = lic
        return True

    async def _enrich(self, licenses: list[OsiLicense]) -> None:
        """Fetch license texts for records lacking one, bounded by the throttle.

        Failures leave the affected record's text empty and never abort the
        other fetches.
        """
        pending = [lic for lic in licenses if not lic.license_text]
        if not pending:
            return

        self._logger.debug(
            "Fetching %d license texts with max parallelism of %d",
            len(pending),
            self.options.max_parallelism,
        )
        session = await self._reader.get_session()

        async def _fetch(lic: OsiLicense) -> None:
            async with self._throttle:
                text = await fetch_license_text(session, lic.links.html.href)
            if not text:
                self._logger.warning(
                    "Failed to fetch license text for %s (SPDX: %s)",
                    lic.name,
                    lic.spdx_id,
                )
            lic.license_text = text

        results = await asyncio.gather(
            *(_fetch(lic) for lic in pending), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            self._logger.warning("%d license text fetch operations failed", len(failures))
        else:
            self._logger.debug("All license text fetch operations completed")

    async def close(self) -> None:
        """Release the owned HTTP session. Later calls raise ClientClosedError."""
        if self._closed:
            return
        self._logger.debug("Disposing OsiLicensesClient")
        self._closed = True
        await self._reader.close()

    async def __aenter__(self) -> "OsiLicensesClient":
        """Async context manager entry."""
        self._ensure_open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
