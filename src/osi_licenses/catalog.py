"""Remote catalog reader for the OSI License API.

Translates logical requests (the full listing, or a listing filtered by
name, keyword, steward or SPDX pattern) into decoded license records. The
full listing can be consumed incrementally, decoding array elements as the
response body arrives, or read as a single JSON array.
"""

import asyncio
import codecs
import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, Optional, Union
from urllib.parse import quote

import aiohttp

from osi_licenses.exceptions import OsiApiError, OsiDecodeError
from osi_licenses.http import OsiHttpClient
from osi_licenses.models import OsiLicense

logger = logging.getLogger(__name__)


class LicenseFilter(str, Enum):
    """Server-side filters supported by the license listing endpoint."""

    NAME = "name"
    KEYWORD = "keyword"
    STEWARD = "steward"
    SPDX = "spdx"


class JsonArrayStream:
    """Incremental decoder for a top-level JSON array.

    Text is fed in arbitrary chunks; every array element that is complete
    so far is returned from feed(). close() flushes the remainder and
    verifies the array was terminated.
    """

    def __init__(self) -> None:
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._state = "start"

    def feed(self, text: str) -> list[Any]:
        self._buffer += text
        return self._drain(final=False)

    def close(self) -> list[Any]:
        items = self._drain(final=True)
        if self._state != "done":
            raise OsiDecodeError("Unexpected end of JSON array")
        return items

    def _drain(self, final: bool) -> list[Any]:
        items: list[Any] = []
        while True:
            buffer = self._buffer = self._buffer.lstrip()
            if not buffer:
                return items

            if self._state == "start":
                if buffer[0] != "[":
                    raise OsiDecodeError("Expected a JSON array")
                self._buffer = buffer[1:]
                self._state = "first"
            elif self._state in ("first", "value"):
                if self._state == "first" and buffer[0] == "]":
                    self._buffer = buffer[1:]
                    self._state = "done"
                    continue
                try:
                    item, end = self._decoder.raw_decode(buffer)
                except json.JSONDecodeError as e:
                    if final:
                        raise OsiDecodeError(f"Malformed JSON array element: {e}") from e
                    return items
                # A value ending exactly at the buffer edge may still be truncated
                if end == len(buffer) and not final:
                    return items
                items.append(item)
                self._buffer = buffer[end:]
                self._state = "separator"
            elif self._state == "separator":
                if buffer[0] == ",":
                    self._state = "value"
                elif buffer[0] == "]":
                    self._state = "done"
                else:
                    raise OsiDecodeError(f"Unexpected character {buffer[0]!r} in array")
                self._buffer = buffer[1:]
            else:
                raise OsiDecodeError("Unexpected data after JSON array")


def _decode_license_array(data: Any) -> list[OsiLicense]:
    if not isinstance(data, list):
        raise OsiDecodeError(f"Expected JSON array, got {type(data).__name__}")
    return [OsiLicense.from_dict(item) for item in data if item is not None]


class OsiCatalogReader(OsiHttpClient):
    """Reads license records from the OSI License API.

    Records are returned exactly as decoded; license text enrichment and
    caching are left to OsiLicensesClient.
    """

    CHUNK_SIZE = 8192

    def build_filter_url(
        self, license_filter: Union[LicenseFilter, str], value: str
    ) -> str:
        """Build the URL of a filtered listing request.

        The value is percent-encoded, except that ``*`` is kept literal for
        SPDX filters since the API treats it as a wildcard.

        Args:
            license_filter: Filter parameter to use.
            value: Filter value.

        Returns:
            Absolute request URL.

        Raises:
            ValueError: If license_filter is not a known filter.
        """
        license_filter = LicenseFilter(license_filter)
        safe = "*" if license_filter is LicenseFilter.SPDX else ""
        return (
            f"{self.options.licenses_url}"
            f"?{license_filter.value}={quote(value, safe=safe)}"
        )

    async def iter_all(self) -> AsyncIterator[OsiLicense]:
        """Stream every license of the catalog as the response is decoded.

        Yields:
            OsiLicense records in server order.

        Raises:
            OsiApiError: On transport failure or an HTTP error status.
            OsiDecodeError: If the body is not a well-formed array of licenses.
        """
        url = self.options.licenses_url
        logger.debug("Starting streaming deserialization from %s", url)
        session = await self.get_session()
        stream = JsonArrayStream()
        text_decoder = codecs.getincrementaldecoder("utf-8")()

        try:
            async with session.get(url) as response:
                self._check_status(response, url)
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    for item in stream.feed(text_decoder.decode(chunk)):
                        if item is not None:
                            yield OsiLicense.from_dict(item)
                tail = stream.feed(text_decoder.decode(b"", final=True))
                tail.extend(stream.close())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OsiApiError(f"Failed to stream licenses from {url}: {e}", url=url) from e
        except UnicodeDecodeError as e:
            raise OsiDecodeError(f"Response from {url} is not valid UTF-8") from e

        for item in tail:
            if item is not None:
                yield OsiLicense.from_dict(item)

    async def fetch_all(self) -> list[OsiLicense]:
        """Fetch the whole catalog, decoding the body as one JSON array.

        Raises:
            OsiApiError: On transport failure or an HTTP error status.
            OsiDecodeError: If the body is not a well-formed array of licenses.
        """
        url = self.options.licenses_url
        logger.debug("Attempting array deserialization from %s", url)
        return _decode_license_array(await self._get_json(url))

    async def fetch_filtered(
        self, license_filter: Union[LicenseFilter, str], value: str
    ) -> list[OsiLicense]:
        """Fetch the licenses matching one server-side filter.

        Args:
            license_filter: Filter parameter (name, keyword, steward or spdx).
            value: Filter value; ``*`` wildcards are honoured for spdx.

        Returns:
            Decoded licenses, possibly empty.

        Raises:
            OsiApiError: On transport failure or an HTTP error status.
            OsiDecodeError: If the body is not a well-formed array of licenses.
        """
        url = self.build_filter_url(license_filter, value)
        logger.debug("Request URL: %s", url)
        return _decode_license_array(await self._get_json(url))

    async def fetch_by_id(self, osi_id: str) -> Optional[OsiLicense]:
        """Fetch a single license by its OSI identifier.

        Args:
            osi_id: OSI id such as "mit" or "apache-2.0".

        Returns:
            The license, or None if the API answers 404.

        Raises:
            OsiApiError: On transport failure or another HTTP error status.
            OsiDecodeError: If the body is not a license object.
        """
        url = f"{self.options.licenses_url}/{quote(osi_id, safe='')}"
        data = await self._get_json(url, allow_missing=True)
        if data is None:
            return None
        return OsiLicense.from_dict(data)

    async def _get_json(self, url: str, allow_missing: bool = False) -> Any:
        session = await self.get_session()
        try:
            async with session.get(url) as response:
                if allow_missing and response.status == 404:
                    logger.info("Nothing found at %s", url)
                    return None
                self._check_status(response, url)
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise OsiDecodeError(f"Failed to parse JSON from {url}: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OsiApiError(f"Request to {url} failed: {e}", url=url) from e

    @staticmethod
    def _check_status(response: aiohttp.ClientResponse, url: str) -> None:
        if response.status >= 400:
            raise OsiApiError(
                f"OSI API returned status {response.status} for {url}",
                status=response.status,
                url=url,
            )
