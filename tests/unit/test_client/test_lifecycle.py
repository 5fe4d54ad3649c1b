"""Unit tests for OsiLicensesClient initialization and teardown."""

import logging

import aiohttp
import pytest
from aioresponses import aioresponses

from osi_licenses.catalog import OsiCatalogReader
from osi_licenses.client import OsiLicensesClient
from osi_licenses.config import OsiClientOptions
from osi_licenses.exceptions import (
    ClientClosedError,
    OsiApiError,
    OsiInitializationError,
)
from tests.factories import BASE_URL, LICENSES_URL


@pytest.mark.asyncio
async def test_initialize_populates_once(
    client: OsiLicensesClient, mock_catalog, sample_licenses, request_count
) -> None:
    mock_catalog(sample_licenses, repeat=True)

    await client.initialize()
    await client.initialize()

    assert client.is_initialized
    assert len(client.licenses) == 3
    assert request_count(LICENSES_URL) == 1


@pytest.mark.asyncio
async def test_initialize_after_get_all_reuses_snapshot(
    client: OsiLicensesClient, mock_catalog, sample_licenses, request_count
) -> None:
    mock_catalog(sample_licenses, repeat=True)

    snapshot = await client.get_all_licenses()
    await client.initialize()

    assert client.is_initialized
    assert client.licenses is snapshot
    assert request_count(LICENSES_URL) == 1


@pytest.mark.asyncio
async def test_initialize_failure_raises(
    client: OsiLicensesClient, mock_api: aioresponses
) -> None:
    """Test that initialize reports what get_all_licenses would swallow."""
    mock_api.get(LICENSES_URL, status=500, repeat=True)

    with pytest.raises(OsiInitializationError) as exc_info:
        await client.initialize()

    assert isinstance(exc_info.value.__cause__, OsiApiError)
    assert not client.is_initialized
    assert client.licenses == ()


@pytest.mark.asyncio
async def test_initialize_retries_after_failure(
    client: OsiLicensesClient, mock_api: aioresponses, mock_catalog, sample_licenses
) -> None:
    mock_api.get(LICENSES_URL, status=500)
    mock_api.get(LICENSES_URL, status=500)
    mock_catalog(sample_licenses)

    with pytest.raises(OsiInitializationError):
        await client.initialize()
    await client.initialize()

    assert client.is_initialized
    assert len(client.licenses) == 3


@pytest.mark.asyncio
async def test_initialize_uses_array_fallback(
    client: OsiLicensesClient, mock_api: aioresponses, mock_catalog, sample_licenses
) -> None:
    mock_api.get(LICENSES_URL, body="not-json")
    mock_catalog(sample_licenses)

    await client.initialize()

    assert client.is_initialized
    assert len(client.licenses) == 3


@pytest.mark.asyncio
async def test_operations_after_close_raise(options: OsiClientOptions) -> None:
    client = OsiLicensesClient(options=options)
    await client.close()

    assert client.closed
    with pytest.raises(ClientClosedError):
        await client.get_all_licenses()
    with pytest.raises(ClientClosedError):
        await client.search("mit")
    with pytest.raises(ClientClosedError):
        await client.get_by_spdx("MIT")
    with pytest.raises(ClientClosedError):
        await client.get_licenses_by_keyword("international")
    with pytest.raises(ClientClosedError):
        await client.initialize()


@pytest.mark.asyncio
async def test_close_twice_is_noop(options: OsiClientOptions) -> None:
    client = OsiLicensesClient(options=options)

    await client.close()
    await client.close()

    assert client.closed


@pytest.mark.asyncio
async def test_context_manager_closes_owned_session(
    mock_catalog, sample_licenses
) -> None:
    mock_catalog(sample_licenses)
    reader = OsiCatalogReader(options=OsiClientOptions(base_url=BASE_URL))

    async with OsiLicensesClient(reader=reader) as client:
        await client.get_all_licenses()
        session = await reader.get_session()

    assert client.closed
    assert session.closed


@pytest.mark.asyncio
async def test_external_session_left_open(mock_catalog, sample_licenses) -> None:
    """Test that a caller-supplied session outlives the client."""
    mock_catalog(sample_licenses)

    async with aiohttp.ClientSession() as session:
        async with OsiLicensesClient(
            session, options=OsiClientOptions(base_url=BASE_URL)
        ) as client:
            licenses = await client.get_all_licenses()

        assert len(licenses) == 3
        assert not session.closed
        assert session.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_custom_logger_receives_records(
    mock_catalog, sample_licenses, caplog: pytest.LogCaptureFixture
) -> None:
    mock_catalog(sample_licenses)
    custom = logging.getLogger("tests.osi")

    with caplog.at_level(logging.INFO, logger="tests.osi"):
        async with OsiLicensesClient(
            options=OsiClientOptions(base_url=BASE_URL), logger=custom
        ) as client:
            await client.get_all_licenses()

    assert any(
        record.name == "tests.osi" and "Successfully loaded 3 licenses" in record.getMessage()
        for record in caplog.records
    )
