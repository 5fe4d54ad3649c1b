"""Unit tests for server-side filtered queries."""

import re

import aiohttp
import pytest
from aioresponses import aioresponses

from osi_licenses.catalog import LicenseFilter
from osi_licenses.client import OsiLicensesClient
from osi_licenses.converters import OsiLicenseKeyword
from tests.factories import LICENSES_URL, license_page, make_license

PAGE_PATTERN = re.compile(r"^https://opensource\.org/license/.*$")


@pytest.fixture
def license_pages(mock_api: aioresponses) -> None:
    """Serve the same license page for every license."""
    mock_api.get(
        PAGE_PATTERN,
        body=license_page("Filtered license text"),
        content_type="text/html",
        repeat=True,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["", "  "])
async def test_blank_value_makes_no_request(
    client: OsiLicensesClient, mock_api: aioresponses, value: str
) -> None:
    assert await client.fetch_filtered(LicenseFilter.NAME, value) == ()
    assert await client.get_licenses_by_steward(value) == ()
    assert await client.get_licenses_by_spdx_pattern(value) == ()
    assert not mock_api.requests


@pytest.mark.asyncio
async def test_fetch_by_name_enriches_and_sorts(
    client: OsiLicensesClient, mock_api: aioresponses, license_pages
) -> None:
    mock_api.get(
        f"{LICENSES_URL}?name=MIT",
        payload=[
            make_license("mit-0", "MIT No Attribution License", "MIT-0"),
            make_license("mit", "MIT License", "MIT"),
        ],
    )

    results = await client.get_licenses_by_name("MIT")

    assert [lic.spdx_id for lic in results] == ["MIT", "MIT-0"]
    assert all(lic.license_text == "Filtered license text" for lic in results)


@pytest.mark.asyncio
async def test_fetch_filtered_accepts_filter_name(
    client: OsiLicensesClient, mock_api: aioresponses, license_pages
) -> None:
    mock_api.get(
        f"{LICENSES_URL}?steward=eclipse-foundation",
        payload=[make_license("epl-2-0", "Eclipse Public License 2.0", "EPL-2.0")],
    )

    results = await client.fetch_filtered("steward", "eclipse-foundation")

    assert [lic.id for lic in results] == ["epl-2-0"]


@pytest.mark.asyncio
async def test_fetch_filtered_unknown_filter(client: OsiLicensesClient) -> None:
    with pytest.raises(ValueError):
        await client.fetch_filtered("author", "someone")


@pytest.mark.asyncio
async def test_fetch_filtered_http_error_returns_empty(
    client: OsiLicensesClient, mock_api: aioresponses
) -> None:
    mock_api.get(f"{LICENSES_URL}?name=MIT", status=500)

    assert await client.get_licenses_by_name("MIT") == ()


@pytest.mark.asyncio
async def test_fetch_filtered_connection_error_returns_empty(
    client: OsiLicensesClient, mock_api: aioresponses
) -> None:
    mock_api.get(
        f"{LICENSES_URL}?name=MIT",
        exception=aiohttp.ClientConnectionError("refused"),
    )

    assert await client.get_licenses_by_name("MIT") == ()


@pytest.mark.asyncio
async def test_fetch_filtered_malformed_body_returns_empty(
    client: OsiLicensesClient, mock_api: aioresponses
) -> None:
    mock_api.get(f"{LICENSES_URL}?name=MIT", body="<html>maintenance</html>")

    assert await client.get_licenses_by_name("MIT") == ()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "keyword",
    [OsiLicenseKeyword.POPULAR_STRONG_COMMUNITY, "popular-strong-community", "Popular-Strong-Community"],
)
async def test_get_licenses_by_keyword(
    client: OsiLicensesClient, mock_api: aioresponses, license_pages, keyword
) -> None:
    """Test that enum values and tokens produce the same request."""
    mock_api.get(
        f"{LICENSES_URL}?keyword=popular-strong-community",
        payload=[make_license("mit", "MIT License", "MIT", keywords=["popular-strong-community"])],
    )

    results = await client.get_licenses_by_keyword(keyword)

    assert [lic.spdx_id for lic in results] == ["MIT"]


@pytest.mark.asyncio
async def test_get_licenses_by_unknown_keyword_makes_no_request(
    client: OsiLicensesClient, mock_api: aioresponses
) -> None:
    assert await client.get_licenses_by_keyword("not-a-keyword") == ()
    assert not mock_api.requests


@pytest.mark.asyncio
async def test_get_licenses_by_spdx_pattern_keeps_wildcard(
    client: OsiLicensesClient, mock_api: aioresponses, license_pages
) -> None:
    mock_api.get(
        f"{LICENSES_URL}?spdx=gpl*",
        payload=[
            make_license("gpl-3-0", "GNU General Public License version 3", "GPL-3.0-only"),
            make_license("gpl-2-0", "GNU General Public License version 2", "GPL-2.0"),
        ],
    )

    results = await client.get_licenses_by_spdx_pattern("gpl*")

    assert [lic.spdx_id for lic in results] == ["GPL-2.0", "GPL-3.0-only"]
    requested = [str(url) for (_method, url) in mock_api.requests]
    assert f"{LICENSES_URL}?spdx=gpl*" in requested
    assert not any("%2A" in url for url in requested)


@pytest.mark.asyncio
async def test_filtered_results_do_not_replace_snapshot(
    client: OsiLicensesClient,
    mock_api: aioresponses,
    mock_catalog,
    sample_licenses,
) -> None:
    mock_catalog(sample_licenses)
    mock_api.get(
        f"{LICENSES_URL}?steward=eclipse-foundation",
        payload=[make_license("epl-2-0", "Eclipse Public License 2.0", "EPL-2.0")],
    )

    snapshot = await client.get_all_licenses()
    await client.get_licenses_by_steward("eclipse-foundation")

    assert client.licenses is snapshot
    assert await client.get_all_licenses() is snapshot


@pytest.mark.asyncio
async def test_filtered_call_keeps_cached_license_text(
    client: OsiLicensesClient,
    mock_api: aioresponses,
    mock_catalog,
    sample_licenses,
    request_count,
) -> None:
    """Test that refetching a known license never loses its text."""
    mock_catalog(sample_licenses, pages=False)
    mock_api.get(
        "https://opensource.org/license/mit",
        body=license_page("MIT text"),
        content_type="text/html",
    )
    mock_api.get("https://opensource.org/license/mit", status=503, repeat=True)
    mock_api.get(PAGE_PATTERN, body=license_page("Other text"), content_type="text/html", repeat=True)
    mock_api.get(
        f"{LICENSES_URL}?name=MIT",
        payload=[make_license("mit", "MIT License", "MIT")],
    )

    await client.get_all_licenses()
    results = await client.get_licenses_by_name("MIT")
    cached = await client.get_by_spdx("MIT")

    assert results[0].license_text == "MIT text"
    assert cached is not None and cached.license_text == "MIT text"
    assert request_count("https://opensource.org/license/mit") == 1
