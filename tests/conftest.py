"""Pytest configuration and fixtures."""

from typing import Any, AsyncGenerator, Callable, Generator

import pytest
from aioresponses import aioresponses
from yarl import URL

from osi_licenses.client import OsiLicensesClient
from osi_licenses.config import OsiClientOptions
from tests.factories import BASE_URL, LICENSES_URL, license_page, make_license


@pytest.fixture
def sample_licenses() -> list[dict[str, Any]]:
    """Return a small catalog, deliberately out of SPDX order."""
    return [
        make_license(
            "mit",
            "MIT License",
            "MIT",
            keywords=["popular-strong-community"],
        ),
        make_license(
            "apache-2-0",
            "Apache License, Version 2.0",
            "Apache-2.0",
            keywords=["popular-strong-community", "no-such-keyword"],
            stewards=["apache-software-foundation"],
        ),
        make_license(
            "bsd-3-clause",
            "The 3-Clause BSD License",
            "BSD-3-Clause",
        ),
    ]


@pytest.fixture
def options() -> OsiClientOptions:
    """Return client options pointing at the stubbed API."""
    return OsiClientOptions(base_url=BASE_URL, max_parallelism=2)


@pytest.fixture
async def client(options: OsiClientOptions) -> AsyncGenerator[OsiLicensesClient, None]:
    """Return an OsiLicensesClient that owns its session."""
    client = OsiLicensesClient(options=options)
    yield client
    await client.close()


@pytest.fixture
def mock_api() -> Generator[aioresponses, None, None]:
    """Stub every aiohttp request made during the test."""
    with aioresponses() as mock:
        yield mock


@pytest.fixture
def mock_catalog(
    mock_api: aioresponses,
) -> Callable[..., None]:
    """Return a helper registering a catalog listing and its license pages."""

    def _register(
        licenses: list[dict[str, Any]],
        repeat: bool = False,
        pages: bool = True,
    ) -> None:
        mock_api.get(LICENSES_URL, payload=licenses, repeat=repeat)
        if not pages:
            return
        for item in licenses:
            mock_api.get(
                item["_links"]["html"]["href"],
                body=license_page(f"{item['name']} text"),
                content_type="text/html",
                repeat=True,
            )

    return _register


@pytest.fixture
def request_count(mock_api: aioresponses) -> Callable[[str], int]:
    """Return a helper counting GET requests made to a URL."""

    def _count(url: str) -> int:
        target = URL(url)
        return sum(
            len(calls)
            for (method, requested), calls in mock_api.requests.items()
            if method == "GET"
            and requested.host == target.host
            and requested.path == target.path
            and requested.query == target.query
        )

    return _count
