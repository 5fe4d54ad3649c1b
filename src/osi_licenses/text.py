"""License text extraction from OSI license HTML pages.

Each license record links to a human-readable page on opensource.org whose
license body sits in an element with the ``license-content`` CSS class.
"""

import asyncio
import logging
from typing import Union

import aiohttp
from aiohttp import hdrs
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

LICENSE_CONTENT_CLASS = "license-content"


def extract_license_text(html: Union[bytes, str]) -> str:
    """Extract the plain text of the first license-content element.

    Args:
        html: Raw HTML document.

    Returns:
        Entity-decoded, stripped text, or an empty string when the page has
        no license-content element.
    """
    soup = BeautifulSoup(html, "html.parser")
    node = soup.find(class_=LICENSE_CONTENT_CLASS)
    if node is None:
        return ""
    return node.get_text().strip()


async def fetch_license_text(session: aiohttp.ClientSession, url: str) -> str:
    """Download a license HTML page and extract its license text.

    Never raises for transport, HTTP or parsing failures; those yield an
    empty string. Cancellation still propagates.

    Args:
        session: Session used for the GET request.
        url: The license's html link.

    Returns:
        The extracted license text, or an empty string.
    """
    if not url:
        return ""

    try:
        async with session.get(url, headers={hdrs.ACCEPT: "text/html"}) as response:
            if response.status != 200:
                logger.warning(
                    "License page %s returned status %d", url, response.status
                )
                return ""
            body = await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning("Network error fetching license page %s: %s", url, e)
        return ""
    except Exception as e:
        logger.error("Unexpected error fetching license page %s: %s", url, e)
        return ""

    try:
        return extract_license_text(body)
    except Exception as e:
        logger.warning("Failed to parse license page %s: %s", url, e)
        return ""
