"""Wire codecs for OSI license fields.

The OSI API encodes classification keywords as kebab-case tokens and dates
in the compact ``yyyyMMdd`` form. Both mappings are bijective lookups; the
only lenient rule is that unknown keyword tokens are dropped on read so new
server-side keywords do not break older clients.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from osi_licenses.exceptions import OsiDecodeError

DATE_FORMAT = "%Y%m%d"
_COMPACT_DATE_RE = re.compile(r"^\d{8}$")


class OsiLicenseKeyword(str, Enum):
    """OSI classification keywords, valued by their API token."""

    POPULAR_STRONG_COMMUNITY = "popular-strong-community"
    INTERNATIONAL = "international"
    SPECIAL_PURPOSE = "special-purpose"
    NON_REUSABLE = "non-reusable"
    SUPERSEDED = "superseded"
    VOLUNTARILY_RETIRED = "voluntarily-retired"
    REDUNDANT_WITH_MORE_POPULAR = "redundant-with-more-popular"
    OTHER_MISCELLANEOUS = "other-miscellaneous"
    UNCATEGORIZED = "uncategorized"

    def __str__(self) -> str:
        return self.value


_KEYWORDS_BY_TOKEN = {keyword.value: keyword for keyword in OsiLicenseKeyword}


def parse_keyword(token: Optional[str]) -> Optional[OsiLicenseKeyword]:
    """Map an API token to its keyword (case-insensitive).

    Args:
        token: Token such as "popular-strong-community".

    Returns:
        The matching OsiLicenseKeyword, or None for blank or unknown tokens.
    """
    if not token or not token.strip():
        return None
    return _KEYWORDS_BY_TOKEN.get(token.strip().lower())


def keyword_token(keyword: OsiLicenseKeyword) -> str:
    """Return the API token for a keyword."""
    return OsiLicenseKeyword(keyword).value


def parse_keywords(value: Any) -> list[OsiLicenseKeyword]:
    """Decode the ``keywords`` array of a license record.

    Unknown tokens are dropped and duplicates collapsed, keeping the order of
    first appearance.

    Args:
        value: Raw JSON value (list of strings or null).

    Returns:
        List of recognized keywords.

    Raises:
        OsiDecodeError: If the value is not an array or holds a non-string.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise OsiDecodeError("Expected array for keywords")

    keywords: list[OsiLicenseKeyword] = []
    for token in value:
        if not isinstance(token, str):
            raise OsiDecodeError("Expected string tokens in keywords array")
        keyword = parse_keyword(token)
        if keyword is not None and keyword not in keywords:
            keywords.append(keyword)
    return keywords


def format_keywords(keywords: Iterable[OsiLicenseKeyword]) -> list[str]:
    """Encode keywords to their API tokens."""
    return [keyword_token(keyword) for keyword in keywords]


def parse_osi_date(value: Any) -> Optional[date]:
    """Decode a compact ``yyyyMMdd`` date.

    Args:
        value: Raw JSON value.

    Returns:
        The parsed date, or None for null or empty strings.

    Raises:
        OsiDecodeError: If the value is any other non-empty string or not a string.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not _COMPACT_DATE_RE.match(value):
        raise OsiDecodeError(f"Unable to parse {value!r} as date in format yyyyMMdd")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise OsiDecodeError(
            f"Unable to parse {value!r} as date in format yyyyMMdd"
        ) from e


def format_osi_date(value: Optional[date]) -> Optional[str]:
    """Encode a date to the compact ``yyyyMMdd`` form (None stays None)."""
    if value is None:
        return None
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"
