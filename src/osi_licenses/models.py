"""Core data models for osi_licenses.

This module defines the license record returned by the OSI License API,
its link relations, and the conversion between those records and their
JSON wire representation.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from osi_licenses.converters import (
    OsiLicenseKeyword,
    format_keywords,
    format_osi_date,
    parse_keywords,
    parse_osi_date,
)
from osi_licenses.exceptions import OsiDecodeError


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise OsiDecodeError(f"Expected string for '{key}', got {type(value).__name__}")


@dataclass(frozen=True)
class OsiHref:
    """Minimal href wrapper used by OSI API link objects.

    Attributes:
        href: The absolute link value (empty when the API omitted it).
    """

    href: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "OsiHref":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise OsiDecodeError("Expected object for link relation")
        return cls(href=_optional_str(data, "href") or "")


@dataclass(frozen=True)
class OsiLicenseLinks:
    """Link relations associated with a license.

    Attributes:
        api: API endpoint for this specific license ("self" on the wire).
        html: Human-readable web page, used for license text enrichment.
        collection: API endpoint for the licenses collection.
    """

    api: OsiHref = field(default_factory=OsiHref)
    html: OsiHref = field(default_factory=OsiHref)
    collection: OsiHref = field(default_factory=OsiHref)

    @classmethod
    def from_dict(cls, data: Any) -> "OsiLicenseLinks":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise OsiDecodeError("Expected object for '_links'")
        return cls(
            api=OsiHref.from_dict(data.get("self")),
            html=OsiHref.from_dict(data.get("html")),
            collection=OsiHref.from_dict(data.get("collection")),
        )

    def to_dict(self) -> dict:
        return {
            "self": {"href": self.api.href},
            "html": {"href": self.html.href},
            "collection": {"href": self.collection.href},
        }


@dataclass
class OsiLicense:
    """A single OSI license entry as returned by the OSI License API.

    Everything except ``license_text`` mirrors the wire payload. The text is
    derived state: it starts empty, is filled in by the client after the
    record's HTML page has been fetched, and is never serialized.

    Attributes:
        id: OSI unique identifier (e.g., "mit").
        name: Human-readable license name (e.g., "MIT License").
        spdx_id: SPDX identifier (e.g., "MIT"), if the license has one.
        version: Optional license version provided by OSI.
        submission_date: Date of submission to OSI.
        submission_url: URL of the submission.
        submitter_name: Name of the submitter.
        approved: Whether the license is OSI approved.
        approval_date: Date of approval by OSI.
        license_steward_version: Version value provided by the license steward.
        license_steward_url: URL provided by the license steward.
        board_minutes: Board minutes URL or reference.
        stewards: Stewards involved with the license.
        keywords: OSI classification keywords.
        links: Links to the API self page, public HTML page and collection.
        license_text: Extracted, human-readable license text.
    """

    id: str
    name: str = ""
    spdx_id: Optional[str] = None
    version: Optional[str] = None
    submission_date: Optional[date] = None
    submission_url: Optional[str] = None
    submitter_name: Optional[str] = None
    approved: bool = False
    approval_date: Optional[date] = None
    license_steward_version: Optional[str] = None
    license_steward_url: Optional[str] = None
    board_minutes: Optional[str] = None
    stewards: list[str] = field(default_factory=list)
    keywords: list[OsiLicenseKeyword] = field(default_factory=list)
    links: OsiLicenseLinks = field(default_factory=OsiLicenseLinks)
    license_text: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("OsiLicense.id must be a non-empty string")

    def __str__(self) -> str:
        return self.name

    @property
    def index_key(self) -> Optional[str]:
        """Return the key used to index this license in the client cache.

        Returns:
            The SPDX identifier when present, otherwise the name, or None
            when neither is populated.
        """
        return self.spdx_id or self.name or None

    @property
    def sort_key(self) -> str:
        """Return the case-insensitive key defining snapshot order."""
        return (self.spdx_id or self.name or "").casefold()

    @classmethod
    def from_dict(cls, data: Any) -> "OsiLicense":
        """Decode a license from its JSON wire object.

        Args:
            data: Parsed JSON object for one license.

        Returns:
            A new OsiLicense with an empty license_text.

        Raises:
            OsiDecodeError: If the object or any of its fields is malformed.
        """
        if not isinstance(data, dict):
            raise OsiDecodeError(
                f"Expected object for license, got {type(data).__name__}"
            )

        license_id = _optional_str(data, "id")
        if not license_id:
            raise OsiDecodeError("License object is missing 'id'")

        stewards = data.get("stewards") or []
        if not isinstance(stewards, list) or not all(
            isinstance(s, str) for s in stewards
        ):
            raise OsiDecodeError("Expected array of strings for 'stewards'")

        return cls(
            id=license_id,
            name=_optional_str(data, "name") or "",
            spdx_id=_optional_str(data, "spdx_id") or None,
            version=_optional_str(data, "version"),
            submission_date=parse_osi_date(data.get("submission_date")),
            submission_url=_optional_str(data, "submission_url"),
            submitter_name=_optional_str(data, "submitter_name"),
            approved=bool(data.get("approved", False)),
            approval_date=parse_osi_date(data.get("approval_date")),
            license_steward_version=_optional_str(data, "license_steward_version"),
            license_steward_url=_optional_str(data, "license_steward_url"),
            board_minutes=_optional_str(data, "board_minutes"),
            stewards=list(stewards),
            keywords=parse_keywords(data.get("keywords")),
            links=OsiLicenseLinks.from_dict(data.get("_links")),
        )

    def to_dict(self) -> dict:
        """Encode the license to its JSON wire object (without license_text)."""
        return {
            "id": self.id,
            "name": self.name,
            "spdx_id": self.spdx_id,
            "version": self.version,
            "submission_date": format_osi_date(self.submission_date),
            "submission_url": self.submission_url,
            "submitter_name": self.submitter_name,
            "approved": self.approved,
            "approval_date": format_osi_date(self.approval_date),
            "license_steward_version": self.license_steward_version,
            "license_steward_url": self.license_steward_url,
            "board_minutes": self.board_minutes,
            "stewards": list(self.stewards),
            "keywords": format_keywords(self.keywords),
            "_links": self.links.to_dict(),
        }
