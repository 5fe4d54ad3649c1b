"""Exception hierarchy for osi_licenses.

Read paths of the client degrade to empty results instead of raising these;
they surface from the catalog reader, from record decoding, and from the
explicit initialization entry point.
"""

from typing import Optional


class OsiError(Exception):
    """Base exception for all osi_licenses errors."""


class OsiApiError(OsiError):
    """A request to the OSI API failed at the transport or HTTP level.

    Attributes:
        status: HTTP status code, if a response was received.
        url: Request URL, if known.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class OsiDecodeError(OsiError, ValueError):
    """A payload from the OSI API could not be decoded."""


class OsiInitializationError(OsiError):
    """The client could not populate its license snapshot during initialize()."""


class ClientClosedError(OsiError, RuntimeError):
    """An operation was invoked on a client that has already been closed."""
