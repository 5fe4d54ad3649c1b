"""HTTP session management shared by the OSI API components.

Sessions are either supplied by the caller or created lazily. A supplied
session is never closed here; its owner keeps teardown responsibility.
"""

import logging
import time
from types import SimpleNamespace
from typing import Optional

import aiohttp
from aiohttp import hdrs

from osi_licenses.config import OsiClientOptions

logger = logging.getLogger(__name__)
http_logger = logging.getLogger("osi_licenses.http.requests")


def apply_default_headers(session: aiohttp.ClientSession, user_agent: str) -> None:
    """Add Accept and User-Agent defaults to a session lacking them.

    Existing values are left untouched, so repeated calls never overwrite
    or duplicate caller-provided headers.

    Args:
        session: Session whose default headers are updated in place.
        user_agent: User-Agent value to add when none is present.
    """
    headers = session.headers
    if hdrs.ACCEPT not in headers:
        headers[hdrs.ACCEPT] = "application/json"
    if hdrs.USER_AGENT not in headers:
        headers[hdrs.USER_AGENT] = user_agent


async def _on_request_start(
    session: aiohttp.ClientSession,
    context: SimpleNamespace,
    params: aiohttp.TraceRequestStartParams,
) -> None:
    context.started = time.monotonic()
    http_logger.info("HTTP %s %s", params.method, params.url)


async def _on_request_end(
    session: aiohttp.ClientSession,
    context: SimpleNamespace,
    params: aiohttp.TraceRequestEndParams,
) -> None:
    elapsed_ms = (time.monotonic() - context.started) * 1000
    level = logging.DEBUG if params.response.status < 400 else logging.WARNING
    http_logger.log(
        level,
        "HTTP %d in %.0f ms for %s %s",
        params.response.status,
        elapsed_ms,
        params.method,
        params.url,
    )


async def _on_request_exception(
    session: aiohttp.ClientSession,
    context: SimpleNamespace,
    params: aiohttp.TraceRequestExceptionParams,
) -> None:
    elapsed_ms = (time.monotonic() - context.started) * 1000
    http_logger.error(
        "HTTP failed in %.0f ms for %s %s: %s",
        elapsed_ms,
        params.method,
        params.url,
        params.exception,
    )


def logging_trace_config() -> aiohttp.TraceConfig:
    """Build a TraceConfig logging each request's method, URL, status and timing.

    Payload bodies are never logged.
    """
    trace_config = aiohttp.TraceConfig()
    trace_config.on_request_start.append(_on_request_start)
    trace_config.on_request_end.append(_on_request_end)
    trace_config.on_request_exception.append(_on_request_exception)
    return trace_config


class OsiHttpClient:
    """Base class for components that make HTTP requests to the OSI API.

    Manages a shared aiohttp.ClientSession for connection pooling and reuse.
    The session is owned (and closed) only if this object created it.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        options: Optional[OsiClientOptions] = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            session: Optional externally managed session. Default headers are
                added to it if missing, but it is never closed by this object.
            options: Client options; defaults are used when omitted.
        """
        self.options = options or OsiClientOptions()
        self._session = session
        self._owns_session = session is None
        if session is not None:
            apply_default_headers(session, self.options.user_agent)

    @property
    def owns_session(self) -> bool:
        """True if the session is created and closed by this object."""
        return self._owns_session

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            The shared aiohttp ClientSession.
        """
        if self._owns_session and (self._session is None or self._session.closed):
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> aiohttp.ClientSession:
        """Create a new aiohttp.ClientSession owned by this object."""
        if self.options.session_factory is not None:
            session = self.options.session_factory()
            apply_default_headers(session, self.options.user_agent)
            return session

        trace_configs = [logging_trace_config()] if self.options.enable_logging else None
        logger.debug("Creating HTTP session for %s", self.options.base_url)
        return aiohttp.ClientSession(
            headers={
                hdrs.ACCEPT: "application/json",
                hdrs.USER_AGENT: self.options.user_agent,
            },
            timeout=aiohttp.ClientTimeout(total=self.options.timeout),
            trace_configs=trace_configs,
        )

    async def close(self) -> None:
        """Close the aiohttp session if this object owns it."""
        if not self._owns_session:
            return
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Closed owned HTTP session")
        self._session = None

    async def __aenter__(self) -> "OsiHttpClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
