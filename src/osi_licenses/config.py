"""Configuration for the OSI License API client."""

import os
from dataclasses import dataclass, field
from typing import Callable, Optional

import aiohttp

from osi_licenses import __version__

DEFAULT_BASE_URL = "https://opensource.org/api/"
DEFAULT_LICENSES_ENDPOINT = "licenses"
DEFAULT_USER_AGENT = f"osi-licenses/{__version__}"
DEFAULT_TIMEOUT = 30.0
MIN_PARALLELISM = 2


def default_parallelism() -> int:
    """Return max(2, available CPUs), the default enrichment fan-out bound."""
    return max(MIN_PARALLELISM, os.cpu_count() or 1)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OsiClientOptions:
    """Options controlling how the client reaches the OSI API.

    Attributes:
        base_url: Base address of the OSI API. A trailing slash is enforced.
        licenses_endpoint: Path of the license listing relative to base_url
            ("licenses" or "license" depending on deployment).
        user_agent: User-Agent header added to sessions that lack one.
        timeout: Total request timeout in seconds for owned sessions.
        max_parallelism: Upper bound on concurrent license text fetches.
            Values below 2 are raised to 2.
        use_cache: When False, every get_all_licenses() call re-fetches.
        enable_logging: Attach a request/response logging trace to owned sessions.
        session_factory: Optional zero-argument callable building the
            aiohttp.ClientSession to use. The client owns (and closes) the
            session it returns.
    """

    base_url: str = DEFAULT_BASE_URL
    licenses_endpoint: str = DEFAULT_LICENSES_ENDPOINT
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT
    max_parallelism: int = field(default_factory=default_parallelism)
    use_cache: bool = True
    enable_logging: bool = False
    session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None

    def __post_init__(self) -> None:
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.licenses_endpoint = self.licenses_endpoint.strip("/")
        self.max_parallelism = max(MIN_PARALLELISM, int(self.max_parallelism))

    @property
    def licenses_url(self) -> str:
        """Absolute URL of the license listing endpoint."""
        return f"{self.base_url}{self.licenses_endpoint}"

    @classmethod
    def from_env(cls, **overrides) -> "OsiClientOptions":
        """Build options from OSI_API_* environment variables.

        Recognized variables: OSI_API_BASE_URL, OSI_API_LICENSES_ENDPOINT,
        OSI_API_TIMEOUT, OSI_API_MAX_PARALLELISM and OSI_API_ENABLE_LOGGING.
        Keyword overrides take precedence over the environment.
        """
        values: dict = {}
        if base_url := os.environ.get("OSI_API_BASE_URL"):
            values["base_url"] = base_url
        if endpoint := os.environ.get("OSI_API_LICENSES_ENDPOINT"):
            values["licenses_endpoint"] = endpoint
        if timeout := os.environ.get("OSI_API_TIMEOUT"):
            values["timeout"] = float(timeout)
        if parallelism := os.environ.get("OSI_API_MAX_PARALLELISM"):
            values["max_parallelism"] = int(parallelism)
        if enable_logging := os.environ.get("OSI_API_ENABLE_LOGGING"):
            values["enable_logging"] = _env_flag(enable_logging)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
