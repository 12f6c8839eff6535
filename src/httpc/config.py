"""
=============================================================================
CLIENT CONFIGURATION
=============================================================================

Centralized configuration for the HTTP client.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── httpc get -L --max-redirs 3 example.com                   │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPC_MAX_REDIRECTS=3 httpc get -L example.com            │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .http.request import DEFAULT_USER_AGENT

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class ClientConfig:
    """
    Configuration for the HTTP client.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - timeout, buffer_size, verify_tls

    HTTP SETTINGS
    - user_agent, max_line_size

    REDIRECTS
    - follow_redirects, max_redirects, redirect_post_to_get

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds, for connect and for each read/write.
    None = wait forever.
    """

    buffer_size: int = 8192
    """Bytes requested per read from the stream."""

    verify_tls: bool = True
    """Verify server certificates for https:// URLs."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    user_agent: str = DEFAULT_USER_AGENT

    max_line_size: int = 64 * 1024
    """Longest status/header/chunk-size line accepted from a server."""

    # ─────────────────────────────────────────────────────────────────────
    # REDIRECTS
    # ─────────────────────────────────────────────────────────────────────

    follow_redirects: bool = False
    """Follow 301/302/303/307/308 responses (the CLI's -L)."""

    max_redirects: int = 10
    """
    Hops allowed before TooManyRedirects.
    0 = return the first redirect response without following it.
    """

    redirect_post_to_get: bool = True
    """Turn POST into a bodiless GET on 301/302, as browsers do."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "WARNING"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    INFO adds one line per exchange; DEBUG adds parser and socket detail.
    """

    log_format: str = "text"
    """Log format: 'text' (rich console) or 'json'."""

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPC_TIMEOUT        Socket timeout in seconds (default: 30)
        HTTPC_MAX_REDIRECTS  Redirect hop limit (default: 10)
        HTTPC_VERIFY_TLS     Verify certificates (default: true)
        HTTPC_USER_AGENT     User-Agent header (default: httpc/<version>)
        HTTPC_LOG_LEVEL      Logging level (default: WARNING)
        HTTPC_LOG_FORMAT     text or json (default: text)

        =====================================================================
        """
        try:
            timeout = float(os.getenv("HTTPC_TIMEOUT", "30"))
            max_redirects = int(os.getenv("HTTPC_MAX_REDIRECTS", "10"))
        except ValueError as e:
            raise ValueError(f"Invalid numeric environment setting: {e}") from e

        return cls(
            timeout=timeout,
            max_redirects=max_redirects,
            verify_tls=_env_bool("HTTPC_VERIFY_TLS", True),
            user_agent=os.getenv("HTTPC_USER_AGENT", DEFAULT_USER_AGENT),
            log_level=os.getenv("HTTPC_LOG_LEVEL", "WARNING").upper(),
            log_format=os.getenv("HTTPC_LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> None:
        """Validate configuration values, failing fast with ValueError."""
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_redirects < 0:
            raise ValueError(f"max_redirects must be >= 0, got {self.max_redirects}")

        if self.max_line_size < 256:
            raise ValueError("max_line_size must be >= 256")

        if not self.user_agent.strip():
            raise ValueError("user_agent must not be empty")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be text or json.")
