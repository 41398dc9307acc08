"""Centralized configuration for rastertile.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    RASTERTILE_FETCH_RETRIES: Partial-content retries per fetch (default: 4)
    RASTERTILE_FETCH_TIMEOUT: Delegate HTTP timeout in seconds (default: 30)
    RASTERTILE_USER_AGENT: User-Agent sent on delegate fetches (default: rastertile/<version>)
    RASTERTILE_STRICT_ETAGS: Reject malformed fingerprints instead of decoding leniently (default: 0)
"""

from __future__ import annotations

import logging
import os

from rastertile import __version__

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


def _get_env_bool(name: str, default: bool) -> bool:
    """Get a boolean from environment variable ("1", "true", "on", "yes")."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "on", "yes"}


# =============================================================================
# Fetch Engine
# =============================================================================

#: Partial-content responses tolerated per fetch
FETCH_RETRIES: int = _get_env_int("RASTERTILE_FETCH_RETRIES", 4)

#: Timeout for one delegate HTTP request, in seconds
FETCH_TIMEOUT: int = _get_env_int("RASTERTILE_FETCH_TIMEOUT", 30)

#: User-Agent header sent by the requests delegate
USER_AGENT: str = _get_env_str("RASTERTILE_USER_AGENT", f"rastertile/{__version__}")

#: Raise on malformed fingerprints instead of decoding them to zero
STRICT_ETAGS: bool = _get_env_bool("RASTERTILE_STRICT_ETAGS", False)

#: Payloads at or below this size get no synthesized fingerprint
FINGERPRINT_MIN_SIZE: int = 128


# =============================================================================
# Raster Defaults
# =============================================================================

#: Default page (tile) size in pixels
DEFAULT_PAGE_SIZE: int = 512

#: Default maximum size of a single stored tile (4 MiB)
MAX_TILE_SIZE: int = 4 * 1024 * 1024

#: Allowed range for a configured maximum tile size
MIN_TILE_SIZE_LIMIT: int = 128 * 1024
MAX_TILE_SIZE_LIMIT: int = 512 * 1024 * 1024

#: Largest empty tile accepted from disk (1 MiB)
MAX_READ_SIZE: int = 1024 * 1024

#: Upper bound on pyramid levels (one per halving of a 64-bit grid)
MAX_LEVELS: int = 64

#: Size of one (offset, size) record in a packed tile index
INDEX_RECORD_SIZE: int = 16


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global FETCH_RETRIES, FETCH_TIMEOUT

    if FETCH_RETRIES < 1:
        logger.warning("FETCH_RETRIES=%d is too low, clamping to 1", FETCH_RETRIES)
        FETCH_RETRIES = 1

    if FETCH_TIMEOUT < 1:
        logger.warning("FETCH_TIMEOUT=%d is too low, clamping to 1", FETCH_TIMEOUT)
        FETCH_TIMEOUT = 1


_validate_config()
