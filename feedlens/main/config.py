"""Runtime configuration for Feedlens.

Settings are read once from the process environment (a ``.env`` file in the
working directory is honoured via ``python-dotenv``) and handed explicitly to
the fetcher and the discovery code.  Nothing in the request path reads the
environment directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_MS = 8000
DEFAULT_PORT = 3001


@dataclass(frozen=True)
class Settings:
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    cors_allowlist: Tuple[str, ...] = field(default_factory=tuple)
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    feed_user_agent: str = "Feedlens/1.0 (RSS Reader Context)"
    discovery_user_agent: str = "Feedlens/1.0 (Feed Discovery)"

    @property
    def fetch_timeout(self) -> float:
        """Per-operation time bound in seconds."""
        return self.fetch_timeout_ms / 1000.0


def _parse_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, raw, default)
        return default
    return value


def parse_allowlist(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated origin list, dropping blanks."""
    if not raw:
        return ()
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from *env* (defaults to ``os.environ``)."""
    if env is None:
        load_dotenv()
        env = os.environ
    return Settings(
        fetch_timeout_ms=_parse_int(env.get("FETCH_TIMEOUT_MS"), DEFAULT_FETCH_TIMEOUT_MS, "FETCH_TIMEOUT_MS"),
        cors_allowlist=parse_allowlist(env.get("CORS_ALLOWLIST")),
        host=env.get("HOST") or "127.0.0.1",
        port=_parse_int(env.get("PORT"), DEFAULT_PORT, "PORT"),
    )
