"""
HTTP fetcher — download small text resources (udev rules, keys).
"""

from __future__ import annotations

import logging
import urllib.request

from hwprovision import __version__
from hwprovision.adapters.base import Fetcher

logger = logging.getLogger(__name__)


class UrllibFetcher(Fetcher):
    """Fetcher backed by urllib."""

    def __init__(self, timeout: int = 30):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "http"

    def fetch(self, url: str) -> str:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": f"hwprovision/{__version__}"},
        )
        logger.debug("Fetching %s", url)
        # URLError and HTTPError are OSError subclasses.
        with urllib.request.urlopen(req, timeout=self._timeout) as resp:
            return resp.read().decode("utf-8")
