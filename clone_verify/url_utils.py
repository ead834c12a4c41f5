"""Shared locator utilities: resolve capture locators and derive file-safe names."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urljoin, urlparse

_URL_SCHEMES = ("http", "https", "file", "data", "about")


def is_absolute_locator(locator: str) -> bool:
    return urlparse(locator).scheme in _URL_SCHEMES


def resolve_locator(locator: str, base_url: str | None = None) -> str:
    """Turn a configured locator into something the browser can open.

    Absolute URLs pass through. Relative locators are joined onto the local
    clone server's base URL when one is running, otherwise treated as a
    filesystem path and converted to a file:// URL.
    """
    if is_absolute_locator(locator):
        return locator
    if base_url:
        return urljoin(base_url.rstrip("/") + "/", locator.lstrip("/"))
    return Path(locator).resolve().as_uri()


def safe_filename(name: str) -> str:
    """Replace characters that are unsafe in file names."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return cleaned or "unnamed"
