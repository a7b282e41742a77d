from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

_LINUX_CHROME_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)
_WINDOWS_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class UpstreamError(RuntimeError):
    pass


def relative_path(value: str | None) -> str:
    """Reduce a caller-supplied location to ``/path?query`` on the upstream site.

    Absolute (``https://host/x``) and scheme-relative (``//host/x``) values keep
    only their path and query.
    """
    parts = urlsplit((value or "").strip())
    path = parts.path.replace("\\", "/") or "/"
    path = "/" + path.lstrip("/")
    return f"{path}?{parts.query}" if parts.query else path


@dataclass
class PageResponse:
    status_code: int
    text: str
    content: bytes = field(default=b"", repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def suggestion_headers(origin: str) -> dict[str, str]:
    return {
        "User-Agent": _WINDOWS_CHROME_UA,
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": f"{origin}/",
        "Origin": origin,
    }


def document_headers(origin: str) -> dict[str, str]:
    return {
        "User-Agent": _LINUX_CHROME_UA,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-GB,en;q=0.5",
        "Referer": f"{origin}/",
        "Origin": origin,
    }


def related_page_headers(referer: str) -> dict[str, str]:
    # The related-titles endpoint only answers requests that look like the
    # site's own XHR pagination calls.
    return {
        "accept": "*/*",
        "accept-language": "en-GB,en;q=0.5",
        "priority": "u=1, i",
        "referer": referer,
        "sec-ch-ua": '"Brave";v="137", "Chromium";v="137", "Not/A)Brand";v="24"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Linux"',
        "sec-fetch-dest": "empty",
        "sec-fetch-mode": "cors",
        "sec-fetch-site": "same-origin",
        "sec-gpc": "1",
        "user-agent": _LINUX_CHROME_UA,
        "x-requested-with": "XMLHttpRequest",
    }


class UpstreamClient:
    """Thin adapter over ``httpx.AsyncClient`` used by every upstream fetch.

    ``fetch_page`` never raises for an HTTP status; callers decide what a
    non-2xx response means. Network failures surface as ``httpx.HTTPError``.
    """

    def __init__(self, client: httpx.AsyncClient, *, origin: str) -> None:
        self._client = client
        self.origin = origin.rstrip("/")

    def absolute(self, path: str) -> str:
        # Only ever the configured origin; any scheme or host in ``path`` is dropped.
        return f"{self.origin}{relative_path(path)}"

    async def fetch_page(self, url: str, headers: Mapping[str, str]) -> PageResponse:
        r = await self._client.get(url, headers=dict(headers))
        logger.debug("GET %s -> %s (%d bytes)", url, r.status_code, len(r.content))
        return PageResponse(status_code=r.status_code, text=r.text, content=r.content)
