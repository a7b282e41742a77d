from __future__ import annotations

import json
from urllib.parse import quote

from similar_proxy.services.upstream import UpstreamClient, UpstreamError, suggestion_headers

AUTOCOMPLETE_PATH = "/site/autocomplete"


def autocomplete_url(origin: str, term: str) -> str:
    return f"{origin}{AUTOCOMPLETE_PATH}?term={quote(term, safe='')}"


async def fetch_suggestions(term: str, client: UpstreamClient) -> bytes:
    """Return the upstream autocomplete payload exactly as received.

    The body is checked to be JSON but never re-encoded.
    """
    resp = await client.fetch_page(
        autocomplete_url(client.origin, term),
        suggestion_headers(client.origin),
    )
    if not resp.ok:
        raise UpstreamError(f"Autocomplete request failed with status {resp.status_code}")

    try:
        json.loads(resp.content or b"")
    except ValueError as exc:
        raise UpstreamError("Autocomplete returned invalid JSON") from exc
    return resp.content
