from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx

from similar_proxy.core.config import settings
from similar_proxy.services.upstream import UpstreamClient


async def get_upstream_client() -> AsyncGenerator[UpstreamClient, None]:
    # One client per inbound request; nothing is shared between requests.
    async with httpx.AsyncClient(
        timeout=settings.upstream_timeout_seconds,
        follow_redirects=True,
    ) as client:
        yield UpstreamClient(client, origin=settings.upstream_origin)
