from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from similar_proxy.api.cancellation import (
    CLIENT_CLOSED_REQUEST,
    ClientDisconnected,
    run_until_disconnected,
)
from similar_proxy.api.deps import get_upstream_client
from similar_proxy.api.http_errors import bad_request, upstream_failure
from similar_proxy.core.config import settings
from similar_proxy.services.suggestions import fetch_suggestions
from similar_proxy.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["suggestions"])


@router.get("/suggestions")
async def suggestions_route(
    request: Request,
    term: str | None = Query(None),
    client: UpstreamClient = Depends(get_upstream_client),
):
    if not term:
        raise bad_request("Term parameter is required")

    try:
        payload = await run_until_disconnected(
            request,
            fetch_suggestions(term, client),
            poll_seconds=settings.disconnect_poll_seconds,
        )
    except ClientDisconnected:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except Exception as exc:
        raise upstream_failure(exc, detail="Failed to fetch suggestions") from exc

    # Forward the upstream bytes untouched.
    return Response(content=payload, media_type="application/json")
