from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse

from similar_proxy.api.cancellation import (
    CLIENT_CLOSED_REQUEST,
    ClientDisconnected,
    run_until_disconnected,
)
from similar_proxy.api.deps import get_upstream_client
from similar_proxy.api.http_errors import bad_request, upstream_failure
from similar_proxy.core.config import settings
from similar_proxy.services.recommendations import RawFallback, fetch_recommendations
from similar_proxy.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["recommendations"])


@router.get("/recommendations")
async def recommendations_route(
    request: Request,
    url: str | None = Query(None, description="Relative upstream path, e.g. /movies/26240-game-of-thrones"),
    client: UpstreamClient = Depends(get_upstream_client),
):
    if not url:
        raise bad_request("URL parameter is required")

    try:
        result = await run_until_disconnected(
            request,
            fetch_recommendations(url, client),
            poll_seconds=settings.disconnect_poll_seconds,
        )
    except ClientDisconnected:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except Exception as exc:
        raise upstream_failure(exc, detail="Failed to fetch recommendations") from exc

    if isinstance(result, RawFallback):
        return HTMLResponse(result.html)
    return JSONResponse(result.model_dump(mode="json", by_alias=True))
