import os
from contextlib import asynccontextmanager

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# IMPORTANT:
# Set env vars BEFORE importing similar_proxy.main (pydantic settings load at import time)
os.environ["ENV"] = "test"
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")
os.environ["UPSTREAM_ORIGIN"] = "https://bestsimilar.com"
os.environ["PAGE_DELAY_SECONDS"] = "0"

from similar_proxy.main import app as fastapi_app  # noqa: E402
from similar_proxy.api.deps import get_upstream_client  # noqa: E402
from similar_proxy.services.upstream import UpstreamClient  # noqa: E402

UPSTREAM_ORIGIN = "https://bestsimilar.com"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def upstream_origin():
    return UPSTREAM_ORIGIN


@pytest.fixture
def client_with_upstream():
    """
    Builds an API client whose upstream requests are answered by ``handler``
    (an ``httpx.MockTransport`` handler) instead of the real site.
    """

    @asynccontextmanager
    async def _factory(handler):
        async def _override_get_upstream_client():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
                yield UpstreamClient(http_client, origin=UPSTREAM_ORIGIN)

        fastapi_app.dependency_overrides[get_upstream_client] = _override_get_upstream_client
        try:
            transport = ASGITransport(app=fastapi_app)
            async with AsyncClient(transport=transport, base_url="http://test") as c:
                yield c
        finally:
            fastapi_app.dependency_overrides.pop(get_upstream_client, None)

    return _factory


# --- Markup helpers ---

def _item_markup(item: dict) -> str:
    data_id = f' data-id="{item["id"]}"' if item.get("id") else ""
    badge = '<span class="label label-default">TV show</span>' if item.get("tv") else ""
    return (
        '<div class="column">'
        '<div class="column-img">'
        f'<img src="{item["poster"]}" alt="{item["label"]}"{data_id} />'
        "</div>"
        f"{badge}"
        "</div>"
    )


def _listing_html(items: list[dict]) -> str:
    body = "".join(_item_markup(item) for item in items)
    return (
        "<html><head><title>Similar titles listing</title></head>"
        f'<body><div class="items">{body}</div>'
        "<footer>Find movies and TV shows similar to the ones you love.</footer>"
        "</body></html>"
    )


@pytest.fixture
def listing_html():
    return _listing_html


@pytest.fixture
def make_items():
    def _make(prefix: str, count: int, *, tv_every: int = 0) -> list[dict]:
        out = []
        for n in range(1, count + 1):
            out.append(
                {
                    "id": f"{prefix}{n}",
                    "label": f"{prefix} title {n} (20{n:02d})",
                    "poster": f"/img/{prefix}{n}.jpg",
                    "tv": bool(tv_every) and n % tv_every == 0,
                }
            )
        return out

    return _make


@pytest.fixture
def empty_listing_html():
    return (
        "<html><head><title>Similar titles listing</title></head>"
        "<body><p>There are no more titles to show for this listing right now.</p></body></html>"
    )
