from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qsl, urlencode, urlsplit

from similar_proxy.core.config import Settings, settings
from similar_proxy.schemas.titles import TitleRecord
from similar_proxy.services.markup import IdFactory, local_id_factory, parse_items
from similar_proxy.services.upstream import (
    UpstreamClient,
    document_headers,
    related_page_headers,
)

logger = logging.getLogger(__name__)

TAG_MARKER = "/tag/"
RELATED_PATH = "/movies/rel"
TITLE_FLOW_START_PAGE = 2
TAG_FLOW_START_PAGE = 1


class Flow(str, Enum):
    TITLE = "title"
    TAG = "tag"


@dataclass(frozen=True)
class WalkLimits:
    max_pages: int = 20
    delay_seconds: float = 0.1
    min_page_bytes: int = 100

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "WalkLimits":
        cfg = cfg or settings
        return cls(
            max_pages=cfg.max_pages,
            delay_seconds=cfg.page_delay_seconds,
            min_page_bytes=cfg.min_page_bytes,
        )


def classify_seed(seed_path: str) -> Flow:
    return Flow.TAG if TAG_MARKER in (seed_path or "") else Flow.TITLE


def related_page_url(origin: str, movie_id: str, page: int) -> str:
    return f"{origin}{RELATED_PATH}?id={movie_id}&order=0&page={page}"


def tag_page_url(origin: str, seed_path: str, page: int) -> str:
    parts = urlsplit(seed_path)
    path = parts.path if parts.path.startswith("/") else f"/{parts.path}"
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key != "page"
    ]
    query.append(("page", str(page)))
    return f"{origin}{path}?{urlencode(query)}"


async def iter_pages(
    client: UpstreamClient,
    *,
    url_for_page: Callable[[int], str],
    headers: Mapping[str, str],
    start_page: int,
    id_factory: IdFactory,
    limits: WalkLimits,
) -> AsyncIterator[list[TitleRecord]]:
    """Yield the parsed items of each page until the first stop condition.

    Stops quietly on 404, any other non-2xx status, a (near-)empty body, a page
    with no items, or a failed fetch. Pages are requested one at a time.
    """
    page = start_page
    while page <= limits.max_pages:
        url = url_for_page(page)
        try:
            resp = await client.fetch_page(url, headers)
        except Exception as exc:
            logger.warning("Page %d fetch failed, stopping pagination: %s", page, exc)
            return

        if resp.status_code == 404:
            logger.info("Page %d returned 404, stopping pagination", page)
            return
        if not resp.ok:
            logger.info("Page %d failed with status %d, stopping pagination", page, resp.status_code)
            return

        body = resp.text or ""
        if not body.strip() or len(body) < limits.min_page_bytes:
            logger.info("Page %d appears to be empty, stopping pagination", page)
            return

        items = parse_items(body, origin=client.origin, id_factory=id_factory)
        if not items:
            logger.info("Page %d has no titles, stopping pagination", page)
            return

        logger.info("Page %d: %d titles found", page, len(items))
        yield items

        page += 1
        if page <= limits.max_pages and limits.delay_seconds > 0:
            await asyncio.sleep(limits.delay_seconds)


async def _collect(pages: AsyncIterator[list[TitleRecord]]) -> list[TitleRecord]:
    out: list[TitleRecord] = []
    async for items in pages:
        out.extend(items)
    return out


async def walk_related(
    client: UpstreamClient,
    *,
    movie_id: str,
    seed_url: str,
    id_factory: IdFactory | None = None,
    limits: WalkLimits | None = None,
) -> list[TitleRecord]:
    """Title flow: related-title pages 2..N for a known upstream id.

    Page 1 is the seed page itself, which the caller parses separately.
    """
    pages = iter_pages(
        client,
        url_for_page=lambda page: related_page_url(client.origin, movie_id, page),
        headers=related_page_headers(seed_url),
        start_page=TITLE_FLOW_START_PAGE,
        id_factory=id_factory or local_id_factory(),
        limits=limits or WalkLimits.from_settings(),
    )
    items = await _collect(pages)
    logger.info("Related walk for id=%s collected %d titles", movie_id, len(items))
    return items


async def walk_tag(
    client: UpstreamClient,
    *,
    seed_path: str,
    id_factory: IdFactory | None = None,
    limits: WalkLimits | None = None,
) -> list[TitleRecord]:
    """Tag flow: listing pages 1..N addressed by the seed path and a page query."""
    pages = iter_pages(
        client,
        url_for_page=lambda page: tag_page_url(client.origin, seed_path, page),
        headers=document_headers(client.origin),
        start_page=TAG_FLOW_START_PAGE,
        id_factory=id_factory or local_id_factory(),
        limits=limits or WalkLimits.from_settings(),
    )
    items = await _collect(pages)
    logger.info("Tag walk for %s collected %d titles", seed_path, len(items))
    return items


async def walk(
    client: UpstreamClient,
    seed_path: str,
    flow: Flow,
    *,
    movie_id: str | None = None,
    id_factory: IdFactory | None = None,
    limits: WalkLimits | None = None,
) -> list[TitleRecord]:
    if flow is Flow.TAG:
        return await walk_tag(client, seed_path=seed_path, id_factory=id_factory, limits=limits)
    if not movie_id:
        raise ValueError("movie_id is required for the title flow")
    return await walk_related(
        client,
        movie_id=movie_id,
        seed_url=client.absolute(seed_path),
        id_factory=id_factory,
        limits=limits,
    )
