from __future__ import annotations

import logging
from dataclasses import dataclass

from similar_proxy.schemas.titles import AggregateResult
from similar_proxy.services.aggregate import aggregate
from similar_proxy.services.identifiers import extract_id
from similar_proxy.services.markup import local_id_factory, parse_items
from similar_proxy.services.pagination import (
    Flow,
    WalkLimits,
    classify_seed,
    walk_related,
    walk_tag,
)
from similar_proxy.services.upstream import (
    UpstreamClient,
    UpstreamError,
    document_headers,
    relative_path,
)

logger = logging.getLogger(__name__)


@dataclass
class RawFallback:
    """Unprocessed seed page, returned when no upstream id could be found."""

    html: str


async def fetch_recommendations(
    seed_path: str,
    client: UpstreamClient,
    *,
    limits: WalkLimits | None = None,
) -> AggregateResult | RawFallback:
    seed_path = relative_path(seed_path)
    flow = classify_seed(seed_path)
    id_factory = local_id_factory()

    if flow is Flow.TAG:
        items = await walk_tag(client, seed_path=seed_path, id_factory=id_factory, limits=limits)
        return aggregate(items)

    seed_url = client.absolute(seed_path)
    resp = await client.fetch_page(seed_url, document_headers(client.origin))
    if not resp.ok:
        raise UpstreamError(f"Seed page request failed with status {resp.status_code}")

    movie_id = extract_id(seed_path, resp.text)
    if not movie_id:
        logger.error("Could not extract title id from %s, returning raw page", seed_path)
        return RawFallback(html=resp.text)

    logger.info("Extracted title id: %s", movie_id)
    items = parse_items(resp.text, origin=client.origin, id_factory=id_factory)
    logger.info("Seed page: %d titles found", len(items))

    items.extend(
        await walk_related(
            client,
            movie_id=movie_id,
            seed_url=seed_url,
            id_factory=id_factory,
            limits=limits,
        )
    )
    result = aggregate(items)
    logger.info(
        "Collected %d titles (%d movies, %d tv) for %s",
        result.total,
        result.movie_count,
        result.tv_count,
        seed_path,
    )
    return result
