import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from similar_proxy.services.pagination import (
    Flow,
    WalkLimits,
    classify_seed,
    related_page_url,
    tag_page_url,
    walk,
    walk_related,
    walk_tag,
)
from similar_proxy.services.upstream import PageResponse

ORIGIN = "https://bestsimilar.com"
NO_DELAY = WalkLimits(max_pages=20, delay_seconds=0, min_page_bytes=100)


class FakeUpstream:
    """Answers page fetches from a dict keyed by page number."""

    origin = ORIGIN

    def __init__(self, pages):
        self.pages = pages
        self.requested_urls: list[str] = []
        self.requested_headers: list[dict] = []

    def absolute(self, path: str) -> str:
        return f"{ORIGIN}{path}"

    async def fetch_page(self, url, headers):
        self.requested_urls.append(url)
        self.requested_headers.append(dict(headers))
        page = int(parse_qs(urlsplit(url).query)["page"][0])
        answer = self.pages.get(page, PageResponse(status_code=404, text=""))
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def requested_pages(self) -> list[int]:
        return [int(parse_qs(urlsplit(u).query)["page"][0]) for u in self.requested_urls]


def _ok(html: str) -> PageResponse:
    return PageResponse(status_code=200, text=html, content=html.encode())


def test_classify_seed_detects_tag_paths():
    assert classify_seed("/tag/3853-incest") is Flow.TAG
    assert classify_seed("/movies/26240-game-of-thrones?x=/tag/") is Flow.TAG
    assert classify_seed("/movies/26240-game-of-thrones") is Flow.TITLE
    assert classify_seed("/tags-overview") is Flow.TITLE


def test_related_page_url():
    assert related_page_url(ORIGIN, "26240", 3) == "https://bestsimilar.com/movies/rel?id=26240&order=0&page=3"


def test_tag_page_url_replaces_existing_page_query():
    assert tag_page_url(ORIGIN, "/tag/3853-incest", 1) == "https://bestsimilar.com/tag/3853-incest?page=1"
    assert (
        tag_page_url(ORIGIN, "/tag/3853-incest?page=7&sort=year", 2)
        == "https://bestsimilar.com/tag/3853-incest?sort=year&page=2"
    )


@pytest.mark.anyio
async def test_tag_walk_stops_on_404_and_concatenates_in_page_order(listing_html, make_items):
    pages = {
        1: _ok(listing_html(make_items("a", 4))),
        2: _ok(listing_html(make_items("b", 3))),
        3: _ok(listing_html(make_items("c", 2))),
        4: _ok(listing_html(make_items("d", 1))),
        5: PageResponse(status_code=404, text="Not Found"),
        6: _ok(listing_html(make_items("never", 2))),
    }
    upstream = FakeUpstream(pages)

    items = await walk_tag(upstream, seed_path="/tag/3853-incest", limits=NO_DELAY)

    assert [i.id for i in items] == ["a1", "a2", "a3", "a4", "b1", "b2", "b3", "c1", "c2", "d1"]
    assert upstream.requested_pages == [1, 2, 3, 4, 5]


@pytest.mark.anyio
async def test_walk_stops_after_page_with_zero_items(listing_html, make_items, empty_listing_html):
    pages = {
        1: _ok(listing_html(make_items("a", 2))),
        2: _ok(listing_html(make_items("b", 2))),
        3: _ok(empty_listing_html),
        4: _ok(listing_html(make_items("never", 2))),
    }
    upstream = FakeUpstream(pages)

    items = await walk(upstream, "/tag/1-drama", Flow.TAG, limits=NO_DELAY)

    assert len(items) == 4
    assert upstream.requested_pages == [1, 2, 3]


@pytest.mark.anyio
async def test_walk_stops_on_other_error_status(listing_html, make_items):
    pages = {
        1: _ok(listing_html(make_items("a", 2))),
        2: PageResponse(status_code=503, text="Service Unavailable" * 20),
        3: _ok(listing_html(make_items("never", 2))),
    }
    upstream = FakeUpstream(pages)

    items = await walk_tag(upstream, seed_path="/tag/1-drama", limits=NO_DELAY)

    assert [i.id for i in items] == ["a1", "a2"]
    assert upstream.requested_pages == [1, 2]


@pytest.mark.anyio
async def test_walk_stops_on_near_empty_body(listing_html, make_items):
    pages = {
        1: _ok(listing_html(make_items("a", 1))),
        2: _ok("<html></html>"),
        3: _ok(listing_html(make_items("never", 2))),
    }
    upstream = FakeUpstream(pages)

    items = await walk_tag(upstream, seed_path="/tag/1-drama", limits=NO_DELAY)

    assert [i.id for i in items] == ["a1"]
    assert upstream.requested_pages == [1, 2]


@pytest.mark.anyio
async def test_walk_treats_fetch_exception_as_stop(listing_html, make_items):
    pages = {
        2: _ok(listing_html(make_items("b", 2))),
        3: httpx.ConnectError("connection reset"),
        4: _ok(listing_html(make_items("never", 2))),
    }
    upstream = FakeUpstream(pages)

    items = await walk_related(
        upstream,
        movie_id="26240",
        seed_url=f"{ORIGIN}/movies/26240-game-of-thrones",
        limits=NO_DELAY,
    )

    assert [i.id for i in items] == ["b1", "b2"]
    assert upstream.requested_pages == [2, 3]


@pytest.mark.anyio
async def test_related_walk_starts_at_page_two_with_xhr_headers(listing_html, make_items):
    pages = {2: _ok(listing_html(make_items("b", 1)))}
    upstream = FakeUpstream(pages)
    seed_url = f"{ORIGIN}/movies/26240-game-of-thrones"

    await walk(upstream, "/movies/26240-game-of-thrones", Flow.TITLE, movie_id="26240", limits=NO_DELAY)

    assert upstream.requested_urls[0] == f"{ORIGIN}/movies/rel?id=26240&order=0&page=2"
    headers = upstream.requested_headers[0]
    assert headers["x-requested-with"] == "XMLHttpRequest"
    assert headers["referer"] == seed_url


@pytest.mark.anyio
async def test_walk_never_goes_past_max_pages(listing_html, make_items):
    pages = {n: _ok(listing_html(make_items(f"p{n}-", 1))) for n in range(1, 40)}
    upstream = FakeUpstream(pages)

    items = await walk_tag(
        upstream,
        seed_path="/tag/1-drama",
        limits=WalkLimits(max_pages=5, delay_seconds=0, min_page_bytes=100),
    )

    assert len(items) == 5
    assert upstream.requested_pages == [1, 2, 3, 4, 5]


@pytest.mark.anyio
async def test_title_walk_requires_an_id():
    with pytest.raises(ValueError):
        await walk(FakeUpstream({}), "/movies/x", Flow.TITLE, limits=NO_DELAY)


@pytest.mark.anyio
async def test_walk_cancellation_propagates_during_delay(listing_html, make_items):
    pages = {n: _ok(listing_html(make_items(f"p{n}-", 1))) for n in range(1, 21)}
    upstream = FakeUpstream(pages)

    task = asyncio.ensure_future(
        walk_tag(
            upstream,
            seed_path="/tag/1-drama",
            limits=WalkLimits(max_pages=20, delay_seconds=10, min_page_bytes=100),
        )
    )
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert upstream.requested_pages == [1]
