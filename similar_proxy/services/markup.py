from __future__ import annotations

import itertools
import re
from typing import Callable
from urllib.parse import urljoin

from selectolax.lexbor import LexborHTMLParser, LexborNode

from similar_proxy.schemas.titles import TitleRecord

IdFactory = Callable[[], str]

CONTAINER_SELECTOR = "div.column"
IMAGE_SELECTORS = (".column-img img", "img")
TV_LABEL_SELECTOR = ".label-default"
_TV_LABEL_TEXT = "tv show"
_YEAR_RE = re.compile(r"\((\d{4})\)")
_YEAR_FRAGMENT_RE = re.compile(r"\s*\(\d{4}\)")


def local_id_factory(prefix: str = "local") -> IdFactory:
    """Placeholder ids for items the upstream does not identify.

    Ids are only unique within one response, so share a single factory across
    every page that ends up in the same payload.
    """
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def split_label(label: str) -> tuple[str, str]:
    match = _YEAR_RE.search(label)
    year = match.group(1) if match else ""
    title = _YEAR_FRAGMENT_RE.sub("", label, count=1).strip()
    return title, year


def absolute_poster(src: str, origin: str) -> str:
    return urljoin(f"{origin.rstrip('/')}/", src)


def _attr(node: LexborNode | None, name: str) -> str:
    if node is None:
        return ""
    value = node.attributes.get(name)
    return value.strip() if isinstance(value, str) else ""


def _is_image_wrapper(node: LexborNode) -> bool:
    return "column-img" in _attr(node, "class").split()


def _first_image(container: LexborNode) -> LexborNode | None:
    for selector in IMAGE_SELECTORS:
        img = container.css_first(selector)
        if img is not None:
            return img
    return None


def _is_tv_show(container: LexborNode) -> bool:
    for label in container.css(TV_LABEL_SELECTOR):
        if _TV_LABEL_TEXT in (label.text(strip=True) or "").lower():
            return True
    return False


def _parse_container(container: LexborNode, *, origin: str, next_id: IdFactory) -> TitleRecord | None:
    img = _first_image(container)
    src = _attr(img, "src")
    label = _attr(img, "alt")
    if not src or not label:
        return None

    title, year = split_label(label)
    if not title:
        return None

    item_id = _attr(img, "data-id") or _attr(container, "data-id") or next_id()
    return TitleRecord(
        id=item_id,
        title=title,
        poster=absolute_poster(src, origin),
        year=year,
        kind="tv" if _is_tv_show(container) else "movie",
    )


def parse_items(
    html: str | None,
    *,
    origin: str,
    id_factory: IdFactory | None = None,
) -> list[TitleRecord]:
    """Extract title records from one listing page.

    Every field, including the TV badge, is read from inside the item's own
    container so nothing leaks between neighbouring items. Containers without
    a poster or a label are skipped.
    """
    if not isinstance(html, str) or not html.strip():
        return []

    next_id = id_factory or local_id_factory()
    doc = LexborHTMLParser(html)

    out: list[TitleRecord] = []
    for container in doc.css(CONTAINER_SELECTOR):
        if _is_image_wrapper(container):
            continue
        record = _parse_container(container, origin=origin, next_id=next_id)
        if record is not None:
            out.append(record)
    return out
