#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from similar_proxy.core.config import settings
from similar_proxy.schemas.titles import AggregateResult
from similar_proxy.services.pagination import WalkLimits
from similar_proxy.services.recommendations import RawFallback, fetch_recommendations
from similar_proxy.services.upstream import UpstreamClient, relative_path

logger = logging.getLogger("scrape_recommendations")


def _normalize_seed_path(raw: str) -> str:
    value = (raw or "").strip()
    if not value:
        raise ValueError("seed path must not be empty")
    return relative_path(value)


def _limits_from_args(args: argparse.Namespace) -> WalkLimits:
    defaults = WalkLimits.from_settings()
    max_pages = args.max_pages if args.max_pages is not None else defaults.max_pages
    if max_pages <= 0:
        raise ValueError("--max-pages must be greater than 0")
    delay = max(0, args.sleep_ms) / 1000 if args.sleep_ms is not None else defaults.delay_seconds
    return WalkLimits(max_pages=max_pages, delay_seconds=delay, min_page_bytes=defaults.min_page_bytes)


def _render(result: AggregateResult | RawFallback) -> str:
    if isinstance(result, RawFallback):
        return result.html
    return json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape related titles (or a tag listing) from the upstream site and print JSON."
    )
    parser.add_argument("seed_path", help="Relative path, e.g. /movies/26240-game-of-thrones or /tag/3853-incest")
    parser.add_argument("--max-pages", type=int, default=None, help="Last page number to request.")
    parser.add_argument(
        "--sleep-ms",
        type=int,
        default=None,
        help="Delay between page requests in milliseconds.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log page-level progress.")
    return parser.parse_args(argv)


async def _main_async(args: argparse.Namespace) -> AggregateResult | RawFallback:
    async with httpx.AsyncClient(
        timeout=settings.upstream_timeout_seconds,
        follow_redirects=True,
    ) as http_client:
        client = UpstreamClient(http_client, origin=settings.upstream_origin)
        return await fetch_recommendations(
            _normalize_seed_path(args.seed_path),
            client,
            limits=_limits_from_args(args),
        )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        result = asyncio.run(_main_async(args))
    except Exception:
        logger.exception("scrape failed seed_path=%s", args.seed_path)
        return 1

    print(_render(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
