from __future__ import annotations

from collections.abc import Iterable

from similar_proxy.schemas.titles import AggregateResult, TitleRecord


def aggregate(items: Iterable[TitleRecord]) -> AggregateResult:
    rows = list(items)
    tv_count = sum(1 for row in rows if row.kind == "tv")
    return AggregateResult(
        success=True,
        total=len(rows),
        movie_count=len(rows) - tv_count,
        tv_count=tv_count,
        items=rows,
    )
