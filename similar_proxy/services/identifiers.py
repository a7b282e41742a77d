from __future__ import annotations

import re

_SEED_PATH_ID_RE = re.compile(r"/(?:movies|tv)/(\d+)-")
_JSON_ID_RE = re.compile(r"""id['"]\s*:\s*['"]?(\d+)['"]?""")
_DATA_ID_RE = re.compile(r"""data-id=['"](\d+)['"]""")


def extract_id(seed_path: str, page_body: str | None) -> str | None:
    """Find the upstream numeric id for a title.

    The seed path wins when it carries the id (``/movies/26240-game-of-thrones``);
    otherwise the page body is scanned for a JSON-ish ``id`` key and then for a
    ``data-id`` attribute.
    """
    match = _SEED_PATH_ID_RE.search(seed_path or "")
    if match:
        return match.group(1)

    body = page_body or ""
    for pattern in (_JSON_ID_RE, _DATA_ID_RE):
        match = pattern.search(body)
        if match:
            return match.group(1)
    return None
