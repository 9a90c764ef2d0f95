"""Version ordering by numeric segment, not by string."""

from __future__ import annotations

import re

_SEGMENT_RE = re.compile(r"\d+|[A-Za-z]+")

# Segment kinds. A tag (``beta``, ``rc``) ranks below the end of the version,
# and the end ranks below a further number: 1.0-beta < 1.0 < 1.0.1
_TAG = 0
_END = 1
_NUMERIC = 2

Segment = tuple[int, int | str]


def version_key(version: str) -> tuple[Segment, ...]:
    """Sort key for *version*.

    ``v1.2.10`` > ``1.2.9``; zero segments before a tag or the end are
    insignificant, so ``1.0`` == ``1.0.0`` and ``1.0-rc1`` == ``1-rc1``.
    Pre-release tags sort below the release they precede. A bare ``*``
    (unknown version) sorts lowest.
    """
    text = version.strip()
    if text[:1] in ("v", "V") and text[1:2].isdigit():
        text = text[1:]
    tokens = _SEGMENT_RE.findall(text)
    if not tokens:
        return ()

    segments: list[Segment] = []
    for token in tokens:
        if token.isdigit():
            segments.append((_NUMERIC, int(token)))
            continue
        _drop_trailing_zeros(segments)
        segments.append((_TAG, token.lower()))
    _drop_trailing_zeros(segments)
    segments.append((_END, ""))
    return tuple(segments)


def _drop_trailing_zeros(segments: list[Segment]) -> None:
    while segments and segments[-1] == (_NUMERIC, 0):
        segments.pop()


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as *a* is older than, equal to, or newer than *b*."""
    ka, kb = version_key(a), version_key(b)
    if ka == kb:
        return 0
    return 1 if ka > kb else -1


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(candidate, current) > 0
