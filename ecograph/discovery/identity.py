"""Identity parser for repository-listing lines.

Grammar: ``NAME:ver<VERSION>[:auth<AUTH>][:api<API>]``. Anything else on a
listing (banners, progress lines, blank lines) is skipped silently.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ecograph.models.candidate import Candidate

_IDENTITY_RE = re.compile(
    r"^\s*"
    r"(?P<name>[^\s:<>]+(?:::[^\s:<>]+)*)"  # Foo or Foo::Bar
    r":ver<(?P<version>[^<>]+)>"
    r"(?::auth<(?P<auth>[^<>]*)>)?"
    r"(?::api<(?P<api>[^<>]*)>)?"
    r"\s*$"
)


def parse_listing_line(line: str, source_repo: str = "") -> Candidate | None:
    """Parse one listing line into a Candidate, or None when it does not match.

    An empty ``auth<>`` / ``api<>`` counts as absent, so it is dropped from
    the rebuilt identity as well.
    """
    m = _IDENTITY_RE.match(line)
    if not m:
        return None
    return Candidate(
        name=m.group("name"),
        version=m.group("version").strip(),
        authority=m.group("auth") or None,
        api=m.group("api") or None,
        source_repo=source_repo,
    )


def parse_listing(lines: Iterable[str], source_repo: str = "") -> list[Candidate]:
    candidates: list[Candidate] = []
    for line in lines:
        candidate = parse_listing_line(line, source_repo)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
