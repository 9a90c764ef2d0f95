"""Version arbiter — one winning candidate per package name."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from ecograph.discovery.versions import is_newer
from ecograph.models.candidate import Candidate

log = structlog.get_logger("ecograph.discovery")


class VersionArbiter:
    """Fold candidates into winners.

    Feed repositories in priority order. A later candidate replaces the
    current winner only when its version is strictly greater, so on a tie
    the earlier (higher priority) repository keeps the package.
    """

    def __init__(self) -> None:
        self._winners: dict[str, Candidate] = {}

    def offer(self, candidate: Candidate) -> bool:
        """Consider *candidate*; return True if it became the winner."""
        current = self._winners.get(candidate.name)
        if current is None or is_newer(candidate.version, current.version):
            if current is not None:
                log.debug(
                    "arbiter.replaced",
                    name=candidate.name,
                    old_version=current.version,
                    old_repo=current.source_repo,
                    new_version=candidate.version,
                    new_repo=candidate.source_repo,
                )
            self._winners[candidate.name] = candidate
            return True
        return False

    def offer_all(self, candidates: Iterable[Candidate]) -> int:
        return sum(1 for c in candidates if self.offer(c))

    @property
    def winners(self) -> dict[str, Candidate]:
        return dict(self._winners)

    def __len__(self) -> int:
        return len(self._winners)
