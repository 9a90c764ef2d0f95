"""Repository-listing tool boundary and the discovery phase."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence

import structlog

from ecograph.core.commands import Runner, build_command, run_command
from ecograph.discovery.arbiter import VersionArbiter
from ecograph.discovery.identity import parse_listing
from ecograph.exceptions import DiscoveryError
from ecograph.models.candidate import Candidate

log = structlog.get_logger("ecograph.discovery")


class RepositoryLister:
    """Invoke the listing tool once per repository and parse its output."""

    def __init__(self, command_template: str, runner: Runner = subprocess.run) -> None:
        self._template = command_template
        self._runner = runner

    def list_repository(self, repository: str) -> list[Candidate] | None:
        """Return the repository's candidates, or None when the tool failed."""
        cmd = build_command(self._template, repository=repository)
        out = run_command(cmd, self._runner)
        if not out.ok:
            log.warning(
                "listing.failed",
                repository=repository,
                returncode=out.returncode,
                stderr=out.stderr.strip()[:500],
            )
            return None
        candidates = parse_listing(out.stdout.splitlines(), source_repo=repository)
        log.info("listing.parsed", repository=repository, candidates=len(candidates))
        return candidates


def discover(
    lister: RepositoryLister, repositories: Sequence[str], *, strict: bool = False
) -> dict[str, Candidate]:
    """Scan *repositories* in priority order and return the winner per name.

    Raises DiscoveryError when no repository yields a single candidate, so a
    broken listing tool can never lead to publishing an empty order. With
    *strict*, any repository whose listing failed raises DiscoveryError too;
    callers that delete what is not live need the complete live set.
    """
    arbiter = VersionArbiter()
    failed: list[str] = []
    for repository in repositories:
        candidates = lister.list_repository(repository)
        if candidates is None:
            failed.append(repository)
            continue
        arbiter.offer_all(candidates)

    if strict and failed:
        raise DiscoveryError(f"listing failed for repositories {failed}; live set incomplete")
    if not len(arbiter):
        raise DiscoveryError(
            f"no candidates discovered from repositories {list(repositories)} "
            f"(failed: {failed or 'none'})"
        )
    if failed:
        log.warning("discovery.partial", failed=failed, winners=len(arbiter))
    return arbiter.winners
