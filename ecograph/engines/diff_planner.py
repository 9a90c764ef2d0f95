"""Diff planner — decide which live packages need a dependency query."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from ecograph.discovery.versions import compare_versions
from ecograph.models.candidate import Candidate
from ecograph.models.record import ModuleRecord

log = structlog.get_logger("ecograph.engine")


class WorkReason(enum.Enum):
    NEW = "new"
    STALE = "stale"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class WorkItem:
    candidate: Candidate
    reason: WorkReason


@dataclass
class DiffPlan:
    reuse: dict[str, ModuleRecord] = field(default_factory=dict)
    queue: list[WorkItem] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)

    def count(self, reason: WorkReason) -> int:
        return sum(1 for item in self.queue if item.reason is reason)


def plan(
    winners: Mapping[str, Candidate],
    cached: Mapping[str, ModuleRecord | None],
) -> DiffPlan:
    """Classify every live winner against the cached records.

    - not cached, or cached payload malformed → NEW
    - cached version older than live          → STALE (live candidate queued)
    - cached version equal, marked unresolved → UNRESOLVED (queued again)
    - cached version equal or newer           → reused unchanged
    Cached names that are no longer live are dropped from this run only.
    The queue is sorted by name so resolution order is reproducible.
    """
    result = DiffPlan()
    for name in sorted(winners):
        candidate = winners[name]
        if name not in cached or cached[name] is None:
            if name in cached:
                result.malformed.append(name)
            result.queue.append(WorkItem(candidate, WorkReason.NEW))
            continue

        record = cached[name]
        age = compare_versions(record.version, candidate.version)
        if age < 0:
            result.queue.append(WorkItem(candidate, WorkReason.STALE))
        elif age == 0 and record.unresolved:
            result.queue.append(WorkItem(candidate, WorkReason.UNRESOLVED))
        else:
            result.reuse[name] = record

    result.dropped = sorted(name for name in cached if name not in winners)

    log.info(
        "diff.planned",
        live=len(winners),
        reuse=len(result.reuse),
        new=result.count(WorkReason.NEW),
        stale=result.count(WorkReason.STALE),
        unresolved=result.count(WorkReason.UNRESOLVED),
        dropped=len(result.dropped),
        malformed=len(result.malformed),
    )
    return result
