"""Out-of-band cleanup — scrub records of packages gone upstream.

Never called by a pipeline run; the run only leaves such packages out of
its working dataset.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field

import structlog

from ecograph.store.state_store import StateStore

log = structlog.get_logger("ecograph.engine")


@dataclass
class ScrubReport:
    orphaned_records: list[str] = field(default_factory=list)
    dangling_index: list[str] = field(default_factory=list)
    reindexed: list[str] = field(default_factory=list)
    dry_run: bool = False


def scrub(store: StateStore, live_names: Collection[str], *, dry_run: bool = False) -> ScrubReport:
    """Delete records whose names are not live and reconcile the name index.

    Record names come from ``scan`` rather than the index, so records the
    index lost track of are found too.
    """
    live = set(live_names)
    stored = store.scan("")
    indexed = set(store.index_members())
    stored_set = set(stored)

    report = ScrubReport(dry_run=dry_run)
    report.orphaned_records = [n for n in stored if n not in live]
    report.dangling_index = sorted(indexed - stored_set)
    report.reindexed = sorted(n for n in stored_set - indexed if n in live)

    if not dry_run:
        for name in report.orphaned_records:
            store.delete(name)
        for name in report.dangling_index:
            store.remove_from_index(name)
        for name in report.reindexed:
            store.add_to_index(name)

    log.info(
        "cleanup.scrubbed",
        orphaned=len(report.orphaned_records),
        dangling_index=len(report.dangling_index),
        reindexed=len(report.reindexed),
        dry_run=dry_run,
    )
    return report
