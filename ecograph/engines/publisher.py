"""Publisher — replace the persisted build order with a fresh one."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from ecograph.exceptions import GraphError
from ecograph.models.record import ModuleRecord
from ecograph.store.state_store import StateStore

log = structlog.get_logger("ecograph.engine")


@dataclass
class PublishResult:
    identities: list[str]
    published: bool


def identities_for(order: Sequence[str], dataset: Mapping[str, ModuleRecord]) -> list[str]:
    """Map an ordered name list to identity strings, checking it covers *dataset* once."""
    if len(order) != len(set(order)):
        raise GraphError("build order contains duplicate names")
    missing = set(dataset) - set(order)
    extra = set(order) - set(dataset)
    if missing or extra:
        raise GraphError(
            f"build order does not match dataset (missing={sorted(missing)[:10]}, "
            f"extra={sorted(extra)[:10]})"
        )
    return [dataset[name].identity for name in order]


def publish(
    store: StateStore,
    order: Sequence[str],
    dataset: Mapping[str, ModuleRecord],
    *,
    dry_run: bool = False,
) -> PublishResult:
    """Write the identities for *order* as the new build order list.

    An empty order is never written over the existing list.
    """
    identities = identities_for(order, dataset)
    if not identities:
        log.warning("publisher.empty_order_skipped")
        return PublishResult(identities=[], published=False)
    if dry_run:
        log.info("publisher.dry_run", entries=len(identities))
        return PublishResult(identities=identities, published=False)

    written = store.replace_ordered_list(identities)
    log.info("publisher.published", entries=written, batch_size=store.batch_size)
    return PublishResult(identities=identities, published=True)
