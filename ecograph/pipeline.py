"""Run pipeline — discover → diff → resolve → sort → publish.

    Idle → Discovering → Diffing → Resolving(n) → GraphBuilding → Publishing → Done

Every step runs once, strictly in order. A fatal error in any step moves the
run to Failed before the build order list is touched. Inside Resolving a
failure is isolated to its item: an unresolvable package keeps an empty
dependency list and is flagged unresolved, and a record that cannot be
saved is logged and skipped (the next run queues it again as new).
"""

from __future__ import annotations

import enum
import subprocess
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from ecograph.config import Settings
from ecograph.core.commands import Runner
from ecograph.core.logging import bind_run
from ecograph.discovery.listing import RepositoryLister, discover
from ecograph.engines.diff_planner import DiffPlan, WorkReason, plan
from ecograph.engines.graph import build_order
from ecograph.engines.publisher import publish
from ecograph.engines.resolver import DependencyReport, DependencyResolver
from ecograph.exceptions import EcographError, PipelineStateError, StoreUnavailableError
from ecograph.models.candidate import Candidate
from ecograph.models.record import ModuleRecord
from ecograph.progress import RunProgress
from ecograph.store.connection import StoreConnection
from ecograph.store.state_store import StateStore

log = structlog.get_logger("ecograph.pipeline")

T = TypeVar("T")


class RunState(enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    DIFFING = "diffing"
    RESOLVING = "resolving"
    GRAPH_BUILDING = "graph_building"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


_SEQUENCE = [
    RunState.IDLE,
    RunState.DISCOVERING,
    RunState.DIFFING,
    RunState.RESOLVING,
    RunState.GRAPH_BUILDING,
    RunState.PUBLISHING,
    RunState.DONE,
]


@dataclass
class RunReport:
    run_id: str = ""
    state: RunState = RunState.IDLE
    discovered: int = 0
    reused: int = 0
    new: int = 0
    stale: int = 0
    retried_unresolved: int = 0
    dropped: list[str] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    save_failures: list[str] = field(default_factory=list)
    cyclic: list[str] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    published: bool = False
    publish_error: str | None = None
    error: str | None = None
    progress: dict[str, Any] = field(default_factory=dict)

    @property
    def warnings(self) -> list[str]:
        out: list[str] = []
        if self.malformed:
            out.append(f"{len(self.malformed)} malformed cached record(s) treated as new")
        if self.unresolved:
            out.append(f"{len(self.unresolved)} package(s) with unresolved dependencies")
        if self.save_failures:
            out.append(f"{len(self.save_failures)} record(s) could not be saved")
        if self.cyclic:
            out.append(f"{len(self.cyclic)} package(s) in or behind a dependency cycle")
        if self.publish_error:
            out.append(f"build order not published: {self.publish_error}")
        return out


class Pipeline:
    def __init__(
        self,
        store: StateStore,
        lister: RepositoryLister,
        resolver: DependencyResolver,
        repositories: Sequence[str],
    ) -> None:
        self.store = store
        self.lister = lister
        self.resolver = resolver
        self.repositories = list(repositories)
        self.state = RunState.IDLE
        self.progress = RunProgress()
        self.run_id = uuid.uuid4().hex[:12]

    def _advance(self, state: RunState) -> None:
        if state is RunState.FAILED:
            allowed = self.state not in (RunState.DONE, RunState.FAILED)
        else:
            allowed = (
                self.state is not RunState.FAILED
                and _SEQUENCE.index(state) == _SEQUENCE.index(self.state) + 1
            )
        if not allowed:
            raise PipelineStateError(self.state.value, state.value)
        log.debug("pipeline.state", previous=self.state.value, current=state.value)
        self.state = state

    def run(self, *, dry_run: bool = False) -> RunReport:
        """Execute one full run. Raises EcographError on a fatal step."""
        if self.state is not RunState.IDLE:
            raise PipelineStateError(self.state.value, RunState.DISCOVERING.value)
        report = RunReport(run_id=self.run_id)
        with bind_run(self.run_id):
            self._execute(report, dry_run)
        return report

    def _execute(self, report: RunReport, dry_run: bool) -> None:
        log.info("pipeline.started", repositories=self.repositories, dry_run=dry_run)
        try:
            winners = self._step(RunState.DISCOVERING, self._discover, report)
            diff = self._step(RunState.DIFFING, self._diff, report, winners)
            dataset = self._step(RunState.RESOLVING, self._resolve, report, diff, dry_run)
            order = self._step(RunState.GRAPH_BUILDING, self._sort, report, dataset)
            self._step(RunState.PUBLISHING, self._publish, report, order, dataset, dry_run)
            self._advance(RunState.DONE)
        except Exception as exc:
            report.error = str(exc)
            self._advance(RunState.FAILED)
            if isinstance(exc, EcographError):
                log.error("pipeline.failed", error=str(exc))
            else:
                log.exception("pipeline.crashed")
            raise
        finally:
            report.state = self.state
            report.progress = self.progress.summary()

        log.info(
            "pipeline.done",
            discovered=report.discovered,
            reused=report.reused,
            resolved=len(report.resolved),
            unresolved=len(report.unresolved),
            save_failures=len(report.save_failures),
            cyclic=len(report.cyclic),
            published=report.published,
        )

    def _step(self, state: RunState, fn: Callable[..., tuple[T, str]], *args: Any) -> T:
        self._advance(state)
        self.progress.start(state.value)
        try:
            result, detail = fn(*args)
        except Exception as exc:
            self.progress.fail(state.value, str(exc))
            raise
        self.progress.complete(state.value, detail=detail)
        return result

    # ── steps ────────────────────────────────────────────────────────────

    def _discover(self, report: RunReport) -> tuple[dict[str, Candidate], str]:
        winners = discover(self.lister, self.repositories)
        report.discovered = len(winners)
        return winners, f"winners={len(winners)}"

    def _diff(self, report: RunReport, winners: dict[str, Candidate]) -> tuple[DiffPlan, str]:
        cached = self.store.bulk_load()
        diff = plan(winners, cached)
        report.reused = len(diff.reuse)
        report.new = diff.count(WorkReason.NEW)
        report.stale = diff.count(WorkReason.STALE)
        report.retried_unresolved = diff.count(WorkReason.UNRESOLVED)
        report.dropped = list(diff.dropped)
        report.malformed = list(diff.malformed)
        return diff, f"reuse={report.reused}, queued={len(diff.queue)}"

    def _resolve(
        self, report: RunReport, diff: DiffPlan, dry_run: bool
    ) -> tuple[dict[str, ModuleRecord], str]:
        dataset: dict[str, ModuleRecord] = dict(diff.reuse)
        total = len(diff.queue)
        self.progress.advance(RunState.RESOLVING.value, 0, total)
        for position, item in enumerate(diff.queue, start=1):
            candidate = item.candidate
            try:
                deps = self.resolver.resolve(candidate)
            except Exception as exc:
                log.exception("pipeline.resolve_error", identity=candidate.identity)
                deps = DependencyReport(resolved=False, error=str(exc))

            record = ModuleRecord.from_candidate(
                candidate, deps.names, unresolved=not deps.resolved
            )
            dataset[candidate.name] = record
            if deps.resolved:
                report.resolved.append(candidate.name)
            else:
                report.unresolved.append(candidate.name)

            # Persisted before the next item; a re-run reuses every record saved here.
            if not dry_run:
                try:
                    self.store.put(record)
                except StoreUnavailableError as exc:
                    log.warning(
                        "pipeline.save_failed",
                        name=candidate.name,
                        attempts=exc.attempts,
                        error=str(exc.cause),
                    )
                    report.save_failures.append(candidate.name)

            log.info(
                "pipeline.resolved",
                name=candidate.name,
                reason=item.reason.value,
                dependencies=len(deps.names),
                unresolved=not deps.resolved,
                position=position,
                total=total,
            )
            self.progress.advance(RunState.RESOLVING.value, position)
        return dataset, f"resolved={len(report.resolved)}, unresolved={len(report.unresolved)}"

    def _sort(
        self, report: RunReport, dataset: dict[str, ModuleRecord]
    ) -> tuple[list[str], str]:
        result = build_order(dataset)
        report.cyclic = list(result.cyclic)
        return result.order, f"nodes={len(result.order)}, cyclic={len(result.cyclic)}"

    def _publish(
        self,
        report: RunReport,
        order: list[str],
        dataset: dict[str, ModuleRecord],
        dry_run: bool,
    ) -> tuple[None, str]:
        try:
            result = publish(self.store, order, dataset, dry_run=dry_run)
        except StoreUnavailableError as exc:
            report.order = [dataset[n].identity for n in order]
            report.publish_error = str(exc)
            log.error("pipeline.publish_failed", error=str(exc))
            return None, "not published"
        report.order = result.identities
        report.published = result.published
        return None, f"entries={len(result.identities)}, published={result.published}"


def create_store(settings: Settings) -> StateStore:
    return StateStore(
        StoreConnection(settings.database_url),
        key_prefix=settings.key_prefix,
        index_key=settings.index_key,
        order_key=settings.order_key,
        batch_size=settings.batch_size,
        retries=settings.store_retries,
        retry_delay=settings.store_retry_delay,
    )


def create_pipeline(
    settings: Settings,
    *,
    store: StateStore | None = None,
    runner: Runner = subprocess.run,
) -> Pipeline:
    """Wire a Pipeline from *settings*; *runner* replaces ``subprocess.run``."""
    return Pipeline(
        store=store or create_store(settings),
        lister=RepositoryLister(settings.list_command, runner),
        resolver=DependencyResolver(
            settings.depends_command,
            runner,
            deep=settings.deep_scan,
            extra_noise=settings.extra_noise,
        ),
        repositories=settings.repositories,
    )
