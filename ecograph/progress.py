"""Per-phase progress of one pipeline run.

Each run state between Idle and Done is one phase. Resolving also counts
its work items, so a long run can be followed from the log or a callback.
"""

from __future__ import annotations

import enum
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger("ecograph.pipeline")


class PhaseStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PhaseProgress:
    phase: str
    status: PhaseStatus = PhaseStatus.PENDING
    started_at: float | None = None
    finished_at: float | None = None
    done: int = 0
    total: int | None = None
    detail: str = ""
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return round(self.finished_at - self.started_at, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "status": self.status.value,
            "duration": self.duration,
            "done": self.done,
            "total": self.total,
            "detail": self.detail,
            "error": self.error,
        }


class RunProgress:
    """Phase timeline of a single run; listeners get every change."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.phases: dict[str, PhaseProgress] = {}
        self.listeners: list[Callable[[PhaseProgress], None]] = []

    def start(self, phase: str, total: int | None = None) -> None:
        p = PhaseProgress(
            phase=phase, status=PhaseStatus.RUNNING, started_at=self._clock(), total=total
        )
        self.phases[phase] = p
        log.debug("phase.started", phase=phase)
        self._emit(p)

    def advance(self, phase: str, done: int, total: int | None = None) -> None:
        """Record that *done* work items of *phase* are finished."""
        p = self.phases[phase]
        p.done = done
        if total is not None:
            p.total = total
        self._emit(p)

    def complete(self, phase: str, detail: str = "") -> None:
        p = self._finish(phase, PhaseStatus.COMPLETED)
        p.detail = detail
        log.debug("phase.completed", phase=phase, duration=p.duration, detail=detail)
        self._emit(p)

    def fail(self, phase: str, error: str) -> None:
        p = self._finish(phase, PhaseStatus.FAILED)
        p.error = error
        log.debug("phase.failed", phase=phase, duration=p.duration, error=error)
        self._emit(p)

    def skip(self, phase: str, reason: str) -> None:
        p = PhaseProgress(phase=phase, status=PhaseStatus.SKIPPED, detail=reason)
        self.phases[phase] = p
        self._emit(p)

    @property
    def current(self) -> PhaseProgress | None:
        running = [p for p in self.phases.values() if p.status is PhaseStatus.RUNNING]
        return running[-1] if running else None

    def summary(self) -> dict[str, Any]:
        return {
            "phases": [p.to_dict() for p in self.phases.values()],
            "total_duration": round(sum(p.duration or 0 for p in self.phases.values()), 2),
        }

    def _finish(self, phase: str, status: PhaseStatus) -> PhaseProgress:
        p = self.phases[phase]
        p.status = status
        p.finished_at = self._clock()
        return p

    def _emit(self, p: PhaseProgress) -> None:
        for listener in self.listeners:
            try:
                listener(p)
            except Exception:
                log.debug("progress.listener_error", phase=p.phase, exc_info=True)
