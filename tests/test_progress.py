"""Tests for RunProgress."""

from __future__ import annotations

from ecograph.progress import PhaseStatus, RunProgress


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestRunProgress:
    def test_phase_lifecycle(self):
        clock = FakeClock()
        progress = RunProgress(clock)
        progress.start("discovering")
        clock.now += 1.5
        progress.complete("discovering", detail="winners=12")

        phase = progress.summary()["phases"][0]
        assert phase["status"] == "completed"
        assert phase["detail"] == "winners=12"
        assert phase["duration"] == 1.5

    def test_fail(self):
        progress = RunProgress(FakeClock())
        progress.start("graph_building")
        progress.fail("graph_building", "bad dataset")

        phase = progress.phases["graph_building"]
        assert phase.status is PhaseStatus.FAILED
        assert phase.error == "bad dataset"

    def test_skip_has_no_duration(self):
        progress = RunProgress(FakeClock())
        progress.skip("publishing", "dry run")
        assert progress.phases["publishing"].status is PhaseStatus.SKIPPED
        assert progress.phases["publishing"].duration is None

    def test_item_counts(self):
        progress = RunProgress(FakeClock())
        progress.start("resolving")
        progress.advance("resolving", 0, total=3)
        progress.advance("resolving", 2)

        phase = progress.summary()["phases"][0]
        assert (phase["done"], phase["total"]) == (2, 3)

    def test_current(self):
        progress = RunProgress(FakeClock())
        assert progress.current is None
        progress.start("diffing")
        assert progress.current.phase == "diffing"
        progress.complete("diffing")
        assert progress.current is None

    def test_total_duration(self):
        clock = FakeClock()
        progress = RunProgress(clock)
        for phase in ("discovering", "diffing"):
            progress.start(phase)
            clock.now += 2
            progress.complete(phase)
        assert progress.summary()["total_duration"] == 4

    def test_listeners_see_every_change(self):
        events = []
        progress = RunProgress(FakeClock())
        progress.listeners.append(lambda p: events.append((p.phase, p.status.value, p.done)))

        progress.start("resolving", total=1)
        progress.advance("resolving", 1)
        progress.complete("resolving")

        assert events == [
            ("resolving", "running", 0),
            ("resolving", "running", 1),
            ("resolving", "completed", 1),
        ]

    def test_failing_listener_does_not_break_tracking(self):
        progress = RunProgress(FakeClock())

        def boom(_p):
            raise RuntimeError("listener failed")

        progress.listeners.append(boom)
        progress.start("a")
        progress.complete("a")
        assert progress.phases["a"].status is PhaseStatus.COMPLETED
