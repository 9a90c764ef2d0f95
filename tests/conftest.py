"""Shared pytest fixtures for ecograph tests.

The state store runs against a SQLite file under ``tmp_path``; the listing
and dependency-query tools are replaced by ``FakeRunner``.
"""

from __future__ import annotations

import sqlite3
import subprocess
from collections.abc import Callable

import pytest
from sqlalchemy import create_engine, event

from ecograph.models.candidate import Candidate
from ecograph.models.record import ModuleRecord
from ecograph.store.connection import StoreConnection
from ecograph.store.state_store import StateStore


class FlakyEngineFactory:
    """Engine factory whose engines raise a driver error on demand.

    ``failures`` statements whose SQL contains ``match`` (and whose
    parameters contain ``param``, when given) fail before reaching SQLite,
    raising ``error`` (a driver exception class).
    """

    def __init__(
        self,
        failures: int = 0,
        match: str | None = None,
        param: str | None = None,
        error: type[Exception] = sqlite3.OperationalError,
    ):
        self.failures = failures
        self.match = match
        self.param = param
        self.error = error
        self.engines = []
        self.raised = 0

    def __call__(self, url: str):
        engine = create_engine(url)
        event.listen(engine, "before_cursor_execute", self._maybe_fail)
        self.engines.append(engine)
        return engine

    def _maybe_fail(self, conn, cursor, statement, parameters, context, executemany):
        if self.failures <= 0:
            return
        if self.match is not None and self.match not in statement:
            return
        if self.param is not None and self.param not in str(parameters):
            return
        self.failures -= 1
        self.raised += 1
        raise self.error("simulated driver failure")


class FakeRunner:
    """Stand-in for ``subprocess.run`` serving the two external tools.

    ``listings`` maps repository → listing text (None = tool failure).
    ``reports`` maps identity → query report (None = tool failure); an
    identity without an entry gets a report with no dependency lines.
    """

    def __init__(
        self,
        listings: dict[str, str | None] | None = None,
        reports: dict[str, str | None] | None = None,
    ) -> None:
        self.listings = listings or {}
        self.reports = reports or {}
        self.calls: list[list[str]] = []

    def __call__(self, cmd, **kwargs) -> subprocess.CompletedProcess:
        cmd = list(cmd)
        self.calls.append(cmd)
        if cmd[:2] == ["zef", "list"]:
            out = self.listings.get(cmd[2].removeprefix("--"))
        elif cmd[:2] == ["zef", "info"]:
            out = self.reports.get(cmd[2], f"- Info for: {cmd[2]}\n")
        else:
            raise FileNotFoundError(cmd[0])
        if out is None:
            return subprocess.CompletedProcess(cmd, 1, "", "tool failed")
        return subprocess.CompletedProcess(cmd, 0, out, "")

    @property
    def queried(self) -> list[str]:
        return [c[2] for c in self.calls if c[:2] == ["zef", "info"]]


def _make_record(
    name: str,
    version: str = "1.0",
    deps: list[str] | tuple[str, ...] = (),
    *,
    auth: str | None = None,
    repo: str = "fez",
    unresolved: bool = False,
) -> ModuleRecord:
    candidate = Candidate(name=name, version=version, authority=auth, api=None, source_repo=repo)
    return ModuleRecord.from_candidate(candidate, list(deps), unresolved=unresolved)


def _make_candidate(name: str, version: str = "1.0", repo: str = "fez", auth: str | None = None):
    return Candidate(name=name, version=version, authority=auth, api=None, source_repo=repo)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'ecograph.db'}"


@pytest.fixture
def make_store(db_url) -> Callable[..., StateStore]:
    """Factory for stores sharing one database file; closed at teardown."""
    stores: list[StateStore] = []

    def _make(engine_factory=None, **kwargs) -> StateStore:
        conn = (
            StoreConnection(db_url, engine_factory)
            if engine_factory is not None
            else StoreConnection(db_url)
        )
        kwargs.setdefault("batch_size", 2)
        kwargs.setdefault("retry_delay", 0)
        kwargs.setdefault("sleep", lambda _s: None)
        store = StateStore(conn, **kwargs)
        stores.append(store)
        return store

    yield _make
    for store in stores:
        store.close()


@pytest.fixture
def store(make_store) -> StateStore:
    return make_store()


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def make_candidate():
    return _make_candidate


@pytest.fixture
def fake_runner():
    """The FakeRunner class, for building per-test tool outputs."""
    return FakeRunner


@pytest.fixture
def flaky_factory():
    """The FlakyEngineFactory class, for injecting transient store errors."""
    return FlakyEngineFactory
