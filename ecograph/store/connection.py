"""Lazily (re)established connection handle owned by the state store."""

from __future__ import annotations

import enum
from collections.abc import Callable

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ecograph.core.database import StoreBase, create_store_engine

log = structlog.get_logger("ecograph.store")

EngineFactory = Callable[[str], Engine]


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class StoreConnection:
    """Owns the engine and session factory; nobody else reaches into them.

    ``ensure_connected()`` builds the engine on first use (and after every
    ``invalidate()``) and makes sure the store tables exist.
    """

    def __init__(self, url: str, engine_factory: EngineFactory = create_store_engine) -> None:
        self.url = url
        self._engine_factory = engine_factory
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self.connects = 0

    @property
    def state(self) -> ConnectionState:
        if self._session_factory is None:
            return ConnectionState.DISCONNECTED
        return ConnectionState.CONNECTED

    def ensure_connected(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            engine = self._engine_factory(self.url)
            try:
                StoreBase.metadata.create_all(engine)
            except Exception:
                engine.dispose()
                raise
            self._engine = engine
            self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
            self.connects += 1
            log.debug("store.connected", url=engine.url.render_as_string(), connects=self.connects)
        return self._session_factory

    def invalidate(self) -> None:
        """Drop the handle; the next ``ensure_connected()`` reconnects."""
        engine = self._engine
        self._engine = None
        self._session_factory = None
        if engine is not None:
            engine.dispose()

    def close(self) -> None:
        self.invalidate()
