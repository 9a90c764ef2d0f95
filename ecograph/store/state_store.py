"""State store — module records, name index and the published build order.

Storage layout (see ``ecograph.models.store``):
    kv_entries   ``<key_prefix><name>`` → JSON ModuleRecord
    set_members  ``<index_key>``        → every name with a record
    list_items   ``<order_key>``        → ordered identity strings

Every public operation goes through ``_call``: a transient database error
invalidates the connection, waits ``retry_delay`` and retries the whole
unit of work, up to ``retries`` attempts, then raises StoreUnavailableError.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TypeVar

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from ecograph.exceptions import StoreUnavailableError
from ecograph.models.record import ModuleRecord, decode_record, encode_record
from ecograph.models.store import KeyValueEntry, ListItem, SetMember
from ecograph.store.connection import StoreConnection

log = structlog.get_logger("ecograph.store")

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, InterfaceError, DisconnectionError)

# Defaults
DEFAULT_BATCH_SIZE = 50
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds


def _batches(items: Sequence[T], size: int) -> list[Sequence[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class StateStore:
    def __init__(
        self,
        connection: StoreConnection,
        *,
        key_prefix: str = "module:",
        index_key: str = "module:names",
        order_key: str = "build:order",
        batch_size: int = DEFAULT_BATCH_SIZE,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if retries < 1:
            raise ValueError("retries must be >= 1")
        self._conn = connection
        self.key_prefix = key_prefix
        self.index_key = index_key
        self.order_key = order_key
        self.batch_size = batch_size
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def close(self) -> None:
        self._conn.close()

    def key_for(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    # ── retry / reconnect ────────────────────────────────────────────────

    def _call(self, operation: str, fn: Callable[[Session], T]) -> T:
        last_exc: BaseException | None = None
        for attempt in range(self.retries):
            try:
                session_factory = self._conn.ensure_connected()
                with session_factory() as session:
                    return fn(session)
            except TRANSIENT_ERRORS as exc:
                last_exc = exc
                log.warning(
                    "store.transient_error",
                    operation=operation,
                    attempt=attempt + 1,
                    max_attempts=self.retries,
                    error=str(exc.orig if getattr(exc, "orig", None) else exc),
                )
                self._conn.invalidate()
                if attempt < self.retries - 1:
                    self._sleep(self.retry_delay)
            except SQLAlchemyError as exc:
                # Only connection-level errors are retried.
                log.error("store.error", operation=operation, error=str(exc))
                self._conn.invalidate()
                raise StoreUnavailableError(operation, attempt + 1, exc) from exc
        raise StoreUnavailableError(operation, self.retries, last_exc)

    # ── records ──────────────────────────────────────────────────────────

    def bulk_load(self) -> dict[str, ModuleRecord | None]:
        """Load every indexed record, ``batch_size`` keys per request.

        Returns name → record; a stored payload that is not a well-formed
        record maps to None. Indexed names without a payload are left out.
        A batch that fails is retried after a reconnect, never skipped.
        """
        names = self.index_members()
        loaded = self.get_many(names, operation="bulk_load")
        log.info("store.bulk_loaded", indexed=len(names), loaded=len(loaded))
        return loaded

    def get(self, name: str) -> ModuleRecord | None:
        key = self.key_for(name)

        def _read(session: Session) -> str | None:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

        payload = self._call("get", _read)
        if payload is None:
            return None
        return self._decode(name, payload)

    def get_many(
        self, names: Sequence[str], operation: str = "get_many"
    ) -> dict[str, ModuleRecord | None]:
        """Batch multi-get; absent names are omitted, malformed ones map to None."""
        found: dict[str, ModuleRecord | None] = {}
        for batch_no, batch in enumerate(_batches(list(names), self.batch_size)):
            payloads = self._call(
                f"{operation}[{batch_no}]", self._payload_reader([self.key_for(n) for n in batch])
            )
            for name in batch:
                payload = payloads.get(self.key_for(name))
                if payload is not None:
                    found[name] = self._decode(name, payload)
        return found

    @staticmethod
    def _payload_reader(keys: list[str]) -> Callable[[Session], dict[str, str]]:
        def _read(session: Session) -> dict[str, str]:
            rows = session.execute(
                select(KeyValueEntry.key, KeyValueEntry.value).where(KeyValueEntry.key.in_(keys))
            ).all()
            return {key: value for key, value in rows}

        return _read

    def put(self, record: ModuleRecord) -> None:
        """Write *record* and its index membership in one transaction."""
        key = self.key_for(record.name)
        payload = encode_record(record)

        def _write(session: Session) -> None:
            session.merge(KeyValueEntry(key=key, value=payload))
            session.merge(SetMember(set_key=self.index_key, member=record.name))
            session.commit()

        self._call("put", _write)

    def delete(self, name: str) -> None:
        """Remove a record and its index membership (cleanup only)."""
        key = self.key_for(name)

        def _delete(session: Session) -> None:
            session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            session.execute(
                delete(SetMember).where(
                    SetMember.set_key == self.index_key, SetMember.member == name
                )
            )
            session.commit()

        self._call("delete", _delete)

    def _decode(self, name: str, payload: str) -> ModuleRecord | None:
        record = decode_record(payload)
        if record is None:
            log.warning("store.malformed_payload", name=name, size=len(payload))
            return None
        if record.name != name:
            log.warning("store.name_mismatch", key_name=name, record_name=record.name)
            return None
        return record

    # ── name index ───────────────────────────────────────────────────────

    def index_members(self) -> list[str]:
        return self._call(
            "index_members",
            lambda session: list(
                session.scalars(
                    select(SetMember.member)
                    .where(SetMember.set_key == self.index_key)
                    .order_by(SetMember.member)
                ).all()
            ),
        )

    def add_to_index(self, name: str) -> None:
        def _add(session: Session) -> None:
            session.merge(SetMember(set_key=self.index_key, member=name))
            session.commit()

        self._call("add_to_index", _add)

    def remove_from_index(self, name: str) -> None:
        def _remove(session: Session) -> None:
            session.execute(
                delete(SetMember).where(
                    SetMember.set_key == self.index_key, SetMember.member == name
                )
            )
            session.commit()

        self._call("remove_from_index", _remove)

    def scan(self, name_prefix: str = "") -> list[str]:
        """Names of every stored record whose name starts with *name_prefix*.

        Reads the record keys themselves, so it works when the index is
        out of date.
        """
        key_prefix = self.key_for(name_prefix)
        keys = self._call(
            "scan",
            lambda session: list(
                session.scalars(
                    select(KeyValueEntry.key)
                    .where(KeyValueEntry.key.startswith(key_prefix, autoescape=True))
                    .order_by(KeyValueEntry.key)
                ).all()
            ),
        )
        return [k[len(self.key_prefix) :] for k in keys]

    # ── build order list ─────────────────────────────────────────────────

    def replace_ordered_list(self, values: Sequence[str]) -> int:
        """Replace the build order list: clear it, then append in batches.

        Each batch is its own transaction, so a reader sees at most one batch
        of difference from a prefix of the new list, never old entries.
        """
        values = list(values)

        def _clear(session: Session) -> None:
            session.execute(delete(ListItem).where(ListItem.list_key == self.order_key))
            session.commit()

        self._call("replace_ordered_list.clear", _clear)

        for batch_no, start in enumerate(range(0, len(values), self.batch_size)):
            chunk = values[start : start + self.batch_size]

            def _append(session: Session, start: int = start, chunk: list[str] = chunk) -> None:
                # Idempotent on retry: the batch's positions are rewritten.
                session.execute(
                    delete(ListItem).where(
                        ListItem.list_key == self.order_key,
                        ListItem.position >= start,
                        ListItem.position < start + len(chunk),
                    )
                )
                session.add_all(
                    ListItem(list_key=self.order_key, position=start + i, value=v)
                    for i, v in enumerate(chunk)
                )
                session.commit()

            self._call(f"replace_ordered_list[{batch_no}]", _append)
        return len(values)

    def ordered_list(self) -> list[str]:
        return self._call(
            "ordered_list",
            lambda session: list(
                session.scalars(
                    select(ListItem.value)
                    .where(ListItem.list_key == self.order_key)
                    .order_by(ListItem.position)
                ).all()
            ),
        )
