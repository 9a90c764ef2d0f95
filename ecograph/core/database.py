"""Engine factory, declarative base and shared columns for the state store."""

from datetime import datetime

from sqlalchemy import DateTime, MetaData, create_engine, func
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Constraint names stay stable across SQLite and PostgreSQL
convention = {
    "ix": "ix_%(column_0_label)s",
    "pk": "pk_%(table_name)s",
}

# Seconds SQLite waits on a locked database file before raising
SQLITE_BUSY_TIMEOUT = 30


class StoreBase(DeclarativeBase):
    """Base class for the state store tables.

    Own metadata, so ``create_all`` only ever touches these tables.
    """

    metadata = MetaData(naming_convention=convention)


class UpdatedAtMixin:
    """``updated_at`` maintained by the ORM on every write (no DB trigger)."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def create_store_engine(url: str) -> Engine:
    connect_args = {}
    if make_url(url).get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)
