"""ORM tables backing the key / set / list storage primitives."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from ecograph.core.database import StoreBase, UpdatedAtMixin


class KeyValueEntry(UpdatedAtMixin, StoreBase):
    """``prefix + name`` → JSON-encoded ModuleRecord."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class SetMember(StoreBase):
    """Membership of *member* in the set named *set_key* (the Name Index)."""

    __tablename__ = "set_members"

    set_key: Mapped[str] = mapped_column(Text, primary_key=True)
    member: Mapped[str] = mapped_column(Text, primary_key=True)


class ListItem(StoreBase):
    """Position *position* of the list named *list_key* (the Build Order List)."""

    __tablename__ = "list_items"

    list_key: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
