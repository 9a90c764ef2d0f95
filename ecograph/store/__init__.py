from ecograph.store.connection import ConnectionState, StoreConnection
from ecograph.store.state_store import StateStore

__all__ = ["ConnectionState", "StateStore", "StoreConnection"]
