"""Store backends."""

import os

from ..evaluator.values import DEFAULT_STORE_DIR
from .base import Store
from .dummy import DummyStore
from .local import LocalFSStore

__all__ = [
    "Store",
    "DummyStore",
    "LocalFSStore",
    "open_store",
]


def open_store(uri: str = "auto") -> Store:
    """
    Open a store by URI.

    Args:
        uri: "auto" or "local" for the default local store, "dummy" for a
            store without filesystem access, or an absolute store directory

    Returns:
        A Store instance
    """
    if uri in ("auto", "local"):
        return LocalFSStore(DEFAULT_STORE_DIR)
    elif uri == "dummy":
        return DummyStore()
    elif os.path.isabs(uri):
        return LocalFSStore(uri.rstrip("/") or "/")
    else:
        raise ValueError(f"Unknown store URI: {uri}")
