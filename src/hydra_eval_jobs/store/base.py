"""Abstract base class for store backends."""

import os
from abc import ABC, abstractmethod


class Store(ABC):
    """Abstract base class for stores that can protect paths from collection."""

    def __init__(self, store_dir: str):
        self.store_dir = store_dir

    @property
    @abstractmethod
    def is_local(self) -> bool:
        """Whether GC roots can be created on the local filesystem."""
        pass

    @abstractmethod
    def add_perm_root(self, store_path: str, gc_root: str) -> str:
        """
        Register *gc_root* as a permanent root keeping *store_path* alive.

        Args:
            store_path: Path in the store to protect
            gc_root: Filesystem location of the root

        Returns:
            The root that was created
        """
        pass

    def path_exists(self, path: str) -> bool:
        """Check for any filesystem object at *path*, dangling symlinks included."""
        return os.path.lexists(path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(store_dir={self.store_dir!r})"
