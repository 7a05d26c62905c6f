"""Local filesystem store."""

import os

from ..evaluator.values import DEFAULT_STORE_DIR
from .base import Store


class LocalFSStore(Store):
    """Store whose GC roots are symlinks on the local filesystem."""

    def __init__(self, store_dir: str = DEFAULT_STORE_DIR):
        super().__init__(store_dir)

    @property
    def is_local(self) -> bool:
        return True

    def add_perm_root(self, store_path: str, gc_root: str) -> str:
        parent = os.path.dirname(gc_root)
        if parent:
            os.makedirs(parent, exist_ok=True)
        os.symlink(store_path, gc_root)
        return gc_root
