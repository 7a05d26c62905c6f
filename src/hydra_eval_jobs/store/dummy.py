"""Store that cannot hold anything."""

from ..evaluator.values import DEFAULT_STORE_DIR
from .base import Store


class DummyStore(Store):
    """Store without a filesystem; GC roots are never registered in it."""

    def __init__(self, store_dir: str = DEFAULT_STORE_DIR):
        super().__init__(store_dir)

    @property
    def is_local(self) -> bool:
        return False

    def add_perm_root(self, store_path: str, gc_root: str) -> str:
        raise NotImplementedError("the dummy store does not support GC roots")
