"""Registration of GC roots for discovered derivations."""

from __future__ import annotations

import posixpath

from rich.console import Console

from .store import Store


class RootRegistrar:
    """Protects job derivations from garbage collection.

    A root ``<gc_roots_dir>/<basename of drvPath>`` is created only if nothing
    exists there yet, so repeated registration of the same path is harmless.
    Nothing is registered when *gc_roots_dir* is empty, in dry-run mode, or
    when the store is not on the local filesystem.
    """

    def __init__(
        self,
        store: Store | None,
        gc_roots_dir: str = "",
        dry_run: bool = False,
        verbose: bool = False,
        console: Console | None = None,
    ):
        self.store = store
        self.gc_roots_dir = gc_roots_dir
        self.dry_run = dry_run
        self.verbose = verbose
        self.console = console or Console(stderr=True)

    @property
    def enabled(self) -> bool:
        return (
            bool(self.gc_roots_dir)
            and not self.dry_run
            and self.store is not None
            and self.store.is_local
        )

    def root_for(self, drv_path: str) -> str:
        return f"{self.gc_roots_dir}/{posixpath.basename(drv_path)}"

    def register(self, drv_path: str) -> str | None:
        """
        Register a GC root for *drv_path*.

        Returns:
            The root created, or None if registration was skipped
        """
        if not self.enabled:
            return None

        root = self.root_for(drv_path)
        if self.store.path_exists(root):
            return None

        self.store.add_perm_root(drv_path, root)
        if self.verbose:
            self.console.print(f"registered GC root {root} -> {drv_path}", markup=False, highlight=False)
        return root
