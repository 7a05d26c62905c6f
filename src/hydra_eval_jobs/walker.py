"""Depth-first discovery of jobs in a release tree."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

from rich.console import Console

from .classify import NodeKind, classify
from .evaluator import DrvInfo, Evaluator
from .evaluator.values import show_value
from .exceptions import EvalError, EvalTypeError, Interrupted
from .gcroots import RootRegistrar
from .jobs import extract_job, is_aggregate, resolve_constituents
from .models import JobDescriptor, WalkStats
from .report import AttrPath, Report, format_attr_path


class JobFinder:
    """Walks a release tree and records every job it finds.

    Attribute sets that are not derivations are descended into, derivations
    become jobs, and null is skipped. An :class:`EvalError` raised while
    exploring a path is recorded as that path's error and the walk moves on;
    an unsupported value or a cancellation aborts the whole walk.
    """

    def __init__(
        self,
        state: Evaluator,
        registrar: RootRegistrar | None = None,
        auto_args: Mapping[str, Any] | None = None,
        cancel_event: threading.Event | None = None,
        verbose: bool = False,
        console: Console | None = None,
    ):
        """
        Initialize the walker.

        Args:
            state: Evaluator for forcing and probing values
            registrar: GC root registrar; None disables registration
            auto_args: Arguments passed to functions found in the tree
            cancel_event: Checked once per node; when set the walk aborts
            verbose: Trace every visited path on the console
            console: Console for diagnostics (stderr by default)
        """
        self.state = state
        self.registrar = registrar
        self.auto_args = dict(auto_args or {})
        self.cancel_event = cancel_event
        self.verbose = verbose
        self.console = console or Console(stderr=True)
        self.report = Report()
        self.stats = WalkStats()

    def find_jobs(self, root: Any) -> Report:
        """Walk the tree below *root* and return the completed report."""
        self._find_jobs(root, ())
        return self.report

    def _find_jobs(self, value: Any, path: AttrPath) -> None:
        try:
            self._find_jobs_wrapped(value, path)
        except EvalError as e:
            self.report.add_error(path, e.msg)
            self.stats.errors += 1

    def _find_jobs_wrapped(self, value: Any, path: AttrPath) -> None:
        if self.verbose:
            self.console.print(
                f"at path ‘{format_attr_path(path)}’", style="dim", markup=False, highlight=False
            )

        self._check_interrupt()
        self.stats.nodes_visited += 1

        value = self.state.auto_call(value, self.auto_args)
        node = classify(self.state, value)

        if node.kind is NodeKind.JOB:
            job = self._extract(node.drv)
            self.report.add_job(path, job)
            self.stats.jobs += 1

        elif node.kind is NodeKind.GROUP:
            for name, child in self.state.attrs(node.value):
                self._find_jobs(child, path + (name,))

        elif node.kind is NodeKind.EMPTY:
            # null means "nothing here"
            pass

        else:
            raise EvalTypeError(f"unsupported value: {show_value(node.value)}")

    def _extract(self, drv: DrvInfo) -> JobDescriptor:
        job = extract_job(self.state, drv)

        if is_aggregate(self.state, drv):
            job.constituents = " ".join(resolve_constituents(self.state, drv))

        # Roots are registered again for jobs seen in earlier evaluations;
        # the registrar skips roots that already exist.
        if self.registrar is not None and self.registrar.register(job.drv_path):
            self.stats.gc_roots_registered += 1

        return job

    def _check_interrupt(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise Interrupted()


def find_jobs(
    state: Evaluator,
    root: Any,
    registrar: RootRegistrar | None = None,
    auto_args: Mapping[str, Any] | None = None,
    cancel_event: threading.Event | None = None,
) -> Report:
    """Convenience wrapper: walk *root* with a fresh JobFinder."""
    finder = JobFinder(state, registrar=registrar, auto_args=auto_args, cancel_event=cancel_event)
    return finder.find_jobs(root)
