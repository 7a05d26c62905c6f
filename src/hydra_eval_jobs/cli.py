"""Command-line interface for discovering jobs in a release expression."""

import json
import os
import signal
import sys
import threading
import time
import traceback
from contextlib import contextmanager

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import EvalOptions, HydraConfig
from .evaluator import PythonEvaluator, load_release, lookup_file_arg
from .exceptions import HydraEvalJobsError
from .gcroots import RootRegistrar
from .store import open_store
from .walker import JobFinder

console = Console(stderr=True, soft_wrap=True)


def _parse_auto_args(args, argstrs):
    """Build the auto-argument bindings from --arg and --argstr pairs."""
    auto_args = {}
    for name, expr in args:
        try:
            auto_args[name] = json.loads(expr)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"value of ‘{name}’ is not valid JSON: {e}", param_hint="--arg")
    for name, value in argstrs:
        auto_args[name] = value
    return auto_args


@contextmanager
def _cancel_on_signals(event):
    """Set *event* on SIGINT/SIGTERM while the block runs."""

    def handler(signum, frame):
        event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, handler)
        except ValueError:
            # Not the main thread; rely on the default handlers
            pass
    try:
        yield event
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def _print_stats(finder, state, elapsed):
    table = Table(title="Evaluation Statistics")
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right", style="green")

    for key, value in finder.stats.to_dict().items():
        table.add_row(key, str(value))
    for key, value in state.stats().items():
        table.add_row(key, str(value))
    table.add_row("elapsed", f"{elapsed:.2f}s")

    console.print(table)


@click.command()
@click.argument("release_expr", required=False)
@click.option("--gc-roots-dir", default="", help="Directory in which to register GC roots for job derivations")
@click.option("--dry-run", is_flag=True, help="Do not modify the store (no GC roots are registered)")
@click.option("--arg", "args", nargs=2, multiple=True, metavar="NAME JSON",
              help="Pass a JSON value to functions in the release tree. Can be given multiple times.")
@click.option("--argstr", "argstrs", nargs=2, multiple=True, metavar="NAME STRING",
              help="Pass a string to functions in the release tree. Can be given multiple times.")
@click.option("-I", "--include", "include", multiple=True, metavar="PATH",
              help="Add PATH (or PREFIX=PATH) to the search path for <...> lookups")
@click.option("--store", "store_uri", default="auto", help="Store to use: auto, local, dummy or a store directory")
@click.option("--flat", is_flag=True, help="Key the report by full attribute path instead of nesting it")
@click.option("--show-stats", is_flag=True, help="Print evaluation statistics to stderr")
@click.option("--verbose", "-v", is_flag=True, help="Trace every visited attribute path")
@click.version_option(package_name="hydra-eval-jobs")
def main(release_expr, gc_roots_dir, dry_run, args, argstrs, include, store_uri, flat, show_stats, verbose):
    """Find the jobs in RELEASE_EXPR and print them as JSON.

    RELEASE_EXPR is a Python file defining ``release``, a JSON release
    document, or ``<name>`` looked up in the search path.

    Example:
        hydra-eval-jobs release.py --gc-roots-dir /nix/var/nix/gcroots/hydra --argstr system x86_64-linux
    """
    # Keep evaluation independent of the caller's search path
    os.environ.pop("NIX_PATH", None)

    config = HydraConfig()
    initial_heap_size = config.get_str_option("evaluator_initial_heap_size", "")
    if initial_heap_size:
        os.environ["GC_INITIAL_HEAP_SIZE"] = initial_heap_size

    if not release_expr:
        raise click.UsageError("no expression specified")

    options = EvalOptions(
        gc_roots_dir=gc_roots_dir,
        dry_run=dry_run,
        auto_args=_parse_auto_args(args, argstrs),
        search_path=list(include),
        verbose=verbose,
    )

    try:
        store = open_store(store_uri)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--store")

    if not options.gc_roots_dir:
        console.print("[yellow]warning: `--gc-roots-dir' not specified[/yellow]")

    state = PythonEvaluator()
    registrar = RootRegistrar(
        store,
        options.gc_roots_dir,
        dry_run=options.dry_run,
        verbose=options.verbose,
        console=console,
    )
    finder = JobFinder(
        state,
        registrar=registrar,
        auto_args=options.auto_args,
        cancel_event=threading.Event(),
        verbose=options.verbose,
        console=console,
    )

    start = time.monotonic()
    try:
        with _cancel_on_signals(finder.cancel_event):
            path = lookup_file_arg(release_expr, options.search_path)
            root = load_release(path, store_dir=store.store_dir)
            report = finder.find_jobs(root)
        output = report.to_json(nested=not flat)
    except HydraEvalJobsError as e:
        console.print(f"[red]error:[/red] {escape(e.msg)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]error:[/red] {escape(str(e))}")
        if verbose:
            console.print(traceback.format_exc(), markup=False, highlight=False)
        sys.exit(1)

    click.echo(output)

    if show_stats:
        _print_stats(finder, state, time.monotonic() - start)


if __name__ == "__main__":
    main()
