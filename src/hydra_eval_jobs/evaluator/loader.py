"""Locating and loading release expressions."""

from __future__ import annotations

import json
import runpy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..exceptions import EvalError, ReleaseNotFoundError
from .values import DEFAULT_STORE_DIR, Thunk, derivation, resolve_thunks, throw

DEFAULT_FILES = ("default.py", "default.json")


def find_in_search_path(name: str, search_path: list[str]) -> Path:
    """
    Resolve an angle-bracket path such as ``<nixpkgs/release.py>``.

    Search path entries are either ``prefix=/some/dir`` or a bare directory.
    The first entry under which the path exists wins.

    Args:
        name: Path between the angle brackets
        search_path: Entries in priority order

    Returns:
        Path to the file or directory found
    """
    for entry in search_path:
        prefix, sep, root = entry.partition("=")
        if not sep:
            prefix, root = "", entry

        if prefix:
            if name == prefix:
                rest = ""
            elif name.startswith(prefix + "/"):
                rest = name[len(prefix) + 1:]
            else:
                continue
        else:
            rest = name

        candidate = Path(root) / rest if rest else Path(root)
        if candidate.exists():
            return candidate

    raise ReleaseNotFoundError(f"file ‘{name}’ was not found in the search path")


def lookup_file_arg(arg: str, search_path: list[str] | None = None) -> Path:
    """Turn the release-expression argument into an existing file path."""
    if arg.startswith("<") and arg.endswith(">"):
        path = find_in_search_path(arg[1:-1], search_path or [])
    else:
        path = Path(arg).absolute()
        if not path.exists():
            raise ReleaseNotFoundError(f"path ‘{path}’ does not exist")

    if path.is_dir():
        for default in DEFAULT_FILES:
            if (path / default).is_file():
                return path / default
        raise ReleaseNotFoundError(f"directory ‘{path}’ has no {' or '.join(DEFAULT_FILES)}")
    return path


def load_release(path: str | Path, store_dir: str = DEFAULT_STORE_DIR) -> Any:
    """
    Load the root value of a release expression.

    ``.json`` files are parsed as JSON release documents; anything else is run
    as a Python script whose ``release`` global is the root.
    """
    path = Path(path)
    if path.suffix == ".json":
        return load_json_release(path.read_text(encoding="utf-8"), store_dir=store_dir)

    namespace = runpy.run_path(str(path), run_name="__release__")
    if "release" not in namespace:
        raise ReleaseNotFoundError(f"release file ‘{path}’ does not define ‘release’")
    return namespace["release"]


def load_json_release(text: str, store_dir: str = DEFAULT_STORE_DIR) -> Any:
    """
    Build a value tree from a JSON release document.

    Special objects:
        ``{"$ref": "a.b"}``  lazily refers to another attribute path
        ``{"$throw": "msg"}``  fails with *msg* when evaluated

    Objects with ``"type": "derivation"`` and no ``drvPath`` get store paths
    generated like :func:`derivation` does.
    """
    doc = json.loads(text)
    root: dict[str, Any] = {}

    def resolve(attr_path: str) -> Thunk:
        def _get() -> Any:
            value = root["value"]
            for part in attr_path.split(".") if attr_path else []:
                value = resolve_thunks(value)
                if not isinstance(value, Mapping) or part not in value:
                    raise EvalError(f"attribute ‘{part}’ missing (in reference to ‘{attr_path}’)")
                value = value[part]
            return value

        return Thunk(_get)

    def convert(node: Any) -> Any:
        if isinstance(node, list):
            return [convert(elem) for elem in node]
        if not isinstance(node, dict):
            return node

        if set(node) == {"$ref"}:
            return resolve(node["$ref"])
        if set(node) == {"$throw"}:
            return throw(node["$throw"])

        attrs = {name: convert(value) for name, value in node.items()}
        if attrs.get("type") == "derivation" and "drvPath" not in attrs:
            return _complete_derivation(attrs, store_dir)
        return attrs

    root["value"] = convert(doc)
    return root["value"]


def _complete_derivation(attrs: dict[str, Any], store_dir: str) -> dict[str, Any]:
    attrs = dict(attrs)
    attrs.pop("type")
    name = attrs.pop("name", None)
    if not isinstance(name, str):
        # Leave it to the job extractor to report the missing name
        return {"type": "derivation", **attrs}
    system = attrs.pop("system", None)
    outputs = attrs.pop("outputs", ["out"])
    meta = attrs.pop("meta", None)
    return derivation(name, system, outputs=outputs, meta=meta, store_dir=store_dir, **attrs)
