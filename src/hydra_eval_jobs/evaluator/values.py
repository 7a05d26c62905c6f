"""Value model for release trees.

A release tree is made of plain Python data:

- ``None`` is null
- ``dict`` (any ``Mapping``) is an attribute set, iterated in insertion order
- ``list``/``tuple`` is a list
- ``str``, ``bool``, ``int`` and ``float`` are scalars
- :class:`StringWithContext` is a string that remembers which store paths it
  refers to
- :class:`Thunk` is a deferred value, computed at most once
- any other callable is a function, auto-called with the evaluation arguments

The helpers at the bottom build derivation attribute sets shaped the way the
job extractor expects them.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..exceptions import EvalError

DEFAULT_STORE_DIR = "/nix/store"

# Nix's base-32 alphabet (no e, o, u, t)
BASE32_CHARS = "0123456789abcdfghijklmnpqrsvwxyz"


class StringWithContext(str):
    """A string carrying the context tags of the store paths it embeds.

    Tags are ``"<path>"`` for a plain store path, ``"=<drvPath>"`` for a
    derivation and all its outputs, and ``"!<output>!<drvPath>"`` for a single
    output of a derivation.
    """

    def __new__(cls, value: str, context: Iterable[str] = ()):
        obj = super().__new__(cls, value)
        obj.context = frozenset(context)
        return obj

    def __repr__(self) -> str:
        return f"StringWithContext({str.__repr__(self)}, {sorted(self.context)!r})"


class Thunk:
    """A deferred computation that is evaluated at most once."""

    __slots__ = ("_fn", "_value", "_forced", "_forcing")

    def __init__(self, fn: Callable[[], Any]):
        self._fn = fn
        self._value: Any = None
        self._forced = False
        self._forcing = False

    @property
    def forced(self) -> bool:
        return self._forced

    def force(self) -> Any:
        """Compute the value if needed and return it (may itself be a thunk)."""
        if not self._forced:
            if self._forcing:
                raise EvalError("infinite recursion encountered")
            self._forcing = True
            try:
                value = self._fn()
            finally:
                self._forcing = False
            self._value = value
            self._forced = True
            self._fn = None
        return self._value

    def __repr__(self) -> str:
        if self._forced:
            return f"Thunk(forced={self._value!r})"
        return "Thunk(<pending>)"


def resolve_thunks(value: Any) -> Any:
    """Force a chain of thunks down to a plain value."""
    seen: set[int] = set()
    while isinstance(value, Thunk):
        if id(value) in seen:
            raise EvalError("infinite recursion encountered")
        seen.add(id(value))
        value = value.force()
    return value


def is_function(value: Any) -> bool:
    """Check whether a forced value is a function."""
    return callable(value) and not isinstance(value, Thunk)


def type_name(value: Any) -> str:
    """Describe the type of a forced value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "a Boolean"
    if isinstance(value, int):
        return "an integer"
    if isinstance(value, float):
        return "a float"
    if isinstance(value, str):
        return "a string"
    if isinstance(value, Mapping):
        return "a set"
    if isinstance(value, (list, tuple)):
        return "a list"
    if isinstance(value, Thunk):
        return "a thunk"
    if callable(value):
        return "a function"
    return f"a foreign value ({type(value).__name__})"


def show_value(value: Any) -> str:
    """Render a forced value the way it appears in error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(str(value), ensure_ascii=False)
    if isinstance(value, Mapping):
        return "{ ... }" if value else "{ }"
    if isinstance(value, (list, tuple)):
        return "[ ... ]" if value else "[ ]"
    if isinstance(value, Thunk):
        return "<CODE>"
    if callable(value):
        return "<LAMBDA>"
    return f"<{type(value).__name__}>"


# ---------------------------------------------------------------------------
# Store paths
# ---------------------------------------------------------------------------

def nix_base32(data: bytes) -> str:
    """Encode bytes with Nix's base-32 variant (little-endian bit order)."""
    if not data:
        return ""
    length = (len(data) * 8 - 1) // 5 + 1
    chars = []
    for n in range(length - 1, -1, -1):
        b = n * 5
        i, j = divmod(b, 8)
        c = data[i] >> j
        if i + 1 < len(data):
            c |= data[i + 1] << (8 - j)
        chars.append(BASE32_CHARS[c & 0x1F])
    return "".join(chars)


def compress_hash(digest: bytes, size: int = 20) -> bytes:
    """XOR-fold a digest down to *size* bytes."""
    out = bytearray(size)
    for i, byte in enumerate(digest):
        out[i % size] ^= byte
    return bytes(out)


def make_store_path(
    kind: str,
    fingerprint: str,
    name: str,
    store_dir: str = DEFAULT_STORE_DIR,
) -> str:
    """Build a deterministic store path ``<store_dir>/<hash>-<name>``."""
    digest = hashlib.sha256(f"{kind}:{fingerprint}:{store_dir}:{name}".encode()).digest()
    return f"{store_dir}/{nix_base32(compress_hash(digest))}-{name}"


def _fingerprint(name: str, system: str | None, outputs: list[str], attrs: Mapping[str, Any]) -> str:
    # Only scalar attributes take part; lazy ones cannot be forced here.
    scalars = {
        k: v for k, v in attrs.items()
        if isinstance(v, (str, int, float, bool)) or v is None
    }
    return json.dumps(
        {"name": name, "system": system, "outputs": outputs, "attrs": scalars},
        sort_keys=True,
    )


# ---------------------------------------------------------------------------
# Release-file helpers
# ---------------------------------------------------------------------------

def derivation(
    name: str,
    system: str | None,
    outputs: Iterable[str] = ("out",),
    meta: Mapping[str, Any] | None = None,
    store_dir: str = DEFAULT_STORE_DIR,
    **attrs: Any,
) -> dict[str, Any]:
    """Build a derivation attribute set.

    The result carries ``type = "derivation"``, a ``drvPath`` with an
    ``=<drvPath>`` context tag, an ``outPath`` for the first output and one
    attribute per output whose ``outPath`` has a ``!<output>!<drvPath>`` tag.

    Args:
        name: Package name
        system: Platform the job builds on, e.g. "x86_64-linux"; None omits it
        outputs: Output names; the first one is the default output
        meta: Optional meta attributes (description, license, ...)
        store_dir: Store directory used for the generated paths
        **attrs: Extra attributes, e.g. ``_hydraAggregate`` or ``constituents``

    Returns:
        The derivation as an attribute set
    """
    outputs = list(outputs)
    if not outputs:
        raise ValueError("a derivation needs at least one output")

    fingerprint = _fingerprint(name, system, outputs, attrs)
    drv_path = make_store_path("drv", fingerprint, f"{name}.drv", store_dir)

    base: dict[str, Any] = {
        "type": "derivation",
        "name": name,
        **({"system": system} if system is not None else {}),
        **attrs,
        "drvPath": StringWithContext(drv_path, {f"={drv_path}"}),
        "outputs": outputs,
    }
    if meta is not None:
        base["meta"] = meta

    per_output: dict[str, dict[str, Any]] = {}
    for output in outputs:
        suffix = name if output == "out" else f"{name}-{output}"
        out_path = make_store_path(f"output:{output}", drv_path, suffix, store_dir)
        per_output[output] = {
            **base,
            "outputName": output,
            "outPath": StringWithContext(out_path, {f"!{output}!{drv_path}"}),
        }

    drv = dict(per_output[outputs[0]])
    drv.update(per_output)
    return drv


def aggregate(
    name: str,
    constituents: Any,
    system: str = "x86_64-linux",
    meta: Mapping[str, Any] | None = None,
    **attrs: Any,
) -> dict[str, Any]:
    """Build an aggregate job referencing *constituents* (usually a list of jobs)."""
    return derivation(
        name,
        system,
        meta=meta,
        _hydraAggregate=True,
        constituents=constituents,
        **attrs,
    )


def lazy(fn: Callable[[], Any]) -> Thunk:
    """Defer *fn* until the value is needed."""
    return Thunk(fn)


def throw(msg: str) -> Thunk:
    """A value that fails with *msg* when forced."""

    def _raise() -> Any:
        raise EvalError(msg)

    return Thunk(_raise)
