"""Flattening of license and maintainer metadata."""

from collections.abc import Mapping
from typing import Any

from .evaluator import DrvInfo, Evaluator


def flatten_meta(state: Evaluator, value: Any) -> list[str]:
    """
    Collect the display strings of a metadata value.

    Strings contribute themselves, lists their flattened elements in order,
    and attribute sets their ``shortName`` if they have one. Anything else
    contributes nothing.
    """
    result: list[str] = []

    def rec(v: Any) -> None:
        v = state.force(v)
        if isinstance(v, str):
            result.append(str(v))
        elif isinstance(v, (list, tuple)):
            for elem in v:
                rec(elem)
        elif isinstance(v, Mapping):
            if "shortName" in v:
                result.append(state.force_string(v["shortName"]))

    rec(value)
    return result


def query_meta_strings(state: Evaluator, drv: DrvInfo, name: str) -> str:
    """Return meta attribute *name* flattened to a comma-separated string."""
    value = drv.query_meta(name)
    if value is None:
        return ""
    return ", ".join(flatten_meta(state, value))
