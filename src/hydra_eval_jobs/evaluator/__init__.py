"""Lazy value evaluation for release trees."""

from .base import UNKNOWN_SYSTEM, DrvInfo, Evaluator
from .loader import load_json_release, load_release, lookup_file_arg
from .python import PythonEvaluator
from .values import (
    DEFAULT_STORE_DIR,
    StringWithContext,
    Thunk,
    aggregate,
    derivation,
    lazy,
    throw,
)

__all__ = [
    "DEFAULT_STORE_DIR",
    "UNKNOWN_SYSTEM",
    "DrvInfo",
    "Evaluator",
    "PythonEvaluator",
    "StringWithContext",
    "Thunk",
    "aggregate",
    "derivation",
    "lazy",
    "load_json_release",
    "load_release",
    "lookup_file_arg",
    "throw",
]
