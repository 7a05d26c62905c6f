"""Evaluator over the plain-Python value model."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from ..exceptions import EvalError
from .base import Evaluator
from .values import StringWithContext, Thunk, is_function, type_name


class PythonEvaluator(Evaluator):
    """Forces thunks, auto-calls Python callables and coerces values to strings."""

    def __init__(self):
        self._stats = {
            "thunks_forced": 0,
            "function_calls": 0,
        }

    def force(self, value: Any) -> Any:
        seen: set[int] = set()
        while isinstance(value, Thunk):
            # A thunk that resolves back to itself never yields a value
            if id(value) in seen:
                raise EvalError("infinite recursion encountered")
            seen.add(id(value))
            if not value.forced:
                self._stats["thunks_forced"] += 1
            value = value.force()
        return value

    def auto_call(self, value: Any, auto_args: Mapping[str, Any]) -> Any:
        value = self.force(value)
        if not is_function(value):
            return value

        try:
            signature = inspect.signature(value)
        except (TypeError, ValueError):
            # No introspectable parameters: left as a plain function value
            return value

        kwargs: dict[str, Any] = {}
        takes_any = False
        for param in signature.parameters.values():
            if param.kind is inspect.Parameter.VAR_KEYWORD:
                takes_any = True
                continue
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                continue
            if param.kind is not inspect.Parameter.POSITIONAL_ONLY and param.name in auto_args:
                kwargs[param.name] = auto_args[param.name]
            elif param.default is inspect.Parameter.empty:
                raise EvalError(
                    "cannot evaluate a function that has an argument without a value "
                    f"(‘{param.name}’)"
                )

        if takes_any:
            for name, arg in auto_args.items():
                kwargs.setdefault(name, arg)

        self._stats["function_calls"] += 1
        return self.force(value(**kwargs))

    def coerce_to_string(
        self, value: Any, coerce_more: bool = True
    ) -> tuple[str, frozenset[str]]:
        context: set[str] = set()
        result = self._coerce(value, context, coerce_more)
        return result, frozenset(context)

    def _coerce(self, value: Any, context: set[str], coerce_more: bool) -> str:
        value = self.force(value)

        if isinstance(value, str):
            if isinstance(value, StringWithContext):
                context.update(value.context)
            return str(value)

        if isinstance(value, Mapping):
            if "__toString" in value:
                to_string = self.force(value["__toString"])
                if not is_function(to_string):
                    raise EvalError(f"value is {type_name(to_string)} while a function was expected")
                return self._coerce(to_string(value), context, coerce_more)
            if "outPath" in value:
                return self._coerce(value["outPath"], context, coerce_more)
            raise EvalError("cannot coerce a set to a string")

        if coerce_more:
            if isinstance(value, bool):
                return "1" if value else ""
            if value is None:
                return ""
            if isinstance(value, (int, float)):
                return str(value)
            if isinstance(value, (list, tuple)):
                parts: list[str] = []
                for n, elem in enumerate(value):
                    elem = self.force(elem)
                    parts.append(self._coerce(elem, context, coerce_more))
                    # Empty sub-lists do not add a separator
                    if n < len(value) - 1 and not (isinstance(elem, (list, tuple)) and not elem):
                        parts.append(" ")
                return "".join(parts)

        raise EvalError(f"cannot coerce {type_name(value)} to a string")

    def stats(self) -> dict[str, int]:
        return dict(self._stats)
