"""Abstract evaluator interface and the derivation query helper."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any

from ..exceptions import EvalError
from .values import is_function, type_name

UNKNOWN_SYSTEM = "unknown"


class Evaluator(ABC):
    """Abstract base class for lazy-value evaluators.

    Subclasses provide forcing, auto-calling and string coercion; the typed
    ``force_*`` helpers and the derivation queries are built on top of those.
    """

    @abstractmethod
    def force(self, value: Any) -> Any:
        """Evaluate *value* to weak head normal form."""
        pass

    @abstractmethod
    def auto_call(self, value: Any, auto_args: Mapping[str, Any]) -> Any:
        """
        Force *value* and, if it is a function, call it with *auto_args*.

        Args:
            value: Possibly lazy value
            auto_args: Bindings offered to function parameters by name

        Returns:
            The forced result
        """
        pass

    @abstractmethod
    def coerce_to_string(
        self, value: Any, coerce_more: bool = True
    ) -> tuple[str, frozenset[str]]:
        """
        Coerce *value* to a string, collecting the context of every store
        path embedded in it.

        Args:
            value: Possibly lazy value
            coerce_more: Also accept null, Booleans, numbers and lists

        Returns:
            (string, context tags)
        """
        pass

    def stats(self) -> dict[str, int]:
        """Evaluation counters, if the evaluator keeps any."""
        return {}

    # -- typed accessors ---------------------------------------------------

    def _expect(self, value: Any, kinds: tuple[type, ...], expected: str) -> Any:
        value = self.force(value)
        if not isinstance(value, kinds) or (bool not in kinds and isinstance(value, bool)):
            raise EvalError(f"value is {type_name(value)} while {expected} was expected")
        return value

    def force_attrs(self, value: Any) -> Mapping[str, Any]:
        return self._expect(value, (Mapping,), "a set")

    def force_list(self, value: Any) -> list[Any]:
        return list(self._expect(value, (list, tuple), "a list"))

    def force_string(self, value: Any) -> str:
        return str(self._expect(value, (str,), "a string"))

    def force_bool(self, value: Any) -> bool:
        return self._expect(value, (bool,), "a Boolean")

    def force_int(self, value: Any) -> int:
        return self._expect(value, (int,), "an integer")

    def attrs(self, value: Any) -> Iterator[tuple[str, Any]]:
        """Iterate the members of an attribute set in its natural order."""
        yield from self.force_attrs(value).items()

    # -- derivations -------------------------------------------------------

    def is_derivation(self, value: Any) -> bool:
        """Check whether *value* is an attribute set with ``type = "derivation"``."""
        value = self.force(value)
        if not isinstance(value, Mapping) or "type" not in value:
            return False
        kind = self.force(value["type"])
        return isinstance(kind, str) and kind == "derivation"

    def get_derivation(self, value: Any) -> DrvInfo | None:
        """Return a query handle for *value* if it is a derivation."""
        value = self.force(value)
        if not self.is_derivation(value):
            return None
        return DrvInfo(self, value)


class DrvInfo:
    """Queries the job-relevant members of a derivation attribute set."""

    def __init__(self, state: Evaluator, attrs: Mapping[str, Any]):
        self.state = state
        self.attrs = attrs
        self._meta: Mapping[str, Any] | None = None

    def has_attr(self, name: str) -> bool:
        return name in self.attrs

    def query_name(self) -> str:
        if "name" not in self.attrs:
            raise EvalError("derivation name missing")
        return self.state.force_string(self.attrs["name"])

    def query_system(self) -> str:
        """Return the ``system`` member, or "unknown" if it is absent or not a string."""
        if "system" not in self.attrs:
            return UNKNOWN_SYSTEM
        system = self.state.force(self.attrs["system"])
        if not isinstance(system, str):
            return UNKNOWN_SYSTEM
        return str(system)

    def query_outputs(self) -> dict[str, str]:
        """Map each output name to its output path, in declaration order."""
        if "outputs" not in self.attrs:
            if "outPath" not in self.attrs:
                return {}
            path, _ = self.state.coerce_to_string(self.attrs["outPath"], coerce_more=False)
            return {"out": path}

        outputs: dict[str, str] = {}
        for elem in self.state.force_list(self.attrs["outputs"]):
            name = self.state.force_string(elem)
            if name not in self.attrs:
                continue
            output = self.state.force_attrs(self.attrs[name])
            if "outPath" not in output:
                continue
            path, _ = self.state.coerce_to_string(output["outPath"], coerce_more=False)
            outputs[name] = path
        return outputs

    def query_drv_path(self) -> str:
        """
        Return the store path of the build recipe.

        Uses the ``drvPath`` member, falling back to the derivation named by
        the first output's ``!<output>!<drvPath>`` context tag.
        """
        if "drvPath" in self.attrs:
            path, _ = self.state.coerce_to_string(self.attrs["drvPath"], coerce_more=False)
            return path

        if "outPath" in self.attrs:
            _, context = self.state.coerce_to_string(self.attrs["outPath"], coerce_more=False)
            for tag in sorted(context):
                if tag.startswith("!"):
                    return tag[tag.index("!", 1) + 1:]

        raise EvalError("derivation must have a ‘drvPath’ attribute")

    def _get_meta(self) -> Mapping[str, Any]:
        if self._meta is None:
            if "meta" in self.attrs:
                self._meta = self.state.force_attrs(self.attrs["meta"])
            else:
                self._meta = {}
        return self._meta

    def query_meta(self, name: str) -> Any:
        """Return the forced meta attribute *name*, or None if absent."""
        meta = self._get_meta()
        if name not in meta:
            return None
        value = self.state.force(meta[name])
        if is_function(value):
            return None
        return value

    def query_meta_string(self, name: str) -> str:
        value = self.query_meta(name)
        return str(value) if isinstance(value, str) else ""

    def query_meta_int(self, name: str, default: int) -> int:
        value = self.query_meta(name)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            # Meta values sometimes come in as strings
            try:
                return int(value)
            except ValueError:
                return default
        return default

    def query_meta_bool(self, name: str, default: bool) -> bool:
        value = self.query_meta(name)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            if value == "true":
                return True
            if value == "false":
                return False
        return default
