"""Classification of release tree nodes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .evaluator import DrvInfo, Evaluator


class NodeKind(str, Enum):
    """What a forced value in the release tree stands for."""

    JOB = "job"
    GROUP = "group"
    EMPTY = "empty"
    UNSUPPORTED = "unsupported"


@dataclass
class Node:
    """A classified value; ``drv`` is set for jobs only."""

    kind: NodeKind
    value: Any
    drv: DrvInfo | None = None


def classify(state: Evaluator, value: Any) -> Node:
    """
    Classify a value of the release tree.

    Args:
        state: Evaluator used to force the value and probe derivations
        value: The (already auto-called) value

    Returns:
        A Node: a derivation is a JOB, any other attribute set a GROUP,
        null is EMPTY and everything else UNSUPPORTED
    """
    value = state.force(value)

    if value is None:
        return Node(NodeKind.EMPTY, value)

    if isinstance(value, Mapping):
        drv = state.get_derivation(value)
        if drv is not None:
            return Node(NodeKind.JOB, value, drv)
        return Node(NodeKind.GROUP, value)

    return Node(NodeKind.UNSUPPORTED, value)
