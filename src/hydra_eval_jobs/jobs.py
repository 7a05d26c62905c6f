"""Extraction of job descriptors from derivations."""

from __future__ import annotations

from collections.abc import Iterable

from .evaluator import UNKNOWN_SYSTEM, DrvInfo, Evaluator
from .exceptions import EvalError
from .meta import query_meta_strings
from .models import (
    DEFAULT_MAX_SILENT,
    DEFAULT_SCHEDULING_PRIORITY,
    DEFAULT_TIMEOUT,
    JobDescriptor,
)


def extract_job(state: Evaluator, drv: DrvInfo) -> JobDescriptor:
    """
    Build the descriptor of a job.

    Args:
        state: Evaluator used for metadata forcing
        drv: Query handle of the job's derivation

    Returns:
        JobDescriptor without aggregate information

    Raises:
        EvalError: if the derivation has no usable ``system``, name,
            drvPath or outputs
    """
    system = drv.query_system()
    if system == UNKNOWN_SYSTEM:
        raise EvalError("derivation must have a ‘system’ attribute")

    outputs = drv.query_outputs()
    if not outputs:
        raise EvalError("derivation must have at least one output")

    return JobDescriptor(
        name=drv.query_name(),
        system=system,
        drv_path=drv.query_drv_path(),
        outputs=outputs,
        description=drv.query_meta_string("description"),
        license=query_meta_strings(state, drv, "license"),
        homepage=drv.query_meta_string("homepage"),
        maintainers=query_meta_strings(state, drv, "maintainers"),
        scheduling_priority=drv.query_meta_int("schedulingPriority", DEFAULT_SCHEDULING_PRIORITY),
        timeout=drv.query_meta_int("timeout", DEFAULT_TIMEOUT),
        max_silent=drv.query_meta_int("maxSilent", DEFAULT_MAX_SILENT),
        is_channel=drv.query_meta_bool("isHydraChannel", False),
    )


def is_aggregate(state: Evaluator, drv: DrvInfo) -> bool:
    """Check for ``_hydraAggregate = true``."""
    if not drv.has_attr("_hydraAggregate"):
        return False
    return state.force_bool(drv.attrs["_hydraAggregate"])


def constituents_from_context(context: Iterable[str]) -> list[str]:
    """Return the derivations referenced by ``!<output>!<drvPath>`` tags, sorted."""
    drvs: set[str] = set()
    for tag in context:
        if not tag.startswith("!"):
            continue
        index = tag.find("!", 1)
        if index == -1:
            continue
        drvs.add(tag[index + 1:])
    return sorted(drvs)


def resolve_constituents(state: Evaluator, drv: DrvInfo) -> list[str]:
    """
    Find the jobs an aggregate refers to.

    The ``constituents`` member is coerced to a string; every output it
    embeds leaves a context tag naming the derivation that builds it.
    """
    if not drv.has_attr("constituents"):
        raise EvalError("derivation must have a ‘constituents’ attribute")
    _, context = state.coerce_to_string(drv.attrs["constituents"])
    return constituents_from_context(context)
