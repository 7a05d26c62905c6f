"""Data models for discovered jobs and the evaluation report."""

from dataclasses import dataclass, field
from typing import Any, Union

DEFAULT_SCHEDULING_PRIORITY = 100
DEFAULT_TIMEOUT = 36000
DEFAULT_MAX_SILENT = 7200


@dataclass
class JobDescriptor:
    """Normalized description of a single buildable job."""

    name: str
    system: str
    drv_path: str
    outputs: dict[str, str] = field(default_factory=dict)
    description: str = ""
    license: str = ""  # flattened, e.g. "MIT, GPL-2.0"
    homepage: str = ""
    maintainers: str = ""  # flattened like license
    scheduling_priority: int = DEFAULT_SCHEDULING_PRIORITY
    timeout: int = DEFAULT_TIMEOUT  # seconds
    max_silent: int = DEFAULT_MAX_SILENT  # seconds without output
    is_channel: bool = False
    constituents: str | None = None  # only set for aggregate jobs

    @property
    def is_aggregate(self) -> bool:
        return self.constituents is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "nixName": self.name,
            "system": self.system,
            "drvPath": self.drv_path,
            "description": self.description,
            "license": self.license,
            "homepage": self.homepage,
            "maintainers": self.maintainers,
            "schedulingPriority": self.scheduling_priority,
            "timeout": self.timeout,
            "maxSilent": self.max_silent,
            "isChannel": self.is_channel,
        }
        if self.constituents is not None:
            result["constituents"] = self.constituents
        result["outputs"] = dict(self.outputs)
        return result


@dataclass
class ErrorRecord:
    """Evaluation error recorded in place of a job."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


ReportEntry = Union[JobDescriptor, ErrorRecord]


@dataclass
class WalkStats:
    """Counters collected during a single traversal."""

    nodes_visited: int = 0
    jobs: int = 0
    errors: int = 0
    gc_roots_registered: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "nodes_visited": self.nodes_visited,
            "jobs": self.jobs,
            "errors": self.errors,
            "gc_roots_registered": self.gc_roots_registered,
        }
