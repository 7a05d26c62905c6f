"""Discover build jobs in a release specification for a build farm."""

__version__ = "0.1.0"

from .exceptions import EvalError, EvalTypeError, HydraEvalJobsError, Interrupted
from .models import ErrorRecord, JobDescriptor
from .report import Report
from .walker import JobFinder, find_jobs

__all__ = [
    "EvalError",
    "EvalTypeError",
    "ErrorRecord",
    "HydraEvalJobsError",
    "Interrupted",
    "JobDescriptor",
    "JobFinder",
    "Report",
    "find_jobs",
]
