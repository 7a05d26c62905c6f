"""Exception hierarchy for job discovery."""


class HydraEvalJobsError(Exception):
    """Base class for all errors raised by hydra-eval-jobs."""

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class EvalError(HydraEvalJobsError):
    """Evaluation failure confined to a single attribute path.

    The walker records it as ``{"error": msg}`` for the path being explored
    and continues with the siblings.
    """


class EvalTypeError(HydraEvalJobsError):
    """A value of an unsupported kind was found in the job tree.

    Not a subclass of :class:`EvalError`: it aborts the whole run.
    """


class Interrupted(HydraEvalJobsError):
    """Raised when cancellation was requested while walking the tree."""

    def __init__(self, msg: str = "interrupted by the user"):
        super().__init__(msg)


class ReleaseNotFoundError(HydraEvalJobsError):
    """The release expression could not be located."""
