"""Exception hierarchy shared by the data job and the orchestrator."""


class PipelineError(Exception):
    """Base class for failures that abort a run.

    ``reason`` carries the upstream failure text so it can be surfaced in logs
    and notifications unchanged.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class SourceUnavailable(PipelineError):
    """The analytical query could not be started or its results read."""


class SourceTimeout(PipelineError):
    """The analytical query did not finish within the wait ceiling."""


class SourceQueryFailed(PipelineError):
    """The query backend reported the query as failed or cancelled."""


class ValidationFailed(PipelineError):
    """Too few records or examples at one of the minimum-count checkpoints."""


class TeacherInvocationFailed(PipelineError):
    """A single teacher model call failed. Always absorbed by the batcher."""


class StorageUnavailable(PipelineError):
    """The dataset could not be persisted."""


class SubmissionRejected(PipelineError):
    """The training service declined the job (bad parameters, quota, access)."""


class SubmissionUnavailable(PipelineError):
    """The training service could not be reached."""


class PollingFailed(PipelineError):
    """A training status read failed. Treated as transient by the orchestrator."""


class WorkflowTimeout(PipelineError):
    """The overall wall-clock ceiling of a run was exceeded."""


class DataJobFailed(PipelineError):
    """The data job exited unsuccessfully."""


class InvalidInvocation(ValueError):
    """The orchestrator was started with malformed input."""


class InvalidTransition(RuntimeError):
    """An event arrived that the current workflow state does not accept."""
