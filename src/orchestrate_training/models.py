"""Data models for the training workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from common.serialization import serialize_dataclass
from submit_training.models import JobStatus


class WorkflowState(str, Enum):
    INIT = "INIT"
    RUN_DATA_JOB = "RUN_DATA_JOB"
    SUBMIT_TRAINING = "SUBMIT_TRAINING"
    WAIT = "WAIT"
    POLL_STATUS = "POLL_STATUS"
    NOTIFY_DATA_FAILURE = "NOTIFY_DATA_FAILURE"
    NOTIFY_TRAINING_FAILURE = "NOTIFY_TRAINING_FAILURE"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({WorkflowState.SUCCEEDED, WorkflowState.FAILED, WorkflowState.CANCELLED})

# States bounded by the overall wall-clock timeout
TIMED_STATES = frozenset({
    WorkflowState.RUN_DATA_JOB,
    WorkflowState.SUBMIT_TRAINING,
    WorkflowState.WAIT,
    WorkflowState.POLL_STATUS,
})


class EventType(str, Enum):
    START = "START"
    DATA_JOB_SUCCEEDED = "DATA_JOB_SUCCEEDED"
    DATA_JOB_FAILED = "DATA_JOB_FAILED"
    HANDLE_OBTAINED = "HANDLE_OBTAINED"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"
    WAIT_ELAPSED = "WAIT_ELAPSED"
    STATUS_REPORTED = "STATUS_REPORTED"
    POLL_FAILED = "POLL_FAILED"
    NOTIFIED = "NOTIFIED"
    TIMEOUT = "TIMEOUT"
    CANCEL = "CANCEL"


@dataclass(frozen=True)
class Event:
    type: EventType
    prompt_count: Optional[int] = None
    min_example_count: Optional[int] = None
    status: Optional[JobStatus] = None
    reason: Optional[str] = None


class ActionType(str, Enum):
    RUN_DATA_JOB = "RUN_DATA_JOB"
    OBTAIN_HANDLE = "OBTAIN_HANDLE"
    SCHEDULE_WAKEUP = "SCHEDULE_WAKEUP"
    POLL_STATUS = "POLL_STATUS"
    NOTIFY_DATA_FAILURE = "NOTIFY_DATA_FAILURE"
    NOTIFY_TRAINING_FAILURE = "NOTIFY_TRAINING_FAILURE"
    NONE = "NONE"


@dataclass(frozen=True)
class Action:
    type: ActionType
    reason: Optional[str] = None


NO_ACTION = Action(ActionType.NONE)


@dataclass(frozen=True)
class Transition:
    state: WorkflowState
    action: Action


@dataclass
class RunRecord:
    """Persisted state of one workflow run, also the run-status query result."""
    run_id: str
    look_back_days: int
    publication_id: Optional[str]
    min_example_count: int
    created_at: float
    state: WorkflowState = WorkflowState.INIT
    pending_action: ActionType = ActionType.NONE
    pending_reason: Optional[str] = None
    data_job_started_at: Optional[float] = None
    wake_at: Optional[float] = None
    updated_at: Optional[float] = None
    prompt_count: Optional[int] = None
    dataset_location: Optional[str] = None
    dataset_version: Optional[str] = None
    training_job_id: Optional[str] = None
    training_status: Optional[JobStatus] = None
    failure_reason: Optional[str] = None
    poll_count: int = 0
    cancel_requested: bool = False
    history: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return serialize_dataclass(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunRecord:
        training_status = data.get("training_status")
        return cls(
            run_id=data["run_id"],
            look_back_days=data["look_back_days"],
            publication_id=data.get("publication_id"),
            min_example_count=data["min_example_count"],
            created_at=data["created_at"],
            state=WorkflowState(data["state"]),
            pending_action=ActionType(data.get("pending_action", ActionType.NONE.value)),
            pending_reason=data.get("pending_reason"),
            data_job_started_at=data.get("data_job_started_at"),
            wake_at=data.get("wake_at"),
            updated_at=data.get("updated_at"),
            prompt_count=data.get("prompt_count"),
            dataset_location=data.get("dataset_location"),
            dataset_version=data.get("dataset_version"),
            training_job_id=data.get("training_job_id"),
            training_status=JobStatus(training_status) if training_status else None,
            failure_reason=data.get("failure_reason"),
            poll_count=data.get("poll_count", 0),
            cancel_requested=data.get("cancel_requested", False),
            history=[dict(entry) for entry in data.get("history", [])],
        )
