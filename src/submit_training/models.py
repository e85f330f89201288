"""Data models for the submit_training pipeline stage."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    STOPPED = "STOPPED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.STOPPED)


@dataclass(frozen=True)
class JobHandle:
    """Reference to an externally managed training job."""
    job_id: str
    status: JobStatus = JobStatus.SUBMITTED


@dataclass(frozen=True)
class StatusReport:
    """Result of one status read."""
    status: JobStatus
    failure_reason: Optional[str] = None
