"""Data models for the data job."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from common.datetime import epoch_millis


@dataclass(frozen=True)
class DataJobResult:
    """What the data job reports on success."""
    prompt_count: int
    dataset_location: str
    dataset_version: str
    processing_timestamp: int
    training_job_id: Optional[str] = None

    @classmethod
    def from_output(cls, data: Mapping[str, Any]) -> "DataJobResult":
        """Parse the JSON object the data job prints on stdout."""
        return cls(
            prompt_count=int(data["promptCount"]),
            dataset_location=str(data["datasetLocation"]),
            dataset_version=str(data["datasetVersion"]),
            processing_timestamp=int(data["processingTimestamp"]),
            training_job_id=data.get("trainingJobArn"),
        )

    def to_output(self) -> dict[str, Any]:
        return {
            "promptCount": self.prompt_count,
            "datasetLocation": self.dataset_location,
            "datasetVersion": self.dataset_version,
            "processingTimestamp": self.processing_timestamp,
            "trainingJobArn": self.training_job_id,
        }


def processing_timestamp(completed_at: datetime) -> int:
    return epoch_millis(completed_at)
