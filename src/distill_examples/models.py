"""Data models for the distill_examples pipeline stage."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from retrieve_records.models import Attributes


class LabelSource(str, Enum):
    TEACHER_MODEL = "teacher_model"
    ORIGINAL_TITLE = "original_title"


@dataclass(frozen=True)
class Provenance:
    """Where an example came from and how its label was produced."""
    record_id: str
    publication_id: str
    published_at: Optional[date]
    label_source: LabelSource
    original_title: str
    teacher_model: Optional[str] = None
    teacher_model_error: Optional[str] = None
    attributes: Attributes = ()

    def to_metadata(self) -> dict[str, Any]:
        """Flatten to the dataset's metadata object.

        Record attributes come first; provenance keys override any clashes.
        """
        metadata: dict[str, Any] = dict(self.attributes)
        metadata.update({
            "articleId": self.record_id,
            "publication": self.publication_id,
            "publishedDate": self.published_at.isoformat() if self.published_at else None,
            "labelSource": self.label_source.value,
            "originalTitle": self.original_title,
        })
        if self.teacher_model:
            metadata["teacherModel"] = self.teacher_model
        if self.teacher_model_error:
            metadata["teacherModelError"] = self.teacher_model_error
        return metadata


@dataclass(frozen=True)
class TrainableExample:
    """One prompt/completion training pair."""
    input: str
    target: str
    provenance: Provenance

    def to_record(self) -> dict[str, Any]:
        return {
            "prompt": self.input,
            "completion": self.target,
            "metadata": self.provenance.to_metadata(),
        }
