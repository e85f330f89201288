"""Data models for the write_dataset pipeline stage."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DatasetDescriptor:
    """Where and when a training dataset was written."""
    example_count: int
    bucket: str
    key: str
    location: str
    version: str
    completed_at: datetime
