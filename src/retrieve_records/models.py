"""Data models for the retrieve_records pipeline stage."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

# Ordered (key, value) pairs decoded from the record's metadata column.
Attributes = tuple[tuple[str, Any], ...]


@dataclass(frozen=True)
class RawRecord:
    """One content item decoded from a query result row."""
    id: str
    title: str
    body: str
    publication_id: str
    published_at: Optional[date]
    attributes: Attributes = ()
