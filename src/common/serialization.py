"""Serialization utilities."""

from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from typing import Any


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def serialize_dataclass(obj) -> dict:
    """Serialize a dataclass to dict, converting datetimes, dates and enums."""
    return {key: _serialize_value(value) for key, value in asdict(obj).items()}
