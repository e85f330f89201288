"""Run state persistence for the workflow host."""

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from orchestrate_training.models import RunRecord

logger = logging.getLogger(__name__)


class RunStore(Protocol):
    def get(self, run_id: str) -> RunRecord:
        """Return the stored run. Raises KeyError if unknown."""
        ...

    def save(self, record: RunRecord) -> None:
        ...


class InMemoryRunStore:
    """Keeps serialized copies so callers cannot mutate stored state."""

    def __init__(self) -> None:
        self._runs: dict[str, dict] = {}

    def get(self, run_id: str) -> RunRecord:
        return RunRecord.from_dict(self._runs[run_id])

    def save(self, record: RunRecord) -> None:
        self._runs[record.run_id] = record.to_dict()


class JsonFileRunStore:
    """One JSON document per run, replaced atomically on every save."""

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, run_id: str) -> Path:
        return self.directory / f"{run_id}.json"

    def get(self, run_id: str) -> RunRecord:
        path = self._path(run_id)
        if not path.exists():
            raise KeyError(run_id)
        with path.open(encoding="utf-8") as f:
            return RunRecord.from_dict(json.load(f))

    def save(self, record: RunRecord) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(record.run_id)
        tmp_path = path.with_suffix(".json.tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(record.to_dict(), f, indent=2)
        os.replace(tmp_path, path)
        logger.debug("Saved run %s to %s", record.run_id, path)
