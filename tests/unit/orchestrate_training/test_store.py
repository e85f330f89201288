"""Tests for orchestrate_training.store module."""

import json

import pytest

from orchestrate_training.models import ActionType, RunRecord, WorkflowState
from orchestrate_training.store import InMemoryRunStore, JsonFileRunStore
from submit_training.models import JobStatus


def _record() -> RunRecord:
    return RunRecord(
        run_id="run-1",
        look_back_days=30,
        publication_id=None,
        min_example_count=100,
        created_at=1000.0,
        state=WorkflowState.WAIT,
        pending_action=ActionType.SCHEDULE_WAKEUP,
        training_job_id="arn:job",
        training_status=JobStatus.IN_PROGRESS,
        history=[{"from": "SUBMIT_TRAINING", "event": "HANDLE_OBTAINED", "to": "WAIT", "at": 1000.0}],
    )


class TestInMemoryRunStore:
    def test_save_and_get(self) -> None:
        store = InMemoryRunStore()
        store.save(_record())

        assert store.get("run-1") == _record()

    def test_stored_copy_is_isolated(self) -> None:
        store = InMemoryRunStore()
        record = _record()
        store.save(record)

        record.state = WorkflowState.FAILED
        record.history.append({"to": "FAILED"})

        stored = store.get("run-1")
        assert stored.state is WorkflowState.WAIT
        assert len(stored.history) == 1

    def test_unknown_run(self) -> None:
        with pytest.raises(KeyError):
            InMemoryRunStore().get("missing")


class TestJsonFileRunStore:
    def test_round_trip_through_file(self, tmp_path) -> None:
        store = JsonFileRunStore(str(tmp_path / "runs"))
        store.save(_record())

        data = json.loads((tmp_path / "runs" / "run-1.json").read_text())
        assert data["state"] == "WAIT"
        assert data["training_status"] == "IN_PROGRESS"
        assert JsonFileRunStore(str(tmp_path / "runs")).get("run-1") == _record()

    def test_no_temp_file_left_behind(self, tmp_path) -> None:
        store = JsonFileRunStore(str(tmp_path))
        store.save(_record())

        assert [p.name for p in tmp_path.iterdir()] == ["run-1.json"]

    def test_unknown_run(self, tmp_path) -> None:
        with pytest.raises(KeyError):
            JsonFileRunStore(str(tmp_path)).get("missing")
