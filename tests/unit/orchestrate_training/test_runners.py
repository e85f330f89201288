"""Tests for orchestrate_training.runners module."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from common.errors import DataJobFailed, SubmissionRejected, ValidationFailed
from data_job.models import DataJobResult
from orchestrate_training.models import RunRecord
from orchestrate_training.runners import (
    DatasetSubmitter,
    InProcessDataJobRunner,
    SubprocessDataJobRunner,
    build_run_env,
)
from submit_training.models import JobHandle

OUTPUT = {
    "promptCount": 135,
    "datasetLocation": "s3://training-bucket/datasets/all/v1/training-data.jsonl",
    "datasetVersion": "v1",
    "processingTimestamp": 1704067200000,
    "trainingJobArn": "arn:job",
}


@pytest.fixture
def record() -> RunRecord:
    return RunRecord(
        run_id="run-1",
        look_back_days=30,
        publication_id="daily-news",
        min_example_count=100,
        created_at=1000.0,
    )


class TestBuildRunEnv:
    def test_carries_invocation_input(self, record) -> None:
        assert build_run_env(record) == {
            "LOOK_BACK_DAYS": "30",
            "PUBLICATION_ID": "daily-news",
            "TRAINING_RUN_ID": "run-1",
            "MIN_PROMPT_COUNT": "100",
        }


class TestSubprocessDataJobRunner:
    @patch("orchestrate_training.runners.subprocess.run")
    def test_parses_last_stdout_line(self, mock_run, record) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="noise\n" + json.dumps(OUTPUT) + "\n", stderr=""
        )
        runner = SubprocessDataJobRunner(command=["data-job"], base_env={"TRAINING_DATA_BUCKET": "b"})

        result = runner.run(record)

        assert result == DataJobResult.from_output(OUTPUT)
        env = mock_run.call_args.kwargs["env"]
        assert env["TRAINING_DATA_BUCKET"] == "b"
        assert env["LOOK_BACK_DAYS"] == "30"

    @patch("orchestrate_training.runners.subprocess.run")
    def test_nonzero_exit(self, mock_run, record) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="starting\nData job failed: bucket missing\n"
        )

        with pytest.raises(DataJobFailed, match="status 1: Data job failed: bucket missing"):
            SubprocessDataJobRunner(command=["data-job"], base_env={}).run(record)

    @patch("orchestrate_training.runners.subprocess.run")
    def test_unreadable_output(self, mock_run, record) -> None:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="done\n", stderr="")

        with pytest.raises(DataJobFailed, match="unreadable"):
            SubprocessDataJobRunner(command=["data-job"], base_env={}).run(record)

    @patch("orchestrate_training.runners.subprocess.run", side_effect=subprocess.TimeoutExpired(["data-job"], 60))
    def test_timeout(self, mock_run, record) -> None:
        with pytest.raises(DataJobFailed, match="timed out"):
            SubprocessDataJobRunner(command=["data-job"], base_env={}, timeout_seconds=60).run(record)


class TestInProcessDataJobRunner:
    @patch("orchestrate_training.runners.run_data_job")
    @patch("orchestrate_training.runners.load_pipeline_config")
    def test_runs_with_invocation_env(self, mock_config, mock_run, record) -> None:
        mock_run.return_value = DataJobResult.from_output(OUTPUT)

        result = InProcessDataJobRunner(base_env={"TRAINING_DATA_BUCKET": "b"}, submit=False).run(record)

        assert result.prompt_count == 135
        env = mock_config.call_args.args[0]
        assert env["TRAINING_RUN_ID"] == "run-1"
        assert mock_run.call_args.kwargs == {"submit": False}

    @patch("orchestrate_training.runners.run_data_job", side_effect=ValidationFailed("Insufficient records: 80 found, 100 required"))
    @patch("orchestrate_training.runners.load_pipeline_config")
    def test_pipeline_error_becomes_data_job_failed(self, mock_config, mock_run, record) -> None:
        with pytest.raises(DataJobFailed, match="Insufficient records"):
            InProcessDataJobRunner(base_env={}).run(record)

    @patch("orchestrate_training.runners.load_pipeline_config", side_effect=ValueError("TRAINING_DATA_BUCKET environment variable is required"))
    def test_bad_config(self, mock_config, record) -> None:
        with pytest.raises(DataJobFailed, match="TRAINING_DATA_BUCKET"):
            InProcessDataJobRunner(base_env={}).run(record)

    @patch("orchestrate_training.runners.run_data_job", side_effect=ValueError("Unknown teacher provider: bogus"))
    @patch("orchestrate_training.runners.load_pipeline_config")
    def test_value_error_becomes_data_job_failed(self, mock_config, mock_run, record) -> None:
        with pytest.raises(DataJobFailed, match="Unknown teacher provider: bogus"):
            InProcessDataJobRunner(base_env={}).run(record)


class TestDatasetSubmitter:
    @patch("orchestrate_training.runners.submit_training_job", return_value=JobHandle("arn:job"))
    @patch("orchestrate_training.runners.load_pipeline_config")
    def test_submits_recorded_dataset(self, mock_config, mock_submit, record) -> None:
        record.dataset_location = OUTPUT["datasetLocation"]
        record.prompt_count = 135
        client = MagicMock()

        handle = DatasetSubmitter(base_env={}, client=client)(record)

        descriptor = mock_submit.call_args.args[0]
        assert handle.job_id == "arn:job"
        assert descriptor.bucket == "training-bucket"
        assert descriptor.key == "datasets/all/v1/training-data.jsonl"
        assert mock_submit.call_args.args[2] is client

    @patch("orchestrate_training.runners.load_pipeline_config")
    def test_missing_dataset_is_rejected(self, mock_config, record) -> None:
        with pytest.raises(SubmissionRejected):
            DatasetSubmitter(base_env={})(record)
