"""Collaborators that run the data job and submit training for a workflow run."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from typing import Any, Mapping, Optional, Protocol

from common.config import load_pipeline_config
from common.datetime import utc_now
from common.errors import DataJobFailed, PipelineError, SubmissionRejected
from data_job.data_job import run_data_job
from data_job.models import DataJobResult
from orchestrate_training.models import RunRecord
from submit_training.models import JobHandle
from submit_training.submit_training import submit_training_job
from write_dataset.models import DatasetDescriptor

logger = logging.getLogger(__name__)

DATA_JOB_MODULE = "data_job.cli"


def build_run_env(record: RunRecord) -> dict[str, str]:
    """Environment overrides carrying a run's invocation input to the data job."""
    return {
        "LOOK_BACK_DAYS": str(record.look_back_days),
        "PUBLICATION_ID": record.publication_id or "",
        "TRAINING_RUN_ID": record.run_id,
        "MIN_PROMPT_COUNT": str(record.min_example_count),
    }


class DataJobRunner(Protocol):
    def run(self, record: RunRecord) -> DataJobResult:
        """Run the data job for ``record``. Raises DataJobFailed on failure."""
        ...


def _last_line(text: str) -> str:
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


class SubprocessDataJobRunner:
    """Runs the data job as a separate process and reads its stdout result."""

    def __init__(
        self,
        command: Optional[list[str]] = None,
        base_env: Optional[Mapping[str, str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.command = command or [sys.executable, "-m", DATA_JOB_MODULE]
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.timeout_seconds = timeout_seconds

    def run(self, record: RunRecord) -> DataJobResult:
        env = {**self.base_env, **build_run_env(record)}
        logger.info("Launching data job for run %s: %s", record.run_id, " ".join(self.command))
        try:
            completed = subprocess.run(
                self.command,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise DataJobFailed(f"Data job timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise DataJobFailed(f"Data job could not be started: {exc}") from exc

        if completed.stderr:
            sys.stderr.write(completed.stderr)

        if completed.returncode != 0:
            detail = _last_line(completed.stderr) or "no error output"
            raise DataJobFailed(f"Data job exited with status {completed.returncode}: {detail}")

        try:
            return DataJobResult.from_output(json.loads(_last_line(completed.stdout)))
        except (ValueError, KeyError, TypeError) as exc:
            raise DataJobFailed(f"Data job returned an unreadable result: {exc}") from exc


class InProcessDataJobRunner:
    """Runs the data job in the host process."""

    def __init__(self, base_env: Optional[Mapping[str, str]] = None, **run_kwargs: Any) -> None:
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.run_kwargs = run_kwargs

    def run(self, record: RunRecord) -> DataJobResult:
        try:
            config = load_pipeline_config({**self.base_env, **build_run_env(record)})
        except (ValueError, FileNotFoundError) as exc:
            raise DataJobFailed(f"Invalid data job configuration: {exc}") from exc

        try:
            return run_data_job(config, **self.run_kwargs)
        except PipelineError as exc:
            raise DataJobFailed(exc.reason) from exc
        except ValueError as exc:
            raise DataJobFailed(f"Invalid data job configuration: {exc}") from exc


def _split_s3_uri(uri: str) -> tuple[str, str]:
    if not uri.startswith("s3://") or "/" not in uri[5:]:
        raise ValueError(f"Not an S3 object URI: {uri}")
    bucket, key = uri[5:].split("/", 1)
    return bucket, key


class DatasetSubmitter:
    """Submits the run's written dataset when the data job did not."""

    def __init__(self, base_env: Optional[Mapping[str, str]] = None, client: Any = None) -> None:
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.client = client

    def __call__(self, record: RunRecord) -> JobHandle:
        try:
            config = load_pipeline_config({**self.base_env, **build_run_env(record)})
            bucket, key = _split_s3_uri(record.dataset_location or "")
        except (ValueError, FileNotFoundError) as exc:
            raise SubmissionRejected(f"Cannot submit dataset for run {record.run_id}: {exc}") from exc

        descriptor = DatasetDescriptor(
            example_count=record.prompt_count or 0,
            bucket=bucket,
            key=key,
            location=record.dataset_location,
            version=record.dataset_version or "",
            completed_at=utc_now(),
        )
        return submit_training_job(descriptor, config, self.client)
