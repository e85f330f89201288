"""Submit datasets to the model customization service and read job status."""

import logging
import re
from datetime import datetime
from typing import Any, Optional, Union

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import get_bedrock_client
from common.config import PipelineConfig
from common.datetime import epoch_millis, utc_now
from common.errors import PollingFailed, SubmissionRejected, SubmissionUnavailable
from submit_training.models import JobHandle, JobStatus, StatusReport
from write_dataset.models import DatasetDescriptor

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 63
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9+.-]+")

REJECTED_ERROR_CODES = {
    "ValidationException",
    "ServiceQuotaExceededException",
    "AccessDeniedException",
    "ResourceNotFoundException",
    "ConflictException",
    "TooManyTagsException",
}

STATUS_MAP = {
    "InProgress": JobStatus.IN_PROGRESS,
    "Stopping": JobStatus.IN_PROGRESS,
    "Completed": JobStatus.COMPLETED,
    "Failed": JobStatus.FAILED,
    "Stopped": JobStatus.STOPPED,
}


def _bounded_name(prefix: str, suffix: str) -> str:
    """Join prefix and suffix, trimming the prefix so the unique suffix survives."""
    prefix = _INVALID_NAME_CHARS.sub("-", prefix).strip("-")
    suffix = _INVALID_NAME_CHARS.sub("-", suffix).strip("-")
    room = MAX_NAME_LENGTH - len(suffix) - 1
    return f"{prefix[:room].rstrip('-')}-{suffix}"


def build_job_name(config: PipelineConfig, submitted_at: datetime) -> str:
    return _bounded_name(
        f"training-{config.run_id}",
        f"{config.stage}-{epoch_millis(submitted_at)}",
    )


def build_model_name(config: PipelineConfig, submitted_at: datetime) -> str:
    return _bounded_name(
        f"custom-model-{config.publication_id or 'all'}-{config.run_id}",
        f"{config.stage}-{epoch_millis(submitted_at)}",
    )


def submit_training_job(
    descriptor: DatasetDescriptor,
    config: PipelineConfig,
    client: Any = None,
    *,
    now: Optional[datetime] = None,
) -> JobHandle:
    """
    Create a fine-tuning job for the written dataset.

    Raises:
        SubmissionRejected: If the service declines the request.
        SubmissionUnavailable: If the service cannot be reached.
    """
    client = client or get_bedrock_client(config.region)
    submitted_at = now or utc_now()
    job_name = build_job_name(config, submitted_at)

    logger.info("Creating model customization job %s for %s", job_name, descriptor.location)
    try:
        response = client.create_model_customization_job(
            jobName=job_name,
            customModelName=build_model_name(config, submitted_at),
            roleArn=config.training_role_arn,
            baseModelIdentifier=config.base_model_identifier,
            customizationType="FINE_TUNING",
            trainingDataConfig={"s3Uri": descriptor.location},
            outputDataConfig={"s3Uri": f"s3://{config.bucket}/bedrock-outputs/{config.run_id}/"},
            hyperParameters=dict(config.hyperparameters),
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "")
        if code in REJECTED_ERROR_CODES:
            raise SubmissionRejected(f"Training job rejected ({code}): {exc}") from exc
        raise SubmissionUnavailable(f"Training service error ({code}): {exc}") from exc
    except BotoCoreError as exc:
        raise SubmissionUnavailable(f"Training service unreachable: {exc}") from exc

    job_arn = response.get("jobArn")
    if not job_arn:
        raise SubmissionRejected("Training service returned no job ARN")

    logger.info("Training job created: %s", job_arn)
    return JobHandle(job_id=job_arn, status=JobStatus.SUBMITTED)


def get_job_status(handle: Union[JobHandle, str], client: Any = None, region: Optional[str] = None) -> StatusReport:
    """
    Read the current status of a training job. Safe to call repeatedly.

    Raises:
        PollingFailed: If the read fails or the status is not recognised.
    """
    job_id = handle.job_id if isinstance(handle, JobHandle) else handle
    client = client or get_bedrock_client(region)

    try:
        response = client.get_model_customization_job(jobIdentifier=job_id)
    except (BotoCoreError, ClientError) as exc:
        raise PollingFailed(f"Failed to read status of {job_id}: {exc}") from exc

    raw_status = response.get("status")
    status = STATUS_MAP.get(raw_status)
    if status is None:
        raise PollingFailed(f"Unrecognised status for {job_id}: {raw_status!r}")

    return StatusReport(status=status, failure_reason=response.get("failureMessage"))
