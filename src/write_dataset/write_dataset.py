"""Persist training examples as a versioned JSONL dataset."""

import logging
from datetime import datetime
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import build_s3_uri, get_s3_client, upload_jsonl_to_s3
from common.config import PipelineConfig
from common.datetime import epoch_millis, utc_now
from common.errors import StorageUnavailable
from distill_examples.models import TrainableExample
from write_dataset.models import DatasetDescriptor

logger = logging.getLogger(__name__)

DATASET_FILENAME = "training-data.jsonl"


def build_dataset_version(submitted_at: datetime, run_id: str) -> str:
    return f"{epoch_millis(submitted_at)}-{run_id}"


def build_dataset_key(publication_id: Optional[str], version: str) -> str:
    """Build the dataset key: datasets/<publication|all>/<version>/training-data.jsonl."""
    return f"datasets/{publication_id or 'all'}/{version}/{DATASET_FILENAME}"


def serialize_examples(examples: list[TrainableExample]) -> list[dict[str, Any]]:
    return [example.to_record() for example in examples]


def build_object_metadata(config: PipelineConfig, example_count: int) -> dict[str, str]:
    return {
        "training-run-id": config.run_id,
        "prompt-count": str(example_count),
        "publication-id": config.publication_id or "all",
        "look-back-days": str(config.look_back_days),
    }


def write_dataset(
    examples: list[TrainableExample],
    config: PipelineConfig,
    client: Any = None,
    *,
    now: Optional[datetime] = None,
) -> DatasetDescriptor:
    """
    Write all examples to the training data bucket in one put.

    The object only becomes visible at its key once the whole payload is
    stored, so a partial dataset is never readable.

    Raises:
        StorageUnavailable: If the upload fails.
    """
    submitted_at = now or utc_now()
    version = build_dataset_version(submitted_at, config.run_id)
    key = build_dataset_key(config.publication_id, version)

    try:
        upload_jsonl_to_s3(
            serialize_examples(examples),
            config.bucket,
            key,
            metadata=build_object_metadata(config, len(examples)),
            client=client or get_s3_client(config.region),
        )
    except (BotoCoreError, ClientError) as exc:
        raise StorageUnavailable(f"Failed to write dataset to {build_s3_uri(config.bucket, key)}: {exc}") from exc

    location = build_s3_uri(config.bucket, key)
    logger.info("Saved %d examples to %s", len(examples), location)

    return DatasetDescriptor(
        example_count=len(examples),
        bucket=config.bucket,
        key=key,
        location=location,
        version=version,
        completed_at=utc_now(),
    )
