"""Data job: builds and submits the training dataset for one run."""

import logging
from typing import Optional

from clean_records.clean_records import clean_records
from common.config import PipelineConfig
from common.errors import ValidationFailed
from common.local_io import save_jsonl_local
from data_job.models import DataJobResult, processing_timestamp
from distill_examples.distill_examples import distill_examples, label_with_titles
from distill_examples.teacher import Teacher, build_teacher
from retrieve_records.retrieve_records import fetch_records
from submit_training.submit_training import submit_training_job
from write_dataset.write_dataset import serialize_examples, write_dataset

logger = logging.getLogger(__name__)


def _require_minimum(count: int, minimum: int, what: str) -> None:
    if count < minimum:
        raise ValidationFailed(f"Insufficient {what}: {count} found, {minimum} required")


def run_data_job(
    config: PipelineConfig,
    teacher: Optional[Teacher] = None,
    submit: bool = True,
    load_local: bool = False,
) -> DataJobResult:
    """
    Run the data job end to end.

    Minimum counts are enforced after retrieval, after cleaning and after
    distillation, each before the next stage runs.

    Args:
        config: Run parameters
        teacher: Teacher client; built from config when None
        submit: Submit a training job once the dataset is written
        load_local: Also save the dataset under output/

    Returns:
        DataJobResult describing the written dataset and training job

    Raises:
        PipelineError: On any unrecoverable failure
    """
    logger.info("Step 1: Querying records (look back %d days)", config.look_back_days)
    raw_records = fetch_records(config)
    _require_minimum(len(raw_records), config.min_example_count, "records")

    logger.info("Step 2: Cleaning and validating records")
    cleaned = clean_records(raw_records).records
    _require_minimum(len(cleaned), config.min_example_count, "records after cleaning")

    if config.distillation_enabled:
        logger.info("Step 3: Generating teacher labels")
        examples = distill_examples(
            cleaned,
            teacher or build_teacher(config),
            concurrency=config.teacher_concurrency,
        )
    else:
        logger.info("Step 3: Distillation disabled, labelling with original titles")
        examples = label_with_titles(cleaned)
    _require_minimum(len(examples), config.min_example_count, "examples")

    logger.info("Step 4: Writing training dataset")
    descriptor = write_dataset(examples, config)

    if load_local:
        save_jsonl_local(serialize_examples(examples), descriptor.key)

    training_job_id = None
    if submit:
        logger.info("Step 5: Submitting training job")
        training_job_id = submit_training_job(descriptor, config).job_id
    else:
        logger.info("Step 5: Skipping training job submission")

    return DataJobResult(
        prompt_count=descriptor.example_count,
        dataset_location=descriptor.location,
        dataset_version=descriptor.version,
        processing_timestamp=processing_timestamp(descriptor.completed_at),
        training_job_id=training_job_id,
    )
