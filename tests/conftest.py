"""Shared fixtures."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from common.config import PipelineConfig
from retrieve_records.models import RawRecord

BODY = (
    "The city council approved a new transport plan on Tuesday after months of "
    "debate, committing funds to bus lanes and cycle routes across the centre."
)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        look_back_days=30,
        run_id="run-test",
        min_example_count=100,
        bucket="training-bucket",
        region="eu-west-1",
        athena_database="default",
        athena_table="articles",
        athena_workgroup="primary",
        athena_output_location="s3://training-bucket/athena-results/",
        query_timeout_seconds=300,
        query_poll_interval_seconds=2,
        teacher_model_id="teacher-model",
        base_model_identifier="arn:aws:bedrock:eu-west-1::foundation-model/base",
        training_role_arn="arn:aws:iam::123456789012:role/bedrock",
        hyperparameters={"epochCount": "2"},
        stage="test",
    )


@pytest.fixture
def make_config(pipeline_config):
    def _make(**overrides) -> PipelineConfig:
        return replace(pipeline_config, **overrides)
    return _make


@pytest.fixture
def make_record():
    def _make(record_id: str = "a1", **overrides) -> RawRecord:
        fields = {
            "id": record_id,
            "title": f"Council approves transport plan {record_id}",
            "body": BODY,
            "publication_id": "daily-news",
            "published_at": date(2024, 3, 15),
        }
        fields.update(overrides)
        return RawRecord(**fields)
    return _make
