"""Tests for common.config module."""

from pathlib import Path

import pytest

from common.config import (
    find_config_path,
    load_orchestrator_config,
    load_pipeline_config,
    load_yaml,
)

DEFAULTS = """
region: eu-central-1
stage: test
look_back_days: 14
min_prompt_count: 25
athena:
  database: news
  table: raw_articles
  workgroup: analytics
query:
  timeout_seconds: 60
  poll_interval_seconds: 1
teacher:
  enabled: true
  provider: bedrock
  model_id: teacher-from-yaml
  concurrency: 3
training:
  base_model_arn: base-arn
  role_arn: role-arn
  hyperparameters:
    epochCount: 2
workflow:
  wait_seconds: 30
  timeout_seconds: 600
  state_dir: /tmp/runs
"""


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    (tmp_path / "prod.yaml").write_text(DEFAULTS)
    return tmp_path


class TestFindConfigPath:
    def test_finds_named_config(self, config_dir: Path) -> None:
        assert find_config_path("prod", config_dir) == config_dir / "prod.yaml"

    def test_missing_config_raises(self, config_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            find_config_path("staging", config_dir)

    def test_empty_yaml_loads_as_dict(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(path) == {}


class TestLoadPipelineConfig:
    def test_requires_bucket(self, config_dir: Path) -> None:
        with pytest.raises(ValueError, match="TRAINING_DATA_BUCKET"):
            load_pipeline_config({}, config_dir)

    def test_yaml_defaults(self, config_dir: Path) -> None:
        config = load_pipeline_config({"TRAINING_DATA_BUCKET": "bucket"}, config_dir)

        assert config.look_back_days == 14
        assert config.min_example_count == 25
        assert config.region == "eu-central-1"
        assert config.athena_table == "raw_articles"
        assert config.athena_output_location == "s3://bucket/athena-results/"
        assert config.teacher_model_id == "teacher-from-yaml"
        assert config.teacher_concurrency == 3
        assert config.teacher_timeout_seconds is None
        assert config.hyperparameters == {"epochCount": "2"}
        assert config.publication_id is None
        assert config.run_id.startswith("run-")

    def test_invocation_input_from_environment(self, config_dir: Path) -> None:
        env = {
            "TRAINING_DATA_BUCKET": "bucket",
            "LOOK_BACK_DAYS": "3",
            "PUBLICATION_ID": "daily-news",
            "TRAINING_RUN_ID": "run-42",
            "MIN_PROMPT_COUNT": "5",
        }
        config = load_pipeline_config(env, config_dir)

        assert config.look_back_days == 3
        assert config.publication_id == "daily-news"
        assert config.run_id == "run-42"
        assert config.min_example_count == 5

    def test_empty_publication_means_no_filter(self, config_dir: Path) -> None:
        env = {"TRAINING_DATA_BUCKET": "bucket", "PUBLICATION_ID": ""}
        assert load_pipeline_config(env, config_dir).publication_id is None

    def test_default_look_back_days_env(self, config_dir: Path) -> None:
        env = {"TRAINING_DATA_BUCKET": "bucket", "DEFAULT_LOOK_BACK_DAYS": "9"}
        assert load_pipeline_config(env, config_dir).look_back_days == 9

    def test_malformed_look_back_days(self, config_dir: Path) -> None:
        env = {"TRAINING_DATA_BUCKET": "bucket", "LOOK_BACK_DAYS": "week"}
        with pytest.raises(ValueError, match="LOOK_BACK_DAYS"):
            load_pipeline_config(env, config_dir)

    def test_distillation_toggle(self, config_dir: Path) -> None:
        env = {"TRAINING_DATA_BUCKET": "bucket", "DISTILLATION_ENABLED": "false"}
        assert load_pipeline_config(env, config_dir).distillation_enabled is False

    def test_teacher_concurrency_must_be_positive(self, config_dir: Path) -> None:
        env = {"TRAINING_DATA_BUCKET": "bucket", "TEACHER_CONCURRENCY": "0"}
        with pytest.raises(ValueError, match="TEACHER_CONCURRENCY"):
            load_pipeline_config(env, config_dir)

    def test_redacted_hides_bucket_and_role(self, config_dir: Path) -> None:
        config = load_pipeline_config({"TRAINING_DATA_BUCKET": "secret-bucket"}, config_dir)
        redacted = config.redacted()

        assert redacted["bucket"] == "[REDACTED]"
        assert redacted["training_role_arn"] == "[REDACTED]"
        assert redacted["athena_database"] == "news"


class TestLoadOrchestratorConfig:
    def test_yaml_defaults(self, config_dir: Path) -> None:
        config = load_orchestrator_config({}, config_dir)

        assert config.min_example_count == 25
        assert config.wait_seconds == 30
        assert config.timeout_seconds == 600
        assert config.state_dir == "/tmp/runs"
        assert config.alert_topic_arn is None

    def test_environment_overrides(self, config_dir: Path) -> None:
        env = {
            "TRAINING_POLL_SECONDS": "5",
            "WORKFLOW_TIMEOUT_SECONDS": "100",
            "ALERT_TOPIC_ARN": "arn:aws:sns:eu-west-1:1:alerts",
        }
        config = load_orchestrator_config(env, config_dir)

        assert config.wait_seconds == 5
        assert config.timeout_seconds == 100
        assert config.alert_topic_arn == "arn:aws:sns:eu-west-1:1:alerts"

    def test_wait_must_be_positive(self, config_dir: Path) -> None:
        with pytest.raises(ValueError, match="TRAINING_POLL_SECONDS"):
            load_orchestrator_config({"TRAINING_POLL_SECONDS": "0"}, config_dir)
