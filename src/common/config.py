"""Configuration loading for the data job and the orchestrator.

Process defaults live in ``configs/<CONFIG_ENV>.yaml``; environment variables
override them. The orchestrator hands invocation input to the data job through
the environment, so one loader serves both the container entry point and
in-process runs.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from common.serialization import serialize_dataclass

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


def find_config_path(
    config_name: str | None,
    config_dir: Path,
    default_name: str = "prod",
    env_var: str | None = None,
) -> Path:
    """Find config file path, checking env var and defaults.

    Args:
        config_name: Name of config (without .yaml) or None for default
        config_dir: Directory containing config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    config_path = config_dir / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


@dataclass(frozen=True)
class PipelineConfig:
    """Run parameters for one data job. Read-only for the run's duration."""

    look_back_days: int
    run_id: str
    min_example_count: int
    bucket: str
    region: str
    athena_database: str
    athena_table: str
    athena_workgroup: str
    athena_output_location: str
    publication_id: str | None = None
    query_timeout_seconds: float = 300.0
    query_poll_interval_seconds: float = 2.0
    teacher_provider: str = "bedrock"
    teacher_model_id: str = "anthropic.claude-3-5-sonnet-20241022-v2:0"
    teacher_concurrency: int = 5
    teacher_timeout_seconds: float | None = None
    distillation_enabled: bool = True
    base_model_identifier: str = ""
    training_role_arn: str = ""
    hyperparameters: dict[str, str] = field(default_factory=dict)
    stage: str = "dev"

    def redacted(self) -> dict[str, Any]:
        """Config as a dict suitable for logging."""
        data = serialize_dataclass(self)
        data["bucket"] = "[REDACTED]"
        data["training_role_arn"] = "[REDACTED]" if self.training_role_arn else ""
        return data


@dataclass(frozen=True)
class OrchestratorConfig:
    """Settings for the workflow host."""

    min_example_count: int
    wait_seconds: float = 300.0
    timeout_seconds: float = 4 * 60 * 60
    region: str = "eu-west-1"
    alert_topic_arn: str | None = None
    state_dir: str = "output/runs"


def _parse_int(value: Any, name: str, minimum: int = 0) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def _parse_float(value: Any, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be > 0, got {parsed}")
    return parsed


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _load_defaults(env: Mapping[str, str], config_dir: Path) -> dict:
    path = find_config_path(env.get("CONFIG_ENV"), config_dir)
    return load_yaml(path)


def load_pipeline_config(
    env: Mapping[str, str] | None = None,
    config_dir: Path = CONFIG_DIR,
) -> PipelineConfig:
    """Build the data job's config from YAML defaults and the environment.

    ``TRAINING_DATA_BUCKET`` is required. ``LOOK_BACK_DAYS`` falls back to
    ``DEFAULT_LOOK_BACK_DAYS`` and then to the YAML default; an empty
    ``PUBLICATION_ID`` means no publication filter.

    Raises:
        ValueError: If a required value is missing or a number is malformed.
    """
    env = os.environ if env is None else env
    defaults = _load_defaults(env, config_dir)
    athena = defaults.get("athena", {})
    teacher = defaults.get("teacher", {})
    training = defaults.get("training", {})
    query = defaults.get("query", {})

    bucket = env.get("TRAINING_DATA_BUCKET")
    if not bucket:
        raise ValueError("TRAINING_DATA_BUCKET environment variable is required")

    default_look_back = env.get("DEFAULT_LOOK_BACK_DAYS", defaults.get("look_back_days", 30))
    look_back_days = _parse_int(env.get("LOOK_BACK_DAYS") or default_look_back, "LOOK_BACK_DAYS")

    timeout = env.get("TEACHER_TIMEOUT_SECONDS", teacher.get("timeout_seconds"))

    return PipelineConfig(
        look_back_days=look_back_days,
        publication_id=env.get("PUBLICATION_ID") or None,
        run_id=env.get("TRAINING_RUN_ID") or f"run-{int(time.time() * 1000)}",
        min_example_count=_parse_int(
            env.get("MIN_PROMPT_COUNT", defaults.get("min_prompt_count", 100)), "MIN_PROMPT_COUNT"
        ),
        bucket=bucket,
        region=env.get("AWS_REGION", defaults.get("region", "eu-west-1")),
        athena_database=env.get("ATHENA_DATABASE", athena.get("database", "default")),
        athena_table=env.get("ATHENA_TABLE", athena.get("table", "articles")),
        athena_workgroup=env.get("ATHENA_WORKGROUP", athena.get("workgroup", "primary")),
        athena_output_location=env.get("ATHENA_OUTPUT_LOCATION") or f"s3://{bucket}/athena-results/",
        query_timeout_seconds=_parse_float(
            query.get("timeout_seconds", 300), "query.timeout_seconds"
        ),
        query_poll_interval_seconds=_parse_float(
            query.get("poll_interval_seconds", 2), "query.poll_interval_seconds"
        ),
        teacher_provider=env.get("TEACHER_PROVIDER", teacher.get("provider", "bedrock")),
        teacher_model_id=env.get(
            "TEACHER_MODEL_ID",
            teacher.get("model_id", "anthropic.claude-3-5-sonnet-20241022-v2:0"),
        ),
        teacher_concurrency=_parse_int(
            env.get("TEACHER_CONCURRENCY", teacher.get("concurrency", 5)), "TEACHER_CONCURRENCY", minimum=1
        ),
        teacher_timeout_seconds=_parse_float(timeout, "TEACHER_TIMEOUT_SECONDS") if timeout else None,
        distillation_enabled=_parse_bool(
            env.get("DISTILLATION_ENABLED", teacher.get("enabled", True))
        ),
        base_model_identifier=env.get("BEDROCK_BASE_MODEL_ARN", training.get("base_model_arn", "")),
        training_role_arn=env.get("BEDROCK_ROLE_ARN", training.get("role_arn", "")),
        hyperparameters={
            str(k): str(v) for k, v in (training.get("hyperparameters") or {}).items()
        },
        stage=env.get("STAGE", defaults.get("stage", "dev")),
    )


def load_orchestrator_config(
    env: Mapping[str, str] | None = None,
    config_dir: Path = CONFIG_DIR,
) -> OrchestratorConfig:
    """Build the workflow host's config from YAML defaults and the environment."""
    env = os.environ if env is None else env
    defaults = _load_defaults(env, config_dir)
    workflow = defaults.get("workflow", {})

    return OrchestratorConfig(
        min_example_count=_parse_int(
            env.get("MIN_PROMPT_COUNT", defaults.get("min_prompt_count", 100)), "MIN_PROMPT_COUNT"
        ),
        wait_seconds=_parse_float(
            env.get("TRAINING_POLL_SECONDS", workflow.get("wait_seconds", 300)), "TRAINING_POLL_SECONDS"
        ),
        timeout_seconds=_parse_float(
            env.get("WORKFLOW_TIMEOUT_SECONDS", workflow.get("timeout_seconds", 14400)),
            "WORKFLOW_TIMEOUT_SECONDS",
        ),
        region=env.get("AWS_REGION", defaults.get("region", "eu-west-1")),
        alert_topic_arn=env.get("ALERT_TOPIC_ARN") or None,
        state_dir=env.get("WORKFLOW_STATE_DIR", workflow.get("state_dir", "output/runs")),
    )
