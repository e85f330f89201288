"""Failure notifications."""

import json
import logging
from typing import Any, Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import get_sns_client
from common.errors import PipelineError

logger = logging.getLogger(__name__)

DATA_FAILURE_SUBJECT = "Training Pipeline Data Job Failure"
TRAINING_FAILURE_SUBJECT = "Bedrock Training Job Failure"


class NotificationFailed(PipelineError):
    """A notification could not be delivered."""


def build_data_failure_message(run_id: str, reason: str) -> dict[str, Any]:
    return {
        "default": f"Data job failed during training pipeline run {run_id}.",
        "error": reason,
        "runId": run_id,
    }


def build_training_failure_message(run_id: str, reason: str) -> dict[str, Any]:
    return {
        "default": f"Training job failed for training pipeline run {run_id}.",
        "reason": reason,
        "runId": run_id,
    }


class Notifier(Protocol):
    def notify_data_failure(self, run_id: str, reason: str) -> None: ...

    def notify_training_failure(self, run_id: str, reason: str) -> None: ...


class SnsNotifier:
    """Publishes failure messages to an SNS topic."""

    def __init__(self, topic_arn: str, client=None, region: Optional[str] = None) -> None:
        self.topic_arn = topic_arn
        self._client = client or get_sns_client(region)

    def _publish(self, subject: str, message: dict[str, Any]) -> None:
        try:
            self._client.publish(
                TopicArn=self.topic_arn,
                Subject=subject,
                Message=json.dumps(message),
            )
        except (BotoCoreError, ClientError) as exc:
            raise NotificationFailed(f"Failed to publish to {self.topic_arn}: {exc}") from exc
        logger.info("Published '%s' to %s", subject, self.topic_arn)

    def notify_data_failure(self, run_id: str, reason: str) -> None:
        self._publish(DATA_FAILURE_SUBJECT, build_data_failure_message(run_id, reason))

    def notify_training_failure(self, run_id: str, reason: str) -> None:
        self._publish(TRAINING_FAILURE_SUBJECT, build_training_failure_message(run_id, reason))


class LoggingNotifier:
    """Logs notifications and keeps them, for local runs without a topic."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def notify_data_failure(self, run_id: str, reason: str) -> None:
        message = build_data_failure_message(run_id, reason)
        self.sent.append((DATA_FAILURE_SUBJECT, message))
        logger.error("%s: %s", DATA_FAILURE_SUBJECT, json.dumps(message))

    def notify_training_failure(self, run_id: str, reason: str) -> None:
        message = build_training_failure_message(run_id, reason)
        self.sent.append((TRAINING_FAILURE_SUBJECT, message))
        logger.error("%s: %s", TRAINING_FAILURE_SUBJECT, json.dumps(message))
