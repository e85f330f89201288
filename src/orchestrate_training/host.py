"""Host adapter that drives the workflow state machine.

The host persists each run after every transition, performs the action the
state machine asks for, and turns the outcome into the next event. Suspension
between polls uses the injected ``sleep``; a durable-execution service would
replace it with its native delay primitive.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from common.config import OrchestratorConfig
from common.errors import (
    DataJobFailed,
    InvalidInvocation,
    PollingFailed,
    SubmissionRejected,
    SubmissionUnavailable,
    WorkflowTimeout,
)
from orchestrate_training.models import (
    TIMED_STATES,
    ActionType,
    Event,
    EventType,
    RunRecord,
    WorkflowState,
)
from orchestrate_training.notify import NotificationFailed, Notifier
from orchestrate_training.runners import DataJobRunner
from orchestrate_training.state_machine import transition
from orchestrate_training.store import InMemoryRunStore, RunStore
from submit_training.models import JobHandle, StatusReport
from submit_training.submit_training import get_job_status

logger = logging.getLogger(__name__)


def parse_invocation(invocation: Mapping[str, Any]) -> tuple[int, Optional[str]]:
    """Validate ``{lookBackDays, publicationId}`` invocation input.

    Raises:
        InvalidInvocation: If lookBackDays is not an integer >= 0 or
            publicationId is neither absent nor a string.
    """
    look_back_days = invocation.get("lookBackDays")
    if isinstance(look_back_days, bool) or not isinstance(look_back_days, int) or look_back_days < 0:
        raise InvalidInvocation(f"lookBackDays must be an integer >= 0, got {look_back_days!r}")

    publication_id = invocation.get("publicationId")
    if publication_id is not None and not isinstance(publication_id, str):
        raise InvalidInvocation(f"publicationId must be a string, got {publication_id!r}")

    return look_back_days, publication_id or None


class WorkflowHost:
    """Runs training workflows one step at a time."""

    def __init__(
        self,
        config: OrchestratorConfig,
        data_job_runner: DataJobRunner,
        notifier: Notifier,
        store: Optional[RunStore] = None,
        status_reader: Optional[Callable[[str], StatusReport]] = None,
        submitter: Optional[Callable[[RunRecord], JobHandle]] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.data_job_runner = data_job_runner
        self.notifier = notifier
        self.store = store or InMemoryRunStore()
        self.status_reader = status_reader or (lambda job_id: get_job_status(job_id, region=config.region))
        self.submitter = submitter
        self._clock = clock
        self._sleep = sleep

    def start_run(self, invocation: Mapping[str, Any], run_id: Optional[str] = None) -> str:
        """Create a run from invocation input and enter RUN_DATA_JOB."""
        look_back_days, publication_id = parse_invocation(invocation)
        record = RunRecord(
            run_id=run_id or f"run-{uuid4().hex[:12]}",
            look_back_days=look_back_days,
            publication_id=publication_id,
            min_example_count=self.config.min_example_count,
            created_at=self._clock(),
        )
        self._apply(record, Event(EventType.START))
        logger.info("Started run %s (look back %d days, publication %s)",
                    record.run_id, look_back_days, publication_id or "all")
        return record.run_id

    def describe_run(self, run_id: str) -> dict[str, Any]:
        """Run-status query: the stored run as a JSON-ready dict."""
        return self.store.get(run_id).to_dict()

    def cancel_run(self, run_id: str) -> None:
        """Request cancellation. Honoured at the next WAIT boundary."""
        record = self.store.get(run_id)
        if record.state.is_terminal:
            logger.info("Run %s already finished as %s", run_id, record.state.value)
            return
        record.cancel_requested = True
        self.store.save(record)
        logger.info("Cancellation requested for run %s", run_id)

    def run_to_completion(self, run_id: str) -> RunRecord:
        record = self.store.get(run_id)
        while not record.state.is_terminal:
            record = self.step(run_id)
        logger.info("Run %s finished as %s", run_id, record.state.value)
        return record

    def step(self, run_id: str) -> RunRecord:
        """Perform the pending action of a run and apply the resulting event."""
        record = self.store.get(run_id)
        if record.state.is_terminal:
            return record

        try:
            self._check_deadline(record)
            event = self._perform(record)
        except WorkflowTimeout as e:
            logger.error("Run %s: %s", record.run_id, e.reason)
            event = Event(EventType.TIMEOUT, reason=e.reason)

        self._apply(record, event)
        return record

    def _deadline(self, record: RunRecord) -> Optional[float]:
        if record.data_job_started_at is None:
            return None
        return record.data_job_started_at + self.config.timeout_seconds

    def _check_deadline(self, record: RunRecord) -> None:
        """Raise WorkflowTimeout once a timed state is past the run's deadline."""
        deadline = self._deadline(record)
        if record.state in TIMED_STATES and deadline is not None and self._clock() >= deadline:
            raise WorkflowTimeout(f"Workflow timed out after {self.config.timeout_seconds:.0f}s")

    def _perform(self, record: RunRecord) -> Event:
        action = record.pending_action
        if action is ActionType.RUN_DATA_JOB:
            return self._run_data_job(record)
        if action is ActionType.OBTAIN_HANDLE:
            return self._obtain_handle(record)
        if action is ActionType.SCHEDULE_WAKEUP:
            return self._wait(record)
        if action is ActionType.POLL_STATUS:
            return self._poll(record)
        if action is ActionType.NOTIFY_DATA_FAILURE:
            return self._notify(record, self.notifier.notify_data_failure)
        if action is ActionType.NOTIFY_TRAINING_FAILURE:
            return self._notify(record, self.notifier.notify_training_failure)
        raise RuntimeError(f"Run {record.run_id} in {record.state.value} has no pending action")

    def _run_data_job(self, record: RunRecord) -> Event:
        try:
            result = self.data_job_runner.run(record)
        except DataJobFailed as e:
            logger.error("Data job failed for run %s: %s", record.run_id, e.reason)
            return Event(EventType.DATA_JOB_FAILED, reason=e.reason)

        record.prompt_count = result.prompt_count
        record.dataset_location = result.dataset_location
        record.dataset_version = result.dataset_version
        record.training_job_id = result.training_job_id
        return Event(
            EventType.DATA_JOB_SUCCEEDED,
            prompt_count=result.prompt_count,
            min_example_count=record.min_example_count,
        )

    def _obtain_handle(self, record: RunRecord) -> Event:
        if record.training_job_id:
            return Event(EventType.HANDLE_OBTAINED)
        if self.submitter is None:
            return Event(EventType.SUBMISSION_FAILED, reason="Data job did not report a training job")

        try:
            handle = self.submitter(record)
        except (SubmissionRejected, SubmissionUnavailable) as e:
            return Event(EventType.SUBMISSION_FAILED, reason=e.reason)
        record.training_job_id = handle.job_id
        record.training_status = handle.status
        return Event(EventType.HANDLE_OBTAINED)

    def _wait(self, record: RunRecord) -> Event:
        if record.cancel_requested:
            return Event(EventType.CANCEL)

        wake_at = record.wake_at or self._clock()
        deadline = self._deadline(record)
        if deadline is not None:
            wake_at = min(wake_at, deadline)
        remaining = wake_at - self._clock()
        if remaining > 0:
            self._sleep(remaining)

        # Another process may have requested cancellation while we slept
        if self.store.get(record.run_id).cancel_requested:
            record.cancel_requested = True
            return Event(EventType.CANCEL)
        self._check_deadline(record)
        return Event(EventType.WAIT_ELAPSED)

    def _poll(self, record: RunRecord) -> Event:
        record.poll_count += 1
        try:
            report = self.status_reader(record.training_job_id)
        except PollingFailed as e:
            logger.warning("Status poll %d failed for run %s: %s", record.poll_count, record.run_id, e.reason)
            return Event(EventType.POLL_FAILED, reason=e.reason)

        record.training_status = report.status
        logger.info("Training job %s is %s (poll %d)", record.training_job_id, report.status.value, record.poll_count)
        return Event(EventType.STATUS_REPORTED, status=report.status, reason=report.failure_reason)

    def _notify(self, record: RunRecord, send: Callable[[str, str], None]) -> Event:
        reason = record.pending_reason or "Unknown failure"
        try:
            send(record.run_id, reason)
        except NotificationFailed as e:
            logger.error("Notification for run %s not delivered: %s", record.run_id, e.reason)
        return Event(EventType.NOTIFIED)

    def _apply(self, record: RunRecord, event: Event) -> None:
        previous = record.state
        result = transition(previous, event)
        now = self._clock()

        record.state = result.state
        record.pending_action = result.action.type
        record.pending_reason = result.action.reason
        record.updated_at = now
        if result.action.reason:
            record.failure_reason = result.action.reason
        if result.state is WorkflowState.RUN_DATA_JOB:
            record.data_job_started_at = now
        if result.state is WorkflowState.WAIT:
            record.wake_at = now + self.config.wait_seconds

        record.history.append({
            "from": previous.value,
            "event": event.type.value,
            "to": result.state.value,
            "at": now,
        })
        # Keep a cancellation requested while this step was running
        try:
            record.cancel_requested = record.cancel_requested or self.store.get(record.run_id).cancel_requested
        except KeyError:
            pass
        self.store.save(record)
        logger.info("Run %s: %s --%s--> %s", record.run_id, previous.value, event.type.value, result.state.value)
