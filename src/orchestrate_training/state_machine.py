"""Pure transition function of the training workflow.

``transition`` holds every sequencing rule and branch predicate. It does no IO;
the host performs the returned action and feeds back the resulting event.
"""

from common.errors import InvalidTransition
from orchestrate_training.models import (
    NO_ACTION,
    Action,
    ActionType,
    Event,
    EventType,
    TIMED_STATES,
    Transition,
    WorkflowState,
)
from submit_training.models import JobStatus

State = WorkflowState

WAIT = Transition(State.WAIT, Action(ActionType.SCHEDULE_WAKEUP))


def _notify_data_failure(reason: str) -> Transition:
    return Transition(State.NOTIFY_DATA_FAILURE, Action(ActionType.NOTIFY_DATA_FAILURE, reason))


def _notify_training_failure(reason: str) -> Transition:
    return Transition(State.NOTIFY_TRAINING_FAILURE, Action(ActionType.NOTIFY_TRAINING_FAILURE, reason))


def _after_data_job(event: Event) -> Transition:
    count = event.prompt_count or 0
    minimum = event.min_example_count or 0
    if count < minimum:
        return _notify_data_failure(f"Insufficient examples: {count} found, {minimum} required")
    return Transition(State.SUBMIT_TRAINING, Action(ActionType.OBTAIN_HANDLE))


def _after_poll(event: Event) -> Transition:
    status = event.status
    if status is None:
        raise InvalidTransition("Status report without a status")
    if status is JobStatus.COMPLETED:
        return Transition(State.SUCCEEDED, NO_ACTION)
    if status.is_terminal:
        return _notify_training_failure(event.reason or f"Training job {status.value}")
    return WAIT


def transition(state: WorkflowState, event: Event) -> Transition:
    """Return the next state and the action the host must perform.

    Raises:
        InvalidTransition: If ``state`` does not accept ``event``.
    """
    kind = event.type

    if kind is EventType.TIMEOUT and state in TIMED_STATES:
        return _notify_training_failure(event.reason or "Workflow timed out")

    if kind is EventType.CANCEL and state in (State.INIT, State.WAIT):
        return Transition(State.CANCELLED, NO_ACTION)

    if state is State.INIT and kind is EventType.START:
        return Transition(State.RUN_DATA_JOB, Action(ActionType.RUN_DATA_JOB))

    if state is State.RUN_DATA_JOB:
        if kind is EventType.DATA_JOB_SUCCEEDED:
            return _after_data_job(event)
        if kind is EventType.DATA_JOB_FAILED:
            return _notify_data_failure(event.reason or "Data job failed")

    if state is State.SUBMIT_TRAINING:
        if kind is EventType.HANDLE_OBTAINED:
            return WAIT
        if kind is EventType.SUBMISSION_FAILED:
            return _notify_data_failure(event.reason or "Training job submission failed")

    if state is State.WAIT and kind is EventType.WAIT_ELAPSED:
        return Transition(State.POLL_STATUS, Action(ActionType.POLL_STATUS))

    if state is State.POLL_STATUS:
        if kind is EventType.STATUS_REPORTED:
            return _after_poll(event)
        if kind is EventType.POLL_FAILED:
            return WAIT

    if state in (State.NOTIFY_DATA_FAILURE, State.NOTIFY_TRAINING_FAILURE) and kind is EventType.NOTIFIED:
        return Transition(State.FAILED, NO_ACTION)

    raise InvalidTransition(f"{state.value} does not accept {kind.value}")
