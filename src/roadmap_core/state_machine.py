"""State machine validation for roadmap phase and stage transitions.

Phases and stages share one lifecycle:
- locked → active → completed
- No skipping (locked → completed is blocked)
- No reopening (completed is terminal)
- Provides clear error messages for blocked transitions
"""
import logging

from .errors import InvalidTransitionError
from .models import StageStatus

logger = logging.getLogger("roadmap-core.state_machine")


# State machine transition matrix
# Maps current status → list of allowed next statuses
TRANSITION_MATRIX: dict[StageStatus, list[StageStatus]] = {
    StageStatus.LOCKED: [
        StageStatus.LOCKED,     # No-op (allowed)
        StageStatus.ACTIVE,     # Forward: work starts
    ],
    StageStatus.ACTIVE: [
        StageStatus.ACTIVE,     # No-op (allowed)
        StageStatus.COMPLETED,  # Forward: all work finished
    ],
    StageStatus.COMPLETED: [
        StageStatus.COMPLETED,  # No-op (allowed)
        # Terminal state - reopening is not supported
    ],
}


def is_transition_valid(current_status: StageStatus, new_status: StageStatus) -> bool:
    """
    Check if a status transition is valid.

    Args:
        current_status: Current lifecycle status
        new_status: Requested new lifecycle status

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed_transitions = TRANSITION_MATRIX.get(current_status, [])
    return new_status in allowed_transitions


def is_noop_transition(current_status: StageStatus, new_status: StageStatus) -> bool:
    """True when the row is already in the requested status."""
    return current_status == new_status


def validate_transition(
    current_status: StageStatus,
    new_status: StageStatus,
    subject: str = "Stage",
) -> None:
    """
    Validate a status transition and raise exception if invalid.

    Args:
        current_status: Current lifecycle status
        new_status: Requested new lifecycle status
        subject: "Stage" or "Phase", used in the error message

    Raises:
        InvalidTransitionError: If the transition is not allowed
    """
    if is_noop_transition(current_status, new_status):
        logger.debug(f"No-op {subject.lower()} transition: {current_status.value} → {new_status.value}")
        return

    if not is_transition_valid(current_status, new_status):
        allowed_names = [s.value for s in get_allowed_transitions(current_status)]

        error_msg = (
            f"Invalid {subject.lower()} status transition: {current_status.value} → {new_status.value}."
        )
        if allowed_names:
            error_msg += f" From {current_status.value}, you can only transition to: {', '.join(allowed_names)}."

        if current_status == StageStatus.LOCKED and new_status == StageStatus.COMPLETED:
            error_msg += f" {subject} must be activated before it can be completed."
        elif current_status == StageStatus.COMPLETED:
            error_msg += f" Completed {subject.lower()}s are final and cannot be reopened."
        elif new_status == StageStatus.LOCKED:
            error_msg += f" A started {subject.lower()} cannot be locked again."

        logger.warning(f"Blocked transition: {error_msg}")
        raise InvalidTransitionError(
            error_msg,
            current_status=current_status.value,
            requested_status=new_status.value,
            allowed_transitions=allowed_names,
        )

    logger.debug(f"Valid {subject.lower()} transition: {current_status.value} → {new_status.value}")


def get_allowed_transitions(current_status: StageStatus) -> list[StageStatus]:
    """
    Get list of allowed transitions from current status.

    Args:
        current_status: Current lifecycle status

    Returns:
        List of allowed next statuses (excluding no-op same status)
    """
    all_transitions = TRANSITION_MATRIX.get(current_status, [])
    return [s for s in all_transitions if s != current_status]
