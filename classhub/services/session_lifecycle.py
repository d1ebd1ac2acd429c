"""
Session Lifecycle
Allowed status transitions for a session

    Planned -> In Progress -> Completed
    Planned / In Progress -> Cancelled (needs a reason)
    Planned / In Progress -> Rescheduled -> Cancelled

Rescheduled is only entered by rescheduling, which also creates the
make-up session; a plain status change to it is refused.

Completed and Cancelled are terminal. Nothing moves on a timer; every
transition is requested explicitly by a tutor or admin.
"""

from typing import Dict, FrozenSet, Optional

from ..models.session import SessionStatus
from ..utils.exceptions import InvalidTransitionError

ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.PLANNED: frozenset({
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
        SessionStatus.RESCHEDULED,
    }),
    SessionStatus.IN_PROGRESS: frozenset({
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.RESCHEDULED,
    }),
    SessionStatus.RESCHEDULED: frozenset({SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def is_terminal(status: str) -> bool:
    return SessionStatus(status) in TERMINAL_STATUSES


def check_transition(current: str, target: str, cancellation_reason: Optional[str] = None) -> SessionStatus:
    """
    Validate a status change and return the target status.

    Raises InvalidTransitionError when the lifecycle forbids the move or a
    cancellation has no reason.
    """
    current_status = SessionStatus(current)
    target_status = SessionStatus(target)

    if target_status not in ALLOWED_TRANSITIONS[current_status]:
        if current_status in TERMINAL_STATUSES:
            raise InvalidTransitionError(current_status.value, target_status.value, "session is closed")
        raise InvalidTransitionError(current_status.value, target_status.value)

    if target_status == SessionStatus.CANCELLED and not (cancellation_reason or "").strip():
        raise InvalidTransitionError(
            current_status.value, target_status.value, "a cancellation reason is required"
        )

    return target_status
