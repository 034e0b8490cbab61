"""User state workflow: pending → scheduled → meeting_held → approved, rejected is terminal"""

from ..errors import InvalidStateTransition
from ..models import (
    USER_APPROVED,
    USER_MEETING_HELD,
    USER_PENDING,
    USER_REJECTED,
    USER_SCHEDULED,
    User,
)

STATE_ORDER = {
    USER_PENDING: 0,
    USER_SCHEDULED: 1,
    USER_MEETING_HELD: 2,
    USER_APPROVED: 3,
}

TERMINAL_STATES = (USER_APPROVED, USER_REJECTED)


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if current in TERMINAL_STATES:
        return False
    if target == USER_REJECTED:
        return True
    # Releasing a user from their slot
    if current == USER_SCHEDULED and target == USER_PENDING:
        return True
    return STATE_ORDER[target] > STATE_ORDER[current]


def transition_user(user: User, target: str) -> User:
    """
    Move a user to a new state.

    Raises:
        InvalidStateTransition: the move goes backwards or leaves a terminal state
    """
    if not can_transition(user.state, target):
        raise InvalidStateTransition(f"Cannot move user {user.id} from '{user.state}' to '{target}'")
    user.state = target
    return user


def advance_user(user: User, target: str) -> bool:
    """Forward-only move that leaves users already at or past the target untouched"""
    if user.state in TERMINAL_STATES or STATE_ORDER.get(user.state, 0) >= STATE_ORDER[target]:
        return False
    user.state = target
    return True
