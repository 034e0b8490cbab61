import pytest

from promoter_slots.errors import InvalidStateTransition
from promoter_slots.models import User
from promoter_slots.shared.user_states import advance_user, can_transition, transition_user


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        ("pending", "scheduled", True),
        ("scheduled", "meeting_held", True),
        ("meeting_held", "approved", True),
        ("pending", "approved", True),
        ("scheduled", "pending", True),
        ("meeting_held", "rejected", True),
        ("pending", "rejected", True),
        ("meeting_held", "scheduled", False),
        ("meeting_held", "pending", False),
        ("approved", "rejected", False),
        ("rejected", "approved", False),
        ("approved", "approved", True),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_transition_user_rejects_backwards_move():
    user = User(id=1, state="approved")

    with pytest.raises(InvalidStateTransition):
        transition_user(user, "pending")
    assert user.state == "approved"


def test_advance_user_is_forward_only():
    user = User(id=1, state="meeting_held")

    assert advance_user(user, "scheduled") is False
    assert user.state == "meeting_held"
    assert advance_user(user, "approved") is True
    assert user.state == "approved"


def test_advance_user_leaves_rejected_alone():
    user = User(id=1, state="rejected")

    assert advance_user(user, "meeting_held") is False
    assert user.state == "rejected"
