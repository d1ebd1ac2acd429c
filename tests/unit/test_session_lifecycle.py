"""
Unit Tests for Session Lifecycle

Status transitions allowed between Planned, In Progress, Completed,
Cancelled and Rescheduled.
"""

import pytest

from classhub.models.session import SessionStatus
from classhub.services.session_lifecycle import check_transition, is_terminal
from classhub.utils.exceptions import InvalidTransitionError


class TestTransitions:

    @pytest.mark.parametrize("current, target", [
        ("Planned", "In Progress"),
        ("Planned", "Rescheduled"),
        ("In Progress", "Completed"),
        ("In Progress", "Rescheduled"),
    ])
    def test_allowed(self, current, target):
        assert check_transition(current, target) == SessionStatus(target)

    @pytest.mark.parametrize("current", ["Planned", "In Progress", "Rescheduled"])
    def test_cancel_with_reason(self, current):
        assert check_transition(current, "Cancelled", "Tutor unwell") == SessionStatus.CANCELLED

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_cancel_requires_reason(self, reason):
        with pytest.raises(InvalidTransitionError, match="cancellation reason"):
            check_transition("Planned", "Cancelled", reason)

    @pytest.mark.parametrize("current, target", [
        ("Planned", "Completed"),
        ("In Progress", "Planned"),
        ("Rescheduled", "In Progress"),
        ("Rescheduled", "Planned"),
    ])
    def test_forbidden(self, current, target):
        with pytest.raises(InvalidTransitionError):
            check_transition(current, target)

    @pytest.mark.parametrize("current", ["Completed", "Cancelled"])
    def test_terminal_states_are_closed(self, current):
        with pytest.raises(InvalidTransitionError, match="session is closed"):
            check_transition(current, "In Progress")

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            check_transition("Completed", "Planned")

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            check_transition("Planned", "Finished")


def test_is_terminal():
    assert is_terminal("Completed")
    assert is_terminal("Cancelled")
    assert not is_terminal("Planned")
    assert not is_terminal("Rescheduled")
