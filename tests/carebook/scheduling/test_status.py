import pytest

from carebook.scheduling.status import (
    ACTION_CANCEL,
    ACTION_COMPLETE,
    ACTION_CONFIRM,
    ACTION_RESCHEDULE,
    can_transition,
    target_status,
)


@pytest.mark.parametrize(
    ('action', 'current_status', 'allowed'),
    [
        (ACTION_CONFIRM, 'pending', True),
        (ACTION_CONFIRM, 'confirmed', False),
        (ACTION_COMPLETE, 'confirmed', True),
        (ACTION_COMPLETE, 'pending', False),
        (ACTION_RESCHEDULE, 'pending', True),
        (ACTION_RESCHEDULE, 'confirmed', True),
        (ACTION_RESCHEDULE, 'completed', False),
        (ACTION_CANCEL, 'pending', True),
        (ACTION_CANCEL, 'confirmed', True),
        (ACTION_CANCEL, 'cancelled', False),
        (ACTION_CANCEL, 'completed', False),
    ],
)
def test_can_transition(action: str, current_status: str, allowed: bool) -> None:
    assert can_transition(action, current_status) is allowed


def test_reschedule_returns_to_pending() -> None:
    assert target_status(ACTION_RESCHEDULE) == 'pending'
