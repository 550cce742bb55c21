"""Appointment statuses and the transitions allowed between them."""

STATUS_PENDING = 'pending'
STATUS_CONFIRMED = 'confirmed'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED)
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})

ACTION_CONFIRM = 'confirm'
ACTION_COMPLETE = 'complete'
ACTION_RESCHEDULE = 'reschedule'
ACTION_CANCEL = 'cancel'

# action -> (statuses it may start from, status it leads to)
TRANSITIONS = {
    ACTION_CONFIRM: (frozenset({STATUS_PENDING}), STATUS_CONFIRMED),
    ACTION_COMPLETE: (frozenset({STATUS_CONFIRMED}), STATUS_COMPLETED),
    ACTION_RESCHEDULE: (frozenset({STATUS_PENDING, STATUS_CONFIRMED}), STATUS_PENDING),
    ACTION_CANCEL: (frozenset({STATUS_PENDING, STATUS_CONFIRMED}), STATUS_CANCELLED),
}

# status requested through the doctor portal -> lifecycle action
STATUS_ACTIONS = {
    STATUS_CONFIRMED: ACTION_CONFIRM,
    STATUS_COMPLETED: ACTION_COMPLETE,
    STATUS_CANCELLED: ACTION_CANCEL,
}


def can_transition(action: str, current_status: str) -> bool:
    allowed_from, _ = TRANSITIONS[action]
    return current_status in allowed_from


def target_status(action: str) -> str:
    return TRANSITIONS[action][1]
