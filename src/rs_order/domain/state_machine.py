"""Order status state machine.

    draft ──► placed ──► confirmed ──► in_preparation ──► ready ──► served ──► closed
      │          │           │               │              │         │
      └──────────┴───────────┴───────────────┴──────────────┴─────────┴──► canceled

closed and canceled are terminal. Entering either stamps closed_at once.
Asking for the status an order already has is a no-op, never an error.
"""
from dataclasses import dataclass
from datetime import datetime

from src.rs_common.enums import TERMINAL_STATUSES, OrderStatus

_S = OrderStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    _S.DRAFT.value: frozenset({_S.PLACED.value, _S.CANCELED.value}),
    _S.PLACED.value: frozenset({_S.CONFIRMED.value, _S.CANCELED.value}),
    _S.CONFIRMED.value: frozenset({_S.IN_PREPARATION.value, _S.CANCELED.value}),
    _S.IN_PREPARATION.value: frozenset({_S.READY.value, _S.CANCELED.value}),
    _S.READY.value: frozenset({_S.SERVED.value, _S.CANCELED.value}),
    _S.SERVED.value: frozenset({_S.CLOSED.value, _S.CANCELED.value}),
    _S.CLOSED.value: frozenset(),
    _S.CANCELED.value: frozenset(),
}

INITIAL_STATUS = _S.PLACED.value
ATTENTION_STATUSES = (_S.PLACED.value, _S.CONFIRMED.value)


class IllegalTransition(Exception):
    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"{current} -> {requested}")


@dataclass(frozen=True)
class StatusChange:
    status: str
    closed_at: datetime | None
    changed: bool


def can_transition(current: str, requested: str) -> bool:
    return OrderStatus(requested).value in ALLOWED_TRANSITIONS[OrderStatus(current).value]


def apply_transition(
    current: str,
    requested: str,
    closed_at: datetime | None,
    now: datetime,
) -> StatusChange:
    """Resolve a requested status against the current one.

    Raises IllegalTransition when `requested` is not an outgoing edge of
    `current` (and not `current` itself).
    """
    current = OrderStatus(current).value
    requested = OrderStatus(requested).value
    if requested == current:
        return StatusChange(status=current, closed_at=closed_at, changed=False)
    if not can_transition(current, requested):
        raise IllegalTransition(current, requested)
    if requested in TERMINAL_STATUSES and closed_at is None:
        closed_at = now
    return StatusChange(status=requested, closed_at=closed_at, changed=True)
