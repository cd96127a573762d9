"""
Service-request lifecycle.

    pending -> accepted -> on_the_way -> in_progress -> completed
       |
       +-> cancelled

Every status change goes through :func:`transition`, which checks both the
adjacency table and the role allowed to make the move.  Persisting the new
status is the repository's job (a conditional UPDATE on the expected current
status), so a check here plus a guarded write there closes the race between
reading a row and changing it.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, TypeVar

from .enums import (
    REQUEST_TRANSITIONS,
    TERMINAL_STATUSES,
    TRANSITION_ACTORS,
    AccountKind,
    RequestStatus,
)


class InvalidStateTransition(Exception):
    """Raised when a status change violates the state machine."""

    def __init__(self, current: RequestStatus, requested: RequestStatus, message: str = ""):
        self.current = RequestStatus(current)
        self.requested = RequestStatus(requested)
        super().__init__(
            message
            or f"Cannot transition from {self.current.value} to {self.requested.value}"
        )


class TransitionNotPermitted(InvalidStateTransition):
    """The move exists in the state machine but not for this actor."""


def transition(
    current: RequestStatus, requested: RequestStatus, actor: AccountKind
) -> RequestStatus:
    """Return *requested* if *actor* may move a request there from *current*."""
    current = RequestStatus(current)
    requested = RequestStatus(requested)

    if requested not in REQUEST_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(current, requested)

    allowed_actor = TRANSITION_ACTORS[(current, requested)]
    if AccountKind(actor) != allowed_actor:
        raise TransitionNotPermitted(
            current,
            requested,
            f"Only a {allowed_actor.value} can move a request from "
            f"{current.value} to {requested.value}",
        )
    return requested


def next_status(current: RequestStatus) -> Optional[RequestStatus]:
    """The single forward step a garage can take from *current*, if any."""
    for (cur, nxt), actor in TRANSITION_ACTORS.items():
        if cur == current and actor == AccountKind.GARAGE and nxt != RequestStatus.ACCEPTED:
            return nxt
    return None


def is_active(status: RequestStatus) -> bool:
    return RequestStatus(status) not in TERMINAL_STATUSES


class _HasStatus(Protocol):
    status: RequestStatus


T = TypeVar("T", bound=_HasStatus)


def partition_by_activity(requests: Iterable[T]) -> tuple[list[T], list[T]]:
    """Split *requests* into (active, past), preserving order."""
    active: list[T] = []
    past: list[T] = []
    for req in requests:
        (active if is_active(req.status) else past).append(req)
    return active, past
