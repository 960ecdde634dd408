"""
Service Request Status Flow

Allowed-transition table for request statuses. Membership checks only,
no side effects.
"""

from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Union

from .models import RequestStatus

StatusKey = Union[RequestStatus, str]

_S = RequestStatus

# Targets are listed in display order
_FLOW = {
    _S.PENDING: (_S.IN_REVIEW, _S.ACCEPTED, _S.IN_PROGRESS, _S.CANCELLED),
    _S.IN_REVIEW: (_S.SOURCING, _S.ACCEPTED, _S.CANCELLED),
    _S.SOURCING: (_S.OPTIONS_READY, _S.ACCEPTED, _S.CANCELLED),
    _S.ACCEPTED: (_S.IN_PROGRESS, _S.OPTIONS_READY, _S.AWAITING_CONFIRMATION, _S.CANCELLED),
    _S.IN_PROGRESS: (_S.OPTIONS_READY, _S.AWAITING_CONFIRMATION, _S.CANCELLED),
    _S.OPTIONS_READY: (_S.AWAITING_CONFIRMATION, _S.FULFILLING, _S.CANCELLED),
    _S.AWAITING_CONFIRMATION: (_S.FULFILLING, _S.CANCELLED),
    _S.FULFILLING: (_S.COMPLETED, _S.CANCELLED),
    _S.COMPLETED: (),
    _S.CANCELLED: (),
}

SERVICE_STATUS_FLOW: Mapping[RequestStatus, tuple] = MappingProxyType(_FLOW)

TERMINAL_STATUSES: FrozenSet[RequestStatus] = frozenset(s for s, targets in _FLOW.items() if not targets)

# Statuses a client may cancel from; narrower than the table allows
CLIENT_CANCELLABLE_STATUSES: FrozenSet[RequestStatus] = frozenset({
    _S.PENDING,
    _S.IN_REVIEW,
    _S.SOURCING,
})

# Transitions into these statuses notify the client
CLIENT_NOTIFY_STATUSES: FrozenSet[RequestStatus] = frozenset({
    _S.ACCEPTED,
    _S.IN_PROGRESS,
    _S.COMPLETED,
})

STATUS_TITLES: Mapping[RequestStatus, str] = MappingProxyType({
    _S.PENDING: "Request Pending",
    _S.IN_REVIEW: "Under Review",
    _S.SOURCING: "Sourcing Options",
    _S.ACCEPTED: "Request Accepted",
    _S.IN_PROGRESS: "In Progress",
    _S.OPTIONS_READY: "Options Ready",
    _S.AWAITING_CONFIRMATION: "Awaiting Confirmation",
    _S.FULFILLING: "Fulfilling",
    _S.COMPLETED: "Completed",
    _S.CANCELLED: "Cancelled",
})


def can_transition_to(current: StatusKey, target: StatusKey) -> bool:
    try:
        return RequestStatus(target) in _FLOW[RequestStatus(current)]
    except ValueError:
        return False


def allowed_transitions(current: StatusKey) -> List[RequestStatus]:
    return list(_FLOW[RequestStatus(current)])


def is_terminal(status: StatusKey) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


def is_client_cancellable(status: StatusKey) -> bool:
    return RequestStatus(status) in CLIENT_CANCELLABLE_STATUSES


def status_title(status: StatusKey) -> str:
    return STATUS_TITLES[RequestStatus(status)]
