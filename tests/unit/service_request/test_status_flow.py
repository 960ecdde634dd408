"""
Unit tests for the service request status flow.
"""
import pytest

from microservices.service_request_service.models import RequestStatus
from microservices.service_request_service.status_flow import (
    CLIENT_CANCELLABLE_STATUSES,
    SERVICE_STATUS_FLOW,
    STATUS_TITLES,
    TERMINAL_STATUSES,
    allowed_transitions,
    can_transition_to,
    is_client_cancellable,
    is_terminal,
    status_title,
)

pytestmark = pytest.mark.unit

S = RequestStatus


def _reachable(start):
    seen = set()
    frontier = [start]
    while frontier:
        for target in SERVICE_STATUS_FLOW[frontier.pop()]:
            if target not in seen:
                seen.add(target)
                frontier.append(target)
    return seen


class TestStatusFlowTable:

    def test_every_status_has_an_entry(self):
        assert set(SERVICE_STATUS_FLOW) == set(RequestStatus)

    def test_no_self_loops(self):
        for status, targets in SERVICE_STATUS_FLOW.items():
            assert status not in targets

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.COMPLETED, S.CANCELLED}
        for status in TERMINAL_STATUSES:
            assert allowed_transitions(status) == []
            assert is_terminal(status)

    def test_every_non_terminal_status_can_cancel(self):
        for status in set(RequestStatus) - TERMINAL_STATUSES:
            assert can_transition_to(status, S.CANCELLED)

    def test_completion_is_reachable_from_pending(self):
        assert S.COMPLETED in _reachable(S.PENDING)

    def test_nothing_leads_back_to_pending(self):
        assert all(S.PENDING not in targets for targets in SERVICE_STATUS_FLOW.values())

    def test_every_status_is_reachable_from_pending(self):
        assert _reachable(S.PENDING) | {S.PENDING} == set(RequestStatus)


class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.IN_REVIEW),
        (S.PENDING, S.ACCEPTED),
        (S.SOURCING, S.OPTIONS_READY),
        (S.ACCEPTED, S.AWAITING_CONFIRMATION),
        (S.FULFILLING, S.COMPLETED),
    ])
    def test_allowed(self, current, target):
        assert can_transition_to(current, target)

    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.COMPLETED),
        (S.FULFILLING, S.PENDING),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.PENDING),
        (S.IN_REVIEW, S.IN_REVIEW),
    ])
    def test_rejected(self, current, target):
        assert not can_transition_to(current, target)

    def test_unknown_status_is_rejected(self):
        assert can_transition_to("archived", S.PENDING) is False
        assert can_transition_to(S.PENDING, "archived") is False

    def test_allowed_transitions_keep_display_order(self):
        assert allowed_transitions(S.PENDING) == [S.IN_REVIEW, S.ACCEPTED, S.IN_PROGRESS, S.CANCELLED]


class TestClientCancellation:

    def test_cancellation_window(self):
        assert CLIENT_CANCELLABLE_STATUSES == {S.PENDING, S.IN_REVIEW, S.SOURCING}

    @pytest.mark.parametrize("status", list(RequestStatus))
    def test_window_is_narrower_than_the_table(self, status):
        if is_client_cancellable(status):
            assert can_transition_to(status, S.CANCELLED)


class TestTitles:

    def test_every_status_has_a_title(self):
        assert set(STATUS_TITLES) == set(RequestStatus)
        assert status_title(S.IN_REVIEW) == "Under Review"
