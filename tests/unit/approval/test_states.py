"""Tests for the purchase order status machine table."""

from erp.core.approval.states import (
    EDITABLE_STATUSES,
    PENDING_STATUSES,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    POAction,
    POStatus,
    can_transition,
    describe_sources,
    get_target_status,
    get_transition_rule,
)


class TestPOStatuses:
    """Test status definitions."""

    def test_all_statuses_defined(self):
        assert [s.value for s in POStatus] == ["DRAFT", "PENDING_APPROVAL", "APPROVED", "REJECTED"]

    def test_status_sets(self):
        assert TERMINAL_STATUSES == {POStatus.APPROVED}
        assert POStatus.APPROVED not in EDITABLE_STATUSES
        assert PENDING_STATUSES == {POStatus.PENDING_APPROVAL}


class TestPOTransitions:
    """Test valid status transitions."""

    def test_draft_transitions(self):
        assert can_transition(POStatus.DRAFT, POAction.SUBMIT)
        assert not can_transition(POStatus.DRAFT, POAction.APPROVE)
        assert not can_transition(POStatus.DRAFT, POAction.REVISE)

    def test_pending_transitions(self):
        assert can_transition(POStatus.PENDING_APPROVAL, POAction.APPROVE)
        assert can_transition(POStatus.PENDING_APPROVAL, POAction.REJECT)
        assert not can_transition(POStatus.PENDING_APPROVAL, POAction.SUBMIT)

    def test_rejected_transitions(self):
        assert can_transition(POStatus.REJECTED, POAction.REVISE)
        assert can_transition(POStatus.REJECTED, POAction.SUBMIT)
        assert not can_transition(POStatus.REJECTED, POAction.APPROVE)

    def test_approved_has_no_outgoing(self):
        assert POStatus.APPROVED not in VALID_TRANSITIONS
        for action in POAction:
            assert not can_transition(POStatus.APPROVED, action)

    def test_get_target_status(self):
        assert get_target_status(POStatus.DRAFT, POAction.SUBMIT) == POStatus.PENDING_APPROVAL
        assert get_target_status(POStatus.REJECTED, POAction.REVISE) == POStatus.DRAFT
        assert get_target_status(POStatus.DRAFT, POAction.APPROVE) is None

    def test_transition_rule_roles(self):
        """Test only decisions require an approver role."""
        assert get_transition_rule(POStatus.PENDING_APPROVAL, POAction.APPROVE).requires_approver_role
        assert get_transition_rule(POStatus.PENDING_APPROVAL, POAction.REJECT).requires_approver_role
        assert not get_transition_rule(POStatus.DRAFT, POAction.SUBMIT).requires_approver_role
        assert not get_transition_rule(POStatus.REJECTED, POAction.REVISE).requires_approver_role

    def test_log_messages(self):
        assert get_transition_rule(POStatus.DRAFT, POAction.SUBMIT).log_message == "Submitted for approval"
        assert get_transition_rule(POStatus.REJECTED, POAction.REVISE).log_message == "Revised - returned to draft"

    def test_describe_sources(self):
        assert describe_sources(POAction.SUBMIT) == "DRAFT or REJECTED"
        assert describe_sources(POAction.APPROVE) == "PENDING_APPROVAL"
