"""Tests for the purchase order service against a real database."""

from datetime import timedelta
from uuid import uuid4

import pytest

from dna.config import DEFAULT_DNA, DNAConfig, DNASettings
from erp.core.approval import (
    InsufficientRoleError,
    InvalidStateError,
    NotFoundError,
    POAction,
    POStatus,
    PolicyViolationError,
    PurchaseOrderService,
)
from erp.core.approval.machine import utcnow
from erp.db.models import ApprovalLog, PurchaseOrder
from tests.factories import create_purchase_order, create_user


pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session, dna_config):
    return PurchaseOrderService(db_session, dna_config)


def log_actions(db_session, po):
    logs = (
        db_session.query(ApprovalLog)
        .filter(ApprovalLog.po_id == po.id)
        .order_by(ApprovalLog.created_at)
        .all()
    )
    return [log.action for log in logs]


# ---------------------------------------------------------------------------
# Create, edit, delete
# ---------------------------------------------------------------------------


class TestCreate:

    def test_create_draft(self, service, db_session, users):
        po = service.create(title="Office Supplies", amount=500000, created_by_id=users["staff"].id)

        assert po.status == POStatus.DRAFT.value
        assert po.po_number == f"PO-{utcnow().year}-001"
        assert po.created_by_id == users["staff"].id
        assert log_actions(db_session, po) == ["Created PO"]

    def test_po_numbers_increase(self, service, users):
        first = service.create(title="A", amount=1, created_by_id=users["staff"].id)
        second = service.create(title="B", amount=2, created_by_id=users["staff"].id)
        assert first.po_number.endswith("-001")
        assert second.po_number.endswith("-002")

    def test_unknown_creator(self, service):
        with pytest.raises(NotFoundError):
            service.create(title="A", amount=1, created_by_id=uuid4())

    def test_negative_amount(self, service, users):
        with pytest.raises(ValueError):
            service.create(title="A", amount=-5, created_by_id=users["staff"].id)


class TestUpdateAndDelete:

    def test_update_draft(self, service, db_session, users):
        po = create_purchase_order(db_session, created_by=users["staff"], amount=1000)
        service.update(po.id, {"title": "Renamed", "amount": 2000, "status": "APPROVED"})

        assert po.title == "Renamed"
        assert po.amount == 2000
        assert po.status == POStatus.DRAFT.value

    def test_update_approved_refused(self, service, db_session, users):
        po = create_purchase_order(db_session, created_by=users["staff"], status=POStatus.APPROVED)
        with pytest.raises(InvalidStateError):
            service.update(po.id, {"title": "Nope"})

    def test_update_approved_refused_when_dna_flag_set(self, db_session, users):
        config = DNAConfig(
            approval_thresholds=DEFAULT_DNA.approval_thresholds,
            settings=DNASettings(modify_after_approval=True),
        )
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=5000, status=POStatus.APPROVED
        )
        with pytest.raises(InvalidStateError):
            PurchaseOrderService(db_session, config).update(po.id, {"amount": 75000000})
        assert po.amount == 5000
        assert po.status == POStatus.APPROVED.value

    def test_delete_removes_logs(self, service, db_session, users):
        po = service.create(title="Temp", amount=10, created_by_id=users["staff"].id)
        po_id = po.id
        service.delete(po_id)

        assert db_session.get(PurchaseOrder, po_id) is None
        assert db_session.query(ApprovalLog).filter(ApprovalLog.po_id == po_id).count() == 0

    def test_delete_approved_refused(self, service, db_session, users):
        po = create_purchase_order(db_session, created_by=users["staff"], status=POStatus.APPROVED)
        with pytest.raises(InvalidStateError):
            service.delete(po.id)

    def test_delete_missing(self, service):
        with pytest.raises(NotFoundError):
            service.delete(uuid4())


class TestListOrders:

    def test_filter_and_paginate(self, service, db_session, users):
        for i in range(3):
            create_purchase_order(db_session, created_by=users["staff"])
        create_purchase_order(db_session, created_by=users["manager"], status=POStatus.PENDING_APPROVAL)

        items, total = service.list_orders(limit=2)
        assert total == 4
        assert len(items) == 2

        items, total = service.list_orders(status=POStatus.PENDING_APPROVAL)
        assert total == 1
        assert items[0].created_by_id == users["manager"].id

        _, total = service.list_orders(created_by_id=users["staff"].id)
        assert total == 3


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """End-to-end transitions with approval logging."""

    def test_full_approval(self, service, db_session, users):
        po = service.create(title="Laptops", amount=75000000, created_by_id=users["staff"].id)
        service.submit(po.id, actor_id=users["staff"].id)
        assert po.status == POStatus.PENDING_APPROVAL.value
        assert po.submitted_at is not None

        service.approve(po.id, actor_id=users["ceo"].id, comment="Budgeted")
        assert po.status == POStatus.APPROVED.value
        assert po.approved_by_id == users["ceo"].id
        assert po.resolved_at is not None
        assert sorted(log_actions(db_session, po)) == sorted(
            ["Created PO", "Submitted for approval", "Approved"]
        )

    def test_director_cannot_approve_ceo_amount(self, service, db_session, users):
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=75000000, status=POStatus.PENDING_APPROVAL
        )
        with pytest.raises(InsufficientRoleError):
            service.approve(po.id, actor_id=users["director"].id)

        assert po.status == POStatus.PENDING_APPROVAL.value
        assert log_actions(db_session, po) == []

    def test_reject_revise_resubmit(self, service, db_session, users):
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=750000, status=POStatus.PENDING_APPROVAL
        )
        service.reject(po.id, actor_id=users["director"].id, comment="Get a second quote")
        assert po.status == POStatus.REJECTED.value
        assert po.approved_by_id == users["director"].id

        logs_before = db_session.query(ApprovalLog).filter(ApprovalLog.po_id == po.id).count()
        service.revise(po.id, actor_id=users["staff"].id)
        assert db_session.query(ApprovalLog).filter(ApprovalLog.po_id == po.id).count() == logs_before + 1
        revise_log = (
            db_session.query(ApprovalLog)
            .filter(ApprovalLog.po_id == po.id, ApprovalLog.action == "Revised - returned to draft")
            .one()
        )
        assert revise_log.user_id == users["staff"].id
        assert po.status == POStatus.DRAFT.value
        assert po.approved_by_id is None
        assert po.resolved_at is None

        service.submit(po.id, actor_id=users["staff"].id)
        assert po.status == POStatus.PENDING_APPROVAL.value

        reject_log = (
            db_session.query(ApprovalLog)
            .filter(ApprovalLog.po_id == po.id, ApprovalLog.action == "Rejected")
            .one()
        )
        assert reject_log.comment == "Get a second quote"
        assert reject_log.user_id == users["director"].id

    def test_reject_without_comment(self, service, db_session, users):
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=750000, status=POStatus.PENDING_APPROVAL
        )
        with pytest.raises(PolicyViolationError):
            service.reject(po.id, actor_id=users["director"].id)
        assert po.status == POStatus.PENDING_APPROVAL.value

    def test_self_approval_refused(self, service, db_session, users):
        po = create_purchase_order(
            db_session, created_by=users["manager"], amount=1000, status=POStatus.PENDING_APPROVAL
        )
        with pytest.raises(PolicyViolationError):
            service.approve(po.id, actor_id=users["manager"].id)

    def test_unknown_po(self, service, users):
        with pytest.raises(NotFoundError):
            service.transition(uuid4(), POAction.SUBMIT, actor_id=users["staff"].id)

    def test_unknown_actor(self, service, db_session, users):
        po = create_purchase_order(db_session, created_by=users["staff"])
        with pytest.raises(NotFoundError):
            service.submit(po.id, actor_id=uuid4())

    def test_available_actions(self, service, db_session, users):
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=750000, status=POStatus.PENDING_APPROVAL
        )
        assert service.available_actions(po, users["director"].id) == [POAction.APPROVE, POAction.REJECT]
        assert service.available_actions(po, users["manager"].id) == []


class TestConcurrentDecisions:
    """Two approvers acting on the same pending PO: at most one wins."""

    def test_second_approver_loses(self, session_factory, users, dna_config):
        setup = session_factory()
        staff = create_user(setup, role="STAFF")
        po = create_purchase_order(setup, created_by=staff, amount=750000, status=POStatus.PENDING_APPROVAL)
        setup.commit()
        po_id = po.id
        setup.close()

        session_a = session_factory()
        session_b = session_factory()
        try:
            # Both approvers load the PO while it is still pending
            assert session_b.get(PurchaseOrder, po_id).status == POStatus.PENDING_APPROVAL.value
            service_a = PurchaseOrderService(session_a, dna_config)
            service_b = PurchaseOrderService(session_b, dna_config)

            service_a.approve(po_id, actor_id=users["director"].id)
            session_a.commit()

            with pytest.raises(InvalidStateError) as exc_info:
                service_b.reject(po_id, actor_id=users["ceo"].id, comment="Too late")
            session_b.rollback()
            assert exc_info.value.current_status == POStatus.APPROVED

            check = session_factory()
            stored = check.get(PurchaseOrder, po_id)
            assert stored.status == POStatus.APPROVED.value
            assert stored.approved_by_id == users["director"].id
            assert check.query(ApprovalLog).filter(ApprovalLog.po_id == po_id).count() == 1
            check.close()
        finally:
            session_a.close()
            session_b.close()


# ---------------------------------------------------------------------------
# SLA tracking
# ---------------------------------------------------------------------------


class TestSLA:

    def test_sla_for_draft(self, service, db_session, users):
        po = create_purchase_order(db_session, created_by=users["staff"], amount=750000)
        sla = service.sla_status(po)
        assert sla.sla_hours == 48
        assert sla.due_at is None
        assert not sla.breached

    def test_breach_detected(self, service, db_session, users):
        submitted = utcnow() - timedelta(hours=30)
        po = create_purchase_order(
            db_session, created_by=users["staff"], amount=1000,
            status=POStatus.PENDING_APPROVAL, submitted_at=submitted,
        )
        sla = service.sla_status(po)
        assert sla.due_at == submitted + timedelta(hours=24)
        assert sla.breached
        assert sla.escalation_required
        assert service.is_sla_breached(po)
        assert not service.is_sla_breached(po, submitted + timedelta(hours=23))

    def test_list_overdue(self, service, db_session, users):
        now = utcnow()
        late = create_purchase_order(
            db_session, created_by=users["staff"], amount=1000,
            status=POStatus.PENDING_APPROVAL, submitted_at=now - timedelta(hours=25),
        )
        create_purchase_order(
            db_session, created_by=users["staff"], amount=750000,
            status=POStatus.PENDING_APPROVAL, submitted_at=now - timedelta(hours=25),
        )
        create_purchase_order(db_session, created_by=users["staff"], amount=1000)

        overdue = service.list_overdue(now)
        assert [po.id for po, _ in overdue] == [late.id]
