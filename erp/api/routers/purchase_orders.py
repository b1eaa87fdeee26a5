"""Purchase order API endpoints."""

from typing import List, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, status, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dna.config import ApprovalThreshold, DNAConfig
from dna.roles import Role
from erp.api.deps import get_db, get_current_user, get_dna_config
from erp.api.errors import http_error
from erp.core.approval import (
    POAction,
    POStatus,
    PurchaseOrderService,
    WorkflowError,
    get_required_threshold,
)
from erp.core.approval.rules import describe_threshold
from erp.db.models import ApprovalLog, User

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


# Schemas
class UserSummary(BaseModel):
    id: UUID
    email: str
    name: str
    role: str

    class Config:
        from_attributes = True


class ThresholdResponse(BaseModel):
    level: int
    min_amount: float
    max_amount: Optional[float]
    role: Role
    sla_hours: int
    label: str

    @classmethod
    def from_threshold(cls, threshold: ApprovalThreshold) -> "ThresholdResponse":
        return cls(
            level=threshold.level,
            min_amount=threshold.min_amount,
            max_amount=threshold.max_amount,
            role=threshold.role,
            sla_hours=threshold.sla_hours,
            label=describe_threshold(threshold),
        )


class SLAResponse(BaseModel):
    sla_hours: int
    due_at: Optional[datetime]
    breached: bool
    escalation_required: bool


class PurchaseOrderResponse(BaseModel):
    id: UUID
    po_number: str
    title: str
    description: Optional[str]
    amount: float
    vendor: Optional[str]
    status: POStatus
    created_by_id: UUID
    approved_by_id: Optional[UUID]
    submitted_at: Optional[datetime]
    resolved_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    created_by: Optional[UserSummary] = None
    approved_by: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class PurchaseOrderDetailResponse(PurchaseOrderResponse):
    required_threshold: ThresholdResponse
    sla: SLAResponse
    available_actions: List[POAction] = []


class ApprovalLogResponse(BaseModel):
    id: UUID
    po_id: UUID
    user_id: UUID
    action: str
    comment: Optional[str]
    created_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class OverdueResponse(BaseModel):
    purchase_order: PurchaseOrderResponse
    sla: SLAResponse


class PurchaseOrderCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., ge=0)
    description: Optional[str] = None
    vendor: Optional[str] = Field(None, max_length=255)


class PurchaseOrderUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    vendor: Optional[str] = Field(None, max_length=255)


class TransitionRequest(BaseModel):
    comment: Optional[str] = None


class PurchaseOrderPage(BaseModel):
    items: List[PurchaseOrderResponse]
    total: int
    page: int
    per_page: int
    pages: int


class ErrorResponse(BaseModel):
    detail: str


class DeleteResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


# Error responses of the lifecycle endpoints
TRANSITION_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing reject comment"},
    403: {"model": ErrorResponse, "description": "Role too low or DNA policy forbids the action"},
    404: {"model": ErrorResponse, "description": "Purchase order or user not found"},
    409: {"model": ErrorResponse, "description": "Purchase order is not in a valid status"},
}


def _detail(service: PurchaseOrderService, po, config: DNAConfig, current_user: User) -> PurchaseOrderDetailResponse:
    sla = service.sla_status(po)
    return PurchaseOrderDetailResponse(
        **PurchaseOrderResponse.model_validate(po).model_dump(),
        required_threshold=ThresholdResponse.from_threshold(get_required_threshold(po.amount, config)),
        sla=SLAResponse(**sla.__dict__),
        available_actions=service.available_actions(po, current_user.id),
    )


# Endpoints
@router.get("", response_model=PurchaseOrderPage)
async def list_purchase_orders(
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: Optional[POStatus] = None,
    created_by_id: Optional[UUID] = None,
):
    """List purchase orders, newest first."""
    service = PurchaseOrderService(db, config)
    items, total = service.list_orders(
        status=status,
        created_by_id=created_by_id,
        limit=per_page,
        offset=(page - 1) * per_page,
    )
    return PurchaseOrderPage(
        items=[PurchaseOrderResponse.model_validate(po) for po in items],
        total=total,
        page=page,
        per_page=per_page,
        pages=-(-total // per_page),
    )


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    data: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Create a DRAFT purchase order owned by the current user."""
    service = PurchaseOrderService(db, config)
    try:
        po = service.create(
            title=data.title,
            amount=data.amount,
            description=data.description,
            vendor=data.vendor,
            created_by_id=current_user.id,
        )
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return PurchaseOrderResponse.model_validate(po)


@router.get("/overdue", response_model=List[OverdueResponse])
async def list_overdue_purchase_orders(
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
):
    """Pending purchase orders past their SLA due time."""
    service = PurchaseOrderService(db, config)
    return [
        OverdueResponse(
            purchase_order=PurchaseOrderResponse.model_validate(po),
            sla=SLAResponse(**sla.__dict__),
        )
        for po, sla in service.list_overdue()
    ]


@router.get("/{po_id}", response_model=PurchaseOrderDetailResponse)
async def get_purchase_order(
    po_id: UUID,
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Get a purchase order with its required approver, SLA and the caller's actions."""
    service = PurchaseOrderService(db, config)
    try:
        po = service.get(po_id)
    except WorkflowError as e:
        raise http_error(e)
    return _detail(service, po, config, current_user)


@router.get("/{po_id}/logs", response_model=List[ApprovalLogResponse])
async def get_purchase_order_logs(
    po_id: UUID,
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
):
    """Get the approval log of a purchase order, newest first."""
    service = PurchaseOrderService(db, config)
    try:
        service.get(po_id)
    except WorkflowError as e:
        raise http_error(e)

    logs = (
        db.query(ApprovalLog)
        .filter(ApprovalLog.po_id == po_id)
        .order_by(ApprovalLog.created_at.desc())
        .all()
    )
    return [ApprovalLogResponse.model_validate(log) for log in logs]


@router.patch("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: UUID,
    data: PurchaseOrderUpdate,
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Edit a purchase order that is not yet approved."""
    service = PurchaseOrderService(db, config)
    try:
        po = service.update(po_id, data.model_dump(exclude_unset=True))
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return PurchaseOrderResponse.model_validate(po)


@router.delete("/{po_id}", response_model=DeleteResponse)
async def delete_purchase_order(
    po_id: UUID,
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Delete a purchase order and its log. Approved orders cannot be deleted."""
    service = PurchaseOrderService(db, config)
    try:
        service.delete(po_id)
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return DeleteResponse(message=f"PO {po_id} deleted")


async def _transition(
    action: POAction,
    po_id: UUID,
    body: TransitionRequest,
    db: Session,
    config: DNAConfig,
    current_user: User,
) -> PurchaseOrderDetailResponse:
    service = PurchaseOrderService(db, config)
    try:
        po = service.transition(po_id, action, actor_id=current_user.id, comment=body.comment)
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return _detail(service, po, config, current_user)


@router.post("/{po_id}/submit", response_model=PurchaseOrderDetailResponse, responses=TRANSITION_ERRORS)
async def submit_purchase_order(
    po_id: UUID,
    body: TransitionRequest = TransitionRequest(),
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Submit a DRAFT or REJECTED purchase order for approval."""
    return await _transition(POAction.SUBMIT, po_id, body, db, config, current_user)


@router.post("/{po_id}/approve", response_model=PurchaseOrderDetailResponse, responses=TRANSITION_ERRORS)
async def approve_purchase_order(
    po_id: UUID,
    body: TransitionRequest = TransitionRequest(),
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Approve a pending purchase order."""
    return await _transition(POAction.APPROVE, po_id, body, db, config, current_user)


@router.post("/{po_id}/reject", response_model=PurchaseOrderDetailResponse, responses=TRANSITION_ERRORS)
async def reject_purchase_order(
    po_id: UUID,
    body: TransitionRequest = TransitionRequest(),
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Reject a pending purchase order."""
    return await _transition(POAction.REJECT, po_id, body, db, config, current_user)


@router.post("/{po_id}/revise", response_model=PurchaseOrderDetailResponse, responses=TRANSITION_ERRORS)
async def revise_purchase_order(
    po_id: UUID,
    body: TransitionRequest = TransitionRequest(),
    db: Session = Depends(get_db),
    config: DNAConfig = Depends(get_dna_config),
    current_user: User = Depends(get_current_user),
):
    """Return a REJECTED purchase order to DRAFT."""
    return await _transition(POAction.REVISE, po_id, body, db, config, current_user)
