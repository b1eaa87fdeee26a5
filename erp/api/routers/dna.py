"""DNA rule endpoints: inspect the loaded configuration and preview thresholds."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from dna.config import DNAConfig, DNAConfigError, loads_config, validate_thresholds
from erp.api.deps import get_dna_config
from erp.api.routers.purchase_orders import ThresholdResponse
from erp.core.approval import get_required_threshold
from erp.core.approval.rules import format_currency

router = APIRouter(prefix="/dna", tags=["dna"])


# Schemas
class DNASettingsResponse(BaseModel):
    self_approval: bool
    allow_revision: bool
    modify_after_approval: bool
    require_comment_on_reject: bool
    auto_escalate_on_sla_breach: bool

    class Config:
        from_attributes = True


class DNAConfigResponse(BaseModel):
    version: str
    last_updated: Optional[str]
    source: Optional[str]
    workflow: str
    status_flow: List[str]
    approval_thresholds: List[ThresholdResponse]
    settings: DNASettingsResponse
    problems: List[str] = []

    @classmethod
    def from_config(cls, config: DNAConfig) -> "DNAConfigResponse":
        return cls(
            version=config.version,
            last_updated=config.last_updated,
            source=config.source,
            workflow=config.workflow.name,
            status_flow=list(config.workflow.status_flow),
            approval_thresholds=[
                ThresholdResponse.from_threshold(t) for t in config.approval_thresholds
            ],
            settings=DNASettingsResponse.model_validate(config.settings),
            problems=validate_thresholds(config.approval_thresholds),
        )


class ResolveResponse(BaseModel):
    amount: float
    amount_display: str
    threshold: ThresholdResponse


class ValidateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    markdown: bool = True


class ValidateResponse(BaseModel):
    valid: bool
    problems: List[str]
    config: Optional[DNAConfigResponse] = None


# Endpoints
@router.get("/current", response_model=DNAConfigResponse)
async def get_current_dna(config: DNAConfig = Depends(get_dna_config)):
    """The DNA configuration currently in effect."""
    return DNAConfigResponse.from_config(config)


@router.get("/thresholds", response_model=List[ThresholdResponse])
async def list_thresholds(config: DNAConfig = Depends(get_dna_config)):
    """Approval threshold bands in level order."""
    return [ThresholdResponse.from_threshold(t) for t in config.approval_thresholds]


@router.get("/resolve", response_model=ResolveResponse)
async def resolve_amount(
    amount: float = Query(..., ge=0),
    config: DNAConfig = Depends(get_dna_config),
):
    """Preview which approver and SLA an amount would require."""
    return ResolveResponse(
        amount=amount,
        amount_display=format_currency(amount),
        threshold=ThresholdResponse.from_threshold(get_required_threshold(amount, config)),
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_dna(body: ValidateRequest):
    """
    Parse a DNA document without loading it.

    Returns 422 when the document cannot be parsed at all; structural
    problems the resolver tolerates are listed in ``problems``.
    """
    try:
        config = loads_config(body.content, markdown=body.markdown, source="request")
    except DNAConfigError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    problems = validate_thresholds(config.approval_thresholds)
    return ValidateResponse(
        valid=not problems,
        problems=problems,
        config=DNAConfigResponse.from_config(config),
    )
