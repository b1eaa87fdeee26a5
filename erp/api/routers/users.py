"""User endpoints for the demo identity switcher."""

from typing import List, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dna.roles import ROLE_HIERARCHY, role_rank
from erp.api.deps import get_db, get_current_user
from erp.db.models import User

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List users, lowest role first."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.upper())
    users = query.order_by(User.name).all()
    return sorted(users, key=lambda u: role_rank(u.role))


@router.get("/roles", response_model=List[str])
async def list_roles():
    """Roles from lowest to highest authority."""
    return [r.value for r in ROLE_HIERARCHY]


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """The user named by the X-User-Id header."""
    return current_user
