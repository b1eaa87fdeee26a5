from functools import lru_cache
from typing import Generator, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from dna.config import DNAConfig, DNAConfigCache
from erp.core.config import get_settings
from erp.db.session import SessionLocal
from erp.db.models import User

DEMO_EMAIL_DOMAIN = "example.com"


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_dna_cache() -> DNAConfigCache:
    """Process-wide DNA cache; reloads when the DNA file changes."""
    return DNAConfigCache(get_settings().dna_path)


def get_dna_config(cache: DNAConfigCache = Depends(get_dna_cache)) -> DNAConfig:
    """DNA configuration for the current request."""
    return cache.get()


def find_user(db: Session, identifier: str) -> Optional[User]:
    """Look up a user by id, email, or email local part (demo mode)."""
    identifier = identifier.strip()
    try:
        return db.get(User, UUID(identifier))
    except ValueError:
        pass

    email = identifier if "@" in identifier else f"{identifier}@{DEMO_EMAIL_DOMAIN}"
    return db.query(User).filter(User.email == email.lower()).first()


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> User:
    """Acting user from the ``X-User-Id`` header.

    The demo has no passwords: the header carries a user id, an email, or the
    local part of a seeded ``@example.com`` address.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )

    user = find_user(db, x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
