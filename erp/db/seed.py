"""Database seeding for the DNA ERP demo.

Creates one user per role and a few purchase orders in different states.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from dna.logger import get_logger
from dna.roles import Role
from erp.core.approval.machine import utcnow
from erp.core.approval.states import POStatus
from erp.db.models import ApprovalLog, PurchaseOrder, User

logger = get_logger(__name__)

DEMO_USERS = [
    {"email": "staff@example.com", "name": "John Staff", "role": Role.STAFF},
    {"email": "manager@example.com", "name": "Jane Manager", "role": Role.MANAGER},
    {"email": "director@example.com", "name": "Bob Director", "role": Role.DIRECTOR},
    {"email": "ceo@example.com", "name": "Alice CEO", "role": Role.CEO},
]

DEMO_ORDERS = [
    {
        "po_number": "PO-2025-001",
        "title": "Office Supplies",
        "description": "Monthly office supplies",
        "amount": 500000.0,
        "vendor": "ATK Sejahtera",
        "status": POStatus.DRAFT,
        "created_by": "staff@example.com",
    },
    {
        "po_number": "PO-2025-002",
        "title": "Computer Equipment",
        "description": "Laptops for the new engineering team",
        "amount": 75000000.0,
        "vendor": "Tech Nusantara",
        "status": POStatus.PENDING_APPROVAL,
        "created_by": "staff@example.com",
    },
    {
        "po_number": "PO-2025-003",
        "title": "Marketing Materials",
        "description": "Brochures and banners for the product launch",
        "amount": 2500000.0,
        "vendor": "Cetak Kilat",
        "status": POStatus.APPROVED,
        "created_by": "manager@example.com",
        "approved_by": "director@example.com",
    },
]


def seed_users(db: Session) -> dict[str, User]:
    """
    Create the demo users, one per role.

    Idempotent: existing users (matched by email) are returned unchanged.

    Returns:
        Dict mapping email to User
    """
    users = {}
    for entry in DEMO_USERS:
        existing = db.query(User).filter(User.email == entry["email"]).first()
        if existing:
            users[entry["email"]] = existing
            continue

        user = User(email=entry["email"], name=entry["name"], role=entry["role"].value)
        db.add(user)
        users[entry["email"]] = user

    db.flush()
    return users


def seed_purchase_orders(db: Session, users: dict[str, User]) -> list[PurchaseOrder]:
    """
    Create the demo purchase orders with a log matching their status.

    Idempotent: orders whose PO number exists are skipped.
    """
    created = []
    now = utcnow()

    for entry in DEMO_ORDERS:
        if db.query(PurchaseOrder).filter(PurchaseOrder.po_number == entry["po_number"]).first():
            continue

        creator = users[entry["created_by"]]
        approver: Optional[User] = users.get(entry.get("approved_by", ""))
        status = entry["status"]

        po = PurchaseOrder(
            po_number=entry["po_number"],
            title=entry["title"],
            description=entry["description"],
            amount=entry["amount"],
            vendor=entry["vendor"],
            status=status.value,
            created_by_id=creator.id,
            approved_by_id=approver.id if approver else None,
            created_at=now - timedelta(hours=6),
            submitted_at=now - timedelta(hours=2) if status != POStatus.DRAFT else None,
            resolved_at=now - timedelta(hours=1) if approver else None,
        )
        db.add(po)
        db.flush()

        db.add(ApprovalLog(po_id=po.id, user_id=creator.id, action="Created PO",
                           created_at=po.created_at))
        if po.submitted_at:
            db.add(ApprovalLog(po_id=po.id, user_id=creator.id, action="Submitted for approval",
                               created_at=po.submitted_at))
        if approver:
            db.add(ApprovalLog(po_id=po.id, user_id=approver.id, action="Approved",
                               comment="Within budget", created_at=po.resolved_at))
        created.append(po)

    db.flush()
    return created


def seed_demo_data(db: Session) -> None:
    """Seed users and purchase orders; the caller commits."""
    users = seed_users(db)
    orders = seed_purchase_orders(db, users)
    logger.info("Seeded %d users and %d new purchase orders", len(users), len(orders))


# CLI script for seeding
if __name__ == "__main__":
    import sys
    from erp.db.session import SessionLocal, init_db

    init_db()
    db = SessionLocal()
    try:
        users = seed_users(db)
        print(f"Seeded {len(users)} users:")
        for user in users.values():
            print(f"  - {user.name} <{user.email}>: {user.role}")

        orders = seed_purchase_orders(db, users)
        print(f"\nCreated {len(orders)} purchase orders:")
        for po in orders:
            print(f"  - {po.po_number} {po.title}: {po.status}")

        db.commit()
        print("\nSeeding complete!")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
