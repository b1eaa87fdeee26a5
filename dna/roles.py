"""Approver role hierarchy.

Roles form a strict total order: STAFF < MANAGER < DIRECTOR < CEO.
"""

from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    """Roles a user can hold and a threshold band can require."""

    STAFF = "STAFF"
    MANAGER = "MANAGER"
    DIRECTOR = "DIRECTOR"
    CEO = "CEO"

    @property
    def rank(self) -> int:
        return ROLE_HIERARCHY.index(self)

    @property
    def display_name(self) -> str:
        """Capitalized name for UIs, e.g. ``Manager``."""
        return self.value.capitalize()

    def at_least(self, other: "Role") -> bool:
        """True if this role ranks the same as or above ``other``."""
        return self.rank >= other.rank


ROLE_HIERARCHY: tuple[Role, ...] = (Role.STAFF, Role.MANAGER, Role.DIRECTOR, Role.CEO)


def parse_role(value: Union[str, Role, None]) -> Optional[Role]:
    """Return the Role for a string, or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    if not value:
        return None
    try:
        return Role(str(value).strip().upper())
    except ValueError:
        return None


def role_rank(value: Union[str, Role, None]) -> int:
    """Rank of a role; unrecognized roles rank as STAFF (0)."""
    role = parse_role(value)
    return role.rank if role else 0


def compare_roles(a: Union[str, Role], b: Union[str, Role]) -> int:
    """Three-way comparison of two roles by rank (-1, 0 or 1)."""
    rank_a, rank_b = role_rank(a), role_rank(b)
    return (rank_a > rank_b) - (rank_a < rank_b)
