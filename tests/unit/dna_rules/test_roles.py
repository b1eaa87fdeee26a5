"""Tests for the approver role hierarchy."""

import pytest

from dna.roles import ROLE_HIERARCHY, Role, compare_roles, parse_role, role_rank


class TestRoleHierarchy:
    """Test role ordering."""

    def test_hierarchy_order(self):
        """Test roles are ordered STAFF < MANAGER < DIRECTOR < CEO."""
        assert ROLE_HIERARCHY == (Role.STAFF, Role.MANAGER, Role.DIRECTOR, Role.CEO)
        assert [r.rank for r in ROLE_HIERARCHY] == [0, 1, 2, 3]

    def test_at_least(self):
        assert Role.CEO.at_least(Role.DIRECTOR)
        assert Role.MANAGER.at_least(Role.MANAGER)
        assert not Role.STAFF.at_least(Role.MANAGER)

    def test_display_name(self):
        assert Role.DIRECTOR.display_name == "Director"
        assert Role.CEO.display_name == "Ceo"

    @pytest.mark.parametrize("a,b,expected", [
        ("STAFF", "CEO", -1),
        ("CEO", "STAFF", 1),
        ("MANAGER", Role.MANAGER, 0),
    ])
    def test_compare_roles(self, a, b, expected):
        assert compare_roles(a, b) == expected


class TestParseRole:
    """Test role parsing from DNA and database values."""

    def test_case_and_whitespace_insensitive(self):
        assert parse_role(" manager ") == Role.MANAGER
        assert parse_role("Director") == Role.DIRECTOR

    def test_role_instance_passthrough(self):
        assert parse_role(Role.CEO) is Role.CEO

    @pytest.mark.parametrize("value", [None, "", "INTERN", "admin"])
    def test_unknown_roles(self, value):
        assert parse_role(value) is None

    def test_unknown_role_ranks_as_staff(self):
        """Test unrecognized roles get the lowest rank."""
        assert role_rank("INTERN") == 0
        assert role_rank(None) == 0
        assert role_rank("CEO") == 3
