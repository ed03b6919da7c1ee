"""
Unit tests for duplicate lookup and disposition.

Run: pytest tests/unit/test_duplicate_resolver.py -v
"""

import pytest

from models.imports import DuplicateHandling, ExistingEntityRef
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from tests.factories import GYM_ID, StoredUserFactory


@pytest.fixture
def resolver(mock_supabase):
    return DuplicateResolver(mock_supabase)


class TestFindExisting:
    """Tests for DuplicateResolver.find_existing."""

    @pytest.mark.asyncio
    async def test_match_on_first_key(self, resolver, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u1", email="ada@example.com", phone="555"),
        ])

        # Act
        existing = await resolver.find_existing(
            "users", GYM_ID, [{"email": "ada@example.com"}, {"phone": "999"}]
        )

        # Assert
        assert existing is not None
        assert existing.id == "u1"

    @pytest.mark.asyncio
    async def test_falls_back_to_second_key(self, resolver, mock_supabase):
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u2", email="old@example.com", phone="555"),
        ])

        existing = await resolver.find_existing(
            "users", GYM_ID, [{"email": "new@example.com"}, {"phone": "555"}]
        )

        assert existing.id == "u2"

    @pytest.mark.asyncio
    async def test_empty_key_values_skipped(self, resolver, mock_supabase):
        """Blank phone must not match every member with a blank phone."""
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u3", email="x@example.com", phone=""),
        ])

        existing = await resolver.find_existing(
            "users", GYM_ID, [{"email": None}, {"phone": ""}]
        )

        assert existing is None
        assert mock_supabase.calls == []

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, resolver, mock_supabase):
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u4", email="ada@example.com", gym_id="other-gym"),
        ])

        existing = await resolver.find_existing("users", GYM_ID, [{"email": "ada@example.com"}])

        assert existing is None

    @pytest.mark.asyncio
    async def test_composite_key(self, resolver, mock_supabase):
        mock_supabase.set_table_data("client_checkins", [
            {"id": "c1", "gym_id": GYM_ID, "user_id": "u1", "check_in_time": "2025-01-15T08:30:00"},
        ])

        same = await resolver.find_existing(
            "client_checkins", GYM_ID,
            [{"user_id": "u1", "check_in_time": "2025-01-15T08:30:00"}],
        )
        other_time = await resolver.find_existing(
            "client_checkins", GYM_ID,
            [{"user_id": "u1", "check_in_time": "2025-01-16T08:30:00"}],
        )

        assert same.id == "c1"
        assert other_time is None

    @pytest.mark.asyncio
    async def test_lookup_failure_is_no_match(self, resolver, mock_supabase):
        """A failed query is treated as no duplicate."""
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u5", email="ada@example.com"),
        ])
        mock_supabase.fail_on("users", "select", RuntimeError("connection reset"))

        existing = await resolver.find_existing("users", GYM_ID, [{"email": "ada@example.com"}])

        assert existing is None


class TestDecide:
    """Tests for decide."""

    existing = ExistingEntityRef(id="abc")

    @pytest.mark.parametrize("handling", list(DuplicateHandling))
    def test_no_match_always_creates(self, handling):
        assert decide(None, handling) == Disposition.CREATE

    def test_skip(self):
        assert decide(self.existing, DuplicateHandling.SKIP) == Disposition.SKIP

    def test_update(self):
        assert decide(self.existing, DuplicateHandling.UPDATE) == Disposition.UPDATE

    def test_create_new_ignores_match(self):
        assert decide(self.existing, DuplicateHandling.CREATE_NEW) == Disposition.CREATE
