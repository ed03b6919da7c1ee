"""
Unit tests for the import coordinator.

Run: pytest tests/unit/test_import_service.py -v
"""

import asyncio
import pytest

from models.imports import (
    RecordKind,
    DuplicateHandling,
    ImportResult,
    Imported,
    Updated,
    Skipped,
    Failed,
)
from services.header_mapper import auto_detect_mappings
from services.import_service import fold_outcome
from tests.factories import (
    GYM_ID,
    MEMBER_HEADERS,
    MemberRowFactory,
    StoredUserFactory,
    make_config,
)


def totals(result: ImportResult) -> tuple:
    return result.imported, result.updated, result.skipped, result.failed


# ===================
# FOLDING
# ===================

class TestFoldOutcome:
    """Tests for fold_outcome."""

    def test_counts_each_variant(self):
        result = ImportResult(total_records=4)

        fold_outcome(result, Imported("a"), 1)
        fold_outcome(result, Updated("b"), 2)
        fold_outcome(result, Skipped(), 3)
        fold_outcome(result, Failed("boom"), 4)

        assert totals(result) == (1, 1, 1, 1)
        assert result.errors == ["Row 4: boom"]

    def test_skip_reason_recorded(self):
        result = ImportResult(total_records=1)

        fold_outcome(result, Skipped("Missing required fields (name, price, duration)"), 7)

        assert result.errors == ["Row 7: Missing required fields (name, price, duration)"]

    def test_unknown_outcome_rejected(self):
        with pytest.raises(TypeError):
            fold_outcome(ImportResult(), "imported", 1)


# ===================
# COORDINATOR
# ===================

class TestImportData:
    """Tests for ImportService.import_data."""

    @pytest.mark.asyncio
    async def test_end_to_end_two_members(self, import_service, mock_supabase, identity_provider):
        """No-email member gets a local id; the other goes through the provider."""
        # Arrange
        records = [
            {"email": None, "full_name": "Alice Jones"},
            {"email": "bob@example.com", "full_name": "Bob Smith"},
        ]
        config = {
            "tenant_id": GYM_ID,
            "record_kind": "users",
            "duplicate_handling": "create_new",
            "field_mappings": [
                m.model_dump() for m in auto_detect_mappings(["email", "full_name"], "users")
            ],
        }

        # Act
        result = await import_service.import_data(records, config)

        # Assert
        assert result.success is True
        assert result.total_records == 2
        assert totals(result) == (2, 0, 0, 0)
        assert result.errors == []

        assert [email for email, _ in identity_provider.calls] == ["bob@example.com"]
        stored = {row["first_name"]: row for row in mock_supabase.rows("users")}
        assert stored["Alice"]["last_name"] == "Jones"
        assert stored["Alice"]["id"] != "auth-user-1"
        assert stored["Bob"]["id"] == "auth-user-1"

    @pytest.mark.asyncio
    async def test_counts_conserved_and_errors_ordered(self, import_service, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("users", [
            StoredUserFactory.create(id="u-dup", email="dup@example.com"),
        ])
        records = [
            MemberRowFactory.create(name="Valid One", email="one@example.com"),
            MemberRowFactory.create(name="", email="noname@example.com"),
            MemberRowFactory.create(name="Dup Person", email="dup@example.com"),
            MemberRowFactory.create(name="", email="noname2@example.com"),
            MemberRowFactory.create(name="Valid Two", email="two@example.com"),
        ]
        config = make_config(RecordKind.USERS, MEMBER_HEADERS)

        # Act
        result = await import_service.import_data(records, config)

        # Assert
        assert totals(result) == (2, 0, 3, 0)
        assert result.processed == result.total_records == 5
        assert result.errors == [
            "Row 2: Missing required field (first_name or full_name)",
            "Row 4: Missing required field (first_name or full_name)",
        ]
        assert result.success is True

    @pytest.mark.asyncio
    async def test_rows_written_in_input_order(self, import_service, mock_supabase):
        records = [MemberRowFactory.create(name=f"Member{i} X") for i in range(5)]
        config = make_config(RecordKind.USERS, MEMBER_HEADERS)

        await import_service.import_data(records, config)

        assert [row["first_name"] for row in mock_supabase.rows("users")] == [
            f"Member{i}" for i in range(5)
        ]

    @pytest.mark.asyncio
    async def test_failed_row_marks_run_unsuccessful(self, import_service, mock_supabase):
        mock_supabase.fail_on("packages", "insert", RuntimeError("insert blew up"))
        records = [{"Package Name": "Gold", "Price": "10", "Duration": "1", "Unit": "months"}]
        config = make_config(RecordKind.PACKAGES, ["Package Name", "Price", "Duration", "Unit"])

        result = await import_service.import_data(records, config)

        assert result.success is False
        assert result.failed == 1
        assert result.errors == ["Row 1: insert blew up"]

    @pytest.mark.asyncio
    async def test_empty_input(self, import_service):
        result = await import_service.import_data([], make_config(RecordKind.USERS, MEMBER_HEADERS))

        assert result.success is True
        assert result.total_records == 0
        assert result.errors == []


class TestIdempotence:
    """Re-running the same file."""

    @pytest.mark.asyncio
    async def test_second_run_with_skip_writes_nothing(self, import_service, mock_supabase):
        records = MemberRowFactory.create_batch(3)
        config = make_config(RecordKind.USERS, MEMBER_HEADERS, DuplicateHandling.SKIP)

        first = await import_service.import_data(records, config)
        writes_after_first = len(mock_supabase.writes())
        second = await import_service.import_data(records, config)

        assert first.imported == 3
        assert totals(second) == (0, 0, 3, 0)
        assert second.errors == []
        assert len(mock_supabase.writes()) == writes_after_first

    @pytest.mark.asyncio
    async def test_second_run_with_update_converges(self, import_service, mock_supabase):
        records = MemberRowFactory.create_batch(3)
        config = make_config(RecordKind.USERS, MEMBER_HEADERS, DuplicateHandling.UPDATE)

        await import_service.import_data(records, config)
        snapshot = len(mock_supabase.rows("users"))
        second = await import_service.import_data(records, config)

        assert totals(second) == (0, 3, 0, 0)
        assert len(mock_supabase.rows("users")) == snapshot


class TestCancellation:
    """Cancellation is checked before each row."""

    @pytest.mark.asyncio
    async def test_cancel_mid_run(self, import_service, mock_supabase):
        # Arrange
        cancel = asyncio.Event()
        records = MemberRowFactory.create_batch(5)
        config = make_config(RecordKind.USERS, MEMBER_HEADERS)

        def on_progress(result: ImportResult):
            if result.processed == 2:
                cancel.set()

        # Act
        result = await import_service.import_data(records, config, cancel, on_progress)

        # Assert
        assert result.cancelled is True
        assert result.processed == 2
        assert result.total_records == 5
        assert result.errors[-1] == "Import cancelled by user after 2 records"
        # Rows already written stay written
        assert len(mock_supabase.rows("users")) == 2

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, import_service, mock_supabase):
        cancel = asyncio.Event()
        cancel.set()

        result = await import_service.import_data(
            MemberRowFactory.create_batch(2),
            make_config(RecordKind.USERS, MEMBER_HEADERS),
            cancel,
        )

        assert result.processed == 0
        assert result.errors == ["Import cancelled by user after 0 records"]
        assert mock_supabase.calls == []


class TestConfigValidation:
    """Malformed configurations are reported, never raised."""

    @pytest.mark.asyncio
    async def test_unknown_kind(self, import_service, mock_supabase):
        result = await import_service.import_data(
            MemberRowFactory.create_batch(2),
            {"tenant_id": GYM_ID, "record_kind": "invoices"},
        )

        assert result.success is False
        assert result.errors == ["Unknown data type"]
        assert totals(result) == (0, 0, 0, 0)
        assert mock_supabase.calls == []

    @pytest.mark.asyncio
    async def test_missing_tenant(self, import_service):
        result = await import_service.import_data(
            MemberRowFactory.create_batch(1),
            {"record_kind": "users"},
        )

        assert result.success is False
        assert result.errors[0].startswith("Invalid import configuration")
