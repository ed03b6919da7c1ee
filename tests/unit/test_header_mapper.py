"""
Unit tests for header auto-mapping and templates.

Run: pytest tests/unit/test_header_mapper.py -v
"""

import pytest

from models.imports import RecordKind
from services.header_mapper import (
    TARGET_FIELDS,
    auto_detect_mappings,
    get_target_fields,
    build_template_csv,
)


def as_dict(mappings) -> dict:
    return {m.target_field: m.source_field for m in mappings}


class TestTargetFields:
    """Tests for the per-kind target field lists."""

    def test_every_kind_has_fields(self):
        for kind in RecordKind:
            assert get_target_fields(kind), kind

    def test_required_membership_fields(self):
        required = [f.field for f in get_target_fields(RecordKind.MEMBERSHIPS) if f.required]
        assert required == ["user_email", "expiry_date"]

    def test_staff_email_required(self):
        fields = {f.field: f for f in get_target_fields(RecordKind.STAFF)}
        assert fields["email"].required is True
        assert fields["first_name"].required is False

    def test_accepts_kind_string(self):
        assert get_target_fields("packages") == TARGET_FIELDS[RecordKind.PACKAGES]

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            get_target_fields("invoices")


class TestAutoDetectMappings:
    """Tests for auto_detect_mappings."""

    def test_one_mapping_per_target_in_order(self):
        """Output covers every target field, in target order."""
        mappings = auto_detect_mappings(["Name", "Email"], RecordKind.USERS)

        assert [m.target_field for m in mappings] == [
            f.field for f in TARGET_FIELDS[RecordKind.USERS]
        ]

    def test_common_member_export(self):
        # Arrange
        headers = ["Name", "E-mail", "Mobile"]

        # Act
        result = as_dict(auto_detect_mappings(headers, RecordKind.USERS))

        # Assert
        assert result["full_name"] == "Name"
        assert result["email"] == "E-mail"
        assert result["phone"] == "Mobile"
        assert result["first_name"] == ""
        assert result["last_name"] == ""

    def test_unmatched_targets_empty(self):
        result = as_dict(auto_detect_mappings(["Foo", "Bar"], RecordKind.PACKAGES))
        assert set(result.values()) == {""}

    def test_empty_headers(self):
        result = auto_detect_mappings([], RecordKind.STAFF)
        assert all(m.source_field == "" for m in result)
        assert len(result) == len(TARGET_FIELDS[RecordKind.STAFF])

    def test_containment_match(self):
        """An alias contained in a longer header matches it."""
        result = as_dict(auto_detect_mappings(["Member Email", "Check In"], RecordKind.CHECK_INS))

        assert result["user_email"] == "Member Email"
        assert result["check_in_time"] == "Check In"

    def test_first_header_in_file_order_wins(self):
        result = as_dict(auto_detect_mappings(["Backup Email", "Email"], RecordKind.CHECK_INS))
        assert result["user_email"] == "Backup Email"

    def test_exact_alias_preferred_over_later_alias(self):
        """Aliases are tried in order, so the stronger alias wins regardless of column order."""
        result = as_dict(auto_detect_mappings(["Cell", "Phone"], RecordKind.USERS))
        assert result["phone"] == "Phone"

    def test_accented_header(self):
        result = as_dict(auto_detect_mappings(["Teléfono"], RecordKind.USERS))
        assert result["phone"] == "Teléfono"

    def test_original_header_text_returned(self):
        result = as_dict(auto_detect_mappings(["  EMAIL ADDRESS  "], RecordKind.STAFF))
        assert result["email"] == "  EMAIL ADDRESS  "

    def test_package_export(self):
        result = as_dict(auto_detect_mappings(
            ["Package Name", "Price", "Duration", "Unit"],
            RecordKind.PACKAGES,
        ))

        assert result["name"] == "Package Name"
        assert result["price"] == "Price"
        assert result["duration"] == "Duration"
        assert result["duration_unit"] == "Unit"

    def test_deterministic(self):
        headers = ["First Name", "Last Name", "Email", "Role"]
        assert auto_detect_mappings(headers, "staff") == auto_detect_mappings(headers, "staff")


class TestBuildTemplateCsv:
    """Tests for build_template_csv."""

    def test_header_row_matches_targets(self):
        lines = build_template_csv(RecordKind.PACKAGES).splitlines()

        assert lines[0] == "name,price,duration,duration_unit,access_type,max_freezes,description,is_active"
        assert lines[1] == "Basic Package,1000,1,months,all_hours,0,,true"

    def test_two_lines_per_kind(self):
        for kind in RecordKind:
            assert len(build_template_csv(kind).splitlines()) == 2
