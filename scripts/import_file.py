"""
Import one exported file into a gym.

Usage:
    python scripts/import_file.py --file members.csv --gym-id <uuid> --kind users
    python scripts/import_file.py --file visits.xlsx --gym-id <uuid> --kind check_ins \
        --duplicates update
    python scripts/import_file.py --file staff.json --gym-id <uuid> --kind staff --dry-run

Mappings are auto-detected from the file headers. --dry-run parses and
validates every row without touching the database.
"""

import argparse
import asyncio
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError, RowValidationError
from models.imports import RecordKind, DuplicateHandling, FieldMapping, ImportConfig, ImportResult
from parsers.import_file_parser import parse_import_file
from services.header_mapper import auto_detect_mappings
from services.record_normalizer import normalize_record


def print_mappings(mappings: list[FieldMapping]) -> None:
    print("\nField mappings:")
    for mapping in mappings:
        source = mapping.source_field or "(unmapped)"
        print(f"  {mapping.target_field:<20} <- {source}")


def dry_run(records: list[dict], mappings: list[FieldMapping], kind: RecordKind) -> int:
    """Validate every row; returns the number of rows that would be skipped."""
    invalid = 0
    for row_number, record in enumerate(records, start=1):
        try:
            normalize_record(record, mappings, kind)
        except RowValidationError as e:
            invalid += 1
            print(f"  Row {row_number}: {e.message}")

    print(f"\nDry run: {len(records) - invalid} valid, {invalid} invalid of {len(records)} rows")
    return invalid


def print_result(result: ImportResult) -> None:
    print("\n" + "=" * 50)
    print(f"Total:    {result.total_records}")
    print(f"Imported: {result.imported}")
    print(f"Updated:  {result.updated}")
    print(f"Skipped:  {result.skipped}")
    print(f"Failed:   {result.failed}")
    if result.cancelled:
        print("Cancelled before completion")
    print("=" * 50)

    if result.errors:
        print(f"\nMessages ({len(result.errors)}):")
        for message in result.errors[:50]:
            print(f"  {message}")
        if len(result.errors) > 50:
            print(f"  ... and {len(result.errors) - 50} more")


async def run_import(records: list[dict], config: ImportConfig) -> ImportResult:
    from services.import_service import import_data
    return await import_data(records, config)


def main():
    parser = argparse.ArgumentParser(
        description="Import an exported CSV, Excel or JSON file into a gym."
    )
    parser.add_argument(
        "--file",
        required=True,
        help="Path to the file to import",
    )
    parser.add_argument(
        "--gym-id",
        required=True,
        help="Gym UUID the rows are imported under",
    )
    parser.add_argument(
        "--kind",
        required=True,
        choices=[k.value for k in RecordKind],
        help="Kind of record in the file",
    )
    parser.add_argument(
        "--duplicates",
        default=DuplicateHandling.SKIP.value,
        choices=[d.value for d in DuplicateHandling],
        help="What to do with rows matching an existing record (default: skip)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and validate only; write nothing",
    )

    args = parser.parse_args()
    kind = RecordKind(args.kind)

    try:
        with open(args.file, "rb") as f:
            content = f.read()
    except OSError as e:
        print(f"Error: Cannot read {args.file}: {e}")
        sys.exit(1)

    try:
        parsed = parse_import_file(content, os.path.basename(args.file))
    except AppError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(f"Parsed {parsed.total_records} rows, {len(parsed.headers)} columns from {args.file}")

    mappings = auto_detect_mappings(parsed.headers, kind)
    print_mappings(mappings)

    if args.dry_run:
        invalid = dry_run(parsed.records, mappings, kind)
        sys.exit(0 if invalid == 0 else 1)

    config = ImportConfig(
        tenant_id=args.gym_id,
        record_kind=kind,
        duplicate_handling=DuplicateHandling(args.duplicates),
        field_mappings=mappings,
    )

    result = asyncio.run(run_import(parsed.records, config))
    print_result(result)
    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
