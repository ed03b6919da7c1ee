"""
Business logic services.

Each service handles one step of the import pipeline.
"""

from services.header_mapper import (
    TARGET_FIELDS,
    auto_detect_mappings,
    get_target_fields,
    build_template_csv,
)
from services.record_normalizer import normalize_record
from services.duplicate_resolver import DuplicateResolver, Disposition, decide
from services.identity_provisioner import IdentityProvisioner, SupabaseIdentityProvider
from services.row_importer import RowImporter
from services.user_importer import UserImporter
from services.staff_importer import StaffImporter
from services.package_importer import PackageImporter
from services.check_in_importer import CheckInImporter
from services.membership_importer import MembershipImporter
from services.import_service import ImportService, get_import_service, import_data
from services.import_run_service import ImportRunService, ImportRun, get_import_run_service

__all__ = [
    "TARGET_FIELDS",
    "auto_detect_mappings",
    "get_target_fields",
    "build_template_csv",
    "normalize_record",
    "DuplicateResolver",
    "Disposition",
    "decide",
    "IdentityProvisioner",
    "SupabaseIdentityProvider",
    "RowImporter",
    "UserImporter",
    "StaffImporter",
    "PackageImporter",
    "CheckInImporter",
    "MembershipImporter",
    "ImportService",
    "get_import_service",
    "import_data",
    "ImportRunService",
    "ImportRun",
    "get_import_run_service",
]
