"""
Bulk import API routes.

Upload → preview with suggested mappings → run (synchronous or background)
→ poll/cancel background runs.
"""

from fastapi import APIRouter, UploadFile, File, Form
from fastapi.responses import JSONResponse, PlainTextResponse
import structlog

from config import settings
from models.imports import (
    RecordKind,
    TargetField,
    FieldMapping,
    ImportResult,
    DetectMappingsRequest,
    ImportRequest,
    ImportPreviewResponse,
    ImportRunResponse,
)
from parsers.import_file_parser import parse_import_file
from services.header_mapper import auto_detect_mappings, get_target_fields, build_template_csv
from services.import_service import get_import_service
from services.import_run_service import get_import_run_service
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _check_row_limit(records: list) -> None:
    if len(records) > settings.import_max_rows:
        raise ValidationError(
            code="IMPORT_TOO_MANY_ROWS",
            message=f"Import is limited to {settings.import_max_rows} rows",
            details={"rows": len(records), "max_rows": settings.import_max_rows}
        )


# ===================
# MAPPING
# ===================

@router.get("/target-fields/{record_kind}", response_model=list[TargetField])
async def list_target_fields(record_kind: RecordKind):
    """Canonical fields a file of this kind can be mapped onto."""
    return get_target_fields(record_kind)


@router.get("/templates/{record_kind}", response_class=PlainTextResponse)
async def download_template(record_kind: RecordKind):
    """CSV template with every field and one example row."""
    return PlainTextResponse(
        build_template_csv(record_kind),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{record_kind.value}_template.csv"'
        }
    )


@router.post("/detect-mappings", response_model=list[FieldMapping])
async def detect_mappings(request: DetectMappingsRequest):
    """Suggest a source column for every target field."""
    return auto_detect_mappings(request.headers, request.record_kind)


@router.post("/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = File(..., description="CSV, Excel or JSON export"),
    record_kind: RecordKind = Form(..., description="Kind of record in the file"),
):
    """
    Parse an uploaded file and suggest field mappings.

    Raises:
        422: File cannot be parsed or has no rows
    """
    try:
        content = await file.read()
        parsed = parse_import_file(content, file.filename or "")
        _check_row_limit(parsed.records)

        return ImportPreviewResponse(
            filename=file.filename or "",
            record_kind=record_kind,
            headers=parsed.headers,
            total_records=parsed.total_records,
            records=parsed.records,
            suggested_mappings=auto_detect_mappings(parsed.headers, record_kind),
        )

    except Exception as e:
        return handle_error(e)


# ===================
# RUNS
# ===================

@router.post("", response_model=ImportResult)
async def run_import(request: ImportRequest):
    """
    Import all records and wait for the result.

    Row problems are reported inside the result, never as HTTP errors.
    """
    try:
        _check_row_limit(request.records)
        service = await get_import_service()
        return await service.import_data(request.records, request.config)

    except Exception as e:
        return handle_error(e)


@router.post("/runs", response_model=ImportRunResponse, status_code=202)
async def start_import_run(request: ImportRequest):
    """Start an import in the background; poll /runs/{run_id} for progress."""
    try:
        _check_row_limit(request.records)
        service = await get_import_run_service()
        run = service.start_run(request.records, request.config)
        return run.to_response()

    except Exception as e:
        return handle_error(e)


@router.get("/runs/{run_id}", response_model=ImportRunResponse)
async def get_import_run(run_id: str):
    """
    Progress of a background import.

    Raises:
        404: Unknown run
    """
    try:
        service = await get_import_run_service()
        return service.get_run(run_id).to_response()

    except Exception as e:
        return handle_error(e)


@router.post("/runs/{run_id}/cancel", response_model=ImportRunResponse)
async def cancel_import_run(run_id: str):
    """
    Stop a background import before its next row. Written rows are kept.

    Raises:
        404: Unknown run
    """
    try:
        service = await get_import_run_service()
        return service.cancel_run(run_id).to_response()

    except Exception as e:
        return handle_error(e)
