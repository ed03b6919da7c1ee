"""
Import file parsers module.
"""

from parsers.import_file_parser import (
    parse_import_file,
    parse_csv,
    parse_excel,
    parse_json,
    ImportFileParseResult,
    SUPPORTED_EXTENSIONS,
)

__all__ = [
    "parse_import_file",
    "parse_csv",
    "parse_excel",
    "parse_json",
    "ImportFileParseResult",
    "SUPPORTED_EXTENSIONS",
]
