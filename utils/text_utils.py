"""
Text utilities for spreadsheet headers and cell values.

Used by the header mapper and the record normalizer.
"""

import re
import unicodedata
from typing import Any, Optional


def normalize_header(header: Optional[str]) -> str:
    """
    Normalize a column header or alias for matching.

    - "First Name" → "first_name"
    - "E-Mail" → "e_mail"
    - "  Date  of   Birth " → "date_of_birth"
    - "Teléfono" → "telefono"

    Args:
        header: Raw header text

    Returns:
        Lower-case header with whitespace/hyphen runs collapsed to "_"
    """
    if not header:
        return ""

    # Remove accent marks (NFD splits base chars from combining marks)
    normalized = unicodedata.normalize('NFD', str(header))
    without_accents = ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )

    return re.sub(r'[\s\-]+', '_', without_accents.strip().lower())


def clean_cell(value: Any, max_length: int = 1000) -> Optional[str]:
    """
    Clean a raw cell value for storage.

    - Strips whitespace
    - Converts numbers/booleans to text
    - Returns None for empty/whitespace-only values
    - Truncates to max length

    Args:
        value: Raw cell value from the parsed file
        max_length: Maximum characters to keep

    Returns:
        Cleaned text or None
    """
    if value is None:
        return None

    text = str(value).strip()

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length]

    return text
