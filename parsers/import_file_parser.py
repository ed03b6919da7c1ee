"""
Import file parser.

Reads operator uploads exported from other gym systems (CSV, Excel, JSON,
SQL INSERT dumps, XML, YAML) into header lists and per-row dicts. Cells come
back as text, except real booleans from typed formats, which stay bool so
status flags coerce correctly. Blank cells become "".
"""

import json
import re
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any
import structlog

import pandas as pd
import yaml
from lxml import etree

from exceptions import ImportFileParseError

logger = structlog.get_logger(__name__)


# Exports from Windows desktop tools are rarely UTF-8
CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

SUPPORTED_EXTENSIONS = (
    ".csv", ".txt", ".xlsx", ".xlsm", ".json", ".sql", ".xml", ".yaml", ".yml",
)

# Element names that mark one record in an XML export
XML_ROW_TAGS = ("row", "record", "item", "entry", "user", "member", "client")

SQL_INSERT_PATTERN = re.compile(
    r"INSERT\s+INTO\s+[`\"']?(\w+)[`\"']?\s*\(([^)]+)\)\s*VALUES\s*",
    re.IGNORECASE
)

# One token of a VALUES list: quoted string, punctuation or bare literal
SQL_TOKEN_PATTERN = re.compile(
    r"""\s*(?:'((?:[^'\\]|''|\\.)*)'|"((?:[^"\\]|""|\\.)*)"|([(),;])|([^\s(),;'"]+))"""
)


@dataclass
class ImportFileParseResult:
    """Headers (file order) plus one dict per data row."""
    headers: list[str] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.records)


def _cell_value(value: Any) -> Any:
    """Typed cell to text; bools pass through, blanks become ""."""
    if pd.api.types.is_bool(value):
        return bool(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, default=str)
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return str(value).strip()


def _frame_to_result(df: pd.DataFrame) -> ImportFileParseResult:
    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]

    # Drop rows where every cell is blank
    df = df[~(df.astype(str).apply(lambda col: col.str.strip()) == "").all(axis=1)]

    records = [
        {k: (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
        for row in df.to_dict(orient="records")
    ]
    return ImportFileParseResult(headers=list(df.columns), records=records)


def _rows_to_result(rows: list[dict[str, Any]]) -> ImportFileParseResult:
    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    return ImportFileParseResult(headers=headers, records=rows)


def _unwrap_rows(parsed: Any, format_name: str) -> list[dict[str, Any]]:
    """Array of objects, {"data": [...]}, or a single object."""
    if isinstance(parsed, dict) and isinstance(parsed.get("data"), list):
        rows = parsed["data"]
    elif isinstance(parsed, list):
        rows = parsed
    elif isinstance(parsed, dict):
        rows = [parsed]
    else:
        raise ImportFileParseError(f"Invalid {format_name} structure")
    return [row for row in rows if isinstance(row, dict)]


def parse_csv(content: bytes) -> ImportFileParseResult:
    """
    Parse CSV bytes, trying common encodings in turn.

    Raises:
        ImportFileParseError: Unreadable or empty file
    """
    last_error = None
    for encoding in CSV_ENCODINGS:
        try:
            df = pd.read_csv(
                BytesIO(content),
                dtype=str,
                keep_default_na=False,
                encoding=encoding,
                skipinitialspace=True,
            )
            logger.debug("csv_decoded", encoding=encoding, rows=len(df))
            return _frame_to_result(df)
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except pd.errors.EmptyDataError:
            raise ImportFileParseError("CSV file is empty")
        except pd.errors.ParserError as e:
            raise ImportFileParseError(
                message="Failed to parse CSV file",
                details={"original_error": str(e)}
            )

    raise ImportFileParseError(
        message="Could not decode CSV file",
        details={"original_error": str(last_error), "tried": list(CSV_ENCODINGS)}
    )


def parse_excel(content: bytes) -> ImportFileParseResult:
    """
    Parse the first sheet of an Excel workbook.

    Raises:
        ImportFileParseError: Unreadable workbook
    """
    try:
        df = pd.read_excel(BytesIO(content), engine="openpyxl")
    except Exception as e:
        logger.error("excel_read_failed", error=str(e))
        raise ImportFileParseError(
            message="Failed to read Excel file",
            details={"original_error": str(e)}
        )
    df = df.astype(object).map(_cell_value)
    return _frame_to_result(df)


def parse_json(content: bytes) -> ImportFileParseResult:
    """
    Parse a JSON array of objects, {"data": [...]}, or a single object.

    Raises:
        ImportFileParseError: Invalid JSON or unsupported structure
    """
    try:
        parsed = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ImportFileParseError(
            message="JSON parse error",
            details={"original_error": str(e)}
        )

    return _rows_to_result(_unwrap_rows(parsed, "JSON"))


def parse_yaml(content: bytes) -> ImportFileParseResult:
    """
    Parse a YAML list of mappings (same shapes as JSON).

    Scalars other than booleans are turned into text so dates and numbers
    reach the normalizer the same way they do from CSV.

    Raises:
        ImportFileParseError: Invalid YAML or unsupported structure
    """
    try:
        parsed = yaml.safe_load(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, yaml.YAMLError) as e:
        raise ImportFileParseError(
            message="YAML parse error",
            details={"original_error": str(e)}
        )

    rows = [
        {str(k): _cell_value(v) for k, v in row.items()}
        for row in _unwrap_rows(parsed, "YAML")
    ]
    return _rows_to_result(rows)


def parse_xml(content: bytes) -> ImportFileParseResult:
    """
    Parse an XML export.

    Records are elements named like XML_ROW_TAGS anywhere in the document;
    failing that, the root's children sharing the first child's tag. Child
    elements and attributes both become fields.

    Raises:
        ImportFileParseError: Malformed XML
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as e:
        raise ImportFileParseError(
            message="Invalid XML format",
            details={"original_error": str(e)}
        )

    elements = list(root.iter(*XML_ROW_TAGS))
    if not elements:
        children = [child for child in root if isinstance(child.tag, str)]
        if children:
            elements = [child for child in children if child.tag == children[0].tag]

    rows = []
    for element in elements:
        record: dict[str, Any] = {}
        for child in element:
            if isinstance(child.tag, str):
                record[etree.QName(child).localname] = "".join(child.itertext()).strip()
        for name, value in element.attrib.items():
            record[name] = value.strip()
        if record:
            rows.append(record)

    return _rows_to_result(rows)


def _parse_sql_values(content: str, pos: int) -> tuple[list[list[str]], int]:
    """Read "(...), (...);" tuples starting at pos. Returns rows and end position."""
    rows: list[list[str]] = []
    current = None

    while True:
        match = SQL_TOKEN_PATTERN.match(content, pos)
        if not match:
            break
        pos = match.end()
        single, double, punct, bare = match.groups()

        if punct == "(":
            current = []
        elif punct == ")":
            if current is not None:
                rows.append(current)
            current = None
        elif punct == ";":
            break
        elif punct == ",":
            continue
        elif current is not None:
            if single is not None:
                value = single.replace("''", "'").replace("\\'", "'")
            elif double is not None:
                value = double.replace('""', '"').replace('\\"', '"')
            else:
                value = "" if bare.upper() == "NULL" else bare
            current.append(value)

    return rows, pos


def parse_sql(content: bytes) -> ImportFileParseResult:
    """
    Parse SQL INSERT statements from a database dump.

    Handles multi-row VALUES lists, quoted strings with doubled or
    backslash-escaped quotes, and NULL (read as ""). Headers come from the
    first INSERT's column list.

    Raises:
        ImportFileParseError: No INSERT statements found
    """
    text = content.decode("utf-8-sig", errors="replace")
    headers: list[str] = []
    records: list[dict[str, Any]] = []

    tables: list[str] = []
    pos = 0
    while True:
        match = SQL_INSERT_PATTERN.search(text, pos)
        if not match:
            break
        tables.append(match.group(1))
        columns = [col.strip().strip("`\"'") for col in match.group(2).split(",")]
        if not headers:
            headers = columns

        rows, pos = _parse_sql_values(text, match.end())
        for values in rows:
            records.append({
                col: (values[i] if i < len(values) else "")
                for i, col in enumerate(columns)
            })

    if not records:
        raise ImportFileParseError("No valid INSERT statements found")

    logger.debug("sql_dump_parsed", tables=sorted(set(tables)), rows=len(records))
    return ImportFileParseResult(headers=headers, records=records)


def parse_import_file(content: bytes, filename: str) -> ImportFileParseResult:
    """
    Parse an uploaded import file, choosing the reader by extension.

    Args:
        content: Raw file bytes
        filename: Original file name (extension selects the reader)

    Returns:
        ImportFileParseResult

    Raises:
        ImportFileParseError: Unsupported type, unreadable or no data rows
    """
    extension = Path(filename or "").suffix.lower()
    logger.info("parsing_import_file", filename=filename, size=len(content))

    if not content:
        raise ImportFileParseError("File is empty")

    if extension in (".csv", ".txt"):
        result = parse_csv(content)
    elif extension in (".xlsx", ".xlsm"):
        result = parse_excel(content)
    elif extension == ".json":
        result = parse_json(content)
    elif extension == ".sql":
        result = parse_sql(content)
    elif extension == ".xml":
        result = parse_xml(content)
    elif extension in (".yaml", ".yml"):
        result = parse_yaml(content)
    else:
        raise ImportFileParseError(
            message=f"Unsupported file type: {extension or 'none'}",
            details={"supported": list(SUPPORTED_EXTENSIONS)}
        )

    if not result.records:
        raise ImportFileParseError("File has headers but no data rows")

    logger.info(
        "import_file_parsed",
        filename=filename,
        headers=len(result.headers),
        rows=result.total_records
    )
    return result
