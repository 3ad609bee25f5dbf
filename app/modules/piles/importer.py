"""
Spreadsheet import helpers: read CSV/XLSX uploads with pandas, map free-form
headers onto pile fields and validate rows before insert.
"""

import io
import re
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")

FIELD_PATTERNS: Dict[str, List[str]] = {
    "block": ["block", "blocks", "pile block", "pileblock"],
    "design_embedment": ["design embedment", "designembedment", "design_embedment", "target embedment", "targetembedment", "target_embedment"],
    "duration": ["duration", "time", "drive time", "drivetime", "drive_time", "total time", "totaltime", "total_time"],
    "embedment": ["embedment", "actual embedment", "actualembedment", "actual_embedment", "final embedment", "finalembedment", "final_embedment"],
    "end_z": ["end z", "endz", "end_z", "final z", "finalz", "final_z", "end elevation", "endelevation", "end_elevation"],
    "gain_per_30_seconds": ["gain per 30 seconds", "gainper30seconds", "gain_per_30_seconds", "gain per 30", "gainper30", "gain_per_30", "gain/30", "gain30"],
    "machine": ["machine", "equipment", "rig", "machine id", "machineid", "machine_id", "equipment id", "equipmentid", "equipment_id"],
    "pile_color": ["pile color", "pilecolor", "pile_color", "color", "pile colour", "pilecolour", "pile_colour"],
    "pile_id": ["pile id", "pileid", "pile_id", "id", "pile number", "pilenumber", "pile_number", "pile no", "pileno", "pile_no"],
    "start_date": ["start date", "startdate", "start_date", "date", "installation date", "installationdate", "installation_date"],
    "start_time": ["start time", "starttime", "start_time", "begin time", "begintime", "begin_time"],
    "start_z": ["start z", "startz", "start_z", "initial z", "initialz", "initial_z", "start elevation", "startelevation", "start_elevation"],
    "stop_time": ["stop time", "stoptime", "stop_time", "end time", "endtime", "end_time", "finish time", "finishtime", "finish_time"],
    "zone": ["zone", "zones", "area", "section", "location", "pile zone", "pilezone", "pile_zone"],
}

NUMERIC_IMPORT_FIELDS = ("design_embedment", "embedment", "end_z", "gain_per_30_seconds", "machine", "start_z")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


class SpreadsheetError(ValueError):
    pass


def read_table(content: bytes, filename: Optional[str], sheet_hints: Iterable[str] = ()) -> pd.DataFrame:
    """
    DataFrame of strings ('' for empty cells) from a CSV or Excel upload.
    For workbooks the first sheet whose name contains one of sheet_hints is
    used, otherwise the first sheet.
    """
    name = (filename or "").lower()
    try:
        if name.endswith(EXCEL_EXTENSIONS):
            workbook = pd.ExcelFile(io.BytesIO(content))
            sheet = next(
                (s for s in workbook.sheet_names if any(h in str(s).lower() for h in sheet_hints)),
                workbook.sheet_names[0]
            )
            df = workbook.parse(sheet, dtype=str)
        else:
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except Exception as e:
        raise SpreadsheetError(f"Could not read file: {e}")
    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    return df


def map_columns(headers: Iterable[str], patterns: Dict[str, List[str]] = FIELD_PATTERNS) -> Dict[str, str]:
    """
    Map spreadsheet headers to fields: {field: header}.
    Exact (case-insensitive) matches win; remaining headers are matched by
    substring, preferring the longest matching pattern. Each field and each
    header is used at most once.
    """
    mapping: Dict[str, str] = {}
    used: Set[str] = set()
    normalized = [(h, str(h).lower().strip()) for h in headers]

    for header, norm in normalized:
        if not norm or norm.startswith("unnamed:"):
            continue
        for field, options in patterns.items():
            if field not in mapping and norm in options:
                mapping[field] = header
                used.add(header)
                break

    for header, norm in normalized:
        if header in used or not norm or norm.startswith("unnamed:"):
            continue
        best: Optional[Tuple[int, str]] = None
        for field, options in patterns.items():
            if field in mapping:
                continue
            for pattern in options:
                if pattern in norm or norm in pattern:
                    if best is None or len(pattern) > best[0]:
                        best = (len(pattern), field)
        if best:
            mapping[best[1]] = header
            used.add(header)
    return mapping


def parse_import_date(value: str) -> Tuple[Optional[str], Optional[str]]:
    """(YYYY-MM-DD, None) or (None, error message)"""
    text = (value or "").strip()
    if not text:
        return None, None
    if _ISO_DATE.match(text):
        return text, None
    if _US_DATE.match(text):
        month, day, year = (int(p) for p in text.split("/"))
        if month < 1 or month > 12:
            return None, f"Invalid month in date: '{text}'"
        if day < 1 or day > 31:
            return None, f"Invalid day in date: '{text}'"
        if year < 1900 or year > 2100:
            return None, f"Invalid year in date: '{text}'"
        return f"{year}-{month:02d}-{day:02d}", None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None, f"Invalid date format: '{text}' (expected MM/DD/YYYY)"
    return parsed.strftime("%Y-%m-%d"), None


def parse_number(value: str, field: str, errors: List[str]) -> Optional[float]:
    text = (value or "").strip()
    if not text:
        return None
    match = re.match(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)", text)
    if not match:
        errors.append(f"Invalid numeric value in {field}: '{text}'")
        return None
    return float(match.group(0))


def build_pile_rows(
    df: pd.DataFrame,
    mapping: Dict[str, str],
    project_id: str,
    existing_numbers: Set[str]
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], int]:
    """
    Validate each row. Returns (valid rows, invalid [{row, errors}], duplicate count).
    Row numbers are 1-based spreadsheet lines (header is line 1).
    """
    valid: List[Dict[str, Any]] = []
    invalid: List[Dict[str, Any]] = []
    seen: Set[str] = set()
    duplicates = 0

    for index, record in enumerate(df.to_dict(orient="records")):
        line = index + 2
        errors: List[str] = []

        def value(field: str) -> Optional[str]:
            header = mapping.get(field)
            text = str(record.get(header, "")).strip() if header else ""
            return text or None

        pile_id = value("pile_id")
        block = value("block")
        if not pile_id and not block:
            errors.append("Missing required pile identifier (Pile ID or Block)")

        numbers = {field: parse_number(value(field) or "", field, errors) for field in NUMERIC_IMPORT_FIELDS}
        start_date, date_error = parse_import_date(value("start_date") or "")
        if date_error:
            errors.append(date_error)

        pile_number = pile_id or (f"{block}-{line - 1}" if block else f"Pile-{line - 1}")
        if pile_number in existing_numbers:
            errors.append(f"Pile number '{pile_number}' already exists in database")
            duplicates += 1
        elif pile_number in seen:
            errors.append(f"Duplicate pile number '{pile_number}' in this import")
            duplicates += 1

        if errors:
            invalid.append({"row": line, "errors": errors})
            continue

        seen.add(pile_number)
        machine = numbers["machine"]
        valid.append({
            "project_id": project_id,
            "pile_number": pile_number,
            "pile_id": pile_id,
            "block": block,
            "design_embedment": numbers["design_embedment"],
            "embedment": numbers["embedment"],
            "end_z": numbers["end_z"],
            "start_z": numbers["start_z"],
            "gain_per_30_seconds": numbers["gain_per_30_seconds"],
            "machine": int(machine) if machine is not None else None,
            "duration": value("duration"),
            "pile_color": value("pile_color"),
            "start_date": start_date,
            "start_time": value("start_time"),
            "stop_time": value("stop_time"),
            "zone": value("zone"),
            "pile_status": "pending"
        })
    return valid, invalid, duplicates


def summarize_errors(invalid: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """{error message: number of rows}"""
    summary: Dict[str, int] = {}
    for row in invalid:
        for error in row["errors"]:
            summary[error] = summary.get(error, 0) + 1
    return summary


def suggest_column(headers: Iterable[str], patterns: Iterable[str]) -> Optional[str]:
    """Header containing the earliest listed pattern (case-insensitive); patterns are in priority order"""
    headers = list(headers)
    for pattern in patterns:
        for header in headers:
            if pattern.lower() in str(header).lower():
                return header
    return None
