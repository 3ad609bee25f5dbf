import re
import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional

from app.config.settings import settings
from app.database.supabase_client import fetch_all, insert_in_batches
from app.modules.analytics.calculations import summarize_machines
from app.modules.piles import importer
from app.modules.production.schemas import MachineStats, ProductionResponse, PreliminaryUploadResponse

logger = logging.getLogger(__name__)

PRELIMINARY_BATCH_SIZE = 100
SECONDS_PER_DAY = 24 * 60 * 60

# Matched in order; a header claimed by an earlier field is not offered to later ones
PRELIMINARY_PATTERNS = {
    "machine": ["machine", "rig", "equipment"],
    "pile_id": ["pile id", "pile_id", "pileid", "tag", "name"],
    "pile_number": ["pile number", "pile_number", "pilenumber", "number", "#"],
    "block": ["block", "area", "section"],
    "start_date": ["date", "start_date", "startdate", "install date"],
    "start_time": ["start time", "start_time", "starttime"],
    "stop_time": ["stop time", "stop_time", "stoptime", "end time"],
    "duration": ["duration", "drive time", "drivetime", "time"],
}

_CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*(AM|PM))?$", re.IGNORECASE)


def parse_duration_seconds(value: Optional[str]) -> Optional[int]:
    """Seconds from "123" (seconds), "H:MM:SS" or "M:SS"; None when unparseable"""
    text = (value or "").strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    parts = text.split(":")
    if len(parts) not in (2, 3):
        return None
    numbers = []
    for part in parts:
        match = re.match(r"^\s*(\d+)", part)
        numbers.append(int(match.group(1)) if match else 0)
    if len(numbers) == 3:
        return numbers[0] * 3600 + numbers[1] * 60 + numbers[2]
    return numbers[0] * 60 + numbers[1]


def parse_clock_seconds(value: Optional[str]) -> Optional[int]:
    """Seconds since midnight for "HH:MM", "HH:MM:SS" or with an AM/PM suffix"""
    match = _CLOCK_TIME.match((value or "").strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").upper()
    if meridiem == "PM" and hours < 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0
    return hours * 3600 + minutes * 60 + seconds


def duration_between(start_time: Optional[str], stop_time: Optional[str]) -> Optional[int]:
    """Elapsed seconds; a stop before the start is taken to cross midnight"""
    start = parse_clock_seconds(start_time)
    stop = parse_clock_seconds(stop_time)
    if start is None or stop is None:
        return None
    diff = stop - start
    if diff < 0:
        diff += SECONDS_PER_DAY
    return diff


def format_duration(seconds: int) -> str:
    return f"{seconds // 3600}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


def build_preliminary_rows(records: List[Dict[str, str]], mapping: Dict[str, str], project_id: str) -> List[Dict[str, Any]]:
    """
    Rows without a machine are skipped; missing ids are numbered in sheet order.
    Durations are stored as H:MM:SS, derived from start/stop times when the
    duration cell is empty or unreadable.
    """
    def cell(record: Dict[str, str], field: str) -> Optional[str]:
        header = mapping.get(field)
        text = str(record.get(header, "")).strip() if header else ""
        return text or None

    rows = []
    counter = 0
    for record in records:
        machine = cell(record, "machine")
        if not machine:
            continue
        counter += 1

        duration = cell(record, "duration")
        start_time = cell(record, "start_time")
        stop_time = cell(record, "stop_time")
        seconds = parse_duration_seconds(duration)
        if seconds is None:
            seconds = duration_between(start_time, stop_time)
        # Unparseable text with no usable start/stop is kept as entered
        if seconds is not None:
            duration = format_duration(seconds)

        rows.append({
            "project_id": project_id,
            "machine": machine,
            "pile_id": cell(record, "pile_id") if "pile_id" in mapping else f"PRELIM-{counter}",
            "pile_number": cell(record, "pile_number") if "pile_number" in mapping else str(counter),
            "block": cell(record, "block"),
            "start_date": cell(record, "start_date"),
            "duration": duration,
            "start_time": start_time,
            "stop_time": stop_time
        })
    return rows


class ProductionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_project(self, project_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("projects")\
                .select("*")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return result.data[0]

    def upload_preliminary(self, project_id: str, content: bytes, filename: Optional[str]) -> PreliminaryUploadResponse:
        self._get_project(project_id)
        try:
            df = importer.read_table(content, filename)
        except importer.SpreadsheetError as e:
            raise HTTPException(status_code=400, detail=str(e))

        headers = list(df.columns)
        mapping = {}
        for field, patterns in PRELIMINARY_PATTERNS.items():
            header = importer.suggest_column([h for h in headers if h not in mapping.values()], patterns)
            if header:
                mapping[field] = header
        if "machine" not in mapping:
            raise HTTPException(status_code=400, detail="A machine column is required for production tracking")

        rows = build_preliminary_rows(df.to_dict(orient="records"), mapping, project_id)
        if not rows:
            raise HTTPException(status_code=400, detail="No valid production data found in the file")

        inserted, errors = insert_in_batches(self.supabase, "preliminary_production", rows, PRELIMINARY_BATCH_SIZE)
        logger.info(f"Loaded {inserted} preliminary production rows for project {project_id}")
        return PreliminaryUploadResponse(
            success_count=inserted,
            error_count=len(rows) - inserted,
            skipped=len(df) - len(rows),
            mapped_columns=mapping,
            errors=errors
        )

    def get_production(self, project_id: str, published_only: bool = False) -> ProductionResponse:
        """Per-machine stats for installed piles and for preliminary uploads"""
        project = self._get_project(project_id)
        tolerance = project.get("embedment_tolerance")
        threshold = settings.slow_drive_threshold_minutes

        def build_pile_query():
            query = self.supabase.table("piles")\
                .select("machine, block, start_date, duration, embedment, design_embedment, pile_status")\
                .eq("project_id", project_id)\
                .not_.is_("machine", "null")
            if published_only:
                query = query.eq("published", True)
            return query.order("created_at")

        try:
            piles = fetch_all(build_pile_query)
            preliminary = fetch_all(
                lambda: self.supabase.table("preliminary_production")
                .select("*")
                .eq("project_id", project_id)
                .order("created_at")
            )
        except Exception as e:
            logger.error(f"Error fetching production data for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching production data")

        return ProductionResponse(
            machines=[MachineStats(**m) for m in summarize_machines(piles, tolerance, threshold)],
            total_piles=len(piles),
            preliminary_machines=[
                MachineStats(**m) for m in summarize_machines(preliminary, tolerance, threshold, use_override=False)
            ],
            preliminary_count=len(preliminary),
            slow_drive_threshold_minutes=threshold
        )

    def delete_preliminary(self, project_id: str) -> Dict[str, int]:
        try:
            result = self.supabase.table("preliminary_production")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting preliminary production for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete preliminary production data")
        return {"deleted": len(result.data or [])}
