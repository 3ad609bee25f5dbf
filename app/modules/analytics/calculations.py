import math
import re
import logging
from collections import Counter
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.modules.piles.status import compute_basic_status, compute_status, to_number

logger = logging.getLogger(__name__)

_MIN_SEC_PATTERN = re.compile(r"(\d+)\s*min(?:\s*(\d+)\s*sec)?", re.IGNORECASE)

TIMELINE_BUCKETS = 12
TOP_BLOCKS = 10


def parse_duration_minutes(value: Any) -> float:
    """Drive duration in minutes from "H:MM:SS", "M:SS", "N min M sec" or a plain number. Unparseable -> 0."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value).strip()
    try:
        if ":" in text:
            parts = [int(float(p)) for p in text.split(":")]
            if len(parts) == 3:
                return parts[0] * 60 + parts[1] + parts[2] / 60
            if len(parts) == 2:
                return parts[0] + parts[1] / 60
            return 0.0
        if "min" in text.lower():
            match = _MIN_SEC_PATTERN.search(text)
            if match:
                seconds = int(match.group(2)) if match.group(2) else 0
                return int(match.group(1)) + seconds / 60
        match = re.match(r"^\s*-?\d+(\.\d+)?", text)
        return float(match.group(0)) if match else 0.0
    except ValueError:
        return 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_iso_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def build_statistics(piles: List[Dict[str, Any]], total_piles: int, total_project_piles: Any, tolerance: Any) -> Dict[str, Any]:
    counts = Counter(compute_basic_status(pile, tolerance) for pile in piles)
    target = int(to_number(total_project_piles) or 0)
    return {
        "total_piles": total_piles,
        "accepted": counts["accepted"],
        "refusals": counts["refusal"],
        "pending": counts["pending"],
        "completion_percent": round_half_up(total_piles / target * 100) if target > 0 else 0
    }


def build_block_distribution(piles: Iterable[Dict[str, Any]], limit: int = TOP_BLOCKS) -> List[Dict[str, Any]]:
    counts = Counter(pile.get("block") or "Unknown" for pile in piles)
    return [{"name": name, "count": count} for name, count in counts.most_common(limit)]


def build_timeline(piles: Iterable[Dict[str, Any]], buckets: int = TIMELINE_BUCKETS) -> Dict[str, List[Dict[str, Any]]]:
    """Weekly (ISO week) and monthly pile counts keyed on start_date, falling back to created_at"""
    weekly: Counter = Counter()
    monthly: Counter = Counter()
    for pile in piles:
        day = parse_iso_date(pile.get("start_date") or pile.get("created_at"))
        if day is None:
            continue
        iso_year, iso_week, _ = day.isocalendar()
        weekly[f"{iso_year}-W{iso_week:02d}"] += 1
        monthly[f"{day.year}-{day.month:02d}"] += 1
    return {
        "weekly": [{"name": k, "piles": weekly[k]} for k in sorted(weekly)][-buckets:],
        "monthly": [{"name": k, "piles": monthly[k]} for k in sorted(monthly)][-buckets:]
    }


def summarize_groups(
    piles: Iterable[Dict[str, Any]],
    field: str,
    tolerance: Any,
    slow_threshold: float
) -> List[Dict[str, Any]]:
    """Per-block (or per-pile-type) production summary. Piles without a value for field are skipped."""
    groups: Dict[str, Dict[str, Any]] = {}
    for pile in piles:
        value = pile.get(field)
        name = value.strip() if isinstance(value, str) else value
        if not name:
            continue
        group = groups.setdefault(name, {
            "name": name,
            "total_piles": 0,
            "accepted_count": 0,
            "tolerance_count": 0,
            "refusal_count": 0,
            "pending_count": 0,
            "slow_drive_time_count": 0,
            "design_embedment": None,
            "_duration_sum": 0.0,
            "_embedment_sum": 0.0
        })
        group["total_piles"] += 1
        group[f"{compute_status(pile, tolerance)}_count"] += 1

        duration = parse_duration_minutes(pile.get("duration"))
        group["_duration_sum"] += duration
        if duration > slow_threshold:
            group["slow_drive_time_count"] += 1

        embedment = to_number(pile.get("embedment"))
        design = to_number(pile.get("design_embedment"))
        if embedment and design:
            group["_embedment_sum"] += embedment
            if group["design_embedment"] is None:
                group["design_embedment"] = design

    summaries = []
    for name in sorted(groups):
        group = groups[name]
        total = group["total_piles"]
        group["average_drive_time"] = group.pop("_duration_sum") / total
        group["average_embedment"] = group.pop("_embedment_sum") / total
        summaries.append(group)
    return summaries


def summarize_machines(
    records: Iterable[Dict[str, Any]],
    tolerance: Any,
    slow_threshold: float,
    date_key: Callable[[Any], Optional[str]] = None,
    use_override: bool = True
) -> List[Dict[str, Any]]:
    """Per-machine production stats. Empty and null-like machine ids are skipped."""
    if date_key is None:
        date_key = lambda value: str(value).split("T")[0] if value else None
    machines: Dict[str, Dict[str, Any]] = {}
    embedment_counts: Dict[str, int] = {}
    for record in records:
        raw = record.get("machine")
        if raw is None:
            continue
        machine_id = str(raw).strip()
        if not machine_id or machine_id.lower() in ("unknown", "null", "undefined"):
            continue
        stats = machines.setdefault(machine_id, {
            "machine_id": machine_id,
            "total_piles": 0,
            "accepted_count": 0,
            "tolerance_count": 0,
            "refusal_count": 0,
            "pending_count": 0,
            "slow_drive_time_count": 0,
            "average_drive_time": 0.0,
            "average_embedment": 0.0,
            "total_duration_minutes": 0.0,
            "piles_per_block": {},
            "piles_per_date": {},
            "first_date": None,
            "last_date": None
        })
        stats["total_piles"] += 1

        block = record.get("block")
        if block:
            stats["piles_per_block"][block] = stats["piles_per_block"].get(block, 0) + 1

        day = date_key(record.get("start_date"))
        if day:
            stats["piles_per_date"][day] = stats["piles_per_date"].get(day, 0) + 1
            if stats["first_date"] is None or day < stats["first_date"]:
                stats["first_date"] = day
            if stats["last_date"] is None or day > stats["last_date"]:
                stats["last_date"] = day

        duration = parse_duration_minutes(record.get("duration"))
        stats["total_duration_minutes"] += duration
        if duration > slow_threshold:
            stats["slow_drive_time_count"] += 1

        stats[f"{compute_status(record, tolerance, use_override)}_count"] += 1

        embedment = to_number(record.get("embedment"))
        if embedment and to_number(record.get("design_embedment")):
            stats["average_embedment"] += embedment
            embedment_counts[machine_id] = embedment_counts.get(machine_id, 0) + 1

    for machine_id, stats in machines.items():
        stats["average_drive_time"] = stats["total_duration_minutes"] / stats["total_piles"]
        count = embedment_counts.get(machine_id)
        stats["average_embedment"] = stats["average_embedment"] / count if count else 0.0
    return sorted(machines.values(), key=_machine_sort_key)


def _machine_sort_key(stats: Dict[str, Any]):
    machine_id = stats["machine_id"]
    return (0, int(machine_id), "") if machine_id.isdigit() else (1, 0, machine_id)
