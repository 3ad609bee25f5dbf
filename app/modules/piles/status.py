"""
Pile status derivation from embedment vs. design embedment.

accepted   embedment >= design
tolerance  design - tolerance <= embedment < design
refusal    embedment < design - tolerance
pending    embedment or design embedment missing (or zero)

The three-state variant used by the admin dashboard folds tolerance into accepted.
"""

from typing import Any, Dict, Iterable, Optional
from app.config.settings import settings

OVERRIDE_STATUSES = ("accepted", "tolerance", "refusal")


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        text = str(value).strip()
        return float(text) if text else None
    except ValueError:
        return None


def resolve_tolerance(tolerance: Any) -> float:
    """None (unset) falls back to the default; an explicit 0 is kept."""
    value = to_number(tolerance)
    return settings.default_embedment_tolerance if value is None else value


def _measurements(pile: Dict[str, Any]):
    embedment = to_number(pile.get("embedment"))
    design = to_number(pile.get("design_embedment"))
    if not embedment or not design:
        return None
    return embedment, design


def compute_basic_status(pile: Dict[str, Any], tolerance: Any = None) -> str:
    """accepted / refusal / pending"""
    measured = _measurements(pile)
    if measured is None:
        return "pending"
    embedment, design = measured
    if embedment >= design:
        return "accepted"
    if embedment < design - resolve_tolerance(tolerance):
        return "refusal"
    return "accepted"


def compute_status(pile: Dict[str, Any], tolerance: Any = None, use_override: bool = True) -> str:
    """accepted / tolerance / refusal / pending; a manual pile_status wins when set"""
    if use_override and pile.get("pile_status") in OVERRIDE_STATUSES:
        return pile["pile_status"]
    measured = _measurements(pile)
    if measured is None:
        return "pending"
    embedment, design = measured
    if embedment >= design:
        return "accepted"
    if embedment >= design - resolve_tolerance(tolerance):
        return "tolerance"
    return "refusal"


def count_statuses(piles: Iterable[Dict[str, Any]], tolerance: Any = None) -> Dict[str, int]:
    counts = {"accepted": 0, "tolerance": 0, "refusal": 0, "pending": 0}
    for pile in piles:
        counts[compute_status(pile, tolerance)] += 1
    return counts
