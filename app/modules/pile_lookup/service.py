import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional

from app.database.supabase_client import fetch_all, insert_in_batches
from app.modules.piles import importer
from app.modules.piles.status import to_number
from app.modules.pile_lookup.schemas import PileLookupRow, PileLookupUploadResponse, PileLookupListResponse

logger = logging.getLogger(__name__)

LOOKUP_BATCH_SIZE = 100
LOOKUP_SHEET_HINTS = ("pile plot", "pileplot")

# Matched in order; a header claimed by an earlier field is not offered to later ones
LOOKUP_PATTERNS = {
    "tag": ["tag", "name", "pile name", "pile id", "pile_id"],
    "block": ["block"],
    "type": ["type", "pile type", "zone type", "zone", "pile_type"],
    "embedment": ["embedment", "design embedment", "design_embedment"],
    "northing": ["northing", "north"],
    "easting": ["easting", "east"],
    "pileSize": ["pile size", "size", "pile_size"],
}


def _non_zero(value: Any) -> Optional[float]:
    number = to_number(value)
    return number or None


def build_lookup_rows(records: List[Dict[str, str]], mapping: Dict[str, str], project_id: str) -> List[Dict[str, Any]]:
    """Rows without a pile tag are skipped; zero or unparseable numbers become None"""
    def cell(record: Dict[str, str], field: str) -> Optional[str]:
        header = mapping.get(field)
        text = str(record.get(header, "")).strip() if header else ""
        return text or None

    rows = []
    for record in records:
        tag = cell(record, "tag")
        if not tag:
            continue
        rows.append({
            "project_id": project_id,
            "pile_tag": tag,
            "block": cell(record, "block"),
            "pile_type": cell(record, "type"),
            "design_embedment": _non_zero(cell(record, "embedment")),
            "northing": _non_zero(cell(record, "northing")),
            "easting": _non_zero(cell(record, "easting")),
            "pile_size": cell(record, "pileSize")
        })
    return rows


class PileLookupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def upload(self, project_id: str, content: bytes, filename: Optional[str]) -> PileLookupUploadResponse:
        """Replace the project's pile plot with the uploaded sheet"""
        try:
            df = importer.read_table(content, filename, LOOKUP_SHEET_HINTS)
        except importer.SpreadsheetError as e:
            raise HTTPException(status_code=400, detail=str(e))

        headers = list(df.columns)
        mapping = {}
        for field, patterns in LOOKUP_PATTERNS.items():
            header = importer.suggest_column([h for h in headers if h not in mapping.values()], patterns)
            if header:
                mapping[field] = header
        if "tag" not in mapping:
            raise HTTPException(status_code=400, detail="A pile tag column is required")

        rows = build_lookup_rows(df.to_dict(orient="records"), mapping, project_id)
        if not rows:
            raise HTTPException(status_code=400, detail="No valid lookup data found in the file")

        try:
            self.supabase.table("pile_lookup_data").delete().eq("project_id", project_id).execute()
        except Exception as e:
            logger.warning(f"Error deleting old lookup data for project {project_id}: {e}")

        inserted, errors = insert_in_batches(self.supabase, "pile_lookup_data", rows, LOOKUP_BATCH_SIZE)
        logger.info(f"Loaded {inserted} pile lookup rows for project {project_id}")
        return PileLookupUploadResponse(
            inserted=inserted,
            skipped=len(df) - len(rows),
            mapped_columns=mapping,
            errors=errors
        )

    def list_rows(self, project_id: str) -> PileLookupListResponse:
        try:
            rows = fetch_all(
                lambda: self.supabase.table("pile_lookup_data")
                .select("*")
                .eq("project_id", project_id)
                .order("pile_tag")
            )
        except Exception as e:
            logger.error(f"Error fetching lookup data for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching pile lookup data")
        return PileLookupListResponse(rows=[PileLookupRow(**r) for r in rows], total=len(rows))

    def find_by_tag(self, project_id: str, tag: str) -> PileLookupRow:
        try:
            result = self.supabase.table("pile_lookup_data")\
                .select("*")\
                .eq("project_id", project_id)\
                .eq("pile_tag", tag.strip())\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up pile tag {tag}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching pile lookup data")
        if not result.data:
            raise HTTPException(status_code=404, detail="Pile tag not found")
        return PileLookupRow(**result.data[0])

    def delete_all(self, project_id: str) -> Dict[str, int]:
        try:
            result = self.supabase.table("pile_lookup_data")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting lookup data for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete pile lookup data")
        return {"deleted": len(result.data or [])}
