import io
import math
import logging
from collections import Counter
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd

from app.database.supabase_client import fetch_all, insert_in_batches
from app.modules.analytics.calculations import parse_iso_date
from app.modules.piles import importer
from app.modules.piles.schemas import (
    PileCreate, PileUpdate, PileResponse, PileListResponse, PileStats, ImportResponse, ImportRowError
)
from app.modules.piles.status import compute_status
from app.modules.projects.service import ProjectService

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
IMPORT_BATCH_SIZE = 50
ID_CHUNK_SIZE = 100
SEARCH_FIELDS = ("pile_number", "pile_id", "zone", "block", "pile_type", "pile_size", "pile_color", "notes")
EXPORT_COLUMNS = [
    "pile_id", "pile_number", "block", "zone", "pile_type", "pile_size", "pile_color",
    "status", "pile_status", "start_date", "start_time", "stop_time", "duration",
    "start_z", "end_z", "embedment", "design_embedment", "gain_per_30_seconds",
    "machine", "inspector_name", "northing", "easting", "published", "notes"
]


def find_duplicate_pile_ids(piles: List[Dict[str, Any]]) -> set:
    counts = Counter(p["pile_id"] for p in piles if p.get("pile_id"))
    return {pile_id for pile_id, count in counts.items() if count > 1}


def select_redundant_duplicates(piles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Among piles sharing a pile_id, rows with the same embedment, gain per 30
    seconds and start time are exact copies: keep the oldest, return the rest.
    """
    duplicate_ids = find_duplicate_pile_ids(piles)
    ordered = sorted(
        (p for p in piles if p.get("pile_id") in duplicate_ids),
        key=lambda p: (str(p.get("created_at") or ""), str(p.get("id")))
    )
    seen = set()
    redundant = []
    for pile in ordered:
        key = (pile["pile_id"], pile.get("embedment"), pile.get("gain_per_30_seconds"), pile.get("start_time"))
        if key in seen:
            redundant.append(pile)
        else:
            seen.add(key)
    return redundant


class PileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.projects = ProjectService(supabase)

    def _fetch_project_piles(self, project_id: str, published_only: bool = False) -> List[Dict[str, Any]]:
        def build_query():
            query = self.supabase.table("piles").select("*").eq("project_id", project_id)
            if published_only:
                query = query.eq("published", True)
            return query.order("created_at")
        try:
            return fetch_all(build_query)
        except Exception as e:
            logger.error(f"Error fetching piles for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching piles")

    def _get_pile_row(self, project_id: str, pile_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("piles")\
                .select("*")\
                .eq("id", pile_id)\
                .eq("project_id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching pile {pile_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching pile")
        if not result.data:
            raise HTTPException(status_code=404, detail="Pile not found")
        return result.data[0]

    def _to_response(self, pile: Dict[str, Any], tolerance: Any, duplicate_ids: Optional[set] = None) -> PileResponse:
        return PileResponse(
            **pile,
            status=compute_status(pile, tolerance),
            is_duplicate=bool(duplicate_ids and pile.get("pile_id") in duplicate_ids)
        )

    def _tolerance(self, project_id: str) -> Any:
        return self.projects.get_project(project_id).get("embedment_tolerance")

    def list_piles(
        self,
        project_id: str,
        status: Optional[str] = None,
        block: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        search: Optional[str] = None,
        duplicates_only: bool = False,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        published_only: bool = False
    ) -> PileListResponse:
        """Filtered, duplicate-first page of piles with stats over the whole filtered set"""
        tolerance = self._tolerance(project_id)
        piles = self._fetch_project_piles(project_id, published_only)
        duplicate_ids = find_duplicate_pile_ids(piles)
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        query = (search or "").strip().lower()

        filtered = []
        for pile in piles:
            pile_status = compute_status(pile, tolerance)
            if status and status != "all" and pile_status != status:
                continue
            if block and block != "all" and pile.get("block") != block:
                continue
            if start or end:
                day = parse_iso_date(pile.get("start_date"))
                if day is None or (start and day < start) or (end and day > end):
                    continue
            if duplicates_only and pile.get("pile_id") not in duplicate_ids:
                continue
            if query and not any(query in str(pile.get(f) or "").lower() for f in SEARCH_FIELDS):
                continue
            filtered.append((pile, pile_status))

        filtered.sort(key=lambda item: (
            item[0].get("pile_id") not in duplicate_ids,
            str(item[0].get("pile_id") or "")
        ))

        counts = Counter(s for _, s in filtered)
        stats = PileStats(
            total=len(filtered),
            accepted=counts["accepted"],
            tolerance=counts["tolerance"],
            refusal=counts["refusal"],
            pending=counts["pending"],
            duplicates=sum(1 for p, _ in filtered if p.get("pile_id") in duplicate_ids)
        )

        page = max(page, 1)
        page_size = max(page_size, 1)
        offset = (page - 1) * page_size
        return PileListResponse(
            piles=[self._to_response(p, tolerance, duplicate_ids) for p, _ in filtered[offset:offset + page_size]],
            total=len(filtered),
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(len(filtered) / page_size)),
            stats=stats
        )

    def get_pile(self, project_id: str, pile_id: str) -> PileResponse:
        return self._to_response(self._get_pile_row(project_id, pile_id), self._tolerance(project_id))

    def create_pile(self, project_id: str, pile_data: PileCreate) -> PileResponse:
        """Manual entry of a single pile"""
        row = pile_data.model_dump()
        row["project_id"] = project_id
        try:
            result = self.supabase.table("piles").insert(row).execute()
        except Exception as e:
            logger.error(f"Error inserting pile for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create pile")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create pile")
        return self._to_response(result.data[0], self._tolerance(project_id))

    def _update_row(self, project_id: str, pile_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        self._get_pile_row(project_id, pile_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("piles")\
                .update(update_data)\
                .eq("id", pile_id)\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating pile {pile_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update pile")
        if not result.data:
            raise HTTPException(status_code=404, detail="Pile not found")
        return result.data[0]

    def update_pile(self, project_id: str, pile_id: str, pile_data: PileUpdate) -> PileResponse:
        update_data = pile_data.model_dump(exclude_unset=True)
        if "pile_id" in update_data and not update_data["pile_id"]:
            raise HTTPException(status_code=400, detail="Pile ID is required")
        if "pile_number" in update_data and not update_data["pile_number"]:
            raise HTTPException(status_code=400, detail="Pile number is required")
        row = self._update_row(project_id, pile_id, update_data)
        return self._to_response(row, self._tolerance(project_id))

    def set_status(self, project_id: str, pile_id: str, pile_status: str) -> PileResponse:
        """Manual status override"""
        row = self._update_row(project_id, pile_id, {"pile_status": pile_status})
        return self._to_response(row, self._tolerance(project_id))

    def set_notes(self, project_id: str, pile_id: str, notes: Optional[str]) -> PileResponse:
        row = self._update_row(project_id, pile_id, {"notes": notes})
        return self._to_response(row, self._tolerance(project_id))

    def list_notes(self, project_id: str) -> List[PileResponse]:
        """Piles carrying a non-empty note, newest first"""
        tolerance = self._tolerance(project_id)
        try:
            result = self.supabase.table("piles")\
                .select("*")\
                .eq("project_id", project_id)\
                .not_.is_("notes", "null")\
                .neq("notes", "")\
                .order("updated_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching notes for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching notes")
        return [self._to_response(p, tolerance) for p in result.data or [] if (p.get("notes") or "").strip()]

    def delete_pile(self, project_id: str, pile_id: str) -> None:
        self._get_pile_row(project_id, pile_id)
        self._delete_ids(project_id, [pile_id])

    def _delete_ids(self, project_id: str, ids: List[str]) -> int:
        """Delete in chunks; PostgREST carries in_() filters in the URL"""
        deleted = 0
        for start in range(0, len(ids), ID_CHUNK_SIZE):
            chunk = ids[start:start + ID_CHUNK_SIZE]
            try:
                result = self.supabase.table("piles")\
                    .delete()\
                    .eq("project_id", project_id)\
                    .in_("id", chunk)\
                    .execute()
            except Exception as e:
                logger.error(f"Error deleting piles for project {project_id} after {deleted} rows: {e}")
                raise HTTPException(status_code=500, detail="Failed to delete piles")
            deleted += len(result.data or [])
        return deleted

    def bulk_delete(self, project_id: str, ids: List[str]) -> Dict[str, int]:
        return {"deleted": self._delete_ids(project_id, ids)}

    def delete_all(self, project_id: str) -> Dict[str, int]:
        """Remove every pile in the project"""
        try:
            count = self.supabase.table("piles")\
                .select("*", count="exact", head=True)\
                .eq("project_id", project_id)\
                .execute().count or 0
            self.supabase.table("piles")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting all piles for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete piles")
        logger.info(f"Deleted {count} piles from project {project_id}")
        return {"deleted": count}

    def delete_duplicates(self, project_id: str) -> Dict[str, int]:
        redundant = select_redundant_duplicates(self._fetch_project_piles(project_id))
        if not redundant:
            return {"deleted": 0}
        deleted = self._delete_ids(project_id, [p["id"] for p in redundant])
        logger.info(f"Deleted {deleted} duplicate piles from project {project_id}")
        return {"deleted": deleted}

    def set_published(self, project_id: str, ids: Optional[List[str]], published: bool) -> Dict[str, int]:
        """Publish (or unpublish) piles for owner accounts; all piles when ids is empty"""
        chunks = [ids[i:i + ID_CHUNK_SIZE] for i in range(0, len(ids), ID_CHUNK_SIZE)] if ids else [None]
        updated = 0
        for chunk in chunks:
            try:
                query = self.supabase.table("piles")\
                    .update({"published": published})\
                    .eq("project_id", project_id)
                if chunk:
                    query = query.in_("id", chunk)
                result = query.execute()
            except Exception as e:
                logger.error(f"Error publishing piles for project {project_id}: {e}")
                raise HTTPException(status_code=500, detail="Failed to update piles")
            updated += len(result.data or [])
        return {"updated": updated}

    def import_spreadsheet(self, project_id: str, content: bytes, filename: Optional[str]) -> ImportResponse:
        """Validate and insert piles from a CSV/XLSX upload"""
        self.projects.get_project(project_id)
        try:
            df = importer.read_table(content, filename)
        except importer.SpreadsheetError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if df.empty:
            raise HTTPException(status_code=400, detail="File contains no data rows")

        mapping = importer.map_columns(df.columns)
        if "pile_id" not in mapping and "block" not in mapping:
            raise HTTPException(
                status_code=400,
                detail="File must contain either a 'Pile ID' or 'Block' column to identify piles"
            )

        existing = {p["pile_number"] for p in self._existing_numbers(project_id) if p.get("pile_number")}
        valid, invalid, duplicates = importer.build_pile_rows(df, mapping, project_id, existing)
        if not valid:
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "No valid rows found to upload",
                    "error_summary": importer.summarize_errors(invalid)
                }
            )

        inserted, batch_errors = insert_in_batches(self.supabase, "piles", valid, IMPORT_BATCH_SIZE)
        errors = [ImportRowError(**row) for row in invalid]
        summary = importer.summarize_errors(invalid)
        for message in batch_errors:
            summary[message] = summary.get(message, 0) + 1
        logger.info(f"Imported {inserted} piles into project {project_id} ({len(invalid)} rows rejected)")
        return ImportResponse(
            imported=inserted,
            skipped_duplicates=duplicates,
            total_rows=len(df),
            mapped_columns=mapping,
            errors=errors,
            error_summary=summary,
            error_count=len(invalid) + len(batch_errors)
        )

    def _existing_numbers(self, project_id: str) -> List[Dict[str, Any]]:
        try:
            return fetch_all(
                lambda: self.supabase.table("piles").select("pile_number").eq("project_id", project_id)
            )
        except Exception as e:
            logger.error(f"Error fetching existing pile numbers: {e}")
            raise HTTPException(status_code=500, detail="Error fetching piles")

    def export(self, project_id: str, file_format: str = "csv", published_only: bool = False) -> Tuple[bytes, str, str]:
        """(content, media type, filename) for all piles with their derived status"""
        project = self.projects.get_project(project_id)
        tolerance = project.get("embedment_tolerance")
        piles = self._fetch_project_piles(project_id, published_only)
        rows = [{**p, "status": compute_status(p, tolerance)} for p in piles]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)

        safe_name = "".join(c if c.isalnum() else "_" for c in project.get("project_name") or "project")
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
        if file_format == "xlsx":
            buffer = io.BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                df.to_excel(writer, index=False, sheet_name="Piles")
            return (
                buffer.getvalue(),
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                f"{safe_name}_piles_{stamp}.xlsx"
            )
        return df.to_csv(index=False).encode("utf-8"), "text/csv", f"{safe_name}_piles_{stamp}.csv"
