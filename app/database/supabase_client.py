import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from supabase import create_client, Client
from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Optional[Client]:
        """Client with service_role key; bypasses RLS. None when the key is not configured."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Optional[Client]:
    return SupabaseClient.get_service_client()


def fetch_all(build_query: Callable[[], Any], page_size: int = 1000) -> List[Dict[str, Any]]:
    """Page through a select with .range(); PostgREST caps a single response at 1000 rows."""
    rows: List[Dict[str, Any]] = []
    start = 0
    while True:
        result = build_query().range(start, start + page_size - 1).execute()
        batch = result.data or []
        rows.extend(batch)
        if len(batch) < page_size:
            return rows
        start += page_size


def insert_in_batches(
    supabase: Client,
    table: str,
    rows: List[Dict[str, Any]],
    batch_size: int
) -> Tuple[int, List[str]]:
    """Insert rows batch by batch. Returns (inserted count, batch error messages); a failed batch does not stop the rest."""
    inserted = 0
    errors: List[str] = []
    for start in range(0, len(rows), batch_size):
        batch = rows[start:start + batch_size]
        try:
            supabase.table(table).insert(batch).execute()
            inserted += len(batch)
        except Exception as e:
            logger.error(f"Error inserting {table} rows {start + 1}-{start + len(batch)}: {e}")
            errors.append(f"Rows {start + 1}-{start + len(batch)}: {e}")
    return inserted, errors
