"""
Reference store adapters. Each returns a fully materialized list of active
records per vocabulary in the engine's record shape:
  ingredients: {canonical_name, synonyms[], active, status_fields}
  allergens:   {category, display_name, derivatives[], active, status_fields}
Rows use the reference tables' column names (gras_ingredients, ndi_ingredients,
old_dietary_ingredients, major_allergens); JSON files mirror those rows.
Any backend failure is raised as ReferenceStoreUnavailable.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from supabase import create_client, Client

from regcheck.config import (
    VOCABULARY_IDS,
    get_data_dir,
    get_store_backend,
    get_store_page_size,
    get_supabase_key,
    get_supabase_url,
)
from regcheck.errors import ReferenceStoreUnavailable, UnknownVocabulary

logger = logging.getLogger(__name__)

VOCABULARY_TABLES: Dict[str, str] = {
    "gras": "gras_ingredients",
    "ndi": "ndi_ingredients",
    "odi": "old_dietary_ingredients",
    "allergens": "major_allergens",
}

# Columns copied into status_fields, opaque to matching.
STATUS_COLUMNS: Dict[str, tuple] = {
    "gras": ("gras_status", "gras_notice_number", "cas_number", "source_reference",
             "category", "common_name", "technical_name", "limitations"),
    "ndi": ("notification_number", "report_number", "firm", "submission_date", "fda_response_date"),
    "odi": ("source", "notes"),
    "allergens": ("allergen_category", "common_name", "regulation_citation", "notes"),
}

# ndi_ingredients has no is_active column
_HAS_ACTIVE_COLUMN = {"gras", "odi", "allergens"}


class ReferenceStore(Protocol):
    def list_active_records(self, vocabulary_id: str) -> List[Dict[str, Any]]:
        ...


def _check_vocabulary(vocabulary_id: str) -> None:
    if vocabulary_id not in VOCABULARY_TABLES:
        raise UnknownVocabulary(vocabulary_id)


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


def row_to_record_dict(vocabulary_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
    """Map a table row (or an already-shaped record dict) to the engine record shape."""
    status = dict(row.get("status_fields") or {})
    for col in STATUS_COLUMNS.get(vocabulary_id, ()):
        if row.get(col) is not None:
            status[col] = str(row[col])
    active = row.get("is_active", row.get("active", True))
    active = True if active is None else bool(active)
    if vocabulary_id == "allergens":
        return {
            "category": row.get("allergen_category") or row.get("category"),
            "display_name": row.get("allergen_name") or row.get("display_name"),
            "derivatives": _as_list(row.get("derivatives")),
            "active": active,
            "status_fields": status,
        }
    return {
        "canonical_name": row.get("ingredient_name") or row.get("canonical_name"),
        "synonyms": _as_list(row.get("synonyms")),
        "active": active,
        "status_fields": status,
    }


class JsonReferenceStore:
    """
    Reads data/<vocabulary_id>.json: {"version": ..., "records": [row, ...]}.
    Used for local development, seed data and tests.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._dir = Path(data_dir) if data_dir else get_data_dir()

    def path_for(self, vocabulary_id: str) -> Path:
        return self._dir / f"{vocabulary_id}.json"

    def list_active_records(self, vocabulary_id: str) -> List[Dict[str, Any]]:
        _check_vocabulary(vocabulary_id)
        path = self.path_for(vocabulary_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("REFERENCE_STORE json load failed vocabulary=%s path=%s error=%s", vocabulary_id, path, e)
            raise ReferenceStoreUnavailable(vocabulary_id, f"{type(e).__name__}: {e}") from e
        rows = data.get("records", []) if isinstance(data, dict) else data
        records = [row_to_record_dict(vocabulary_id, r) for r in rows]
        active = [r for r in records if r["active"]]
        logger.info(
            "REFERENCE_STORE json loaded vocabulary=%s rows=%d active=%d path=%s",
            vocabulary_id, len(records), len(active), path,
        )
        return active


class SupabaseReferenceStore:
    """
    Reads the reference tables through supabase-py, paging with .range()
    until a short page comes back (the API caps rows per request).
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        url: Optional[str] = None,
        key: Optional[str] = None,
        page_size: Optional[int] = None,
    ):
        self._page_size = page_size or get_store_page_size()
        if client is not None:
            self._client = client
            return
        url = url or get_supabase_url()
        key = key or get_supabase_key()
        if not url or not key:
            logger.warning("Supabase credentials not found in env. Reference store will be unavailable.")
            self._client = None
        else:
            self._client = create_client(url, key)

    def list_active_records(self, vocabulary_id: str) -> List[Dict[str, Any]]:
        _check_vocabulary(vocabulary_id)
        if self._client is None:
            raise ReferenceStoreUnavailable(vocabulary_id, "supabase credentials missing")
        table = VOCABULARY_TABLES[vocabulary_id]
        rows: List[Dict[str, Any]] = []
        page = 0
        while True:
            start = page * self._page_size
            end = start + self._page_size - 1
            try:
                query = self._client.table(table).select("*")
                if vocabulary_id in _HAS_ACTIVE_COLUMN:
                    query = query.eq("is_active", True)
                resp = query.order("id").range(start, end).execute()
            except Exception as e:
                logger.warning(
                    "REFERENCE_STORE supabase fetch failed vocabulary=%s table=%s page=%d error=%s",
                    vocabulary_id, table, page, e,
                )
                raise ReferenceStoreUnavailable(vocabulary_id, f"{type(e).__name__}: {e}") from e
            data = resp.data or []
            rows.extend(data)
            if len(data) < self._page_size:
                break
            page += 1
        logger.info(
            "REFERENCE_STORE supabase loaded vocabulary=%s table=%s rows=%d pages=%d",
            vocabulary_id, table, len(rows), page + 1,
        )
        return [row_to_record_dict(vocabulary_id, r) for r in rows]


def build_reference_store(backend: Optional[str] = None) -> ReferenceStore:
    """Store selected by REGCHECK_STORE (json | supabase)."""
    backend = (backend or get_store_backend()).lower()
    if backend == "supabase":
        return SupabaseReferenceStore()
    if backend != "json":
        logger.warning("CONFIG unknown REGCHECK_STORE=%s; falling back to json", backend)
    return JsonReferenceStore()


__all__ = [
    "VOCABULARY_IDS",
    "VOCABULARY_TABLES",
    "ReferenceStore",
    "JsonReferenceStore",
    "SupabaseReferenceStore",
    "build_reference_store",
    "row_to_record_dict",
]
