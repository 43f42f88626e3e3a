"""MergeRequestsDB - Database operations for tracked merge request records."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from mr_dashboard.filters.mr_filter import MRFilterBuilder, MRFilterParams
from mr_dashboard.models import MRRecord, canonical_field, normalize_record

logger = logging.getLogger(__name__)

# Columns written on create/update (id and timestamps are managed by the store)
WRITABLE_COLUMNS = (
    "mr_id", "title", "description", "jira_link", "web_url", "priority",
    "squads", "status", "reviewer", "author", "action", "date",
    "target_branch", "source_branch", "labels", "merged_at",
)


def _to_column_value(column: str, value: Any) -> Any:
    if column == "labels":
        return json.dumps(list(value or []))
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _row_to_record(row) -> MRRecord:
    return normalize_record(dict(row))


class MergeRequestsDB:
    """Database operations for merge request records."""

    def __init__(self, db):
        self.db = db

    def create_mr(self, record: MRRecord) -> int:
        """Save a new record. Returns the store-assigned id."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            values = [_to_column_value(c, getattr(record, c)) for c in WRITABLE_COLUMNS]
            placeholders = ", ".join("?" for _ in WRITABLE_COLUMNS)
            cursor.execute(
                f"INSERT INTO merge_requests ({', '.join(WRITABLE_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            record_id = cursor.lastrowid
            logger.info(f"Saved record {record_id} for MR {record.mr_id}")
            return record_id

    def get_mr(self, record_id: int) -> Optional[MRRecord]:
        """Get a single record by id."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM merge_requests WHERE id = ?", (record_id,))
            row = cursor.fetchone()
            return _row_to_record(row) if row else None

    def get_latest_for_mr(self, mr_id: str) -> Optional[MRRecord]:
        """Get the most recently created record for a GitLab MR id."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT * FROM merge_requests
                WHERE mr_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            """, (str(mr_id),))
            row = cursor.fetchone()
            return _row_to_record(row) if row else None

    def list_mrs(self, params: Optional[MRFilterParams] = None) -> List[MRRecord]:
        """List records with optional filtering and sorting."""
        query_suffix, values = MRFilterBuilder(params or MRFilterParams()).build()
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM merge_requests {query_suffix}", values)
            return [_row_to_record(row) for row in cursor.fetchall()]

    def list_all(self) -> List[MRRecord]:
        """All records, oldest first (reporting input)."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM merge_requests ORDER BY id ASC")
            return [_row_to_record(row) for row in cursor.fetchall()]

    def update_mr(self, record_id: int, updates: Dict[str, Any]) -> bool:
        """Update fields of a record. Returns True if a row was updated.

        ``updates`` may use any field naming convention accepted by
        ``normalize_record``; only the keys present are written.
        """
        normalized = normalize_record(updates)
        present = {canonical_field(key) for key in updates} & set(WRITABLE_COLUMNS)

        sets = [f"{column} = ?" for column in WRITABLE_COLUMNS if column in present]
        params = [_to_column_value(c, getattr(normalized, c)) for c in WRITABLE_COLUMNS if c in present]
        if not sets:
            return self.get_mr(record_id) is not None

        sets.append("updated_at = CURRENT_TIMESTAMP")
        params.append(record_id)
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"UPDATE merge_requests SET {', '.join(sets)} WHERE id = ?", params)
            updated = cursor.rowcount > 0
        if updated:
            logger.info(f"Updated record {record_id}")
        return updated

    def delete_mr(self, record_id: int) -> bool:
        """Delete a record. Returns True if deleted."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM merge_requests WHERE id = ?", (record_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted record {record_id}")
        return deleted

    def search_mrs(self, search_text: str, limit: int = 50) -> List[MRRecord]:
        """Search records by title, MR id or Jira link."""
        return self.list_mrs(MRFilterParams(search=search_text, limit=limit))

    def count_all(self) -> int:
        """Return the total number of records in the database."""
        with self.db.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) as total FROM merge_requests")
            return cursor.fetchone()["total"]
