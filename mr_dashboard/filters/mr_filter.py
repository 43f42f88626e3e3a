"""MR record filter parameter parsing and SQL clause construction."""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

# API sort key -> merge_requests column
SORT_COLUMNS = {
    "mr": "mr_id",
    "title": "title",
    "priority": "priority",
    "squads": "squads",
    "status": "status",
    "reviewer": "reviewer",
    "author": "author",
    "date": "date",
    "merged": "merged_at",
    "created": "created_at",
    "updated": "updated_at",
}

# High sorts before Medium before Low when ascending
PRIORITY_ORDER_SQL = "CASE priority WHEN 'High' THEN 0 WHEN 'Medium' THEN 1 ELSE 2 END"

MAX_LIMIT = 500


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally (used with ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class MRFilterParams:
    """Parsed record filter parameters from request args."""
    status: Optional[str] = None
    priority: Optional[str] = None
    squads: Optional[str] = None
    author: Optional[str] = None
    reviewer: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_direction: str = "desc"
    limit: int = 100
    offset: int = 0

    @classmethod
    def from_request_args(cls, args, default_per_page=100):
        """Parse from Flask request.args."""
        return cls(
            status=args.get("status"),
            priority=args.get("priority"),
            squads=args.get("squads"),
            author=args.get("author"),
            reviewer=args.get("reviewer"),
            search=args.get("search", ""),
            sort_by=args.get("sortBy"),
            sort_direction=args.get("sortDirection", "desc"),
            limit=min(max(args.get("limit", default_per_page, type=int), 1), MAX_LIMIT),
            offset=max(args.get("offset", 0, type=int), 0),
        )


class MRFilterBuilder:
    """Translates MRFilterParams to a parameterized SQL WHERE / ORDER BY."""

    def __init__(self, params: MRFilterParams):
        self.params = params

    def build(self) -> Tuple[str, List[Any]]:
        """Build the query suffix (WHERE ... ORDER BY ... LIMIT ... OFFSET ...) and its params."""
        conditions: List[str] = []
        values: List[Any] = []

        self._add_exact_filters(conditions, values)
        self._add_search_text(conditions, values)

        where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""
        query = f"{where_clause} {self._order_clause()} LIMIT ? OFFSET ?".strip()
        values.extend([max(self.params.limit, 1), max(self.params.offset, 0)])
        return query, values

    def _add_exact_filters(self, conditions, values):
        p = self.params
        if p.status:
            conditions.append("LOWER(status) = LOWER(?)")
            values.append(p.status)
        if p.priority:
            conditions.append("LOWER(priority) = LOWER(?)")
            values.append(p.priority)
        if p.squads:
            conditions.append("squads = ?")
            values.append(p.squads)
        if p.author:
            conditions.append("author = ?")
            values.append(p.author)
        if p.reviewer:
            conditions.append("reviewer LIKE ? ESCAPE '\\'")
            values.append(f"%{escape_like(p.reviewer)}%")

    def _add_search_text(self, conditions, values):
        if not self.params.search:
            return
        pattern = f"%{escape_like(self.params.search.lower())}%"
        conditions.append(
            "(LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(mr_id) LIKE ? ESCAPE '\\' "
            "OR LOWER(jira_link) LIKE ? ESCAPE '\\')"
        )
        values.extend([pattern, pattern, pattern])

    def _order_clause(self) -> str:
        direction = "ASC" if (self.params.sort_direction or "").lower() == "asc" else "DESC"
        if self.params.sort_by == "priority":
            return f"ORDER BY {PRIORITY_ORDER_SQL} {direction}, id DESC"
        column = SORT_COLUMNS.get(self.params.sort_by or "", "created_at")
        return f"ORDER BY {column} {direction}, id DESC"
