"""Status counts, monthly merge trends and status distribution for tracked MRs."""

from datetime import date
from typing import Dict, List, Sequence

from mr_dashboard.models import MRRecord

# Lowercased record status -> counter key
STATUS_BUCKETS = {
    "open": "open",
    "opened": "open",
    "in cg review": "in_cg_review",
    "in review": "in_cg_review",
    "merged": "merged",
    "approved": "approved",
}

# Display order of the distribution, with chart colors
DISTRIBUTION_ROWS = (
    ("open", "Open", "#17a2b8"),
    ("in_cg_review", "In Cg Review", "#ffc107"),
    ("approved", "Approved", "#6f42c1"),
    ("merged", "Merged", "#28a745"),
)

TREND_MONTHS = 7


def compute_status_counts(records: Sequence[MRRecord]) -> Dict[str, int]:
    counts = {"open": 0, "in_cg_review": 0, "merged": 0, "approved": 0, "total": len(records)}
    for record in records:
        bucket = STATUS_BUCKETS.get((record.status or "").lower())
        if bucket:
            counts[bucket] += 1
    return counts


def format_month(month_key: str) -> str:
    """'2024-03' -> 'Mar 24'. Unparsable keys are returned unchanged."""
    try:
        year, month = (int(part) for part in month_key.split("-"))
        return date(year, month, 1).strftime("%b %y")
    except ValueError:
        return month_key


def compute_monthly_trends(records: Sequence[MRRecord], months: int = TREND_MONTHS) -> List[Dict]:
    """Merged MRs per month (by merged_at), oldest first, last ``months`` months with data."""
    month_counts: Dict[str, int] = {}
    for record in records:
        if (record.status or "").lower() != "merged" or not record.merged_at:
            continue
        key = f"{record.merged_at.year}-{record.merged_at.month:02d}"
        month_counts[key] = month_counts.get(key, 0) + 1

    recent = sorted(month_counts.items())[-months:]
    return [{"month": format_month(key), "count": count} for key, count in recent]


def compute_status_distribution(counts: Dict[str, int]) -> List[Dict]:
    total = counts.get("total", 0)
    distribution = []
    for key, label, color in DISTRIBUTION_ROWS:
        count = counts.get(key, 0)
        if count <= 0:
            continue
        distribution.append({
            "status": label,
            "count": count,
            "percentage": int(count * 100 / total + 0.5) if total else 0,
            "color": color,
        })
    return distribution


def compute_report(records: Sequence[MRRecord]) -> Dict:
    """Full reports payload for the dashboard."""
    counts = compute_status_counts(records)
    trends = compute_monthly_trends(records)
    return {
        "status_counts": counts,
        "monthly_trends": trends,
        "max_trend_value": max([t["count"] for t in trends] + [1]),
        "status_distribution": compute_status_distribution(counts),
    }
