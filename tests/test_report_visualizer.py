"""Tests for dashboard report aggregation."""

from datetime import datetime

from mr_dashboard.models import MRRecord
from mr_dashboard.visualizers.report_visualizer import (
    compute_monthly_trends,
    compute_report,
    compute_status_counts,
    compute_status_distribution,
    format_month,
)


def merged(month, year=2024):
    return MRRecord(mr_id="x", status="Merged", merged_at=datetime(year, month, 15))


def test_status_counts_case_insensitive():
    records = [
        MRRecord(status="Open"),
        MRRecord(status="opened"),
        MRRecord(status="In Cg Review"),
        MRRecord(status="MERGED"),
        MRRecord(status="Approved"),
        MRRecord(status="Closed"),
    ]

    assert compute_status_counts(records) == {
        "open": 2, "in_cg_review": 1, "merged": 1, "approved": 1, "total": 6,
    }


def test_format_month():
    assert format_month("2024-03") == "Mar 24"
    assert format_month("unknown") == "unknown"


def test_monthly_trends_last_seven_months_oldest_first():
    records = [merged(m) for m in range(1, 10)] + [merged(9), MRRecord(status="Open", merged_at=datetime(2024, 9, 1))]

    trends = compute_monthly_trends(records)

    assert [t["month"] for t in trends] == ["Mar 24", "Apr 24", "May 24", "Jun 24", "Jul 24", "Aug 24", "Sep 24"]
    assert trends[-1]["count"] == 2


def test_merged_without_date_not_trended():
    assert compute_monthly_trends([MRRecord(status="Merged")]) == []


def test_distribution_percentages_and_zero_rows_dropped():
    counts = {"open": 1, "in_cg_review": 0, "approved": 0, "merged": 2, "total": 3}

    distribution = compute_status_distribution(counts)

    assert [(d["status"], d["count"], d["percentage"]) for d in distribution] == [
        ("Open", 1, 33),
        ("Merged", 2, 67),
    ]


def test_report_for_empty_store():
    report = compute_report([])

    assert report["status_counts"]["total"] == 0
    assert report["monthly_trends"] == []
    assert report["max_trend_value"] == 1
    assert report["status_distribution"] == []


def test_report_max_trend_value():
    report = compute_report([merged(1), merged(1), merged(2)])

    assert report["max_trend_value"] == 2
