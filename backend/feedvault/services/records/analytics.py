"""
Analytics over curated records.

Pure aggregation: the caller supplies the records (a full traversal of the
store), this module only counts.
"""

from collections import Counter
from typing import Iterable

from feedvault.core.timeutil import date_part
from feedvault.schemas.pipeline import (
    AnalyticsResponse,
    AnalyticsSummary,
    CuratedRecord,
    TimelinePoint,
)

# Most recent distinct capture dates reported in by_date / timeline
TIMELINE_DAYS = 7


def compute_analytics(records: Iterable[CuratedRecord]) -> AnalyticsResponse:
    records = list(records)

    by_source = Counter(r.source for r in records)

    # Records without a capture time are not placed on any date
    by_date = Counter(
        date_part(r.captured_at) for r in records if r.captured_at
    )

    recent = sorted(by_date.items(), key=lambda kv: kv[0], reverse=True)[:TIMELINE_DAYS]

    dated = sorted(
        (r for r in records if r.captured_at),
        key=lambda r: r.captured_at,
        reverse=True,
    )

    return AnalyticsResponse(
        summary=AnalyticsSummary(
            total_records=len(records),
            total_sources=len(by_source),
            oldest_record=dated[-1].captured_at if dated else None,
            newest_record=dated[0].captured_at if dated else None,
        ),
        by_source=dict(by_source),
        by_date=dict(recent),
        timeline=[TimelinePoint(date=d, count=c) for d, c in reversed(recent)],
    )
