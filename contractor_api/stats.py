"""
Dashboard statistics computed from the record store.

The sub-queries run one after another against live data; writes landing
between them can make the batch slightly inconsistent.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from contractor_api.records import (
    CONTACT_MESSAGES,
    GALLERY_IMAGES,
    SERVICES,
    WORK_ORDER_STATUSES,
    WORK_ORDERS,
    utcnow,
)
from contractor_api.store import RecordStore

POPULAR_WINDOW = timedelta(days=30)
POPULAR_LIMIT = 5
ACTIVITY_DAYS = 7


def rank_service_types(counts: dict, limit: int = POPULAR_LIMIT) -> list[dict]:
    """Most ordered first; equal counts fall back to the service type name."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
    return [
        {"service_type": service_type, "count": count}
        for service_type, count in ranked[:limit]
    ]


def daily_series(created: list[datetime], now: datetime, days: int = ACTIVITY_DAYS) -> list[dict]:
    """Zero-filled per-day counts for the `days` calendar days ending on `now`'s date."""
    per_day = Counter(moment.date() for moment in created)
    today = now.date()
    return [
        {"date": day.isoformat(), "count": per_day.get(day, 0)}
        for day in (today - timedelta(days=offset) for offset in range(days - 1, -1, -1))
    ]


class DashboardStats:
    def __init__(self, store: RecordStore):
        self.store = store

    def collect(self, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        by_status = self.store.count_by(WORK_ORDERS, "status")
        orders_by_status = {status: by_status.get(status, 0) for status in WORK_ORDER_STATUSES}

        # Both windows end at `now`, so a past `now` ignores later orders.
        popular = self.store.count_by(
            WORK_ORDERS, "service_type", since=now - POPULAR_WINDOW, until=now
        )
        activity_start = datetime.combine(
            now.date() - timedelta(days=ACTIVITY_DAYS - 1), datetime.min.time()
        )
        created = self.store.created_since(WORK_ORDERS, activity_start, until=now)

        return {
            "orders_by_status": orders_by_status,
            "pending_orders": orders_by_status["pending"],
            "in_progress_orders": orders_by_status["in-progress"],
            "completed_orders": orders_by_status["completed"],
            "unread_messages": self.store.count(CONTACT_MESSAGES, {"status": "unread"}),
            "gallery_images": self.store.count(GALLERY_IMAGES),
            "active_services": self.store.count(SERVICES, {"is_active": True}),
            "popular_services": rank_service_types(popular),
            "weekly_activity": daily_series(created, now),
        }
