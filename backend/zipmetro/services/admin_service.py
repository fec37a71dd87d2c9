"""
ZipMetro Backend — Admin Dashboard Service
============================================

What:  Sales figures and key/value site settings for the admin dashboard.
Why:   Aggregates are computed in Python over a date-bounded order scan, so
       the figures are identical on both stores without GROUP BY support in
       the document path.
How:   One `created_at >= week start` read per stats call; today's figures
       are the subset on or after today's midnight (UTC).
Who:   routes/admin.py
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from zipmetro.exceptions import ValidationError
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade
from zipmetro.store.query import AtLeast, utcnow

logger = logging.getLogger(__name__)

# What: Days before today included in the weekly figures
WEEK_DAYS = 7


def period_stats(orders: Iterable[Row]) -> Dict[str, Any]:
    totals = [order.get("total") or 0 for order in orders]
    revenue = sum(totals)
    return {
        "orders": len(totals),
        "revenue": round(revenue, 2),
        "avg_basket": round(revenue / len(totals), 2) if totals else 0,
    }


class AdminService:

    async def stats(self, store: StoreFacade, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Order count, revenue and average basket for today and the week, plus
        the number of accounts with more than one order this week.
        """
        now = now or utcnow()
        today_start = datetime(now.year, now.month, now.day)
        week_start = today_start - timedelta(days=WEEK_DAYS)

        week_orders = await store.find_many(
            "orders",
            conditions=[AtLeast("created_at", week_start)],
            fields=["user_id", "total", "created_at"],
        )
        today_orders = [
            order for order in week_orders
            if order.get("created_at") is not None and order["created_at"] >= today_start
        ]
        per_user = Counter(
            str(order["user_id"]) for order in week_orders if order.get("user_id") is not None
        )

        return {
            "today": period_stats(today_orders),
            "week": period_stats(week_orders),
            "repeat_customers": sum(1 for count in per_user.values() if count > 1),
        }

    async def get_settings(self, store: StoreFacade) -> Dict[str, Optional[str]]:
        rows = await store.find_many("admin_settings", fields=["key", "value"])
        return {row["key"]: row.get("value") for row in rows}

    async def put_setting(
        self, store: StoreFacade, key: Optional[str], value: Optional[str]
    ) -> Dict[str, Optional[str]]:
        """
        Upserts one setting by key.

        Raises:
            ValidationError: key missing
        """
        if not key:
            raise ValidationError(message="Key is required", field="key")

        existing = await store.find_one("admin_settings", {"key": key}, fields=["id"])
        if existing is not None:
            await store.update_where("admin_settings", {"key": key}, {"value": value})
        else:
            await store.insert("admin_settings", {"key": key, "value": value})
        logger.info("Admin setting '%s' updated", key)
        return {"key": key, "value": value}


# ── Singleton Instance ────────────────────────────────────────────────────
admin_service = AdminService()
