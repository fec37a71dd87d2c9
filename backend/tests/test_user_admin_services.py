"""
ZipMetro Backend — Account & Admin Service Tests
==================================================

What we test:
    ✅ Profile read (with notification preferences) and replace-style update
    ✅ ID submission validation and the unverified reset
    ✅ Notification preferences: defaults, insert, update
    ✅ Dashboard figures over today / the week, repeat customers
    ✅ Site settings upsert
"""

from datetime import datetime, timedelta

import pytest

from zipmetro.exceptions import NotFoundError, ValidationError
from zipmetro.services.admin_service import AdminService, period_stats
from zipmetro.services.user_service import DEFAULT_PREFERENCES, UserService


async def add_user(store, email="jane@example.com", **extra):
    values = {"email": email, "password_hash": "x", "first_name": "Jane", "last_name": "Doe"}
    values.update(extra)
    return (await store.insert("users", values)).last_id


async def add_order(store, total, created_at, user_id=None):
    await store.insert(
        "orders",
        {
            "user_id": user_id,
            "customer_name": "Jane",
            "customer_phone": "555",
            "delivery_address": "1 Main St",
            "status": "pending",
            "total": total,
            "created_at": created_at,
        },
    )


class TestUserService:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_profile_has_default_preferences(self, store):
        user_id = await add_user(store)
        profile = await self.service.get_profile(store, str(user_id))
        assert profile["email"] == "jane@example.com"
        assert "password_hash" not in profile
        assert profile["notification_preferences"] == DEFAULT_PREFERENCES

    @pytest.mark.asyncio
    async def test_profile_missing_user(self, store):
        with pytest.raises(NotFoundError, match="User not found"):
            await self.service.get_profile(store, 42)

    @pytest.mark.asyncio
    async def test_update_profile_clears_omitted_fields(self, store):
        user_id = await add_user(store, phone="555-0100")

        profile = await self.service.update_profile(
            store, user_id, {"first_name": "Janet", "dob": "1990-04-01"}
        )

        assert profile["first_name"] == "Janet"
        assert profile["dob"] == "1990-04-01"
        assert profile["last_name"] is None
        assert profile["phone"] is None

    @pytest.mark.asyncio
    async def test_submit_id(self, store):
        user_id = await add_user(store, id_verified=True)

        await self.service.submit_id(
            store,
            user_id,
            {
                "first_name": "Jane",
                "last_name": "Doe",
                "dob": "1990-04-01",
                "id_type": "drivers_license",
                "id_image_path": "2026/10/19/abc.jpg",
                "consent": True,
            },
        )

        user = await store.find_by_id("users", user_id)
        assert user["id_image_path"] == "2026/10/19/abc.jpg"
        assert user["id_verified"] is False

    @pytest.mark.asyncio
    async def test_submit_id_requires_consent(self, store):
        user_id = await add_user(store)
        with pytest.raises(ValidationError, match="All ID fields and consent are required"):
            await self.service.submit_id(
                store,
                user_id,
                {
                    "first_name": "Jane",
                    "last_name": "Doe",
                    "dob": "1990-04-01",
                    "id_image_path": "a.jpg",
                    "consent": False,
                },
            )

    @pytest.mark.asyncio
    async def test_update_notifications_inserts_then_updates(self, store):
        user_id = await add_user(store)

        first = await self.service.update_notifications(store, user_id, {"sms": False, "push": True})
        second = await self.service.update_notifications(store, str(user_id), {"email": True})

        assert first == {"sms": False, "email": False, "push": True}
        assert second == {"sms": False, "email": True, "push": False}
        assert await store.count("notification_preferences") == 1


class TestAdminService:

    def setup_method(self):
        self.service = AdminService()

    def test_period_stats_empty(self):
        assert period_stats([]) == {"orders": 0, "revenue": 0, "avg_basket": 0}

    def test_period_stats_rounding(self):
        stats = period_stats([{"total": 10}, {"total": 10}, {"total": 10.01}])
        assert stats == {"orders": 3, "revenue": 30.01, "avg_basket": 10.0}

    @pytest.mark.asyncio
    async def test_stats_today_and_week(self, store):
        now = datetime(2026, 10, 19, 15, 30)
        jane = await add_user(store, "jane@example.com")
        joe = await add_user(store, "joe@example.com")

        await add_order(store, 40, now - timedelta(hours=1), jane)
        await add_order(store, 20, now - timedelta(days=3), jane)
        await add_order(store, 30, now - timedelta(days=2), joe)
        await add_order(store, 99, now - timedelta(days=30), joe)

        stats = await self.service.stats(store, now=now)

        assert stats["today"] == {"orders": 1, "revenue": 40, "avg_basket": 40}
        assert stats["week"] == {"orders": 3, "revenue": 90, "avg_basket": 30}
        assert stats["repeat_customers"] == 1

    @pytest.mark.asyncio
    async def test_guest_orders_are_not_repeat_customers(self, store):
        now = datetime(2026, 10, 19, 12, 0)
        await add_order(store, 10, now - timedelta(hours=2))
        await add_order(store, 10, now - timedelta(hours=1))
        stats = await self.service.stats(store, now=now)
        assert stats["repeat_customers"] == 0
        assert stats["today"]["orders"] == 2

    @pytest.mark.asyncio
    async def test_settings_upsert(self, store):
        await self.service.put_setting(store, "banner", "Free delivery")
        await self.service.put_setting(store, "banner", "Closed today")
        await self.service.put_setting(store, "hours", None)

        assert await self.service.get_settings(store) == {"banner": "Closed today", "hours": None}

    @pytest.mark.asyncio
    async def test_setting_key_required(self, store):
        with pytest.raises(ValidationError, match="Key is required"):
            await self.service.put_setting(store, "", "x")
