"""
ZipMetro Backend — Account Service
====================================

What:  The signed-in customer's profile, ID submission and notification
       preferences.
Who:   routes/users.py
"""

import logging
from typing import Any, Dict

from zipmetro.exceptions import NotFoundError, ValidationError
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

PROFILE_FIELDS = [
    "id",
    "email",
    "first_name",
    "last_name",
    "phone",
    "dob",
    "id_verified",
    "role",
    "created_at",
]

DEFAULT_PREFERENCES = {"sms": True, "email": True, "push": False}


def _preferences(row: Row) -> Dict[str, bool]:
    return {channel: bool(row.get(channel)) for channel in DEFAULT_PREFERENCES}


class UserService:

    async def get_profile(self, store: StoreFacade, user_id: Any) -> Row:
        """Profile plus notification preferences (defaults when none stored)."""
        profile = await store.find_by_id("users", user_id, fields=PROFILE_FIELDS)
        if profile is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        profile["notification_preferences"] = await self.get_notifications(store, user_id)
        return profile

    async def update_profile(
        self, store: StoreFacade, user_id: Any, changes: Dict[str, Any]
    ) -> Row:
        """Sets first_name, last_name, phone and dob; omitted fields are cleared."""
        values = {field: changes.get(field) for field in ("first_name", "last_name", "phone", "dob")}
        result = await store.update_by_id("users", user_id, values)
        if result.changes == 0:
            raise NotFoundError(resource="user", resource_id=user_id)
        profile = await store.find_by_id("users", user_id, fields=PROFILE_FIELDS)
        if profile is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return profile

    async def submit_id(self, store: StoreFacade, user_id: Any, data: Dict[str, Any]) -> None:
        """
        Records an ID for manual verification; the account is unverified
        until staff approve it.

        Raises:
            ValidationError: any ID field missing, or no consent
        """
        required = ("first_name", "last_name", "dob", "id_image_path", "consent")
        if not all(data.get(field) for field in required):
            raise ValidationError(message="All ID fields and consent are required")

        await store.update_by_id(
            "users",
            user_id,
            {
                "first_name": data["first_name"],
                "last_name": data["last_name"],
                "dob": data["dob"],
                "id_image_path": data["id_image_path"],
                "id_verified": False,
            },
        )
        logger.info("ID submitted for user %s (%s)", user_id, data.get("id_type") or "unspecified")

    async def get_notifications(self, store: StoreFacade, user_id: Any) -> Dict[str, bool]:
        row = await store.find_one(
            "notification_preferences",
            {"user_id": store.native_id(user_id)},
            fields=["sms", "email", "push"],
        )
        if row is None:
            return dict(DEFAULT_PREFERENCES)
        return _preferences(row)

    async def update_notifications(
        self, store: StoreFacade, user_id: Any, prefs: Dict[str, Any]
    ) -> Dict[str, bool]:
        """Stores all three channels; inserts the row when the user has none yet."""
        owner = store.native_id(user_id)
        values = {channel: bool(prefs.get(channel)) for channel in DEFAULT_PREFERENCES}
        existing = await store.find_one("notification_preferences", {"user_id": owner}, fields=["id"])
        if existing is not None:
            await store.update_where("notification_preferences", {"user_id": owner}, values)
        else:
            await store.insert("notification_preferences", {"user_id": owner, **values})
        return await self.get_notifications(store, user_id)


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
