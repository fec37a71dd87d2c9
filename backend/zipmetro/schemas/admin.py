"""
ZipMetro Backend — Admin Dashboard Schemas
============================================

What:  Response/request models for /api/admin (stats and site settings).
"""

from typing import Optional

from pydantic import BaseModel, Field


class PeriodStats(BaseModel):
    orders: int = Field(description="Orders placed in the period")
    revenue: float = Field(description="Sum of order totals")
    avg_basket: float = Field(description="Mean order total (0 when no orders)")


class AdminStats(BaseModel):
    """
    What:  Dashboard figures.
    Periods are UTC calendar days: `today` is the current day, `week` the
    current day plus the seven before it.
    """
    today: PeriodStats = Field(description="Orders placed today")
    week: PeriodStats = Field(description="Orders placed in the last 7 days")
    repeat_customers: int = Field(description="Accounts with more than one order this week")


class SettingUpdate(BaseModel):
    key: Optional[str] = Field(default=None, description="Setting name (required)")
    value: Optional[str] = Field(default=None, description="Setting value, e.g. homepage ad text")


class SettingResponse(BaseModel):
    key: str = Field(description="Setting name")
    value: Optional[str] = Field(default=None, description="Stored value")
