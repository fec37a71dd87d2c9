"""
ZipMetro Backend — Storefront SQLAlchemy Models
=================================================

What:  ORM models for the six storefront tables.
Why:   One schema definition shared by both stores: the relational adapter
       creates these tables and compiles typed queries against their columns;
       the document adapter uses the same field names as document keys.
How:   SQLAlchemy 2.0 typed mappings (Mapped / mapped_column).
Who:   zipmetro.store.relational (create_all, Core statements)
When:  Tables created on relational store connect.

Table Design Rationale:
    - Integer autoincrement keys: the relational side of the `id` contract
      (the document store uses ObjectIds instead)
    - No ORM relationships: joins are done by services over the store facade,
      so the same code runs on both backends
    - Timestamps are naive UTC; server default CURRENT_TIMESTAMP covers rows
      written through literal SQL, typed inserts set them explicitly
    - `dob` is stored as ISO text ("YYYY-MM-DD"), exactly as clients send it
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from zipmetro.database import Base


class User(Base):
    """A customer or admin account. `role` is `customer` or `admin`."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    dob: Mapped[Optional[str]] = mapped_column(String(10))
    id_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("0")
    )
    id_image_path: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="customer", server_default=text("'customer'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Product(Base):
    """
    A catalog entry.

    `thc` is a percentage. Inactive products stay in the table
    (order history references them) but are hidden from the default listing
    and cannot be ordered.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    thc: Mapped[float] = mapped_column(Float, default=0, server_default=text("0"))
    image: Mapped[Optional[str]] = mapped_column(String(500))
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (Index("idx_products_category", "category"),)


class Order(Base):
    """
    A placed order. `user_id` is NULL for guest checkout.

    Status lifecycle:
        pending → confirmed → preparing → out_for_delivery → delivered
        any state → cancelled
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_window: Mapped[Optional[str]] = mapped_column(String(100))
    order_notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="pending", server_default=text("'pending'")
    )
    total: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (Index("idx_orders_user_id", "user_id"),)


class OrderItem(Base):
    """One line of an order; `price` is the unit price at order time."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (Index("idx_order_items_order_id", "order_id"),)


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    sms: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("1"))
    email: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("1"))
    push: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("0"))


class AdminSetting(Base):
    """Free-form key/value store edited from the admin dashboard."""

    __tablename__ = "admin_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Optional[str]] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP")
    )
