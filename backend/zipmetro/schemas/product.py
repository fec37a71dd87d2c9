"""
ZipMetro Backend — Product Schemas
====================================

What:  Request/response models for the catalog endpoints (/api/products).
Who:   routes/products.py, services/product_service.py

Update Semantics:
    ProductUpdate is a partial document. Only fields the client actually sent
    (model_dump(exclude_unset=True)) are merged over the stored product, so
    an explicit `"image": ""` clears the image while an omitted image keeps it.

    Both write models accept the description as `description` or `desc`.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from zipmetro.schemas.common import EntityId


class ProductCreate(BaseModel):
    name: Optional[str] = Field(default=None, description="Display name (required)")
    category: Optional[str] = Field(default=None, description="Catalog category (required)")
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("description", "desc"),
        description="Long description (`desc` accepted as well)",
    )
    price: Optional[float] = Field(default=None, ge=0, description="Unit price (required)")
    thc: Optional[float] = Field(default=None, ge=0, description="THC percentage")
    image: Optional[str] = Field(default=None, description="Image URL or path")
    stock: Optional[int] = Field(default=None, ge=0, description="Units in stock")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, description="Display name")
    category: Optional[str] = Field(default=None, description="Catalog category")
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("description", "desc"),
        description="Long description (`desc` accepted as well)",
    )
    price: Optional[float] = Field(default=None, ge=0, description="Unit price")
    thc: Optional[float] = Field(default=None, ge=0, description="THC percentage")
    image: Optional[str] = Field(default=None, description="Image URL or path")
    stock: Optional[int] = Field(default=None, ge=0, description="Units in stock")
    active: Optional[bool] = Field(default=None, description="Listed in the storefront")


class ProductResponse(BaseModel):
    """
    What:  A catalog product as stored.
    Who:   Returned by every /api/products endpoint.
    """
    id: EntityId = Field(description="Product identifier")
    name: str = Field(description="Display name")
    category: str = Field(description="Catalog category")
    description: Optional[str] = Field(default=None, description="Long description")
    price: float = Field(description="Unit price")
    thc: Optional[float] = Field(default=None, description="THC percentage")
    image: Optional[str] = Field(default=None, description="Image URL or path")
    stock: Optional[int] = Field(default=None, description="Units in stock")
    active: bool = Field(description="Listed in the storefront")
    created_at: Optional[datetime] = Field(default=None, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="Last change (UTC)")

    model_config = {"from_attributes": True}
