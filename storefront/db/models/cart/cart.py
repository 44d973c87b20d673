# storefront/db/models/cart/cart.py
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....core.clock import utcnow

class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    product_id: str = Field(max_length=64)
    quantity: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class CartMergeReceipt(SQLModel, table=True):
    __tablename__ = "cart_merge_receipts"
    __table_args__ = (UniqueConstraint("user_id", "merge_key", name="uq_cart_merge_user_key"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    merge_key: str = Field(max_length=64)
    merged_at: datetime = Field(default_factory=utcnow)
