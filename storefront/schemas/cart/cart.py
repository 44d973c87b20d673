from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...application.ports.cart_repo import CartLineDto


class CartLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1, max_length=64)
    quantity: int = Field(..., ge=1, le=99)

    @field_validator("product_id")
    @classmethod
    def strip_product_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Product id is required")
        return v


class AddCartItemRequest(CartLine):
    quantity: int = Field(1, ge=1, le=99)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(..., ge=1, le=99)


class MergeCartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    merge_key: str = Field(..., alias="mergeKey", min_length=1, max_length=64)
    items: List[CartLine] = Field(default_factory=list)


class CartResponse(BaseModel):
    items: List[dict]
    total_quantity: int = Field(..., serialization_alias="totalQuantity")

    @classmethod
    def from_lines(cls, lines: List[CartLineDto]) -> "CartResponse":
        return cls(
            items=[{"productId": line.product_id, "quantity": line.quantity} for line in lines],
            total_quantity=sum(line.quantity for line in lines),
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
