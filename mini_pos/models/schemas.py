from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from typing import List, Optional
from datetime import datetime

from mini_pos.models.enums import ItemCategory


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    category: ItemCategory
    price: float = Field(..., gt=0)
    quantity_in_stock: int = Field(..., ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Item name must not be empty")
        return v


class ItemCreate(ItemBase):
    pass


class ItemUpdate(ItemBase):
    """Full replacement of an item's editable fields; id is required by the store"""
    id: Optional[int] = None


class Item(ItemBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_low_stock(self) -> bool:
        return self.quantity_in_stock <= self.low_stock_threshold


class CartItem(Item):
    """
    An item snapshot plus the quantity the customer wants.

    quantity_in_stock is the stock seen when the cart was filled, not a
    reservation; the commit engine decides what is actually sellable.
    """
    order_quantity: int = Field(..., gt=0)

    @classmethod
    def from_item(cls, item: Item, order_quantity: int) -> "CartItem":
        return cls(**item.model_dump(exclude={"is_low_stock"}), order_quantity=order_quantity)

    @computed_field
    @property
    def line_total(self) -> float:
        return self.price * self.order_quantity


class OrderCreate(BaseModel):
    customer_name: str
    items: List[CartItem]


class OrderLine(BaseModel):
    id: int
    order_id: int
    item_id: int
    item_name: str
    quantity: int
    price_at_purchase: float

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    id: int
    customer_name: str
    order_date: datetime
    total_amount: float
    lines: List[OrderLine] = []

    model_config = ConfigDict(from_attributes=True)
