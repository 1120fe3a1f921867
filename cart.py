"""Client-side cart. Holds cached copies of catalog data, never the source of truth."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas import Localized


class CartItem(BaseModel):
    product: str
    selectedVariant: Optional[str] = None
    name: Localized
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)

    @property
    def uniqueId(self) -> str:
        return f"{self.product}-{self.selectedVariant or 'base'}"

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Cart:
    def __init__(self):
        self._items: Dict[str, CartItem] = {}

    def __len__(self):
        return len(self._items)

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    def add(self, item: CartItem) -> CartItem:
        existing = self._items.get(item.uniqueId)
        if existing:
            existing.quantity += item.quantity
            return existing
        self._items[item.uniqueId] = item
        return item

    def update_quantity(self, unique_id: str, quantity: int):
        if unique_id not in self._items:
            raise KeyError(unique_id)
        if quantity <= 0:
            self.remove(unique_id)
        else:
            self._items[unique_id].quantity = quantity

    def remove(self, unique_id: str):
        self._items.pop(unique_id, None)

    def clear(self):
        self._items.clear()

    @property
    def count(self) -> int:
        return sum(i.quantity for i in self._items.values())

    @property
    def subtotal(self) -> float:
        return sum(i.line_total for i in self._items.values())

    def to_order_items(self) -> List[dict]:
        return [
            {"product": i.product, "selectedVariant": i.selectedVariant, "quantity": i.quantity}
            for i in self._items.values()
        ]
