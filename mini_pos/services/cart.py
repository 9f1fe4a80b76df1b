import logging
from typing import Dict, List, Optional

from mini_pos.core.exceptions import ItemNotFound, StockShortfall
from mini_pos.models.schemas import CartItem, Item
from mini_pos.services.item_store import ItemStore
from mini_pos.services.order_service import OrderCommitService

logger = logging.getLogger(__name__)


class CartSession:
    """
    Working cart for one point-of-sale session.

    Stock checks here are advisory and run against the last catalog snapshot;
    the commit engine makes the authoritative check at checkout.
    """

    def __init__(self, item_store: ItemStore, order_service: OrderCommitService):
        self.item_store = item_store
        self.order_service = order_service
        self.catalog: List[Item] = []
        self._lines: Dict[int, CartItem] = {}

    async def refresh(self) -> List[Item]:
        self.catalog = await self.item_store.get_all()
        return self.catalog

    def available_items(self, search: str = "") -> List[Item]:
        """Catalog entries in stock whose name contains the search term, ignoring case"""
        needle = search.lower()
        return [
            item for item in self.catalog
            if needle in item.name.lower() and item.quantity_in_stock > 0
        ]

    @property
    def lines(self) -> List[CartItem]:
        return list(self._lines.values())

    @property
    def total(self) -> float:
        return sum(line.price * line.order_quantity for line in self._lines.values())

    def add(self, item_id: int, quantity: int = 1) -> Optional[CartItem]:
        """Add quantity of an item, merging with an existing line for the same item"""
        if quantity <= 0:
            return self._lines.get(item_id)

        item = self._catalog_item(item_id)
        current = self._lines.get(item_id)
        new_quantity = quantity + (current.order_quantity if current else 0)

        if item.quantity_in_stock < new_quantity:
            raise StockShortfall(item.id, item.name, new_quantity, item.quantity_in_stock)

        line = CartItem.from_item(item, new_quantity)
        self._lines[item_id] = line
        return line

    def set_quantity(self, item_id: int, quantity: int) -> int:
        """
        Set a line's quantity and return what was actually kept.

        Negative values count as 0, 0 removes the line, and anything above the
        catalog stock is capped at the stock.
        """
        item = self._catalog_item(item_id)
        quantity = max(quantity, 0)

        if quantity > item.quantity_in_stock:
            logger.info(
                f"Capping {item.name} at {item.quantity_in_stock} (asked for {quantity})"
            )
            quantity = item.quantity_in_stock

        if quantity == 0:
            self.remove(item_id)
            return 0

        self._lines[item_id] = CartItem.from_item(item, quantity)
        return quantity

    def remove(self, item_id: int) -> None:
        self._lines.pop(item_id, None)

    def clear(self) -> None:
        self._lines.clear()

    async def checkout(self, customer_name: str) -> int:
        """Commit the cart; the cart is cleared only when the commit succeeds"""
        order_id = await self.order_service.commit_order(customer_name, self.lines)
        self.clear()
        await self.refresh()
        return order_id

    def _catalog_item(self, item_id: int) -> Item:
        for item in self.catalog:
            if item.id == item_id:
                return item
        raise ItemNotFound(item_id)
