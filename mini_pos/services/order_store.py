from typing import List, Optional

from sqlalchemy import select

from mini_pos.core.database import Database
from mini_pos.models.database import Order as DBOrder, OrderItem as DBOrderItem
from mini_pos.models.schemas import Order, OrderLine


class OrderStore:
    """Read-only queries over committed orders. Orders are only written by OrderCommitService."""

    def __init__(self, db: Database):
        self.db = db

    async def get_all(self) -> List[Order]:
        """All orders, newest first"""
        with self.db.session() as session:
            orders = session.scalars(
                select(DBOrder).order_by(DBOrder.order_date.desc(), DBOrder.id.desc())
            ).all()
            return [self._to_schema(order) for order in orders]

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """A single order with its lines, or None"""
        with self.db.session() as session:
            order = session.get(DBOrder, order_id)
            if order is None:
                return None
            lines = [OrderLine.model_validate(line) for line in order.order_items]
            return self._to_schema(order, lines)

    async def get_lines_for_order(self, order_id: int) -> List[OrderLine]:
        """Lines of an order in insertion order"""
        with self.db.session() as session:
            lines = session.scalars(
                select(DBOrderItem)
                .where(DBOrderItem.order_id == order_id)
                .order_by(DBOrderItem.id.asc())
            ).all()
            return [OrderLine.model_validate(line) for line in lines]

    @staticmethod
    def _to_schema(order: DBOrder, lines: Optional[List[OrderLine]] = None) -> Order:
        return Order(
            id=order.id,
            customer_name=order.customer_name,
            order_date=order.order_date,
            total_amount=order.total_amount,
            lines=lines or [],
        )
