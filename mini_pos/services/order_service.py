from datetime import datetime, timezone
from typing import Dict, Sequence
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from mini_pos.core.database import Database
from mini_pos.core.exceptions import ItemNotFound, StockShortfall, StorageFailure, ValidationError
from mini_pos.models.database import Item as DBItem, Order as DBOrder, OrderItem as DBOrderItem
from mini_pos.models.enums import StockCheck
from mini_pos.models.schemas import CartItem, OrderCreate
import logging

logger = logging.getLogger(__name__)


class OrderCommitService:
    """
    Turns a cart into an order, its lines and the matching stock decrements.

    The whole commit runs inside one Database.transaction(): either every
    write is committed or none is. In StockCheck.LIVE mode stock is re-read
    inside the transaction and decremented with a guarded UPDATE, so stock
    never goes negative. StockCheck.SNAPSHOT keeps the legacy behaviour of
    trusting the stock value the cart item was built with.
    """

    def __init__(self, db: Database, stock_check: StockCheck = StockCheck.LIVE):
        self.db = db
        self.stock_check = StockCheck(stock_check)

    async def process_order(self, order_data: OrderCreate) -> int:
        return await self.commit_order(order_data.customer_name, order_data.items)

    async def commit_order(self, customer_name: str, cart_items: Sequence[CartItem]) -> int:
        """
        Commit a cart as a new order and return the order id.

        Raises ValidationError before any write for an empty customer name,
        an empty cart or a non-positive price/quantity. Raises StockShortfall
        naming the first line (in cart order) that cannot be covered, and
        ItemNotFound when a live check finds the item gone; both leave the
        database untouched.
        """
        customer_name = self._validate(customer_name, cart_items)

        # Engine-computed, never taken from the caller
        total_amount = sum(item.price * item.order_quantity for item in cart_items)
        order_date = datetime.now(timezone.utc).isoformat(timespec="milliseconds")

        logger.info(
            f"Committing order for {customer_name}: "
            f"{len(cart_items)} line(s), total = {total_amount}"
        )

        try:
            with self.db.transaction() as session:
                order = DBOrder(
                    customer_name=customer_name,
                    order_date=order_date,
                    total_amount=total_amount
                )
                session.add(order)
                session.flush()  # Get the order ID

                if order.id is None:
                    raise StorageFailure("Order insert did not return an id")

                # Quantity already sold per item id earlier in this cart
                sold: Dict[int, int] = {}
                for cart_item in cart_items:
                    self._sell_line(session, order.id, cart_item, sold)

                order_id = order.id
        except (StockShortfall, ItemNotFound) as e:
            logger.warning(f"Order for {customer_name} rolled back: {str(e)}")
            raise
        except StorageFailure as e:
            logger.error(f"Order for {customer_name} rolled back after storage failure: {str(e)}")
            raise

        logger.info(f"Order {order_id} committed for {customer_name}")
        return order_id

    def _sell_line(self, session: Session, order_id: int, cart_item: CartItem, sold: Dict[int, int]) -> None:
        """Check stock, write the order line and decrement stock for one cart line"""
        requested = cart_item.order_quantity
        item_name = cart_item.name

        if self.stock_check is StockCheck.LIVE:
            row = session.execute(
                select(DBItem.name, DBItem.quantity_in_stock).where(DBItem.id == cart_item.id)
            ).one_or_none()
            if row is None:
                raise ItemNotFound(cart_item.id)
            item_name, available = row.name, row.quantity_in_stock
        else:
            # Earlier lines for the same item already consumed part of the snapshot
            available = cart_item.quantity_in_stock - sold.get(cart_item.id, 0)

        if available < requested:
            raise StockShortfall(cart_item.id, item_name, requested, available)

        session.add(DBOrderItem(
            order_id=order_id,
            item_id=cart_item.id,
            item_name=cart_item.name,
            quantity=requested,
            price_at_purchase=cart_item.price
        ))

        if self.stock_check is StockCheck.LIVE:
            statement = (
                update(DBItem)
                .where(DBItem.id == cart_item.id, DBItem.quantity_in_stock >= requested)
                .values(quantity_in_stock=DBItem.quantity_in_stock - requested)
            )
        else:
            statement = (
                update(DBItem)
                .where(DBItem.id == cart_item.id)
                .values(quantity_in_stock=available - requested)
            )

        update_count = session.execute(
            statement, execution_options={"synchronize_session": False}
        ).rowcount

        if update_count == 0:
            if self.stock_check is StockCheck.LIVE:
                # Stock moved between the read and the guarded update
                raise StockShortfall(cart_item.id, item_name, requested, available)
            raise ItemNotFound(cart_item.id)

        sold[cart_item.id] = sold.get(cart_item.id, 0) + requested

        logger.info(
            f"Updated stock for {item_name}: "
            f"new quantity = {available - requested}"
        )

    @staticmethod
    def _validate(customer_name: str, cart_items: Sequence[CartItem]) -> str:
        customer_name = (customer_name or "").strip()
        if not customer_name:
            raise ValidationError("Customer name is required.")
        if not cart_items:
            raise ValidationError("Cannot commit an empty cart.")
        for cart_item in cart_items:
            if cart_item.order_quantity <= 0:
                raise ValidationError(f"Quantity for {cart_item.name} must be positive.")
            if cart_item.price <= 0:
                raise ValidationError(f"Price for {cart_item.name} must be positive.")
        return customer_name
