from sqlalchemy import Column, Integer, String, Float, ForeignKey, Enum
from sqlalchemy.orm import declarative_base, relationship

from mini_pos.models.enums import ItemCategory

Base = declarative_base()

DEFAULT_LOW_STOCK_THRESHOLD = 5


class Item(Base):
    """Sellable catalog entry; quantity_in_stock is the source of truth for availability"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, unique=True, index=True, nullable=False)
    category = Column(
        Enum(
            ItemCategory,
            name="item_category",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    price = Column(Float, nullable=False)
    quantity_in_stock = Column(Integer, nullable=False)
    low_stock_threshold = Column(Integer, default=DEFAULT_LOW_STOCK_THRESHOLD)

    # Lines referencing this item block its deletion
    order_items = relationship("OrderItem", back_populates="item", passive_deletes="all")


class Order(Base):
    """Immutable record of a completed sale"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_name = Column(String, nullable=False)
    order_date = Column(String, nullable=False, index=True)  # ISO-8601, UTC
    total_amount = Column(Float, nullable=False)

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    """Snapshot of one cart line as it was sold"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Float, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="order_items")
    item = relationship("Item", back_populates="order_items")
