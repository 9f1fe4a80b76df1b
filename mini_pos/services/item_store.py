import logging
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mini_pos.core.database import Database
from mini_pos.core.exceptions import DuplicateName, ValidationError
from mini_pos.models.database import Item as DBItem, OrderItem as DBOrderItem
from mini_pos.models.schemas import Item, ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)


class ItemStore:
    """
    Owns the catalog items and is the only writer of their stock outside an order commit.

    Every read returns detached pydantic snapshots taken by a fresh query.
    """

    def __init__(self, db: Database):
        self.db = db

    async def add(self, item_data: ItemCreate) -> int:
        """Insert a new item and return its id"""
        with self.db.session() as session:
            self._ensure_name_free(session, item_data.name)

            item = DBItem(**item_data.model_dump())
            session.add(item)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                if self._is_unique_violation(e):
                    logger.warning(f"Rejected duplicate item name {item_data.name!r}")
                    raise DuplicateName(item_data.name) from e
                raise

            logger.info(f"Added item {item.name} (id {item.id}, stock {item.quantity_in_stock})")
            return item.id

    async def get_all(self) -> List[Item]:
        """All items ordered by name"""
        with self.db.session() as session:
            items = session.scalars(select(DBItem).order_by(DBItem.name.asc())).all()
            return [Item.model_validate(item) for item in items]

    async def get_by_id(self, item_id: int) -> Optional[Item]:
        with self.db.session() as session:
            item = session.get(DBItem, item_id)
            if item is None:
                return None
            return Item.model_validate(item)

    async def update(self, item_data: ItemUpdate) -> int:
        """Replace the editable fields of an item; returns the number of rows changed"""
        if item_data.id is None:
            raise ValidationError("Item ID is required for update.")

        with self.db.session() as session:
            self._ensure_name_free(session, item_data.name, exclude_id=item_data.id)

            values = item_data.model_dump(exclude={"id"})
            try:
                result = session.execute(
                    update(DBItem).where(DBItem.id == item_data.id).values(**values)
                )
                session.commit()
            except IntegrityError as e:
                session.rollback()
                if self._is_unique_violation(e):
                    logger.warning(f"Rejected duplicate item name {item_data.name!r}")
                    raise DuplicateName(item_data.name) from e
                raise

            if result.rowcount:
                logger.info(f"Updated item {item_data.id} ({item_data.name})")
            return result.rowcount

    async def delete(self, item_id: int) -> int:
        """
        Delete an item unless historical order lines reference it.

        A blocked delete is not an error: it affects 0 rows, exactly like
        deleting an id that does not exist.
        """
        with self.db.session() as session:
            references = session.scalar(
                select(func.count(DBOrderItem.id)).where(DBOrderItem.item_id == item_id)
            )
            if references:
                logger.warning(
                    f"Refusing to delete item {item_id}: referenced by {references} order line(s)"
                )
                return 0

            try:
                result = session.execute(delete(DBItem).where(DBItem.id == item_id))
                session.commit()
            except IntegrityError as e:
                # The foreign key caught a line inserted outside this store
                session.rollback()
                logger.warning(f"Refusing to delete item {item_id}: {str(e.orig)}")
                return 0

            if result.rowcount:
                logger.info(f"Deleted item {item_id}")
            return result.rowcount

    def _ensure_name_free(self, session: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = select(DBItem.id).where(DBItem.name == name)
        if exclude_id is not None:
            query = query.where(DBItem.id != exclude_id)
        if session.scalar(query) is not None:
            logger.warning(f"Rejected duplicate item name {name!r}")
            raise DuplicateName(name)

    @staticmethod
    def _is_unique_violation(error: IntegrityError) -> bool:
        return "unique" in str(error.orig).lower()
