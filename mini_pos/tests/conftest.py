import pytest
from mini_pos.core.database import Database
from mini_pos.models.database import Item as DBItem
from mini_pos.models.enums import ItemCategory, StockCheck
from mini_pos.models.schemas import Item
from mini_pos.services.item_store import ItemStore
from mini_pos.services.order_service import OrderCommitService
from mini_pos.services.order_store import OrderStore

# Fresh in-memory SQLite for every test
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def db():
    with Database(TEST_DATABASE_URL) as database:
        yield database


@pytest.fixture
def item_store(db):
    return ItemStore(db)


@pytest.fixture
def order_store(db):
    return OrderStore(db)


@pytest.fixture
def order_service(db):
    return OrderCommitService(db, stock_check=StockCheck.LIVE)


@pytest.fixture
def snapshot_order_service(db):
    return OrderCommitService(db, stock_check=StockCheck.SNAPSHOT)


@pytest.fixture
def make_item(db):
    """Insert an item row directly and return its read snapshot"""
    def _make_item(name, price, quantity_in_stock, category=ItemCategory.MAIN, low_stock_threshold=5):
        with db.session() as session:
            item = DBItem(
                name=name,
                category=category,
                price=price,
                quantity_in_stock=quantity_in_stock,
                low_stock_threshold=low_stock_threshold
            )
            session.add(item)
            session.commit()
            return Item.model_validate(item)
    return _make_item


@pytest.fixture
def stock_of(db):
    """Read the live stock of an item"""
    def _stock_of(item_id):
        with db.session() as session:
            return session.get(DBItem, item_id).quantity_in_stock
    return _stock_of


@pytest.fixture
def tea(make_item):
    """Tea with 10 in stock"""
    return make_item("Tea", 50.0, 10)


@pytest.fixture
def cake(make_item):
    """Chocolate cake with only 2 in stock"""
    return make_item("Chocolate Cake", 120.5, 2, category=ItemCategory.DESSERTS)
