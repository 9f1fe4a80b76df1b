import enum


class ItemCategory(str, enum.Enum):
    """Closed set of catalog categories, persisted as their text value"""
    MAIN = "Main"
    CURRIES = "Curries"
    DESSERTS = "Desserts"


class StockCheck(str, enum.Enum):
    """How the commit engine decides whether a cart line can be sold.

    SNAPSHOT trusts the quantity_in_stock carried by the cart item and writes
    snapshot - order_quantity back. LIVE re-reads the row inside the
    transaction and decrements it with a guarded UPDATE.
    """
    SNAPSHOT = "snapshot"
    LIVE = "live"
