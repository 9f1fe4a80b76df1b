class PosError(Exception):
    """Base class for all errors raised by the point-of-sale core"""
    pass


class ValidationError(PosError):
    """Raised when caller input is rejected before any write happens"""
    pass


class DuplicateName(PosError):
    """Raised when an item name collides with an existing item"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'An item with the name "{name}" already exists')


class StockShortfall(PosError):
    """Raised when a cart line asks for more than is in stock"""

    def __init__(self, item_id: int, item_name: str, requested: int, available: int):
        self.item_id = item_id
        self.item_name = item_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_name}. "
            f"Available: {available}, "
            f"Requested: {requested}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class ItemNotFound(PosError):
    """Raised when an item referenced by id does not exist"""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class StorageFailure(PosError):
    """Raised when the underlying database fails for infrastructural reasons"""
    pass
