from .store import Store  # noqa: F401
from .unit_of_measurement import UnitOfMeasurement  # noqa: F401
from .item import Item  # noqa: F401
from .users import User  # noqa: F401
from .inventory.stock import InventoryRecord  # noqa: F401
from .inventory.movement import StockTransaction  # noqa: F401
from .order import Order, OrderLine  # noqa: F401
from .activity_log import ActivityLog  # noqa: F401
