import enum


class Role(str, enum.Enum):
    MANAGER = "manager"
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class UnitFamily(str, enum.Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"
    LENGTH = "length"


class ItemType(str, enum.Enum):
    MENU_ITEM = "menuItem"
    RAW_MATERIAL = "rawMaterial"


class InventoryStatus(str, enum.Enum):
    IN_STOCK = "inStock"
    LOW_STOCK = "lowStock"
    OUT_OF_STOCK = "outOfStock"


class TransactionType(str, enum.Enum):
    COMING_IN = "comingIn"
    GOING_OUT = "goingOut"


class TransactionSource(str, enum.Enum):
    PURCHASE_RECEIPT = "purchaseReceipt"
    PRODUCTION_USAGE = "productionUsage"
    INVENTORY_ADJUSTMENT = "inventoryAdjustment"
    WASTAGE = "wastage"
    SALE = "sale"
    TRANSFER_IN = "transferIn"
    TRANSFER_OUT = "transferOut"


class ManualAdjustmentType(str, enum.Enum):
    """Transaction types a caller may pick for a manual, signed adjustment."""

    ADJUSTMENT_IN = "adjustmentIn"
    ADJUSTMENT_OUT = "adjustmentOut"
    PURCHASE_RECEIVE = "purchaseReceive"
    WASTAGE = "wastage"


# (ledger source, required sign of the delta)
MANUAL_ADJUSTMENT_RULES = {
    ManualAdjustmentType.ADJUSTMENT_IN: (TransactionSource.INVENTORY_ADJUSTMENT, 1),
    ManualAdjustmentType.ADJUSTMENT_OUT: (TransactionSource.INVENTORY_ADJUSTMENT, -1),
    ManualAdjustmentType.PURCHASE_RECEIVE: (TransactionSource.PURCHASE_RECEIPT, 1),
    ManualAdjustmentType.WASTAGE: (TransactionSource.WASTAGE, -1),
}

STOCK_IN_SOURCES = frozenset({
    TransactionSource.PURCHASE_RECEIPT,
    TransactionSource.INVENTORY_ADJUSTMENT,
})

STOCK_OUT_SOURCES = frozenset({
    TransactionSource.PRODUCTION_USAGE,
    TransactionSource.WASTAGE,
})


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    CASH = "cash"
    TRANSFER = "transfer"
