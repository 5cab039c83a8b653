"""
Stock ledger tables.

Models:
- InventoryRecord (current quantity per item per store, base units)
- StockTransaction (append-only signed deltas; replaying them yields the record)
"""
