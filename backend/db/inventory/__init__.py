"""
Inventory ledger (warehouses -> locations -> stock).

Models:
- Item (catalog entry; deactivated, never deleted)
- Warehouse / Location (where stock physically sits)
- StockRecord (quantity per item/location/batch/expiry, never negative)
- Movement (append-only facts that explain every StockRecord change)
- ReplenishmentPolicy (per-location min/max read by the scanner)
"""
