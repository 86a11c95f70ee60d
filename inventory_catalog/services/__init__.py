# Services package init
"""
Inventory Catalog Backend — Services Layer
===========================================

Service Inventory:
    - RecordStore:      transaction-per-operation CRUD on the inventory table
    - AssetStore:       abstract photo storage contract
    - LocalAssetStore:  AssetStore on a local directory (aiofiles)
    - InventoryService: every inventory operation; owns the write ordering
                        between RecordStore and AssetStore
"""
