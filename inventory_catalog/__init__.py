"""
Inventory Catalog Backend — Application Package
================================================

What: Inventory records with optional photos, served over HTTP.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     InventoryService (ordering)     │  ← record/photo coupling
    ├──────────────────┬──────────────────┤
    │   RecordStore    │   AssetStore     │  ← database rows / photo files
    │  (SQLAlchemy)    │  (aiofiles)      │
    └──────────────────┴──────────────────┘

    Both stores are built at startup and passed down explicitly; nothing
    below the routes reaches for a global.
"""

__version__ = "1.0.0"
