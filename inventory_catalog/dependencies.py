"""
Inventory Catalog Backend — FastAPI Dependencies
=================================================

What:  Dependency functions handing route handlers the objects built at
       startup.
Why:   Handlers never import store or service singletons. Everything hangs
       off app.state, populated by create_app()/lifespan, so a test can build
       an app around a fake asset store or a throwaway database.
"""

from fastapi import Request

from inventory_catalog.config import Settings
from inventory_catalog.services.inventory_service import InventoryService


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
