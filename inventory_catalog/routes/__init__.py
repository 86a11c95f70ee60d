# Routes package init
"""
Inventory Catalog Backend — API Routes Package
===============================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - inventory.py: /register, /inventory, /inventory/{id}, /inventory/{id}/photo, /search
    - forms.py:     /RegisterForm.html, /SearchForm.html
    - health.py:    /health

Design Principle:
    Routes are thin: pull values out of the request, call InventoryService,
    return its result. Ordering between the database and photo storage is
    the service's job, never a route's.
"""
