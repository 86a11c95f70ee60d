"""
Inventory Catalog Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions for the record store, the asset store
       and the service that couples them.
Why:   Each failure kind maps to a distinct HTTP status and machine-readable
       error code, so clients can tell "no such record" from "record has no
       photo" from "record points at a photo that is gone".
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.
Who:   Raised by the stores and the inventory service; caught by handlers.

Exception Hierarchy:
    InventoryCatalogError (base)
    ├── ValidationError                  → 400 validation_error
    ├── NotFoundError                    → 404 not_found
    ├── AssetNotFoundError               → 404 asset_not_found
    │   └── DanglingAssetReferenceError  → 404 asset_reference_broken
    └── StoreUnavailableError            → 503 store_unavailable

Design Decision:
    AssetNotFoundError covers the expected case (the record simply has no
    photo). Its subclass DanglingAssetReferenceError covers the case where the
    record holds a reference the asset store cannot resolve. That one means
    the stores have diverged, so it is logged as an error and reported with
    its own code, while code that only cares about "no photo bytes available"
    can still catch the base class.
"""

from typing import Any, Dict, Optional


class InventoryCatalogError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(InventoryCatalogError):
    """
    Raised when client input fails validation.

    When:    Missing or empty inventory_name, missing photo attachment on
             replace, oversized upload, empty update name.
    HTTP:    400 Bad Request
    """

    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(InventoryCatalogError):
    """
    Raised when a requested resource does not exist.

    When:    Any operation on an inventory id that has no row (never existed
             or already deleted).
    HTTP:    404 Not Found
    """

    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class AssetNotFoundError(InventoryCatalogError):
    """
    Raised when photo bytes cannot be produced for a record that exists.

    The base class is the expected case: the record has no photo.
    The asset store raises it directly for an unknown reference, and the
    inventory service re-raises that as DanglingAssetReferenceError.
    HTTP:    404 Not Found
    """

    error_code = "asset_not_found"

    def __init__(
        self,
        message: str = "Photo Not Found",
        asset_ref: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if asset_ref:
            ctx["asset_ref"] = asset_ref
        super().__init__(message=message, context=ctx)
        self.asset_ref = asset_ref


class DanglingAssetReferenceError(AssetNotFoundError):
    """
    Raised when a record references an asset the asset store cannot return.

    This is not ordinary absence: the record and the storage volume have
    diverged (manual deletion, restored backup, lost volume). The handler logs
    it at ERROR level; the client sees a distinct error code.
    """

    error_code = "asset_reference_broken"

    def __init__(
        self,
        item_id: int,
        asset_ref: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["item_id"] = item_id
        super().__init__(
            message=(
                f"Inventory item {item_id} references a photo that is no longer "
                f"available in storage"
            ),
            asset_ref=asset_ref,
            context=ctx,
        )
        self.item_id = item_id


class StoreUnavailableError(InventoryCatalogError):
    """
    Raised when the record store or the asset store cannot be reached.

    When:    Connection refused/lost, pool timeout, disk full, permission
             denied on the storage volume.
    HTTP:    503 Service Unavailable (transient, not corruption)

    Security Note:
        The message returned to the client is always generic. The failing
        store, SQL error or OS error is kept in context and logged only.
    """

    error_code = "store_unavailable"

    def __init__(
        self,
        store: str = "record_store",
        message: str = "A storage backend is temporarily unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["store"] = store
        super().__init__(message=message, context=ctx)
        self.store = store
