"""
Inventory Catalog Backend — Pydantic Request/Response Schemas
==============================================================

What:  Pydantic models defining the HTTP contract.
Why:   Input validation, response serialization and OpenAPI docs (/docs).
How:   Route handlers declare these as request bodies and response models;
       InventoryService builds them from record store snapshots.

Design Decision:
    Responses never embed photo bytes. A record that has a photo carries
    photo_url, the path of GET /inventory/{id}/photo, and clients fetch the
    bytes from there.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


def photo_url_for(item_id: int) -> str:
    """Path of the photo endpoint for an inventory item."""
    return f"/inventory/{item_id}/photo"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class InventoryUpdateRequest(BaseModel):
    """
    Body of PUT /inventory/{id}.

    Omitted (or null) fields keep their stored value; provided fields
    overwrite it. The photo is changed through PUT /inventory/{id}/photo only.
    """
    inventory_name: Optional[str] = Field(default=None, description="New item name (non-empty)")
    description: Optional[str] = Field(default=None, description="New item description")

    model_config = {"extra": "ignore"}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class InventoryItemResponse(BaseModel):
    """Full record view returned by create, get, and update."""
    id: int = Field(description="Inventory item identifier")
    name: str = Field(description="Item name")
    description: Optional[str] = Field(default=None, description="Item description")
    photo: Optional[str] = Field(
        default=None,
        description="Opaque photo reference; null when the item has no photo",
    )
    photo_url: Optional[str] = Field(
        default=None,
        description="Path to fetch the photo bytes; null when the item has no photo",
    )
    created_at: datetime = Field(description="Creation timestamp")


class PhotoReplaceResponse(InventoryItemResponse):
    """
    Returned by PUT /inventory/{id}/photo.

    warnings is non-empty when the new photo is in place but the previous
    one could not be removed from storage (it is left for the orphan sweep).
    """
    warnings: List[str] = Field(default_factory=list)


class InventoryListItem(BaseModel):
    """Row of GET /inventory."""
    id: int
    name: str
    description: Optional[str] = None
    photo_url: Optional[str] = None


class SearchResponse(BaseModel):
    """
    Result of POST /search.

    photo_url is only filled in when the caller ticked has_photo and the item
    actually has a photo.
    """
    id: int
    name: str
    description: Optional[str] = None
    photo_url: Optional[str] = None


class DeleteResponse(BaseModel):
    """Result of DELETE /inventory/{id}."""
    message: str = Field(default="Deleted successfully")
    id: int
    warnings: List[str] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standard error body for every non-2xx response.

    Example:
        {
            "error": "asset_not_found",
            "message": "Photo Not Found",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service and dependency status for GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Record store: connected, disconnected")
    storage: str = Field(description="Asset store: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
