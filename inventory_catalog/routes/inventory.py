"""
Inventory Catalog Backend — Inventory Route Handlers
=====================================================

What:  HTTP endpoints for inventory records and their photos.
How:   Extract path/form/body values, delegate to InventoryService, return
       the schema it builds. Errors are raised as application exceptions and
       formatted by the global handlers in main.py.

Route Inventory:
    POST   /register                 create item (multipart, optional photo)
    GET    /inventory                list items
    GET    /inventory/{id}           get one item
    PUT    /inventory/{id}           update name/description (JSON)
    GET    /inventory/{id}/photo     photo bytes
    PUT    /inventory/{id}/photo     replace photo (multipart)
    DELETE /inventory/{id}           delete item and its photo
    POST   /search                   look up by id (form), optional photo link
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile
from fastapi.responses import Response

from inventory_catalog.dependencies import get_inventory_service
from inventory_catalog.schemas.inventory import (
    DeleteResponse,
    ErrorResponse,
    InventoryItemResponse,
    InventoryListItem,
    InventoryUpdateRequest,
    PhotoReplaceResponse,
    SearchResponse,
)
from inventory_catalog.services.inventory_service import InventoryService, PhotoUpload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Inventory"])

NOT_FOUND = {404: {"description": "Inventory item not found", "model": ErrorResponse}}
STORE_DOWN = {503: {"description": "Record or photo store unavailable", "model": ErrorResponse}}

# inventory.id is a 32-bit INTEGER; larger ids cannot exist and would overflow the driver
MAX_ITEM_ID = 2**31 - 1

ItemId = Annotated[int, Path(ge=1, le=MAX_ITEM_ID, description="Inventory item ID")]


async def read_upload(upload: Optional[UploadFile]) -> Optional[PhotoUpload]:
    """
    Read a multipart file field into a PhotoUpload.

    Browsers submit an empty, nameless part when no file was chosen. Any part
    without bytes counts as no photo, whatever its filename.
    """
    if upload is None:
        return None
    try:
        content = await upload.read()
    finally:
        await upload.close()
    if not content:
        return None
    logger.debug("Received photo upload: filename=%s size=%d", upload.filename, len(content))
    return PhotoUpload(content=content, filename=upload.filename)


@router.post(
    "/register",
    status_code=201,
    response_model=InventoryItemResponse,
    responses={
        400: {"description": "inventory_name missing or photo too large", "model": ErrorResponse},
        **STORE_DOWN,
    },
    summary="Create a new inventory item",
)
async def register_item(
    inventory_name: Optional[str] = Form(default=None, description="Item name (required)"),
    description: Optional[str] = Form(default=None),
    photo: Optional[UploadFile] = File(default=None, description="Optional item photo"),
    service: InventoryService = Depends(get_inventory_service),
) -> InventoryItemResponse:
    upload = await read_upload(photo)
    return await service.create_item(inventory_name, description, upload)


@router.get(
    "/inventory",
    response_model=List[InventoryListItem],
    responses=STORE_DOWN,
    summary="Get all inventory items",
)
async def list_items(
    service: InventoryService = Depends(get_inventory_service),
) -> List[InventoryListItem]:
    return await service.list_items()


@router.get(
    "/inventory/{item_id}",
    response_model=InventoryItemResponse,
    responses={**NOT_FOUND, **STORE_DOWN},
    summary="Get a single inventory item by ID",
)
async def get_item(
    item_id: ItemId,
    service: InventoryService = Depends(get_inventory_service),
) -> InventoryItemResponse:
    return await service.get_item(item_id)


@router.put(
    "/inventory/{item_id}",
    response_model=InventoryItemResponse,
    responses={
        400: {"description": "inventory_name given but empty", "model": ErrorResponse},
        **NOT_FOUND,
        **STORE_DOWN,
    },
    summary="Update an inventory item's name and/or description",
)
async def update_item(
    item_id: ItemId,
    body: InventoryUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> InventoryItemResponse:
    return await service.update_item(
        item_id,
        name=body.inventory_name,
        description=body.description,
    )


@router.get(
    "/inventory/{item_id}/photo",
    response_class=Response,
    responses={
        200: {"description": "Photo bytes", "content": {"image/jpeg": {}, "image/png": {}}},
        404: {
            "description": "Item not found, item has no photo, or photo missing from storage",
            "model": ErrorResponse,
        },
        **STORE_DOWN,
    },
    summary="Get photo of an inventory item",
)
async def get_photo(
    item_id: ItemId,
    service: InventoryService = Depends(get_inventory_service),
) -> Response:
    content, media_type = await service.fetch_photo(item_id)
    # Same URL serves a different photo after a replace
    return Response(content=content, media_type=media_type, headers={"Cache-Control": "no-cache"})


@router.put(
    "/inventory/{item_id}/photo",
    response_model=PhotoReplaceResponse,
    responses={
        400: {"description": "Photo file missing or too large", "model": ErrorResponse},
        **NOT_FOUND,
        **STORE_DOWN,
    },
    summary="Replace the photo of an inventory item",
)
async def replace_photo(
    item_id: ItemId,
    photo: Optional[UploadFile] = File(default=None, description="New item photo"),
    service: InventoryService = Depends(get_inventory_service),
) -> PhotoReplaceResponse:
    upload = await read_upload(photo)
    return await service.replace_photo(item_id, upload)


@router.delete(
    "/inventory/{item_id}",
    response_model=DeleteResponse,
    responses={**NOT_FOUND, **STORE_DOWN},
    summary="Delete an inventory item and its photo",
)
async def delete_item(
    item_id: ItemId,
    service: InventoryService = Depends(get_inventory_service),
) -> DeleteResponse:
    return await service.delete_item(item_id)


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={**NOT_FOUND, **STORE_DOWN},
    summary="Search inventory by ID",
)
async def search_item(
    id: int = Form(..., ge=1, le=MAX_ITEM_ID, description="Inventory item ID"),
    has_photo: Optional[str] = Form(default=None, description='"on" to include the photo link'),
    service: InventoryService = Depends(get_inventory_service),
) -> SearchResponse:
    return await service.search(id, include_photo_hint=has_photo == "on")
