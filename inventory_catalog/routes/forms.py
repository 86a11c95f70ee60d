"""
Inventory Catalog Backend — HTML Form Routes
=============================================

What:  Serves the two browser forms that post to /register and /search.
How:   Files come from settings.forms_dir, or from the copies shipped in
       the package when forms_dir is empty.
"""

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from inventory_catalog.config import Settings
from inventory_catalog.dependencies import get_settings
from inventory_catalog.exceptions import NotFoundError
from inventory_catalog.schemas.inventory import ErrorResponse

PACKAGED_FORMS_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["Forms"])


def _form_response(settings: Settings, filename: str) -> FileResponse:
    forms_dir = Path(settings.forms_dir) if settings.forms_dir else PACKAGED_FORMS_DIR
    path = forms_dir / filename
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=filename)
    return FileResponse(path=str(path), media_type="text/html")


@router.get(
    "/RegisterForm.html",
    response_class=FileResponse,
    responses={404: {"description": "Form file not found", "model": ErrorResponse}},
    summary="Get HTML form for creating new inventory",
)
async def register_form(settings: Settings = Depends(get_settings)) -> FileResponse:
    return _form_response(settings, "RegisterForm.html")


@router.get(
    "/SearchForm.html",
    response_class=FileResponse,
    responses={404: {"description": "Form file not found", "model": ErrorResponse}},
    summary="Get HTML form for searching inventory",
)
async def search_form(settings: Settings = Depends(get_settings)) -> FileResponse:
    return _form_response(settings, "SearchForm.html")
