# catalogue/routers/product.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from catalogue.core.settings import settings
from catalogue.crud import product as crud
from catalogue.database import get_db
from catalogue.schemas.product import DeleteResult, ProductCreate, ProductRead, ProductUpdate
from catalogue.services import product_export, product_import

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

FLASH_COOKIE = "flash"


def _redirect_back(request: Request, message: str) -> RedirectResponse:
    """Echivalentul "redirect back with success": Referer sau lista de produse."""
    target = request.headers.get("referer") or str(request.url_for("products.index"))
    resp = RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)
    resp.set_cookie(FLASH_COOKIE, message, max_age=60, httponly=True, samesite="lax")
    return resp


def _get_or_404(db: Session, product_id: int):
    obj = crud.get(db, product_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return obj


@router.get(
    "",
    response_class=HTMLResponse,
    name="products.index",
    summary="Products page (list + add/edit forms)",
)
def index(request: Request, db: Session = Depends(get_db)):
    items = crud.list_products(db)
    products = [ProductRead.model_validate(p).model_dump(mode="json") for p in items]
    flash = request.cookies.get(FLASH_COOKIE)
    resp = templates.TemplateResponse(
        request,
        "products.html",
        {"products": products, "flash": flash, "title": settings.APP_TITLE},
    )
    if flash:
        resp.delete_cookie(FLASH_COOKIE)
    return resp


@router.post(
    "/store",
    name="products.store",
    summary="Create a product (form post)",
)
def store(
    request: Request,
    payload: Annotated[ProductCreate, Form()],
    db: Session = Depends(get_db),
):
    obj = crud.create(db, payload, user_id=settings.DEFAULT_USER_ID)
    logger.info("Created product id=%s", obj.id)
    return _redirect_back(request, "Product Created Successfully")


@router.get(
    "/export",
    name="products.export",
    summary="Download all products as xlsx",
)
def export(db: Session = Depends(get_db)):
    data = product_export.export_products(db)
    return Response(
        content=data,
        media_type=product_export.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{product_export.EXPORT_FILENAME}"'},
    )


@router.post(
    "/import",
    name="products.import",
    summary="Import products from an .xlsx or .csv upload",
)
def import_file(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    # tipul fișierului se verifică înainte de a citi conținutul
    product_import.check_extension(file.filename)
    content = file.file.read()
    product_import.import_products(db, file.filename, content, user_id=settings.DEFAULT_USER_ID)
    return _redirect_back(request, "Products Imported Successfully")


@router.get(
    "/{product_id}/edit",
    response_model=ProductRead,
    name="products.edit",
    summary="Get a product by id (for the edit form)",
)
def edit(product_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, product_id)


@router.post(
    "/{product_id}/update",
    name="products.update",
    summary="Update a product (form post)",
)
def update(
    request: Request,
    product_id: int,
    payload: Annotated[ProductUpdate, Form()],
    db: Session = Depends(get_db),
):
    obj = _get_or_404(db, product_id)
    crud.update(db, obj, payload, user_id=settings.DEFAULT_USER_ID)
    logger.info("Updated product id=%s", product_id)
    return _redirect_back(request, "Product Updated Successfully")


@router.post(
    "/{product_id}/delete",
    response_model=DeleteResult,
    name="products.destroy",
    summary="Soft delete a product",
)
def destroy(product_id: int, db: Session = Depends(get_db)):
    obj = _get_or_404(db, product_id)
    crud.soft_delete(db, obj, user_id=settings.DEFAULT_USER_ID)
    logger.info("Soft deleted product id=%s", product_id)
    return DeleteResult(success=True)
