# catalogue/services/product_export.py
from __future__ import annotations

import enum
import io
import logging
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from openpyxl import Workbook
from sqlalchemy.orm import Session

from catalogue.crud import product as crud
from catalogue.models.product import Product

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "products.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (atribut model, heading) — ordinea e fixă
EXPORT_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("id", "ID"),
    ("name", "Name"),
    ("description", "Description"),
    ("price", "Price"),
    ("status", "Status"),
    ("created_by", "Created By"),
    ("updated_by", "Updated By"),
    ("created_at", "Created At"),
    ("updated_at", "Updated At"),
)

EXPORT_HEADINGS: Tuple[str, ...] = tuple(h for _, h in EXPORT_COLUMNS)


def _cell(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def export_row(obj: Product) -> List[Any]:
    return [_cell(getattr(obj, attr)) for attr, _ in EXPORT_COLUMNS]


def build_workbook(products: Sequence[Product]) -> bytes:
    """Un singur sheet: headings pe rândul 1, apoi câte un rând per produs."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Products"
    ws.append(list(EXPORT_HEADINGS))
    for obj in products:
        ws.append(export_row(obj))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_products(db: Session) -> bytes:
    products = crud.list_all_for_export(db)
    data = build_workbook(products)
    logger.info("Exported %s products (%s bytes)", len(products), len(data))
    return data
