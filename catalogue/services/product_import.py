# catalogue/services/product_import.py
"""
Import produse din .xlsx / .csv.

Prima linie = headings, normalizate la chei snake_case (ex. "Created At" ->
"created_at"), deci un fișier exportat se poate reimporta direct.
Fiecare rând devine un Product nou; validarea rămâne pe seama modelului/DB-ului.
"""
from __future__ import annotations

import csv
import io
import logging
import re
import unicodedata
import zipfile
from pathlib import PurePath
from typing import Any, Dict, Iterator, List, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalogue.models.product import Product, ProductStatus

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".csv")

# Rândul 1 e heading-ul, datele încep de la 2
FIRST_DATA_ROW = 2

_NON_WORD_RE = re.compile(r"[^\w\s]")
_SEP_RE = re.compile(r"[_\s]+")

_XLSX_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    SyntaxError,  # ParseError (etree) și XMLSyntaxError (lxml)
    KeyError,
    IndexError,
    OSError,
    TypeError,
    ValueError,
)


class ImportFileError(Exception):
    """Fișier respins înainte de parsare sau imposibil de citit."""


class ImportRowError(Exception):
    """Un rând a eșuat la nivel de model/DB; importul e anulat complet."""

    def __init__(self, row: int, reason: str):
        self.row = row
        self.reason = reason
        super().__init__(f"Row {row}: {reason}")


def heading_key(value: Any) -> str:
    """'Created At' -> 'created_at', 'Preț (RON)' -> 'pret_ron'."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value)).encode("ascii", "ignore").decode("ascii")
    text = text.lower().replace("-", "_")
    text = _NON_WORD_RE.sub("", text)
    return _SEP_RE.sub("_", text).strip("_")


def check_extension(filename: Optional[str]) -> str:
    ext = PurePath(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ImportFileError("The file must be a file of type: xlsx, csv.")
    return ext


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v.strip() == "")


def _rows_to_dicts(rows: Iterator[Tuple[Any, ...]]) -> Iterator[Tuple[int, Dict[str, Any]]]:
    try:
        header = next(rows)
    except StopIteration:
        return
    keys = [heading_key(h) for h in header]
    for offset, values in enumerate(rows):
        if all(_blank(v) for v in values):
            continue
        record: Dict[str, Any] = {}
        for key, v in zip(keys, values):
            if key:
                record[key] = None if _blank(v) else v
        yield FIRST_DATA_ROW + offset, record


def _xlsx_rows(content: bytes) -> Iterator[Tuple[Any, ...]]:
    # părțile XML se parsează leneș, deci și iterarea poate eșua
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            for row in ws.iter_rows(values_only=True):
                yield tuple(row)
        finally:
            wb.close()
    except _XLSX_ERRORS as exc:
        raise ImportFileError("Unreadable xlsx file.") from exc


def _csv_rows(content: bytes) -> Iterator[Tuple[Any, ...]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportFileError("CSV file must be UTF-8 encoded.") from exc
    try:
        for row in csv.reader(io.StringIO(text)):
            yield tuple(row)
    except csv.Error as exc:
        raise ImportFileError("Unreadable csv file.") from exc


def read_rows(filename: Optional[str], content: bytes) -> List[Tuple[int, Dict[str, Any]]]:
    """Returnează (număr_rând, {heading_key: valoare}) pentru rândurile ne-goale."""
    ext = check_extension(filename)
    raw = _xlsx_rows(content) if ext == ".xlsx" else _csv_rows(content)
    return list(_rows_to_dicts(raw))


def _text(v: Any) -> Optional[str]:
    return None if v is None else str(v)


def product_from_row(row: Dict[str, Any], *, user_id: int) -> Product:
    """
    Mapare 1:1 rând -> Product, cu valorile implicite:
      price  -> 0 dacă lipsește
      status -> active dacă lipsește
    """
    status = row.get("status")
    return Product(
        name=_text(row.get("name")),
        description=_text(row.get("description")),
        price=row.get("price") if row.get("price") is not None else 0,
        status=ProductStatus.active.value if status is None else str(status).strip(),
        created_by=user_id,
    )


def import_products(db: Session, filename: Optional[str], content: bytes, *, user_id: int) -> int:
    """
    Inserează toate rândurile într-o singură tranzacție.
    Primul rând invalid anulează tot importul (ImportRowError).
    """
    rows = read_rows(filename, content)
    count = 0
    for row_no, row in rows:
        try:
            db.add(product_from_row(row, user_id=user_id))
            db.flush()
        except (SQLAlchemyError, LookupError, ValueError) as exc:
            db.rollback()
            reason = getattr(exc, "orig", None) or exc
            logger.warning("Import aborted at row %s (%s): %s", row_no, filename, reason)
            raise ImportRowError(row_no, str(reason)) from exc
        count += 1
    db.commit()
    logger.info("Imported %s products from %s", count, filename)
    return count
