# tests/test_import_export.py
from __future__ import annotations

import io
import zipfile
from decimal import Decimal
from typing import Any, Dict, List, Sequence

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook, load_workbook
from sqlalchemy import func, select

from catalogue.models.product import Product, ProductStatus
from catalogue.services.product_export import EXPORT_HEADINGS
from conftest import assert_status, dump_response

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _xlsx(rows: Sequence[Sequence[Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _upload(client: TestClient, filename: str, content: bytes, mime: str = "text/csv"):
    return client.post(
        "/products/import",
        files={"file": (filename, content, mime)},
        follow_redirects=False,
    )


def _all(db) -> List[Product]:
    return list(db.execute(select(Product).order_by(Product.id)).scalars())


# --- Import -------------------------------------------------------------------
@pytest.mark.timeout(10)
def test_import_csv_with_defaults(client: TestClient, db):
    content = (
        "name,description,price,status\n"
        "Lamp,Desk lamp,12.5,inactive\n"
        "Mug,,,\n"
    ).encode()
    r = _upload(client, "products.csv", content)
    assert_status(r, 303)

    lamp, mug = _all(db)
    assert (lamp.name, lamp.description, lamp.price, lamp.status) == (
        "Lamp", "Desk lamp", Decimal("12.50"), ProductStatus.inactive,
    )
    assert mug.description is None
    assert mug.price == Decimal("0.00")
    assert mug.status == ProductStatus.active
    assert {p.created_by for p in (lamp, mug)} == {1}
    assert {p.updated_by for p in (lamp, mug)} == {None}


def test_import_flash_message(client: TestClient):
    r = client.post(
        "/products/import",
        files={"file": ("p.csv", b"name,price\nLamp,1\n", "text/csv")},
    )
    assert_status(r, 200)
    assert "Products Imported Successfully" in r.text


def test_import_csv_normalises_headings_and_ignores_extra_columns(client: TestClient, db):
    content = "\ufeffID,Name,Description,Price,Status,Created At\n7,Lamp,Desk,3,active,2025-01-01\n".encode("utf-8")
    assert_status(_upload(client, "export.CSV", content), 303)

    (obj,) = _all(db)
    assert obj.name == "Lamp"
    assert obj.description == "Desk"
    assert obj.price == Decimal("3.00")
    # id-ul din fișier nu se folosește
    assert obj.id == 1


@pytest.mark.timeout(10)
def test_import_xlsx_skips_empty_rows(client: TestClient, db):
    content = _xlsx(
        [
            ["Name", "Description", "Price", "Status"],
            ["Lamp", "Desk lamp", 12.5, "active"],
            [None, None, None, None],
            ["Mug", None, 3, None],
        ]
    )
    r = _upload(client, "products.xlsx", content, XLSX_MIME)
    assert_status(r, 303)

    lamp, mug = _all(db)
    assert lamp.price == Decimal("12.50")
    assert mug.price == Decimal("3.00")
    assert mug.status == ProductStatus.active


def test_import_rejects_other_extensions(client: TestClient, db):
    r = _upload(client, "products.txt", b"name,price\nLamp,1\n", "text/plain")
    assert_status(r, 422)
    assert r.json()["detail"] == {"file": ["The file must be a file of type: xlsx, csv."]}
    assert db.scalar(select(func.count(Product.id))) == 0


def test_import_requires_file(client: TestClient):
    r = client.post("/products/import", data={}, follow_redirects=False)
    assert_status(r, 422)


@pytest.mark.parametrize(
    "content, bad_row",
    [
        (b"name,price,status\nLamp,1,active\nMug,2,archived\n", 3),
        (b"name,price\nLamp,1\nMug,abc\n", 3),
        (b"name,price\nLamp,1\n,2\n", 3),
        (b"name,price\nLamp,1\nMug,1e30\n", 3),
        (b"name,price\nLamp,1\nMug,100000000\n", 3),
    ],
    ids=["status-outside-enum", "non-numeric-price", "missing-name", "price-precision-overflow", "price-too-large"],
)
def test_import_aborts_whole_file_on_bad_row(client: TestClient, db, content: bytes, bad_row: int):
    r = _upload(client, "products.csv", content)
    assert_status(r, 422)
    detail = r.json()["detail"]
    assert detail["row"] == bad_row, dump_response(r)
    assert db.scalar(select(func.count(Product.id))) == 0


def test_import_unreadable_xlsx(client: TestClient):
    r = _upload(client, "products.xlsx", b"definitely not a zip", XLSX_MIME)
    assert_status(r, 422)
    assert "file" in r.json()["detail"]


def _zip(parts: Dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in parts.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.mark.parametrize(
    "content",
    [
        _zip({"[Content_Types].xml": "<not xml"}),
        _zip({"readme.txt": "no workbook here"}),
    ],
    ids=["malformed-xml-part", "zip-without-workbook"],
)
def test_import_corrupt_xlsx_archive(client: TestClient, db, content: bytes):
    r = _upload(client, "products.xlsx", content, XLSX_MIME)
    assert_status(r, 422)
    assert r.json()["detail"] == {"file": ["Unreadable xlsx file."]}, dump_response(r)
    assert db.scalar(select(func.count(Product.id))) == 0


def test_import_csv_with_oversized_field(client: TestClient, db):
    content = b"name,price\n" + b"x" * 200_000 + b",1\n"
    r = _upload(client, "products.csv", content)
    assert_status(r, 422)
    assert r.json()["detail"] == {"file": ["Unreadable csv file."]}, dump_response(r)
    assert db.scalar(select(func.count(Product.id))) == 0


# --- Export -------------------------------------------------------------------
def _seed(client: TestClient) -> None:
    for name, price in (("Lamp", "12.5"), ("Mug", "3")):
        r = client.post(
            "/products/store",
            data={"name": name, "price": price, "status": "active"},
            follow_redirects=False,
        )
        assert_status(r, 303)


@pytest.mark.timeout(10)
def test_export_has_fixed_headings_and_all_rows(client: TestClient):
    _seed(client)
    assert_status(client.post("/products/2/delete"), 200)

    r = client.get("/products/export")
    assert_status(r, 200)
    assert r.headers["content-type"].startswith(XLSX_MIME)
    assert 'filename="products.xlsx"' in r.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(r.content)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == EXPORT_HEADINGS
    assert rows[0] == (
        "ID", "Name", "Description", "Price", "Status",
        "Created By", "Updated By", "Created At", "Updated At",
    )
    # include și rândul șters soft
    assert [(row[0], row[1], row[4]) for row in rows[1:]] == [(1, "Lamp", "active"), (2, "Mug", "deleted")]
    assert float(rows[1][3]) == 12.5
    assert rows[2][5] == 1 and rows[2][6] == 1
    assert rows[1][7] is not None and rows[1][8] is not None


def test_export_empty_catalogue(client: TestClient):
    r = client.get("/products/export")
    assert_status(r, 200)
    rows = list(load_workbook(io.BytesIO(r.content)).active.iter_rows(values_only=True))
    assert rows == [EXPORT_HEADINGS]


def test_exported_file_imports_back(client: TestClient, db):
    _seed(client)
    exported = client.get("/products/export").content
    assert_status(_upload(client, "products.xlsx", exported, XLSX_MIME), 303)

    names = [p.name for p in _all(db)]
    assert names == ["Lamp", "Mug", "Lamp", "Mug"]
