# tests/conftest.py
from __future__ import annotations

import os
import re
import json
from typing import Any, Dict, List

# --- Config înainte de importul aplicației (engine-ul se creează la import) ---
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SQLALCHEMY_CREATE_ALL"] = "1"
os.environ["DB_SCHEMA"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from catalogue.database import Base, SessionLocal, engine  # noqa: E402
from catalogue.main import app  # noqa: E402

_DATA_RE = re.compile(r'<script id="products-data" type="application/json">(.*?)</script>', re.S)


# --- Utilitare ----------------------------------------------------------------
def dump_response(r: httpx.Response) -> str:
    """Diagnostic compact pentru mesaje de aserție."""
    try:
        j = r.json()
    except Exception:
        j = None
    snippet = (r.text or "")[:500].replace("\n", "\\n")
    return (
        f"status={r.status_code} {r.request.method} {r.request.url} "
        f"json={j!r} text='{snippet}...'"
    )


def assert_status(r: httpx.Response, expected: int | tuple[int, ...]):
    if isinstance(expected, int):
        ok = r.status_code == expected
        exp_str = str(expected)
    else:
        ok = r.status_code in expected
        exp_str = "|".join(map(str, expected))
    assert ok, f"expected {exp_str} but got: {dump_response(r)}"


def page_products(r: httpx.Response) -> List[Dict[str, Any]]:
    """Extrage JSON-ul embed-uit în pagina /products."""
    m = _DATA_RE.search(r.text)
    assert m, f"products-data block missing: {dump_response(r)}"
    return json.loads(m.group(1))


# --- Fixuri -------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _fresh_tables():
    """Fiecare test pornește cu tabelul products gol."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client() -> TestClient:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()
