# catalogue/crud/product.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalogue.models.product import Product, ProductStatus
from catalogue.schemas.product import ProductCreate, ProductUpdate


def _live():
    """Condiția implicită: doar rândurile fără deleted_at."""
    return Product.deleted_at.is_(None)


def list_products(db: Session) -> List[Product]:
    """Toate produsele live, crescător după ID."""
    stmt = select(Product).where(_live()).order_by(Product.id.asc())
    return list(db.execute(stmt).scalars().all())


def get(db: Session, product_id: int) -> Optional[Product]:
    """Returnează produsul live după ID (sau None; și pentru cele șterse soft)."""
    stmt = select(Product).where(Product.id == product_id, _live())
    return db.execute(stmt).scalar_one_or_none()


def create(db: Session, data: ProductCreate, *, user_id: int) -> Product:
    obj = Product(
        name=data.name,
        description=data.description,
        price=data.price,
        status=ProductStatus(data.status),
        created_by=user_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update(db: Session, obj: Product, data: ProductUpdate, *, user_id: int) -> Product:
    """Suprascrie toate câmpurile mutabile (formularul le trimite pe toate)."""
    obj.name = data.name
    obj.description = data.description
    obj.price = data.price
    obj.status = ProductStatus(data.status)
    obj.updated_by = user_id
    db.commit()
    db.refresh(obj)
    return obj


def soft_delete(db: Session, obj: Product, *, user_id: int) -> Product:
    """
    Marchează status=deleted, apoi setează deleted_at.
    Ambele ajung în același commit, deci nu rămâne niciodată doar unul setat.
    """
    obj.status = ProductStatus.deleted
    obj.updated_by = user_id
    obj.soft_delete()
    db.commit()
    db.refresh(obj)
    return obj


def list_all_for_export(db: Session) -> List[Product]:
    """Toate rândurile, inclusiv cele șterse (exportul nu filtrează)."""
    stmt = select(Product).order_by(Product.id.asc())
    return list(db.execute(stmt).scalars().all())
