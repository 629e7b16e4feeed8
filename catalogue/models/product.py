# catalogue/models/product.py
from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from catalogue.database import Base


class ProductStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    deleted = "deleted"


def utcnow() -> datetime:
    # naive UTC: xlsx nu suportă tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)


# NUMERIC(10,2): max 8 cifre înainte de virgulă
PRICE_LIMIT = Decimal("100000000")


def quantize_price(v: Decimal) -> Decimal:
    """Aliniază la NUMERIC(10,2); ValueError dacă valoarea nu încape."""
    try:
        q = v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"price out of range: {v}") from exc
    if abs(q) >= PRICE_LIMIT:
        raise ValueError(f"price out of range: {v}")
    return q


class Product(Base):
    """
    Produs din catalog.

    Note:
    - `deleted_at` setat = rând "tombstoned": exclus din interogările implicite,
      dar păstrat fizic (și inclus în export).
    - `status = deleted` e un marcaj separat; ștergerea le aplică pe amândouă.
    - `price` nu are CHECK >= 0 (non-negativ doar prin convenție).
    """
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[ProductStatus] = mapped_column(
        Enum(
            ProductStatus,
            name="product_status",
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ProductStatus.active,
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates("price")
    def _coerce_price(self, key: str, value):
        if value is None:
            return value
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"price must be numeric, got {value!r}") from exc
        if not d.is_finite():
            raise ValueError(f"price must be numeric, got {value!r}")
        return quantize_price(d)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def __repr__(self) -> str:
        # scurtează numele în repr pentru loguri mai curate
        name_preview = (self.name[:32] + "…") if self.name and len(self.name) > 33 else self.name
        return f"<Product id={self.id!r} name={name_preview!r} status={self.status!r}>"
