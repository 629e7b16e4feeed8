# catalogue/schemas/product.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalogue.models.product import ProductStatus, quantize_price

# Statusurile setabile din formular; "deleted" vine doar din ștergere
FormStatus = Literal["active", "inactive"]


class ProductForm(BaseModel):
    """Câmpurile formularului de add/edit (form-urlencoded)."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal
    status: FormStatus

    # --- Validators ---
    @field_validator("name")
    @classmethod
    def _name_strip_nonempty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("description")
    @classmethod
    def _descr_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("price")
    @classmethod
    def _price_quantize(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("price must be a finite number")
        return quantize_price(v)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "Amplificator audio TPA3116",
                    "description": "2x50W, radiator aluminiu",
                    "price": "129.90",
                    "status": "active",
                }
            ]
        }
    )


class ProductCreate(ProductForm):
    """Payload pentru creare produs."""
    pass


class ProductUpdate(ProductForm):
    """Payload pentru update; suprascrie toate câmpurile mutabile."""
    pass


class ProductRead(BaseModel):
    """Răspuns pentru produs (și datele embed-uite în pagină)."""
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    status: ProductStatus
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeleteResult(BaseModel):
    success: bool = True
