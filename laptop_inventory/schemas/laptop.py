from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..models.laptop import LaptopStatus


class CamelModel(BaseModel):
    """Accept and emit camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LaptopFields(CamelModel):
    serial: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    processor: Optional[str] = None
    ram: Optional[str] = None
    storage: Optional[str] = None
    purchase_date: Optional[date] = None
    status: Optional[LaptopStatus] = None
    image_url: Optional[str] = None

    @field_validator("purchase_date", mode="before")
    @classmethod
    def blank_date_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LaptopCreate(LaptopFields):
    """Body for ``POST /products``.

    Required fields are checked by the service layer so a missing value comes
    back as the inventory's own validation error rather than a schema error.
    """


class LaptopUpdate(LaptopFields):
    """Body for ``PUT /products/{id}``; only the keys actually sent are applied."""


class LaptopOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    serial: str
    brand: str
    model: str
    processor: str
    ram: str
    storage: Optional[str] = None
    purchase_date: Optional[date] = None
    status: LaptopStatus
    grouping_key: str
    image_url: Optional[str] = None
    created_at: str
    updated_at: str


class LaptopDeleted(CamelModel):
    message: str
    deleted_product: LaptopOut
