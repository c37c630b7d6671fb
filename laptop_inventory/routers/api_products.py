from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.laptops import (
    create_laptop,
    delete_laptop,
    list_distinct_by_group,
    list_laptops,
    update_laptop,
)
from ..db.session import get_db
from ..schemas.laptop import LaptopCreate, LaptopDeleted, LaptopOut, LaptopUpdate

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=LaptopOut, status_code=201)
def api_create(payload: LaptopCreate, db: Session = Depends(get_db)):
    return create_laptop(db, payload.model_dump(exclude_unset=True))


@router.get("", response_model=list[LaptopOut])
def api_list(db: Session = Depends(get_db)):
    return list_laptops(db)


@router.get("/unique", response_model=list[LaptopOut])
def api_list_unique(db: Session = Depends(get_db)):
    return list_distinct_by_group(db)


@router.get("/brand/{brand}", response_model=list[LaptopOut])
def api_list_brand(brand: str, db: Session = Depends(get_db)):
    return list_distinct_by_group(db, brand=brand)


@router.put("/{laptop_id}", response_model=Union[list[LaptopOut], LaptopOut])
def api_update(laptop_id: str, payload: LaptopUpdate, db: Session = Depends(get_db)):
    result = update_laptop(db, laptop_id, payload.model_dump(exclude_unset=True))
    # A group image change answers with every unit of the group.
    if isinstance(result, list):
        return [LaptopOut.model_validate(item) for item in result]
    return LaptopOut.model_validate(result)


@router.delete("/{laptop_id}", response_model=LaptopDeleted)
def api_delete(laptop_id: str, db: Session = Depends(get_db)):
    deleted = delete_laptop(db, laptop_id)
    return LaptopDeleted(
        message="Laptop deleted successfully",
        deleted_product=LaptopOut.model_validate(deleted),
    )
