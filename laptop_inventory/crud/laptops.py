"""Laptop inventory CRUD helpers.

Every function takes the request's SQLAlchemy session first. Uniqueness checks
are plain read-then-write; the unique index on ``serial`` catches the races a
prior lookup cannot.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, NotFoundError, StoreError, ValidationError
from ..core.grouping import grouping_key_for
from ..models.laptop import Laptop, LaptopStatus

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("serial", "brand", "model", "processor", "ram")
ACCEPTED_FIELDS = REQUIRED_FIELDS + ("storage", "purchase_date", "status", "image_url")
MAX_ID = 2**63 - 1

MISSING_FIELDS_MESSAGE = "Missing required fields. Please provide: " + ", ".join(REQUIRED_FIELDS)
DUPLICATE_SERIAL_MESSAGE = "A laptop with this serial number already exists"
DUPLICATE_SERIAL_ON_UPDATE_MESSAGE = "Another laptop with this serial number already exists"

FIELD_REQUIRED_MESSAGES = {
    "serial": "Please enter a serial number",
    "brand": "Please enter a brand",
    "model": "Please enter a model",
    "processor": "Please enter processor details",
    "ram": "Please enter RAM size",
    "status": "Please choose a status",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_text(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


def _parse_id(laptop_id: int | str) -> int:
    """Turn a path id into a primary key that fits a signed 64-bit column."""

    if isinstance(laptop_id, bool):
        raise ValidationError("Invalid laptop ID format")
    if isinstance(laptop_id, int):
        value = laptop_id
    else:
        text = str(laptop_id).strip()
        # ``str.isdigit`` alone also accepts superscripts and other Unicode digits.
        if not (text.isascii() and text.isdigit()):
            raise ValidationError("Invalid laptop ID format")
        value = int(text)
    if not 0 <= value <= MAX_ID:
        raise ValidationError("Invalid laptop ID format")
    return value


def _coerce_status(value: object) -> LaptopStatus:
    if isinstance(value, LaptopStatus):
        return value
    try:
        return LaptopStatus(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in LaptopStatus)
        raise ValidationError(
            "Validation error",
            details={"errors": [f"status must be one of: {allowed}"]},
        ) from exc


def _coerce_date(value: object) -> date | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(
            "Validation error",
            details={"errors": ["purchaseDate must be an ISO date (YYYY-MM-DD)"]},
        ) from exc


def _commit(db: Session, conflict_message: str) -> None:
    """Commit the session, translating store failures into inventory errors."""

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if "serial" in str(exc.orig).lower():
            raise ConflictError(conflict_message) from exc
        raise StoreError("Server error", details={"error": str(exc.orig)}) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Server error", details={"error": str(exc)}) from exc


def _serial_taken(db: Session, serial: str, exclude_id: int | None = None) -> bool:
    stmt = select(Laptop.id).where(Laptop.serial == serial)
    if exclude_id is not None:
        stmt = stmt.where(Laptop.id != exclude_id)
    return db.execute(stmt.limit(1)).scalars().first() is not None


def _group_head(db: Session, grouping_key: str) -> Laptop | None:
    stmt = select(Laptop).where(Laptop.grouping_key == grouping_key).order_by(Laptop.id).limit(1)
    return db.execute(stmt).scalars().first()


def get_laptop(db: Session, laptop_id: int | str) -> Laptop:
    """Fetch one unit by primary key or raise ``NotFoundError``."""

    item = db.get(Laptop, _parse_id(laptop_id))
    if item is None:
        raise NotFoundError(f"Cannot find laptop with ID {laptop_id}")
    return item


def list_laptops(db: Session) -> list[Laptop]:
    """Return every unit in storage order."""

    return list(db.execute(select(Laptop).order_by(Laptop.id)).scalars().all())


def list_group(db: Session, grouping_key: str) -> list[Laptop]:
    stmt = select(Laptop).where(Laptop.grouping_key == grouping_key).order_by(Laptop.id)
    return list(db.execute(stmt).scalars().all())


def list_distinct_by_group(db: Session, brand: str | None = None) -> list[Laptop]:
    """Return one representative unit per grouping key.

    The representative is the earliest stored unit of its group. When ``brand``
    is given, only units whose brand matches it exactly (case included) take
    part in the grouping.
    """

    first_ids = select(func.min(Laptop.id)).group_by(Laptop.grouping_key)
    if brand is not None:
        first_ids = first_ids.where(Laptop.brand == brand)
    stmt = select(Laptop).where(Laptop.id.in_(first_ids)).order_by(Laptop.id)
    return list(db.execute(stmt).scalars().all())


def create_laptop(db: Session, payload: dict) -> Laptop:
    """Persist a new unit.

    The grouping key is always derived here; any key sent by the caller is
    dropped. If the group already has units, the new unit inherits their image
    and the caller's ``image_url`` is ignored.
    """

    data = {key: _clean_text(payload.get(key)) for key in ACCEPTED_FIELDS}
    if _is_blank(data["storage"]):
        data["storage"] = None

    grouping_key = grouping_key_for(data)
    head = _group_head(db, grouping_key)
    if head is not None:
        data["image_url"] = head.image_url
    else:
        data["image_url"] = data["image_url"] or None

    missing = [field for field in REQUIRED_FIELDS if _is_blank(data[field])]
    if missing:
        raise ValidationError(MISSING_FIELDS_MESSAGE, details={"missing": missing})

    data["purchase_date"] = _coerce_date(data["purchase_date"])
    data["status"] = LaptopStatus.AVAILABLE if data["status"] is None else _coerce_status(data["status"])

    if _serial_taken(db, data["serial"]):
        raise ConflictError(DUPLICATE_SERIAL_MESSAGE)

    now = _now_iso()
    obj = Laptop(**data, grouping_key=grouping_key, created_at=now, updated_at=now)
    db.add(obj)
    _commit(db, DUPLICATE_SERIAL_MESSAGE)
    db.refresh(obj)
    logger.info(
        "laptop.created",
        extra={"extra_data": {"laptop_id": obj.id, "serial": obj.serial, "grouping_key": grouping_key}},
    )
    return obj


def set_group_image(db: Session, laptop: Laptop, image_url: str) -> list[Laptop]:
    """Write ``image_url`` to every unit sharing ``laptop``'s grouping key."""

    grouping_key = laptop.grouping_key
    stmt = (
        update(Laptop)
        .where(Laptop.grouping_key == grouping_key)
        .values(image_url=image_url, updated_at=_now_iso())
    )
    try:
        result = db.execute(stmt)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Server error", details={"error": str(exc)}) from exc
    _commit(db, DUPLICATE_SERIAL_ON_UPDATE_MESSAGE)
    logger.info(
        "laptop.group_image_set",
        extra={"extra_data": {"grouping_key": grouping_key, "affected": result.rowcount}},
    )
    return list_group(db, grouping_key)


def update_laptop_fields(db: Session, laptop: Laptop, payload: dict) -> Laptop:
    """Apply the supplied fields to a single unit.

    ``image_url`` is never written here and ``grouping_key`` is not
    recomputed, so a unit keeps the group it was created in.
    """

    changes: dict[str, object] = {}
    errors: list[str] = []
    for key, value in payload.items():
        if key not in ACCEPTED_FIELDS or key == "image_url":
            continue
        value = _clean_text(value)
        if key in FIELD_REQUIRED_MESSAGES and _is_blank(value):
            errors.append(FIELD_REQUIRED_MESSAGES[key])
            continue
        if key == "status":
            value = _coerce_status(value)
        elif key == "storage" and _is_blank(value):
            value = None
        elif key == "purchase_date":
            value = _coerce_date(value)
        changes[key] = value
    if errors:
        raise ValidationError("Validation error", details={"errors": errors})
    if not changes:
        return laptop

    new_serial = changes.get("serial")
    if new_serial is not None and new_serial != laptop.serial:
        if _serial_taken(db, new_serial, exclude_id=laptop.id):
            raise ConflictError(DUPLICATE_SERIAL_ON_UPDATE_MESSAGE)

    for key, value in changes.items():
        setattr(laptop, key, value)
    laptop.updated_at = _now_iso()
    _commit(db, DUPLICATE_SERIAL_ON_UPDATE_MESSAGE)
    db.refresh(laptop)
    logger.info(
        "laptop.updated",
        extra={"extra_data": {"laptop_id": laptop.id, "fields": sorted(changes)}},
    )
    return laptop


def update_laptop(db: Session, laptop_id: int | str, payload: dict) -> Laptop | list[Laptop]:
    """Update a unit, or its whole group when a new image is supplied.

    A non-empty ``image_url`` switches to group propagation and every other
    field in ``payload`` is ignored; the caller then receives the full group.
    """

    laptop = get_laptop(db, laptop_id)
    image_url = _clean_text(payload.get("image_url"))
    if isinstance(image_url, str) and image_url:
        return set_group_image(db, laptop, image_url)
    return update_laptop_fields(db, laptop, payload)


def delete_laptop(db: Session, laptop_id: int | str) -> Laptop:
    """Hard-delete a unit and return its last state."""

    laptop = get_laptop(db, laptop_id)
    db.delete(laptop)
    _commit(db, DUPLICATE_SERIAL_MESSAGE)
    logger.info(
        "laptop.deleted",
        extra={"extra_data": {"laptop_id": laptop.id, "serial": laptop.serial}},
    )
    return laptop
