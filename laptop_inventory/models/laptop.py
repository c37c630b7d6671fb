from __future__ import annotations

import enum

from sqlalchemy import Column, Date, Enum, Integer, Text

from ..db.session import Base


class LaptopStatus(str, enum.Enum):
    AVAILABLE = "Available"
    SOLD = "Sold"


class Laptop(Base):
    """One physical laptop unit.

    ``grouping_key`` is derived from the descriptive columns when the unit is
    created and is left alone afterwards, even if those columns are edited.
    Every unit sharing a key carries the same ``image_url``.
    """

    __tablename__ = "laptops"

    id = Column(Integer, primary_key=True, index=True)
    serial = Column(Text, nullable=False, unique=True, index=True)
    brand = Column(Text, nullable=False, index=True)
    model = Column(Text, nullable=False)
    processor = Column(Text, nullable=False)
    ram = Column(Text, nullable=False)
    storage = Column(Text, nullable=True)
    purchase_date = Column(Date, nullable=True)
    status = Column(
        Enum(LaptopStatus, values_callable=lambda members: [m.value for m in members], native_enum=False),
        nullable=False,
        default=LaptopStatus.AVAILABLE,
    )
    grouping_key = Column(Text, nullable=False, index=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Laptop id={self.id} serial={self.serial!r} grouping_key={self.grouping_key!r}>"
