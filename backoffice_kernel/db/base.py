"""
Declarative bases for every back-office table.

All documents (purchases, reimbursements, inventory rows, finance records)
share three conventions defined here:

- primary keys are uuid4 values stored as ``String(36)`` so the same schema
  runs on SQLite in tests and PostgreSQL in production;
- ``Decimal`` columns map to ``Numeric(38, 9)``: amounts, quantities and
  unit prices never pass through float;
- ``TrackedBase`` rows record who created and last changed them, and when.

Nothing in this module imports from models, services or modules.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID bound as its canonical string and loaded back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for documents edited by employees.

    ``created_at``/``updated_at`` come from the database clock; workflow
    timestamps such as ``submitted_at`` or ``paid_at`` are set by services from
    the injected Clock instead. ``created_by_id`` is mandatory, while
    ``updated_by_id`` stays empty until the first change after creation.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString())
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString())
