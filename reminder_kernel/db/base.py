"""
Module: reminder_kernel.db.base
Responsibility: Declarative base for the ORM mappings of the system-of-record
    tables (tenants, borrowers, credits, installments, message log), plus the
    UTC timestamp column type.
Architecture position: Kernel > DB.  Lowest-level import target of the
    kernel; ALL model files import from here.  MUST NOT import from models/,
    selectors/ or the batch package.

Invariants enforced:
    - Integer primary keys, matching the legacy schema (credit ids exceed
      2**31, hence BigInteger outside SQLite).
    - Monetary columns map Python Decimal to Numeric(14, 2).  NEVER float.
    - Timestamps are stored as naive UTC and read back as aware UTC, so the
      same comparison works on backends that drop tzinfo (SQLite).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

# SQLite only autoincrements a column declared exactly INTEGER.
Identifier = BigInteger().with_variant(Integer(), "sqlite")


class UTCDateTime(TypeDecorator):
    """
    Timestamp stored as naive UTC, returned as an aware UTC ``datetime``.

    Guarantees:
        - process_bind_param: aware -> converted to UTC, tzinfo dropped.
          Naive values are taken to be UTC already.
        - process_result_value: naive -> tzinfo=UTC attached.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all reminder ORM models.

    Contract:
        Subclasses declare their own integer ``id`` primary key; the legacy
        tables are owned externally and their ids are not uuids.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(14, 2),
        datetime: UTCDateTime(),
        int: Integer,
    }
