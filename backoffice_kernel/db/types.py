"""
Module: backoffice_kernel.db.types
Responsibility: Annotated type aliases and rounding for monetary and quantity
    columns, so that every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/ and
    services/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Amounts, prices and quantities are Decimal.
    - round_money() is the only sanctioned rounding function for document
      totals (ROUND_HALF_UP, two places by default).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Stock and purchase quantities share the monetary precision
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (statuses, enum values, document numbers)
ShortCode = Annotated[str, String(50)]

# Long text for descriptions and comments
LongText = Annotated[str, String(4000)]

DOCUMENT_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(value: Decimal, decimal_places: int = DOCUMENT_DECIMAL_PLACES) -> Decimal:
    """
    Round a monetary amount with ROUND_HALF_UP.

    >>> round_money(Decimal("2") * Decimal("33.335"))
    Decimal('66.67')
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return Decimal(value).quantize(quantum, rounding=DEFAULT_ROUNDING)
