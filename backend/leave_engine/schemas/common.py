from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import Field, PlainSerializer

# Day amounts are stored as Decimal (half-day precision) but rendered as JSON numbers.
Days = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

DayAmount = Annotated[
    Decimal,
    Field(ge=0, max_digits=6, decimal_places=1, multiple_of=Decimal("0.5")),
    PlainSerializer(float, return_type=float, when_used="json"),
]
