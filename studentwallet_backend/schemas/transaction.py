from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, field_validator

from models.student import TransactionType
from schemas.base import CamelModel, to_money


class TransactionBase(CamelModel):
    amount: Decimal
    type: TransactionType
    reference: Optional[str] = None
    location: Optional[str] = None


class TransactionCreate(TransactionBase):
    amount: Decimal = Field(ge=Decimal("0.01"))
    recorded_at: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def _money(cls, value: Decimal) -> Decimal:
        return to_money(value)


class TransactionResponse(TransactionBase):
    id: int
    recorded_at: Optional[datetime] = None
    student_id: int
