from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, field_validator

from schemas.base import CamelModel, to_money


class WalletBase(CamelModel):
    balance: Decimal = Field(ge=0)
    auto_reload_enabled: bool = False
    auto_reload_threshold: Decimal = Field(default=Decimal("0"), ge=0)
    auto_reload_amount: Decimal = Field(default=Decimal("0"), ge=0)
    last_reloaded: Optional[datetime] = None


class WalletCreate(WalletBase):
    @field_validator("balance", "auto_reload_threshold", "auto_reload_amount")
    @classmethod
    def _money(cls, value: Decimal) -> Decimal:
        return to_money(value)


class WalletResponse(WalletBase):
    id: int
    version: int
    student_id: int
