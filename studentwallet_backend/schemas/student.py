from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field

from schemas.base import CamelModel
from schemas.transaction import TransactionCreate, TransactionResponse
from schemas.wallet import WalletCreate, WalletResponse

MATRICULATION_PATTERN = r"^[A-Z0-9]{5,20}$"


class StudentBase(CamelModel):
    matriculation_number: str = Field(pattern=MATRICULATION_PATTERN)
    first_name: str
    last_name: str
    email: EmailStr
    semester: int = Field(ge=1, le=20)


class StudentUpdate(StudentBase):
    pass


class StudentCreate(StudentBase):
    wallet: WalletCreate
    transactions: Optional[List[TransactionCreate]] = None


class StudentSummary(CamelModel):
    id: int
    version: int
    matriculation_number: str
    first_name: str
    last_name: str
    email: str
    semester: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    wallet: Optional[WalletResponse] = None


class StudentResponse(StudentSummary):
    transactions: List[TransactionResponse] = []


class PageInfo(CamelModel):
    size: int
    number: int
    total_elements: int
    total_pages: int


class StudentPage(CamelModel):
    content: List[StudentSummary]
    page: PageInfo


class CountResponse(CamelModel):
    count: int
