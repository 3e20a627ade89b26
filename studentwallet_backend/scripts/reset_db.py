import asyncio
import sys
from decimal import Decimal
from pathlib import Path

SAMPLE_STUDENTS = [
    {
        "matriculation_number": "85625",
        "first_name": "Max",
        "last_name": "Mustermann",
        "email": "max.mustermann@stud.hs-karlsruhe.de",
        "semester": 3,
        "wallet": {"balance": Decimal("25.50"), "auto_reload_enabled": True,
                   "auto_reload_threshold": Decimal("5.00"), "auto_reload_amount": Decimal("10.00")},
        "transactions": [
            {"amount": Decimal("30.00"), "type": "LOAD", "reference": "Aufladung", "location": "Automat Geb. A"},
            {"amount": Decimal("4.50"), "type": "SPEND", "reference": "Mensa A - Mittagessen", "location": "Mensa/SelfService"},
        ],
    },
    {
        "matriculation_number": "91234",
        "first_name": "Erika",
        "last_name": "Musterfrau",
        "email": "erika.musterfrau@stud.hs-karlsruhe.de",
        "semester": 5,
        "wallet": {"balance": Decimal("12.00")},
        "transactions": [
            {"amount": Decimal("12.00"), "type": "LOAD", "reference": "Aufladung"},
        ],
    },
    {
        "matriculation_number": "77001",
        "first_name": "Alex",
        "last_name": "Schmidt",
        "email": "alex.schmidt@stud.hs-karlsruhe.de",
        "semester": 1,
        "wallet": {"balance": Decimal("0.00")},
        "transactions": [
            {"amount": Decimal("2.00"), "type": "REFUND", "reference": "Kaffee storniert", "location": "Cafeteria"},
        ],
    },
]


async def recreate_db():
    # Ensure backend root on import path
    backend_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(backend_root))

    from app.database import AsyncSessionLocal, create_tables, dispose_engine, drop_tables  # type: ignore
    from app.services.student_write_service import StudentWriteService  # type: ignore
    from schemas.student import StudentCreate  # type: ignore

    await drop_tables()
    await create_tables()
    async with AsyncSessionLocal() as session:
        service = StudentWriteService(session)
        for data in SAMPLE_STUDENTS:
            await service.create(StudentCreate.model_validate(data))
    await dispose_engine()


if __name__ == '__main__':
    asyncio.run(recreate_db())
    print('Database recreated with sample students.')
