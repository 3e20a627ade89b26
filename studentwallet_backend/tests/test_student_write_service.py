"""
Tests for StudentWriteService - create, optimistic-locking update, delete, file.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select, update

from app.config import settings
from app.exceptions import (
    EmailExistsError,
    FileTooLargeError,
    MatriculationExistsError,
    NotFoundError,
    VersionInvalidError,
    VersionOutdatedError,
)
from app.services.student_write_service import StudentWriteService
from models.student import Student, StudentFile, Transaction, TransactionType, Wallet
from schemas.student import StudentCreate, StudentUpdate
from tests.conftest import student_payload

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 17
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 16


@pytest.fixture
def write_service(db_session):
    return StudentWriteService(db_session)


@pytest.fixture
async def student_id(write_service):
    return await write_service.create(StudentCreate.model_validate(student_payload()))


def _update(**overrides):
    data = {
        "matriculationNumber": "85625",
        "firstName": "Max",
        "lastName": "Mustermann",
        "email": "max.neu@stud.hs-karlsruhe.de",
        "semester": 4,
    }
    data.update(overrides)
    return StudentUpdate.model_validate(data)


async def _count(db_session, model):
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreate:
    async def test_creates_aggregate(self, write_service, student_id):
        assert student_id > 0
        student = await write_service.read_service.find_by_id(student_id)
        assert student.version == 0
        assert student.matriculation_number == "85625"
        assert student.email == "max.mustermann@stud.hs-karlsruhe.de"
        assert student.semester == 3
        assert student.wallet.balance == Decimal("25.50")
        assert student.wallet.auto_reload_enabled is True
        assert student.wallet.auto_reload_threshold == Decimal("5.00")
        assert [(t.type, t.amount) for t in student.transactions] == [
            (TransactionType.SPEND, Decimal("3.50")),
            (TransactionType.LOAD, Decimal("20.00")),
        ]
        assert student.transactions[0].reference == "Mensa A - Mittagessen"

    async def test_without_transactions(self, write_service, db_session):
        payload = student_payload(transactions=None)
        new_id = await write_service.create(StudentCreate.model_validate(payload))
        student = await write_service.read_service.find_by_id(new_id)
        assert student.transactions == []
        assert await _count(db_session, Wallet) == 1

    async def test_duplicate_matriculation_number(self, write_service, db_session, student_id):
        payload = student_payload(email="other@example.org")
        with pytest.raises(MatriculationExistsError):
            await write_service.create(StudentCreate.model_validate(payload))
        assert await _count(db_session, Student) == 1

    async def test_duplicate_email(self, write_service, db_session, student_id):
        payload = student_payload(matriculationNumber="99999")
        with pytest.raises(EmailExistsError):
            await write_service.create(StudentCreate.model_validate(payload))
        assert await _count(db_session, Student) == 1


class TestUpdate:
    async def test_increments_version(self, write_service, student_id):
        assert await write_service.update(student_id, _update(), '"0"') == 1
        student = await write_service.read_service.find_by_id(student_id)
        assert student.version == 1
        assert student.email == "max.neu@stud.hs-karlsruhe.de"
        assert student.semester == 4

    async def test_stale_version_rejected(self, write_service, student_id):
        await write_service.update(student_id, _update(), '"0"')
        with pytest.raises(VersionOutdatedError):
            await write_service.update(student_id, _update(semester=7), '"0"')
        student = await write_service.read_service.find_by_id(student_id)
        assert student.version == 1
        assert student.semester == 4

    async def test_newer_version_accepted(self, write_service, student_id):
        assert await write_service.update(student_id, _update(), '"5"') == 1

    async def test_four_digit_version(self, write_service, db_session, student_id):
        await db_session.execute(update(Student).where(Student.id == student_id).values(version=1000))
        await db_session.commit()
        assert await write_service.update(student_id, _update(), '"1000"') == 1001

    @pytest.mark.parametrize("token", ["0", '"abc"', '"1234567890"', '"1"x', ""])
    async def test_invalid_version_token(self, write_service, student_id, token):
        with pytest.raises(VersionInvalidError):
            await write_service.update(student_id, _update(), token)

    async def test_missing_id(self, write_service):
        with pytest.raises(NotFoundError):
            await write_service.update(None, _update(), '"0"')

    async def test_unknown_id(self, write_service):
        with pytest.raises(NotFoundError):
            await write_service.update(424242, _update(), '"0"')

    async def test_concurrent_writer_detected(self, write_service, student_id, monkeypatch):
        """A writer that slips in between version check and write is caught by the WHERE clause."""
        await write_service.update(student_id, _update(), '"0"')

        class StaleRead:
            async def find_by_id(self, _id):
                return SimpleNamespace(id=_id, version=0)

        monkeypatch.setattr(write_service, "read_service", StaleRead())
        with pytest.raises(VersionOutdatedError):
            await write_service.update(student_id, _update(semester=9), '"0"')


class TestDelete:
    async def test_cascades(self, write_service, db_session, student_id):
        await write_service.add_file(student_id, PNG_BYTES, "bild.png")
        assert await write_service.delete(student_id) is True
        assert await _count(db_session, Student) == 0
        assert await _count(db_session, Wallet) == 0
        assert await _count(db_session, Transaction) == 0
        assert await _count(db_session, StudentFile) == 0

    async def test_unknown_id(self, write_service):
        assert await write_service.delete(424242) is False


class TestAddFile:
    async def test_sniffs_mimetype(self, write_service, student_id):
        student_file = await write_service.add_file(student_id, PNG_BYTES, "bild.txt")
        assert student_file.mimetype == "image/png"
        assert student_file.filename == "bild.txt"

    async def test_unknown_content(self, write_service, student_id):
        student_file = await write_service.add_file(student_id, b"just some text", "notes.txt")
        assert student_file.mimetype is None

    async def test_replaces_previous_file(self, write_service, db_session, student_id):
        await write_service.add_file(student_id, PNG_BYTES, "a.png")
        await write_service.add_file(student_id, JPEG_BYTES, "b.jpg")
        assert await _count(db_session, StudentFile) == 1
        stored = await write_service.read_service.find_file_by_student_id(student_id)
        assert stored.filename == "b.jpg"
        assert stored.mimetype == "image/jpeg"

    async def test_unknown_student(self, write_service):
        with pytest.raises(NotFoundError):
            await write_service.add_file(424242, PNG_BYTES, "a.png")

    async def test_too_large(self, write_service, student_id, monkeypatch):
        monkeypatch.setattr(settings, "FILE_SIZE_MAX", 10)
        with pytest.raises(FileTooLargeError):
            await write_service.add_file(student_id, PNG_BYTES, "a.png")
