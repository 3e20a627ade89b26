import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

import filetype
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    EmailExistsError,
    FileTooLargeError,
    MatriculationExistsError,
    NotFoundError,
    VersionInvalidError,
    VersionOutdatedError,
)
from app.services.student_read_service import StudentReadService
from models.student import Student, StudentFile, Transaction, Wallet
from schemas.student import StudentCreate, StudentUpdate

logger = logging.getLogger("studentwallet.write")

VERSION_PATTERN = re.compile(r'^"\d{1,9}"$')


class StudentWriteService:
    """Writes for the student aggregate (student, wallet, transactions, file).

    Updates use optimistic locking: the caller echoes the version it last saw
    (``If-Match: "3"``) and the write is rejected once another writer has moved
    the stored version past it.
    """

    def __init__(self, db: AsyncSession, read_service: Optional[StudentReadService] = None):
        self.db = db
        self.read_service = read_service or StudentReadService(db)

    @asynccontextmanager
    async def _transaction(self):
        try:
            yield self.db
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def create(self, data: StudentCreate) -> int:
        logger.debug("create: matriculation_number=%s", data.matriculation_number)
        await self._validate_create(data)

        student = Student(
            version=0,
            **data.model_dump(exclude={"wallet", "transactions"}),
        )
        student.wallet = Wallet(**data.wallet.model_dump(exclude_none=True))
        student.transactions = [
            Transaction(**t.model_dump(exclude_none=True)) for t in (data.transactions or [])
        ]
        async with self._transaction():
            self.db.add(student)
            await self.db.flush()
            student_id = student.id

        logger.info("create: student id=%s created", student_id)
        return student_id

    async def update(self, student_id: Optional[int], data: StudentUpdate, version: Optional[str]) -> int:
        logger.debug("update: id=%s version=%s", student_id, version)
        if student_id is None:
            raise NotFoundError(f"No student with id {student_id}")

        supplied = await self._validate_update(student_id, version)

        # The version predicate makes check and write one statement: a writer
        # that advanced the row after _validate_update leaves nothing to match.
        stmt = (
            update(Student)
            .where(Student.id == student_id, Student.version <= supplied)
            .values(**data.model_dump(), version=Student.version + 1)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction():
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                logger.debug("update: concurrent modification id=%s", student_id)
                raise VersionOutdatedError(supplied)
            new_version = (
                await self.db.execute(select(Student.version).where(Student.id == student_id))
            ).scalar_one()

        logger.debug("update: id=%s new_version=%d", student_id, new_version)
        return new_version

    async def delete(self, student_id: int) -> bool:
        logger.debug("delete: id=%s", student_id)
        student = (await self.db.execute(select(Student).where(Student.id == student_id))).scalar_one_or_none()
        if student is None:
            logger.debug("delete: not found")
            return False

        # wallet, transactions and file go with it (ON DELETE CASCADE)
        async with self._transaction():
            await self.db.delete(student)
        logger.info("delete: student id=%s deleted", student_id)
        return True

    async def add_file(self, student_id: int, data: bytes, filename: str) -> StudentFile:
        size = len(data)
        logger.debug("add_file: student_id=%s filename=%s size=%d", student_id, filename, size)
        if size > settings.FILE_SIZE_MAX:
            raise FileTooLargeError(size, settings.FILE_SIZE_MAX)

        async with self._transaction():
            existing = (
                await self.db.execute(select(Student.id).where(Student.id == student_id))
            ).scalar_one_or_none()
            if existing is None:
                raise NotFoundError(f"No student with id {student_id}")

            # one file per student
            previous = (
                await self.db.execute(select(StudentFile).where(StudentFile.student_id == student_id))
            ).scalar_one_or_none()
            if previous is not None:
                await self.db.delete(previous)
                await self.db.flush()

            # content type comes from the bytes, never from the client
            kind = filetype.guess(data)
            mimetype = kind.mime if kind is not None else None
            logger.debug("add_file: mimetype=%s", mimetype)

            student_file = StudentFile(filename=filename, data=data, mimetype=mimetype, student_id=student_id)
            self.db.add(student_file)
            await self.db.flush()

        logger.debug(
            "add_file: id=%s bytes=%d filename=%s mimetype=%s",
            student_file.id, size, student_file.filename, student_file.mimetype,
        )
        return student_file

    async def _validate_create(self, data: StudentCreate) -> None:
        matriculation_number = data.matriculation_number
        if matriculation_number is not None:
            count = (
                await self.db.execute(
                    select(func.count()).select_from(Student).where(
                        Student.matriculation_number == matriculation_number
                    )
                )
            ).scalar_one()
            if count > 0:
                logger.debug("_validate_create: matriculation number exists: %s", matriculation_number)
                raise MatriculationExistsError(matriculation_number)

        email = data.email
        count = (
            await self.db.execute(select(func.count()).select_from(Student).where(Student.email == email))
        ).scalar_one()
        if count > 0:
            logger.debug("_validate_create: email exists: %s", email)
            raise EmailExistsError(email)

    async def _validate_update(self, student_id: int, version: Optional[str]) -> int:
        if version is None or not VERSION_PATTERN.match(version):
            logger.debug("_validate_update: invalid version=%s", version)
            raise VersionInvalidError(version)

        supplied = int(version[1:-1])
        current = await self.read_service.find_by_id(student_id)
        if supplied < current.version:
            logger.debug("_validate_update: outdated version=%d stored=%d", supplied, current.version)
            raise VersionOutdatedError(supplied)
        return supplied
