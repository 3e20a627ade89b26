import json
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.services.pageable import Pageable, Slice
from app.services.where_builder import SEARCH_PARAMETER_NAMES, TRANSACTION_TYPE_PARAMETER, WhereBuilder
from models.student import Student, StudentFile, TransactionType

logger = logging.getLogger("studentwallet.read")


class StudentReadService:
    """Read access to students; plain reads run without an explicit transaction."""

    def __init__(self, db: AsyncSession, where_builder: Optional[WhereBuilder] = None):
        self.db = db
        self.where_builder = where_builder or WhereBuilder()

    async def find_by_id(self, student_id: int) -> Student:
        logger.debug("find_by_id: id=%s", student_id)
        stmt = (
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.wallet), selectinload(Student.transactions))
            .execution_options(populate_existing=True)
        )
        student = (await self.db.execute(stmt)).scalar_one_or_none()
        if student is None:
            logger.debug("find_by_id: no student with id=%s", student_id)
            raise NotFoundError(f"No student with id {student_id}")
        return student

    async def find_file_by_student_id(self, student_id: int) -> Optional[StudentFile]:
        logger.debug("find_file_by_student_id: student_id=%s", student_id)
        res = await self.db.execute(select(StudentFile).where(StudentFile.student_id == student_id))
        student_file = res.scalar_one_or_none()
        if student_file is None:
            logger.debug("find_file_by_student_id: no file")
            return None
        logger.debug(
            "find_file_by_student_id: id=%s bytes=%d filename=%s mimetype=%s",
            student_file.id,
            len(student_file.data),
            student_file.filename,
            student_file.mimetype,
        )
        return student_file

    async def find(self, search_params: Optional[Mapping[str, Any]], pageable: Pageable) -> Slice[Student]:
        logger.debug("find: params=%s pageable=%s", search_params, pageable)
        if not search_params:
            return await self._find_all(pageable)

        if not self._check_keys(search_params) or not self._check_enums(search_params):
            raise NotFoundError("Invalid search parameters")

        where = self.where_builder.build(search_params)
        students = await self._fetch(where, pageable)
        if not students:
            logger.debug("find: nothing found")
            raise NotFoundError(
                f"No students found: {json.dumps(dict(search_params), default=str)}, page {pageable.number}"
            )
        return Slice(content=students, total_elements=await self.count())

    async def count(self) -> int:
        total = (await self.db.execute(select(func.count()).select_from(Student))).scalar_one()
        logger.debug("count: %d", total)
        return total

    async def _find_all(self, pageable: Pageable) -> Slice[Student]:
        students = await self._fetch([], pageable)
        if not students:
            logger.debug("_find_all: nothing found")
            raise NotFoundError(f'Invalid page "{pageable.number}"')
        return Slice(content=students, total_elements=await self.count())

    async def _fetch(self, where, pageable: Pageable) -> list[Student]:
        stmt = (
            select(Student)
            .where(*where)
            .options(selectinload(Student.wallet))
            .order_by(Student.id)
            .offset(pageable.offset)
            .limit(pageable.size)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    def _check_keys(self, search_params: Mapping[str, Any]) -> bool:
        valid = all(
            key in SEARCH_PARAMETER_NAMES or key == TRANSACTION_TYPE_PARAMETER
            for key in search_params
        )
        if not valid:
            logger.debug("_check_keys: invalid keys=%s", list(search_params))
        return valid

    def _check_enums(self, search_params: Mapping[str, Any]) -> bool:
        art = search_params.get(TRANSACTION_TYPE_PARAMETER)
        valid = art is None or art in {t.value for t in TransactionType}
        if not valid:
            logger.debug("_check_enums: invalid art=%s", art)
        return valid
