import logging
import re

from fastapi import APIRouter, Depends, File, Header, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import NotFoundError, PreconditionRequiredError
from app.security import AuthUser, require_admin, require_writer
from app.services.pageable import create_page, create_pageable
from app.services.student_read_service import StudentReadService
from app.services.student_write_service import StudentWriteService
from schemas.student import CountResponse, StudentCreate, StudentPage, StudentResponse, StudentUpdate

router = APIRouter()
logger = logging.getLogger("studentwallet.api")

ID_PATTERN = re.compile(r"^[1-9]\d{0,10}$")


def get_read_service(db: AsyncSession = Depends(get_db)) -> StudentReadService:
    return StudentReadService(db)


def get_write_service(db: AsyncSession = Depends(get_db)) -> StudentWriteService:
    return StudentWriteService(db)


def _parse_id(raw: str) -> int:
    # ids that are not numbers cannot exist, so they are reported as 404
    if not ID_PATTERN.match(raw or ""):
        raise NotFoundError(f"No student with id {raw}")
    return int(raw)


@router.get("/{student_id}", name="get_student")
async def get_student(
    student_id: str,
    if_none_match: str | None = Header(None),
    service: StudentReadService = Depends(get_read_service),
):
    student = await service.find_by_id(_parse_id(student_id))
    etag = f'"{student.version}"'
    if if_none_match == etag:
        logger.debug("get_student: id=%s not modified", student_id)
        return Response(status_code=304, headers={"ETag": etag})

    body = StudentResponse.model_validate(student).model_dump(mode="json", by_alias=True)
    return JSONResponse(content=body, headers={"ETag": etag})


@router.get("")
async def get_students(request: Request, service: StudentReadService = Depends(get_read_service)):
    query = dict(request.query_params)
    if "only" in query:
        return CountResponse(count=await service.count()).model_dump(by_alias=True)

    pageable = create_pageable(query.pop("page", None), query.pop("size", None))
    search_params = {key: value for key, value in query.items() if value != ""}
    students = await service.find(search_params, pageable)
    page = StudentPage.model_validate(create_page(students, pageable), from_attributes=True)
    return page.model_dump(mode="json", by_alias=True)


@router.post("", status_code=201)
async def create_student(
    payload: StudentCreate,
    request: Request,
    user: AuthUser = Depends(require_writer),
    service: StudentWriteService = Depends(get_write_service),
):
    logger.debug("create_student: by=%s", user.subject)
    student_id = await service.create(payload)
    location = str(request.url_for("get_student", student_id=str(student_id)))
    return Response(status_code=201, headers={"Location": location})


@router.put("/{student_id}", status_code=204)
async def update_student(
    student_id: str,
    payload: StudentUpdate,
    if_match: str | None = Header(None),
    user: AuthUser = Depends(require_writer),
    service: StudentWriteService = Depends(get_write_service),
):
    logger.debug("update_student: id=%s by=%s", student_id, user.subject)
    if if_match is None:
        raise PreconditionRequiredError()
    new_version = await service.update(_parse_id(student_id), payload, if_match)
    return Response(status_code=204, headers={"ETag": f'"{new_version}"'})


@router.delete("/{student_id}", status_code=204)
async def delete_student(
    student_id: str,
    user: AuthUser = Depends(require_admin),
    service: StudentWriteService = Depends(get_write_service),
):
    logger.debug("delete_student: id=%s by=%s", student_id, user.subject)
    await service.delete(_parse_id(student_id))
    return Response(status_code=204)


@router.post("/{student_id}/file", status_code=201)
async def upload_file(
    student_id: str,
    request: Request,
    file: UploadFile = File(...),
    user: AuthUser = Depends(require_writer),
    service: StudentWriteService = Depends(get_write_service),
):
    sid = _parse_id(student_id)
    data = await file.read()
    await service.add_file(sid, data, file.filename or "file")
    location = str(request.url_for("get_student_file", student_id=str(sid)))
    return Response(status_code=201, headers={"Location": location})


@router.get("/{student_id}/file", name="get_student_file")
async def get_student_file(student_id: str, service: StudentReadService = Depends(get_read_service)):
    sid = _parse_id(student_id)
    student_file = await service.find_file_by_student_id(sid)
    if student_file is None:
        raise NotFoundError(f"No file for student {sid}")
    return Response(
        content=student_file.data,
        media_type=student_file.mimetype or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{student_file.filename}"'},
    )
