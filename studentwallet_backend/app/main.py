import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.api import students
from app.config import settings
from app.database import create_tables, dispose_engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("studentwallet")

app = FastAPI(title="Student Wallet", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Location"],
)

app.include_router(students.router, prefix="/students", tags=["Students"])


def field_path(loc) -> str:
    """``("body", "transactions", 0, "amount")`` -> ``transactions[0].amount``."""
    path = ""
    for part in loc:
        if part in ("body", "query", "path", "header"):
            continue
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [{"field": field_path(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
    logger.debug("validation failed: %s %s errors=%s", request.method, request.url.path, errors)
    return JSONResponse(status_code=400, content={"detail": errors})


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.info("conflict: %s %s %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflict with existing data"})


@app.on_event("startup")
async def startup():
    await create_tables()


@app.on_event("shutdown")
async def shutdown():
    await dispose_engine()


@app.get("/")
async def root():
    return {"message": "Student Wallet REST API"}


def run():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
