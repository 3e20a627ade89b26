"""Domain errors raised by the service layer.

Each error carries the HTTP status it maps to, so routers let them propagate
unchanged and FastAPI renders them as ``{"detail": "..."}``.
"""

from fastapi import HTTPException


class StudentWalletError(HTTPException):
    status_code = 500

    def __init__(self, detail: str, headers: dict[str, str] | None = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class NotFoundError(StudentWalletError):
    status_code = 404


class MatriculationExistsError(StudentWalletError):
    status_code = 422

    def __init__(self, matriculation_number: str):
        self.matriculation_number = matriculation_number
        super().__init__(f"Matriculation number {matriculation_number} already exists")


class EmailExistsError(StudentWalletError):
    status_code = 422

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} already exists")


class VersionInvalidError(StudentWalletError):
    status_code = 400

    def __init__(self, version: str | None):
        self.version = version
        super().__init__(f"Invalid version number {version}")


class VersionOutdatedError(StudentWalletError):
    status_code = 412

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Version number {version} is outdated")


class PreconditionRequiredError(StudentWalletError):
    status_code = 428

    def __init__(self):
        super().__init__('Header "If-Match" is missing')


class UnauthorizedError(StudentWalletError):
    status_code = 401

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(StudentWalletError):
    status_code = 403


class FileTooLargeError(StudentWalletError):
    status_code = 413

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {size} bytes (limit {limit})")
