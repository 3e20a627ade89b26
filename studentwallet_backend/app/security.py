import logging
from dataclasses import dataclass, field

from fastapi import Request
from jose import JWTError, jwt

from app.config import settings
from app.exceptions import ForbiddenError, UnauthorizedError


def _split_names(raw_value: str, fallback: list[str]) -> list[str]:
    names = [item.strip() for item in (raw_value or "").split(",") if item.strip()]
    return names or fallback


WRITE_ROLES = _split_names(settings.AUTH_WRITE_ROLES, ["admin", "user"])
DELETE_ROLES = _split_names(settings.AUTH_DELETE_ROLES, ["admin"])
logger = logging.getLogger("studentwallet.security")


@dataclass
class AuthUser:
    subject: str
    username: str | None = None
    roles: set[str] = field(default_factory=set)


def _mask_user_id(user_id: str | None) -> str:
    value = (user_id or "").strip()
    if not value:
        return "-"
    if len(value) <= 8:
        return value
    return f"{value[:4]}...{value[-4:]}"


def _audit_auth_failure(
    request: Request | None,
    reason: str,
    *,
    subject: str | None = None,
    token_present: bool | None = None,
) -> None:
    if not request:
        logger.warning("AUTH_DENY reason=%s", reason)
        return
    path = getattr(getattr(request, "url", None), "path", "-")
    method = getattr(request, "method", "-")
    client = getattr(request, "client", None)
    ip = getattr(client, "host", "-") if client else "-"
    if token_present is None:
        token_present = bool(_extract_auth_token(request))
    logger.warning(
        "AUTH_DENY reason=%s method=%s path=%s ip=%s subject=%s token_present=%s",
        reason,
        method,
        path,
        ip,
        _mask_user_id(subject),
        int(bool(token_present)),
    )


def _extract_auth_token(request: Request) -> str | None:
    if not request:
        return None
    headers = getattr(request, "headers", None)
    if not headers:
        return None
    raw = (headers.get("authorization") or "").strip()
    if not raw.lower().startswith("bearer "):
        # only the Bearer scheme is accepted
        return None
    token = raw.split(" ", 1)[1].strip()
    return token or None


def _extract_roles(payload: dict) -> set[str]:
    roles: set[str] = set()
    direct = payload.get("roles")
    if isinstance(direct, list):
        roles.update(str(r) for r in direct)
    realm = payload.get("realm_access")
    if isinstance(realm, dict) and isinstance(realm.get("roles"), list):
        roles.update(str(r) for r in realm["roles"])
    resource = payload.get("resource_access")
    if isinstance(resource, dict):
        client = resource.get(settings.AUTH_CLIENT_ID)
        if isinstance(client, dict) and isinstance(client.get("roles"), list):
            roles.update(str(r) for r in client["roles"])
    return roles


def _decode_token(token: str, request: Request | None = None) -> AuthUser:
    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE or None,
            options=options,
        )
    except JWTError:
        _audit_auth_failure(request, "invalid_token", token_present=True)
        raise UnauthorizedError("Invalid access token")
    subject = payload.get("sub")
    if not subject:
        _audit_auth_failure(request, "token_missing_sub", token_present=True)
        raise UnauthorizedError("Access token has no subject")
    return AuthUser(
        subject=str(subject),
        username=payload.get("preferred_username"),
        roles=_extract_roles(payload),
    )


def verify_request_user(request: Request) -> AuthUser:
    token = _extract_auth_token(request)
    if not token:
        _audit_auth_failure(request, "missing_token", token_present=False)
        raise UnauthorizedError()
    return _decode_token(token, request)


def require_roles(*allowed: str):
    """FastAPI dependency: a valid bearer token carrying one of ``allowed``."""

    allowed_roles = set(allowed)

    def dependency(request: Request) -> AuthUser:
        user = verify_request_user(request)
        if allowed_roles and not (user.roles & allowed_roles):
            _audit_auth_failure(request, "missing_role", subject=user.subject, token_present=True)
            raise ForbiddenError(f"Requires one of the roles: {', '.join(sorted(allowed_roles))}")
        return user

    return dependency


require_writer = require_roles(*WRITE_ROLES)
require_admin = require_roles(*DELETE_ROLES)
