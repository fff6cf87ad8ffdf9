"""
Error taxonomy for the Tenant Admin API.

Every caller-facing outcome is a ServiceError subclass carrying its HTTP
status and problem title. Callers branch on the exception type; messages
are informational only. Anything that is not a ServiceError is treated as
an internal fault: logged in full and rendered as an opaque 500.
"""

import logging
import math
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_CONTENT_TYPE = "application/problem+json"


class ConfigurationError(RuntimeError):
    """Startup-class misconfiguration (e.g. an unusable signing key)."""


class ServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Internal Server Error"
    default_detail = "An unexpected error occurred"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def problem_type(self) -> str:
        return self.title.lower().replace(" ", "-")

    def extra(self) -> Dict[str, Any]:
        return {}


class InvalidCredentials(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Invalid Credentials"
    default_detail = "Invalid email or password"


class AccountLocked(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Account Locked"

    def __init__(self, remaining: timedelta, detail: Optional[str] = None):
        self.remaining = remaining
        minutes = max(1, math.ceil(remaining.total_seconds() / 60))
        super().__init__(detail or f"Account is temporarily locked. Try again in {minutes} minute(s)")

    def extra(self) -> Dict[str, Any]:
        return {"retry_after_seconds": max(0, int(self.remaining.total_seconds()))}


class InvalidPassword(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Invalid Password"
    default_detail = "Password does not meet complexity requirements"


class TokenInvalidOrExpired(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Invalid Token"
    default_detail = "Token is invalid or expired"


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Validation Error"
    default_detail = "Request could not be processed"


class Unauthenticated(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Unauthorized"
    default_detail = "Authentication required"


class InsufficientPermissions(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"
    default_detail = "Insufficient permissions"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"
    default_detail = "Resource not found"


class UserNotFound(NotFound):
    default_detail = "User not found"


class OrganizationNotFound(NotFound):
    default_detail = "Organization not found"


class MemberNotFound(NotFound):
    default_detail = "Member not found"


class InvitationNotFound(NotFound):
    default_detail = "Invitation not found"


class NotificationNotFound(NotFound):
    default_detail = "Notification not found"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflict"
    default_detail = "Resource state conflict"


class UserAlreadyExists(Conflict):
    default_detail = "User with this email already exists"


class ConflictAlreadyMember(Conflict):
    default_detail = "User is already a member of this organization"


class ConflictAlreadyPending(Conflict):
    default_detail = "A pending invitation already exists for this email"


class ConflictEmailMismatch(Conflict):
    default_detail = "This invitation was sent to a different email address"


class Gone(ServiceError):
    status_code = status.HTTP_410_GONE
    title = "Gone"
    default_detail = "Invitation is no longer valid"


def problem_response(
    status_code: int,
    title: str,
    detail: str,
    instance: str,
    problem_type: str = "about:blank",
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    body = {
        "type": problem_type,
        "title": title,
        "status": status_code,
        "detail": detail,
        "instance": instance,
    }
    if extra:
        body.update(extra)
    return JSONResponse(status_code=status_code, content=body, media_type=PROBLEM_CONTENT_TYPE)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return problem_response(
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        instance=request.url.path,
        problem_type=exc.problem_type,
        extra=exc.extra(),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return problem_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        title="Internal Server Error",
        detail="An unexpected error occurred",
        instance=request.url.path,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
