"""Map service-layer errors to HTTP responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ead.errors import (
    EADError,
    DuplicateEmail,
    DuplicateEnrollment,
    FileTooLarge,
    InvalidCredential,
    NotFoundError,
    StorageQuotaExceeded,
)

logger = logging.getLogger(__name__)

# first match wins, so subclasses come before their bases
STATUS_BY_ERROR = [
    (NotFoundError, 404),
    (DuplicateEnrollment, 409),
    (DuplicateEmail, 409),
    (InvalidCredential, 401),
    (FileTooLarge, 413),
    (StorageQuotaExceeded, 507),
]


def status_for(exc: Exception) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def service_error_handler(request: Request, exc: EADError) -> JSONResponse:
    """Refused operations (any EADError out of a service) become 4xx/5xx JSON."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
