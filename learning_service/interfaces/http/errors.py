import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ...domain.errors import Conflict, DomainError, NotCompleted, NotFound, StoreFailure, Unauthorized

logger = structlog.get_logger()

STATUS_BY_ERROR = {
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    NotFound: status.HTTP_404_NOT_FOUND,
    NotCompleted: status.HTTP_409_CONFLICT,
    Conflict: status.HTTP_409_CONFLICT,
    StoreFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError):
    code = status_for(exc)
    if code >= 500:
        logger.error("domain_error", path=request.url.path, error=type(exc).__name__,
                     detail=exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message or type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
