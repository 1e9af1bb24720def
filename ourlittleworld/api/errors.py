"""
Translate application errors into HTTP responses
"""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from ourlittleworld.application.errors import DomainError, InvalidBudget, UpstreamFailure

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = {"detail": exc.message}
    if isinstance(exc, InvalidBudget) and exc.difference is not None:
        body["difference"] = float(exc.difference)
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


async def database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Lost or refused database connection: reported as UpstreamFailure (503)"""
    logger.error("Database unavailable on %s %s", request.method, request.url.path, exc_info=exc)
    return await domain_error_handler(request, UpstreamFailure("Database is unavailable, please retry"))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed payloads are plain 400s, same as use-case ValidationError
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
    app.add_exception_handler(InterfaceError, database_unavailable_handler)
