"""Mapping of relationship errors to HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from relgraph.api.schemas import EdgeResponse
from relgraph.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    PartialSuccessError,
    RelationshipError,
)

STATUS_CODES: dict[type[RelationshipError], int] = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    PartialSuccessError: status.HTTP_207_MULTI_STATUS,
}


def status_code_for(exc: RelationshipError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def relationship_error_handler(request: Request, exc: RelationshipError) -> JSONResponse:
    """Render a domain error with its stable code."""
    status_code = status_code_for(exc)
    content: dict = {"error": exc.code, "detail": exc.message}
    if isinstance(exc, PartialSuccessError):
        content["edge"] = EdgeResponse.from_edge(exc.edge).model_dump(mode="json")
        content["completed"] = exc.completed
        content["failed"] = exc.failed
    logger.debug(f"{request.method} {request.url.path} -> {status_code} {exc.code}")
    return JSONResponse(status_code=status_code, content=content)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide implementation details of unexpected failures."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal", "detail": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelationshipError, relationship_error_handler)  # type: ignore
    app.add_exception_handler(Exception, unhandled_error_handler)
