"""Global error handlers.

Every error leaves the API as ``{"detail": str, "field": str | None}``; request
validation failures add ``errors`` with pydantic's details.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tcgp.errors import TradeError

logger = structlog.get_logger()


def _body(detail: object, field: str | None = None) -> dict[str, object]:
    return {"detail": detail, "field": field}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(TradeError)
    async def trade_error_handler(request: Request, exc: TradeError) -> JSONResponse:
        logger.info(
            "request_rejected",
            path=request.url.path,
            error=type(exc).__name__,
            detail=exc.message,
            field=exc.field,
        )
        return JSONResponse(status_code=exc.status_code, content=_body(exc.message, exc.field))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        field = None
        if errors and errors[0].get("loc"):
            field = ".".join(str(p) for p in errors[0]["loc"] if p not in ("body", "query", "path"))
        return JSONResponse(
            status_code=422,
            content={**_body("Validation error", field or None), "errors": jsonable_errors(errors)},
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def backend_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("database_unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content=_body("Service temporarily unavailable"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=_body("Internal server error"))


def jsonable_errors(errors: list) -> list[dict[str, object]]:
    """Pydantic error dicts may carry exception objects in ``ctx``; keep them serializable."""
    cleaned = []
    for err in errors:
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        cleaned.append(item)
    return cleaned
