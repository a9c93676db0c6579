import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinic_loyalty.utils.envelope import error

log = logging.getLogger("clinic_loyalty.errors")


def install_error_handlers(app: FastAPI) -> None:
    """Stable error envelopes; stack traces go to the log, never the client."""

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(x) for x in first.get("loc", ()) if x != "body")
        msg = first.get("msg", "invalid request")
        return error(f"{loc}: {msg}" if loc else msg, code="validation_error", status=422)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return error(str(exc.detail), code="http_error", status=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        return error("Internal server error", code="internal_error", status=500)
