import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storeledger.core.exceptions import LedgerError

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
            )
            body = {"type": exc.status_code, "error": "InternalError", "message": "Internal Server Error"}
        else:
            body = exc.to_dict()
        return JSONResponse(content=body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body = {
            "type": 400,
            "error": "ValidationError",
            "message": "Invalid request",
            "details": jsonable_errors(exc),
        }
        return JSONResponse(content=body, status_code=400)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        body = {"type": 500, "error": "InternalError", "message": "Internal Server Error"}
        return JSONResponse(content=body, status_code=500)


def jsonable_errors(exc: RequestValidationError):
    out = []
    for err in exc.errors():
        out.append({
            "loc": [str(p) for p in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": err.get("type"),
        })
    return out
