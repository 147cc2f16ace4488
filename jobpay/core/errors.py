import logging
import uuid
from fastapi import Request
from fastapi.responses import JSONResponse

from jobpay.core.exceptions import JobPayException

logger = logging.getLogger("jobpay.errors")


def register_error_handlers(app):
    @app.exception_handler(JobPayException)
    async def jobpay_exception(request: Request, exc: JobPayException):
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):  # noqa: BLE001
        correlation_id = uuid.uuid4().hex
        logger.exception("Unhandled error cid=%s path=%s method=%s", correlation_id, request.url.path, request.method)
        return JSONResponse(status_code=500, content={"detail": "Internal server error", "cid": correlation_id})

    return app
