"""Scheduling errors with stable codes, rendered as {"error", "code", ...details}."""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, **details):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        body.update(self.details)
        return body


def not_found(what: str) -> SchedulingError:
    return SchedulingError("not_found", f"{what} not found", 404)


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
