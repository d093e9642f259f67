"""
Request-terminal errors raised by the API and the ingestion pipeline.

Every error maps to one HTTP status and is rendered as ``{"error": message}``
by the handler registered in ``main.py``. None of them are retried by the
server.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class TubelyError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST


class BadUpload(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(TubelyError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(TubelyError):
    status_code = status.HTTP_404_NOT_FOUND


class AnalysisFailed(TubelyError):
    pass


class TranscodeFailed(TubelyError):
    pass


class StorageFailed(TubelyError):
    pass


class RecordUpdateFailed(TubelyError):
    pass


async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
