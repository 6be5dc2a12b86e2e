"""
Blog core REST API base library
"""

import logging
from typing import Any, Dict, Optional, Type

from fastapi import HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import err, schemas


logger = logging.getLogger(__name__)


def _error_response(
        request: Request,
        status_code: int,
        repeat: bool,
        message: str,
        details: Optional[str],
        headers: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details or ""
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    msg = "Unexpected server error. The requested action wasn't completed successfully."
    return _error_response(request, 500, False, msg, "")


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(["\t" + error["msg"] for error in exc.errors()])
    message = f"Failed to process the request:\n{msgs}"
    return _error_response(request, 400, False, message, str(exc.errors()))


CORE_EXCEPTION_STATUS_CODES: Dict[Type[err.BlogCoreException], int] = {
    err.ValidationError: 400,
    err.Unauthorized: 401,
    err.NotFound: 404,
    err.SlugTaken: 409,
    err.RevisionConflict: 409,
    err.StoreError: 502
}


async def handle_core_exception(request: Request, exc: err.BlogCoreException):
    """
    Translate the exceptions of the core into APIError responses

    A revision conflict is answered with 412 (Precondition Failed) if the
    client sent its own revision in the ``If-Match`` header, otherwise the
    conflict happened between the server's read and write and yields 409.
    The client may repeat the request after fetching the post again.
    Unauthorized requests without a principal get 401, others 403.
    """

    status_code = 500
    for cls in type(exc).__mro__:
        if cls in CORE_EXCEPTION_STATUS_CODES:
            status_code = CORE_EXCEPTION_STATUS_CODES[cls]
            break

    headers = None
    repeat = False
    if isinstance(exc, err.RevisionConflict):
        repeat = True
        if request.headers.get("If-Match"):
            status_code = 412
    elif isinstance(exc, err.Unauthorized):
        if getattr(request.state, "principal", None) is not None:
            status_code = 403
        else:
            headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, err.StoreError):
        repeat = True
        logger.error(f"Document store failure @ '{request.method} {request.url.path}': {exc}")

    logger.debug(
        f"{type(exc).__name__}: {exc.message} @ '{request.method} "
        f"{request.url.path}' (details: {exc.details})"
    )
    return _error_response(request, status_code, repeat, exc.message, exc.details, headers)


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception raised by the HTTP layer itself
    """

    def __init__(
            self,
            status_code: int,
            detail: str,
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.__class__.__name__

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        return _error_response(
            request, status_code, repeat, message, str(exc.detail), getattr(exc, "headers", None)
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=True,
            message=message
        )


class InvalidToken(APIException):
    """
    Exception when the bearer token of a request can't be validated
    """

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=401,
            detail=detail,
            repeat=False,
            message="Failed to validate token successfully",
            headers={"WWW-Authenticate": "Bearer"}
        )
