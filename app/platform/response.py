from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _status_label(status_code: int) -> str:
    return "success" if status_code < 400 else "error"


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Envelope shared by every endpoint: ``{status_code, status, message, data}``.

    ``status`` is "success" below 400 and "error" otherwise.
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": _status_label(status_code),
            "message": message,
            "data": jsonable_encoder(data) if data is not None else {},
        },
    )


def error_response(code: str, message: str, status_code: int, **extra: Any) -> JSONResponse:
    """Error envelope whose data repeats the user-facing message next to its stable code."""
    return api_response(
        message=message,
        status_code=status_code,
        data={"error": message, "code": code, **extra},
    )
