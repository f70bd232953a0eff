"""
Response envelope shared by every endpoint: {success, data, message?, error?}.
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Successful envelope. Dataclasses, ORM-backed models and datetimes are encoded."""
    body = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def error_response(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    **extra: Any
) -> JSONResponse:
    """Failure envelope with the given HTTP status."""
    body = {"success": False, "message": message}
    if error:
        body["error"] = error
    body.update(jsonable_encoder(extra))
    return JSONResponse(status_code=status_code, content=body)
