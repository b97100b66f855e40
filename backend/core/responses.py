"""Response envelope shared by every API view: ``{"status": ..., "msg": ...}`` plus data."""

from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response
from rest_framework.views import exception_handler

SUCCESS = "success"
ERROR = "error"


def success_response(msg: str, *, status: int = http_status.HTTP_200_OK, **data: Any) -> Response:
    return Response({"status": SUCCESS, "msg": msg, **data}, status=status)


def error_response(
    msg: str, *, status: int = http_status.HTTP_400_BAD_REQUEST, **data: Any
) -> Response:
    return Response({"status": ERROR, "msg": msg, **data}, status=status)


def validation_error_response(errors: Any) -> Response:
    return error_response("Validation failed", errors=errors)


def domain_error_response(exc) -> Response:
    """Render a ``rentals.errors.RentalError`` with its context fields."""
    return error_response(exc.msg, status=exc.status_code, **exc.payload())


def envelope_exception_handler(exc, context):
    """DRF exception handler that wraps framework errors in the same envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None
    data = response.data
    if isinstance(data, dict) and "detail" in data:
        msg = str(data["detail"])
        extra = {key: value for key, value in data.items() if key != "detail"}
    else:
        msg = "Request failed"
        extra = {"errors": data}
    response.data = {"status": ERROR, "msg": msg, **extra}
    return response
