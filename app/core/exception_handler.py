"""
DRF exception handler mapping failures onto the API error envelope.

Every error response has the same shape:

    {
        "error": "Human-readable message",
        "error_code": "MACHINE_READABLE_CODE",
        "details": {...}            # optional
    }

Mapping:
    core.exceptions.ValidationError  -> 400
    core.exceptions.NotFoundError    -> 404
    core.exceptions.ConflictError    -> 409
    core.exceptions.PersistenceError -> 500
    django.db.DatabaseError          -> 500 PERSISTENCE_ERROR
    django ValidationError           -> 400 VALIDATION_ERROR (e.g. malformed UUID)
    DRF APIException subclasses      -> their own status

Configured through REST_FRAMEWORK["EXCEPTION_HANDLER"].
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    Convert an exception raised in a view into an error response.

    Args:
        exc: The exception raised while handling the request
        context: DRF context (view, args, kwargs, request)

    Returns:
        Response with the error envelope, or None to let Django handle it
    """
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, BaseApplicationError):
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        logger.log(
            level,
            "Request rejected: %s",
            exc.message,
            extra={"error_code": exc.error_code, "view": view_name},
        )
        return Response(exc.to_dict(), status=exc.http_status)

    if isinstance(exc, DatabaseError):
        logger.error(
            "Unhandled database error",
            extra={"view": view_name},
            exc_info=True,
        )
        return Response(
            {
                "error": "The operation could not be saved",
                "error_code": "PERSISTENCE_ERROR",
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, Http404):
        exc = exceptions.NotFound(*exc.args)
    elif isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(detail=exc.messages)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "error": "Invalid input",
            "error_code": "VALIDATION_ERROR",
            "details": response.data,
        }
    elif isinstance(exc, exceptions.APIException):
        response.data = {
            "error": str(exc.detail),
            "error_code": str(exc.default_code).upper(),
        }
    return response
