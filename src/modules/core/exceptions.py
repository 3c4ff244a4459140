"""Domain error base class and the API error renderer.

Every service raises subclasses of ``DomainError``.  Each subclass declares
its ``kind`` (the error family shared across modules), a stable ``code``
and the HTTP status the API layer should answer with.  The message passed
to the constructor must be safe to show to the caller; structured context
goes into ``extra`` and is rendered under ``meta`` (except for internal
failures, whose context only reaches the logs).

``standardized_exception_handler`` renders DRF errors and domain errors in
one shape::

    {
        "type": "client_error",
        "errors": [{"code": "insufficient_stock", "detail": "...", "attr": null}],
        "meta": {"available": 2, "requested": 5}
    }
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class ErrorKind:
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    INVALID_REQUEST = "InvalidRequest"
    INSUFFICIENT_STOCK = "InsufficientStock"
    CREDIT_LIMIT_EXCEEDED = "CreditLimitExceeded"
    COUPON_REJECTED = "CouponRejected"
    PAYMENT_FAILED = "PaymentFailed"
    STATE_CONFLICT = "StateConflict"
    INTERNAL_FAILURE = "InternalFailure"


class DomainError(Exception):
    """Base class for business-rule violations raised by services."""

    kind: str = ErrorKind.INVALID_REQUEST
    code: str = "invalid_request"
    http_status: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "The request could not be processed."

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class AccessDenied(DomainError):
    """Requester's role or ownership scope does not cover the resource."""

    kind = ErrorKind.UNAUTHORIZED
    code = "access_denied"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action."


class InvalidRequest(DomainError):
    kind = ErrorKind.INVALID_REQUEST
    code = "invalid_request"
    http_status = status.HTTP_400_BAD_REQUEST


class StateConflict(DomainError):
    kind = ErrorKind.STATE_CONFLICT
    code = "state_conflict"
    http_status = status.HTTP_409_CONFLICT
    default_message = "The resource is not in a state that allows this action."


class InternalFailure(DomainError):
    """Failure that needs operator attention; details stay in the logs."""

    kind = ErrorKind.INTERNAL_FAILURE
    code = "internal_failure"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Processing error, order under review."


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def standardized_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    """Render DRF and domain errors with the ``type``/``errors`` envelope."""
    if isinstance(exc, DomainError):
        return _render_domain_error(exc, context)
    if isinstance(exc, DTOValidationError):
        return _render_dto_error(exc)

    response = exception_handler(exc, context)
    if response is None:
        logger.error(
            "api.unhandled_exception",
            exc_type=type(exc).__name__,
            view=_view_name(context),
            exc_info=exc,
        )
        return Response(
            {
                "type": "server_error",
                "errors": [
                    {
                        "code": "error",
                        "detail": "A server error occurred.",
                        "attr": None,
                    }
                ],
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        error_type = "validation_error"
        errors = _flatten_validation_errors(exc.detail)
    else:
        error_type = "client_error" if response.status_code < 500 else "server_error"
        code = exc.default_code if isinstance(exc, APIException) else "error"
        errors = [{"code": code, "detail": _as_text(response.data), "attr": None}]

    response.data = {"type": error_type, "errors": errors}
    return response


def _render_domain_error(exc: DomainError, context: Dict[str, Any]) -> Response:
    error_type = "server_error" if exc.http_status >= 500 else "client_error"
    log = logger.bind(kind=exc.kind, code=exc.code, view=_view_name(context))
    if exc.http_status >= 500:
        log.error("api.domain_error", **exc.extra)
    else:
        log.info("api.domain_error")

    body: Dict[str, Any] = {
        "type": error_type,
        "errors": [
            {"code": exc.code, "detail": exc.message, "attr": exc.extra.get("field")}
        ],
    }
    if exc.extra and exc.kind != ErrorKind.INTERNAL_FAILURE:
        body["meta"] = {key: _json_safe(value) for key, value in exc.extra.items()}
    return Response(body, status=exc.http_status)


def _render_dto_error(exc: DTOValidationError) -> Response:
    errors = [
        {
            "code": "invalid",
            "detail": error["msg"].removeprefix("Value error, "),
            "attr": ".".join(str(part) for part in error["loc"]) or None,
        }
        for error in exc.errors()
    ]
    return Response(
        {"type": "validation_error", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _flatten_validation_errors(detail: Any, prefix: str = "") -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for field, value in detail.items():
            attr = f"{prefix}.{field}" if prefix else str(field)
            errors.extend(_flatten_validation_errors(value, attr))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                attr = f"{prefix}.{index}" if prefix else str(index)
                errors.extend(_flatten_validation_errors(value, attr))
            else:
                errors.extend(_flatten_validation_errors(value, prefix))
        return errors
    return [
        {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": prefix or None,
        }
    ]


def _as_text(data: Any) -> str:
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(data)


def _json_safe(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _view_name(context: Dict[str, Any]) -> str:
    view = context.get("view") if context else None
    return type(view).__name__ if view is not None else ""
