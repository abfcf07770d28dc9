"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sealvault import __version__
from sealvault.domain.errors import (
    ConcurrencyError,
    ConcurrentUpdateError,
    EvidenceError,
    IdempotencyConflictError,
    InvalidRequestError,
    InvalidStateError,
    LockTimeoutError,
    NotFoundError,
)
from sealvault.ui.api.deps import trace_id_from_request
from sealvault.ui.api.routes import api_router
from sealvault.ui.api.schemas import error_envelope, success_envelope

if TYPE_CHECKING:
    from sealvault.app import EvidenceServices

log = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# exception type -> (HTTP status, error code, error class, retryable)
ERROR_TABLE: tuple[tuple[type[EvidenceError], int, str, str, bool], ...] = (
    (NotFoundError, 404, "NOT_FOUND", "not_found", False),
    (IdempotencyConflictError, 409, "IDEMPOTENCY_CONFLICT", "business_rule", False),
    (InvalidStateError, 409, "INVALID_STATE", "business_rule", False),
    (InvalidRequestError, 422, "INVALID_REQUEST", "validation", False),
    (LockTimeoutError, 409, "LOCK_TIMEOUT", "concurrency", True),
    (ConcurrentUpdateError, 409, "CONCURRENT_UPDATE", "concurrency", True),
    (ConcurrencyError, 409, "CONCURRENCY_CONFLICT", "concurrency", True),
)


def _error_details(exc: EvidenceError) -> dict[str, str] | None:
    if isinstance(exc, IdempotencyConflictError):
        return {
            "external_reference_id": exc.external_reference_id,
            "existing_payload_hash": exc.existing_hash,
            "provided_payload_hash": exc.provided_hash,
        }
    return None


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    details: Any = None,
) -> JSONResponse:
    trace_id = trace_id_from_request(request)
    response = JSONResponse(
        status_code=status_code,
        content=error_envelope(
            code=code,
            message=message,
            error_class=error_class,
            retryable=retryable,
            trace_id=trace_id,
            details=details,
        ),
    )
    response.headers["x-trace-id"] = trace_id
    return response


def create_app(services: EvidenceServices) -> FastAPI:
    app = FastAPI(title="Sealvault Evidence API", version=__version__)
    app.state.services = services

    @app.exception_handler(EvidenceError)
    async def handle_domain_error(request: Request, exc: EvidenceError) -> JSONResponse:
        for error_type, status_code, code, error_class, retryable in ERROR_TABLE:
            if isinstance(exc, error_type):
                if retryable:
                    log.warning("%s on %s: %s", code, request.url.path, exc)
                return _error_response(
                    request,
                    status_code=status_code,
                    code=code,
                    message=str(exc),
                    error_class=error_class,
                    retryable=retryable,
                    details=_error_details(exc),
                )
        log.error("Unmapped domain error on %s: %s", request.url.path, exc)
        return _error_response(
            request,
            status_code=400,
            code="DOMAIN_ERROR",
            message=str(exc),
            error_class="business_rule",
            retryable=False,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            request,
            status_code=422,
            code="REQ_VALIDATION_FAILED",
            message="invalid request",
            error_class="validation",
            retryable=False,
            details=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error_response(
                request,
                status_code=404,
                code="REQ_NOT_FOUND",
                message="resource not found",
                error_class="not_found",
                retryable=False,
            )
        return _error_response(
            request,
            status_code=exc.status_code,
            code="REQ_HTTP_ERROR",
            message=str(exc.detail),
            error_class="validation",
            retryable=False,
        )

    @app.get(f"{API_PREFIX}/health")
    def health(request: Request) -> dict[str, Any]:
        return success_envelope(
            {"status": "ok", "version": __version__}, trace_id_from_request(request)
        )

    app.include_router(api_router, prefix=API_PREFIX)
    return app
