"""
Error taxonomy and JSON error envelopes.

Every error response has the shape
``{"success": false, "message": "...", "error": "<KIND>", ...extras}``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Failed to process request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        extra: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.extra = extra or {}
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class MissingFieldsError(ValidationFailed):
    code = "MISSING_FIELDS"

    def __init__(self, fields: list[str]):
        super().__init__(
            f"Missing required fields: {', '.join(fields)}", extra={"fields": fields}
        )
        self.fields = fields


class InvalidEmailError(ValidationFailed):
    code = "INVALID_EMAIL"
    default_message = "Please provide a valid email address"


class InvalidLanguageError(ValidationFailed):
    code = "INVALID_LANGUAGE"

    def __init__(self, allowed):
        super().__init__(
            f"Invalid language. Must be one of: {', '.join(allowed)}",
            extra={"allowed": list(allowed)},
        )


class InvalidTimeframeError(ValidationFailed):
    code = "INVALID_TIMEFRAME"

    def __init__(self, allowed):
        super().__init__(
            f"Invalid timeframe. Must be one of: {', '.join(allowed)}",
            extra={"allowed": list(allowed)},
        )


class InvalidDateError(ValidationFailed):
    code = "INVALID_DATE"
    default_message = "Invalid date format. Use YYYY-MM-DD"


class UnsupportedAuthStrategyError(ValidationFailed):
    code = "UNSUPPORTED_AUTH_STRATEGY"
    default_message = "This operation is not available with the configured admin authentication"


class RecaptchaRequiredError(AppError):
    status_code = 400
    code = "RECAPTCHA_REQUIRED"
    default_message = "reCAPTCHA token is required"


class RecaptchaFailedError(AppError):
    status_code = 400
    code = "RECAPTCHA_FAILED"
    default_message = "reCAPTCHA verification failed"

    def __init__(self, error_codes: list[str]):
        super().__init__(extra={"errorCodes": error_codes})
        self.error_codes = error_codes


class RecaptchaServiceError(AppError):
    status_code = 502
    code = "RECAPTCHA_SERVICE_ERROR"
    default_message = "reCAPTCHA verification service unavailable"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Not authorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class DuplicateEntryError(AppError):
    status_code = 409
    code = "DUPLICATE_ENTRY"
    default_message = "Duplicate entry"


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    default_message = "Request body too large"


class RateLimitExceededError(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many submissions from this IP, please try again later"

    def __init__(self, retry_after: int):
        super().__init__(
            extra={"retryAfter": retry_after}, headers={"Retry-After": str(retry_after)}
        )


def error_payload(code: str, message: str, extra: Optional[dict[str, Any]] = None) -> dict:
    payload = {"success": False, "message": message, "error": code}
    if extra:
        payload.update(jsonable_encoder(extra))
    return payload


def error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.code, exc.message, exc.extra),
        headers=exc.headers,
    )


def register_error_handlers(app: FastAPI, expose_details: bool = False) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} - {exc.code}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Convert validation errors on the Authorization header to 401 and the
        rest to the 400 VALIDATION_ERROR envelope
        """
        for error in exc.errors():
            if error.get("loc") and "authorization" in str(error.get("loc")).lower():
                logger.warning(f"Authentication failed for {request.url.path}: bad Authorization header")
                return error_response(UnauthorizedError())

        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        details = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=error_payload("VALIDATION_ERROR", "Validation failed", {"details": details}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        codes = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}
        code = codes.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"🚨 Unhandled error on {request.method} {request.url.path}")
        extra = {"detail": str(exc)} if expose_details else None
        return JSONResponse(
            status_code=500,
            content=error_payload("INTERNAL_ERROR", "Failed to process request", extra),
        )
