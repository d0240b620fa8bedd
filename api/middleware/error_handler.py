# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and RFC 7807 problem documents.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from services.hal import HalFormatter
from services.ledger import LedgerError, OwnershipError, ResourceNotFoundError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Problem type and title for the HTTP errors Flask raises on its own
CLIENT_ERRORS = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
}


class ErrorHandlerMiddleware:
    """Turns uncaught errors into problem documents."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error)
            error_type, title = CLIENT_ERRORS.get(error.code, ("http-error", error.name))
            return self.handle_client_error(error, error_type, title)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle client errors (4xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        detail = str(error.description) if error.description else title

        logger.warning(
            f"Client error: {title}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "detail": detail,
                "path": request.path,
                "method": request.method
            }
        )

        error_response = self.hal_formatter.builder.build_error_response(
            error_type,
            title,
            error.code,
            detail,
            request.path
        )
        return error_response, error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        logger.error(
            f"Server error: {error.name}",
            extra={"status_code": error.code, "path": request.path, "method": request.method}
        )

        detail = "An internal server error occurred"
        if self.app.config.get('ENVIRONMENT') != 'production' and error.description:
            detail = str(error.description)

        return self.hal_formatter.format_server_error(detail, request.path, error.code), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """Log and hide an exception no route translated."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=error
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') not in ('production', 'staging'):
                detail = f"{error.__class__.__name__}: {str(error)}"

            return self.hal_formatter.format_server_error(detail, request.path), 500


class CustomException(Exception):
    """Base class for errors routes raise on purpose."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Bad input or a rejected ledger rule (400)."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Missing token, bad token, wrong role or not the owner (401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, 401, "authentication-required")


class NotFoundException(CustomException):
    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class InternalServerException(CustomException):
    """Exception carrying a route-specific 500 message."""

    def __init__(self, message: str):
        super().__init__(message, 500, "internal-server-error")


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register the handler that renders ``CustomException`` subclasses.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Request failed: {error.message}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, ValidationException):
                error_response = hal_formatter.format_validation_error(
                    error.message,
                    request.path,
                    error.validation_errors
                )
            elif isinstance(error, AuthenticationException):
                error_response = hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                error_response = hal_formatter.format_not_found_error(error.message, request.path)
            else:
                error_response = hal_formatter.format_server_error(error.message, request.path, error.status_code)

            return jsonify(error_response), error.status_code


def translate_ledger_error(error: LedgerError) -> CustomException:
    """Map a ledger rule violation onto the HTTP error taxonomy."""
    if isinstance(error, ResourceNotFoundError):
        return NotFoundException(error.message)
    if isinstance(error, OwnershipError):
        return AuthenticationException(error.message)
    return ValidationException(error.message)
