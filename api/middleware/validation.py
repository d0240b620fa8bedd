# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation middleware using Pydantic models.
Provides request body and query validation ahead of route handler logic.

Validated models are passed to handlers as the ``payload`` (body) and
``filters`` (query) keyword arguments.
"""

from functools import wraps
from flask import request, current_app
from typing import Type, Callable, Dict, Any, List, Optional
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from .error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class ValidationMiddleware:
    """Middleware for request validation using Pydantic models."""

    def format_validation_errors(self, validation_error: ValidationError) -> List[Dict[str, Any]]:
        """
        Format Pydantic validation errors for API response.

        Args:
            validation_error: Pydantic ValidationError

        Returns:
            List of formatted error dictionaries
        """
        errors = []

        for error in validation_error.errors(include_url=False, include_context=False, include_input=False):
            field_path = ".".join(str(loc) for loc in error["loc"]) or "body"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.append({
                "field": field_path,
                "message": message,
                "type": error["type"]
            })

        return errors

    def read_json_body(self) -> Dict[str, Any]:
        """
        Read the request body as a JSON object.

        An empty body reads as ``{}`` so missing fields are reported by the
        model rather than as a transport error.
        """
        if not request.get_data(cache=True):
            return {}

        if not request.is_json:
            raise ValidationException(
                "Request must have Content-Type: application/json",
                [{"field": "content-type", "message": "Expected application/json", "type": "content_type_error"}]
            )

        json_data = request.get_json(silent=True)
        if json_data is None:
            raise ValidationException(
                "Invalid JSON in request body",
                [{"field": "body", "message": "Malformed JSON", "type": "json_error"}]
            )
        if not isinstance(json_data, dict):
            raise ValidationException(
                "Invalid JSON in request body",
                [{"field": "body", "message": "Expected a JSON object", "type": "json_error"}]
            )
        return json_data

    def validate_model(self, model_class: Type[BaseModel], data: Dict[str, Any],
                       error_detail: Optional[str] = None, source: str = "body") -> BaseModel:
        """
        Validate ``data`` against ``model_class``.

        Raises:
            ValidationException: with per-field errors and ``error_detail`` as detail
        """
        with tracer.start_as_current_span(f"validation.validate_{source}") as span:
            span.set_attributes({
                "validation.model": model_class.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            try:
                validated = model_class.model_validate(data)
            except ValidationError as e:
                span.set_attribute("validation.result", "validation_error")
                validation_errors = self.format_validation_errors(e)

                logger.warning(
                    "Request validation failed",
                    extra={
                        "model": model_class.__name__,
                        "path": request.path,
                        "method": request.method,
                        "errors": validation_errors
                    }
                )
                raise ValidationException(
                    error_detail or f"Request validation failed for {model_class.__name__}",
                    validation_errors
                )

            span.set_attribute("validation.result", "success")
            logger.debug(
                "Request validation successful",
                extra={"model": model_class.__name__, "path": request.path, "method": request.method}
            )
            return validated

    def validate_json_body(self, model_class: Type[BaseModel], error_detail: Optional[str] = None) -> BaseModel:
        return self.validate_model(model_class, self.read_json_body(), error_detail, "body")

    def validate_query_params(self, model_class: Type[BaseModel], error_detail: Optional[str] = None) -> BaseModel:
        query_data = {key: value for key, value in request.args.items() if value != ""}
        return self.validate_model(model_class, query_data, error_detail, "query")


def validate_json(model_class: Type[BaseModel], error_detail: Optional[str] = None) -> Callable:
    """
    Decorator for JSON body validation.

    Args:
        model_class: Pydantic model class
        error_detail: Problem ``detail`` reported when validation fails

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = current_app.validation_middleware.validate_json_body(model_class, error_detail)
            return f(*args, payload=payload, **kwargs)

        return decorated_function
    return decorator


def validate_query(model_class: Type[BaseModel], error_detail: Optional[str] = None) -> Callable:
    """Decorator for query parameter validation."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            filters = current_app.validation_middleware.validate_query_params(model_class, error_detail)
            return f(*args, filters=filters, **kwargs)

        return decorated_function
    return decorator
