# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask middleware for validating JWT tokens, checking
the logout blocklist, and building user context for request processing.
The decorators resolve the configured ``AuthMiddleware`` from
``current_app.auth_middleware`` at request time.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable, Union
from opentelemetry import trace
import logging

from domain.authorization import check_role
from models.entities import UserContext
from models.enums import UserType
from services.auth import TokenValidationError
from .error_handler import AuthenticationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation, blocklist checking, and user context
    building for protected endpoints.
    """

    def __init__(self, auth_service, redis_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            redis_service: Redis service for token blocklist
        """
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        if auth_header.lower().startswith('bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def is_token_blocked(self, token: str) -> bool:
        """
        Check if token is in the Redis blocklist.

        Undecodable tokens count as blocked.
        """
        try:
            token_id = self.auth_service.extract_token_id(token)
        except TokenValidationError as e:
            logger.error(f"Error checking token blocklist: {str(e)}")
            return True
        return self.redis_service.is_token_blocked(token_id)

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext object for request processing
        """
        return UserContext(
            user_id=token_payload["sub"],
            username=token_payload.get("username", ""),
            name=token_payload.get("name", ""),
            user_type=token_payload.get("user_type", UserType.CITIZEN.value),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """Extract request metadata for user context."""
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def authenticate(self) -> UserContext:
        """
        Authenticate the current request.

        Raises:
            AuthenticationException: token missing, revoked or invalid
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Unauthorized")

            if self.is_token_blocked(token):
                span.set_attribute("auth.result", "token_blocked")
                logger.warning("Authentication failed: token is blocked")
                raise AuthenticationException("Token has been revoked")

            try:
                token_payload = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e))

            user_context = self.build_user_context(token_payload, self.get_request_info())
            g.user_context = user_context
            g.access_token = token

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "user.type": user_context.user_type
            })
            logger.debug(
                "Authentication successful",
                extra={"user_id": user_context.user_id, "ip_address": user_context.ip_address}
            )
            return user_context


def require_auth(f: Callable) -> Callable:
    """Decorator to require JWT authentication; passes the UserContext first."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_context = current_app.auth_middleware.authenticate()
        return f(user_context, *args, **kwargs)

    return decorated_function


def require_role(user_type: Union[str, UserType]) -> Callable:
    """
    Decorator to require a role (police or citizen) for Flask routes.

    A role mismatch is reported as 401 Unauthorized.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_context = current_app.auth_middleware.authenticate()

            with tracer.start_as_current_span("auth.middleware.check_role") as span:
                result = check_role(user_context, user_type)
                span.set_attributes({
                    "auth.operation": "check_role",
                    "auth.required_role": getattr(user_type, 'value', user_type),
                    "auth.role_result": "granted" if result.allowed else "denied",
                    "user.id": user_context.user_id
                })

                if not result.allowed:
                    logger.warning(
                        f"Authorization failed: {result.reason}",
                        extra={"user_id": user_context.user_id, "user_type": user_context.user_type}
                    )
                    raise AuthenticationException("Unauthorized")

            return f(user_context, *args, **kwargs)

        return decorated_function
    return decorator


def optional_auth(f: Callable) -> Callable:
    """Decorator for optional authentication (user context if a valid token is present)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_context = None
        auth_middleware = current_app.auth_middleware

        if auth_middleware.extract_token_from_request():
            try:
                user_context = auth_middleware.authenticate()
            except AuthenticationException:
                # Public routes ignore bad tokens
                user_context = None

        return f(user_context, *args, **kwargs)

    return decorated_function
