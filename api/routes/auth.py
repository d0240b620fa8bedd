# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for registration, login, logout and the current user.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.requests import RegisterRequest, LoginRequest
from models.responses import AuthTokenResponse, UserResponse, SuccessResponse, ErrorResponse
from models.entities import User, UserContext
from services.storage import DuplicateRecordError
from middleware.auth import require_auth
from middleware.validation import validate_json
from middleware.error_handler import (
    CustomException,
    ValidationException,
    AuthenticationException,
    NotFoundException,
    InternalServerException
)

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
auth_tag = Tag(name="Authentication", description="User registration, login and logout")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api',
    abp_tags=[auth_tag]
)


def _token_response(user: User) -> dict:
    token = current_app.auth_service.generate_access_token(user)
    return {
        "access_token": token["access_token"],
        "token_type": token["token_type"],
        "expires_in": token["expires_in"],
        "user": current_app.hal_formatter.format_user(user.to_dict())
    }


@auth_bp.post('/register', responses={201: AuthTokenResponse, 400: ErrorResponse})
@validate_json(RegisterRequest, "Invalid registration data")
def register(payload: RegisterRequest):
    """
    Register a police or citizen account.

    Returns the created user together with an access token.
    """
    with tracer.start_as_current_span(
        "auth.register",
        attributes={"operation": "register", "user.type": payload.user_type.value}
    ) as span:
        try:
            storage = current_app.storage

            if storage.get_user_by_username(payload.username):
                span.set_status(Status(StatusCode.ERROR, "Username taken"))
                raise ValidationException("Username already exists")
            if storage.get_user_by_email(payload.email):
                span.set_status(Status(StatusCode.ERROR, "Email taken"))
                raise ValidationException("Email already exists")

            try:
                user = storage.create_user(
                    username=payload.username,
                    password_hash=current_app.auth_service.hash_password(payload.password),
                    name=payload.name,
                    email=payload.email,
                    user_type=payload.user_type,
                    badge_number=payload.badge_number
                )
            except DuplicateRecordError:
                raise ValidationException("Username or email already exists")

            span.set_attribute("user.id", user.id)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "User registered",
                extra={"user_id": user.id, "user_type": user.user_type, "ip_address": request.remote_addr}
            )
            return jsonify(_token_response(user)), 201

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Registration failed: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to register user")


@auth_bp.post('/login', responses={200: AuthTokenResponse, 401: ErrorResponse})
@validate_json(LoginRequest, "Invalid login data")
def login(payload: LoginRequest):
    """
    Authenticate user and return a JWT access token.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={"operation": "login", "ip_address": request.remote_addr or ""}
    ) as span:
        try:
            user = current_app.storage.get_user_by_username(payload.username)

            if user is None or not current_app.auth_service.verify_password(payload.password, user.password):
                span.set_status(Status(StatusCode.ERROR, "Invalid credentials"))
                logger.warning(
                    "Login attempt with invalid credentials",
                    extra={"username": payload.username, "ip_address": request.remote_addr}
                )
                raise AuthenticationException("Invalid username or password")

            span.set_attribute("user.id", user.id)
            span.set_status(Status(StatusCode.OK))
            logger.info("User logged in", extra={"user_id": user.id, "ip_address": request.remote_addr})
            return jsonify(_token_response(user)), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Login failed: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to log in")


@auth_bp.post('/logout', responses={200: SuccessResponse, 401: ErrorResponse})
@require_auth
def logout(user_context: UserContext):
    """
    Revoke the current access token.

    The token id is added to the Redis blocklist until the token expires.
    Without Redis the token stays valid until expiry.
    """
    with tracer.start_as_current_span("auth.logout", attributes={"user.id": user_context.user_id}) as span:
        try:
            auth_service = current_app.auth_service
            token_id = user_context.token_id or auth_service.extract_token_id(
                current_app.auth_middleware.extract_token_from_request()
            )
            ttl = auth_service.get_token_remaining_ttl(user_context.token_payload)
            revoked = current_app.redis_service.block_token(token_id, ttl)

            span.set_attribute("auth.token_revoked", revoked)
            span.set_status(Status(StatusCode.OK))
            logger.info("User logged out", extra={"user_id": user_context.user_id, "token_revoked": revoked})
            return jsonify({"message": "Logged out successfully", "token_revoked": revoked}), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Logout failed: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to log out")


@auth_bp.get('/user', responses={200: UserResponse, 401: ErrorResponse, 404: ErrorResponse})
@require_auth
def get_current_user(user_context: UserContext):
    """Return the authenticated user, including the current credit balance."""
    with tracer.start_as_current_span("auth.current_user", attributes={"user.id": user_context.user_id}) as span:
        try:
            user = current_app.storage.get_user(user_context.user_id)
            if user is None:
                span.set_status(Status(StatusCode.ERROR, "User not found"))
                raise NotFoundException("User not found")

            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_user(user.to_dict())), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to fetch user: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch user")
