# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware functionality.
"""

import pytest
from types import SimpleNamespace
from flask import Flask, g
from pydantic import BaseModel, Field

from middleware.validation import ValidationMiddleware, validate_json, validate_query
from middleware.auth import AuthMiddleware, require_auth, require_role, optional_auth
from middleware.error_handler import (
    ErrorHandlerMiddleware,
    ValidationException,
    AuthenticationException,
    NotFoundException,
    register_custom_error_handlers,
    translate_ledger_error
)
from models.enums import UserType
from services.auth import AuthService
from services.hal import HalFormatter
from services.ledger import (
    DuplicateApplicationError,
    InsufficientCreditsError,
    OwnershipError,
    ResourceNotFoundError
)
from services.redis import RedisService


class SampleModel(BaseModel):
    title: str = Field(..., min_length=1)
    count: int = Field(..., ge=1)


class SampleFilters(BaseModel):
    count: int = 1


def build_app(auth_service=None, redis_service=None):
    app = Flask(__name__)
    hal_formatter = HalFormatter("https://api.example.com")
    app.validation_middleware = ValidationMiddleware()
    app.auth_middleware = AuthMiddleware(auth_service, redis_service or RedisService())
    ErrorHandlerMiddleware(app, hal_formatter)
    register_custom_error_handlers(app, hal_formatter)
    return app


class TestValidationMiddleware:
    """Test validation middleware functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.app = Flask(__name__)
        self.validation_middleware = ValidationMiddleware()

    def test_valid_body(self):
        with self.app.test_request_context('/test', method='POST', json={"title": "Test", "count": "3"}):
            model = self.validation_middleware.validate_json_body(SampleModel)

        assert model.title == "Test"
        assert model.count == 3

    def test_errors_carry_field_and_detail(self):
        with self.app.test_request_context('/test', method='POST', json={"title": "", "count": 0}):
            with pytest.raises(ValidationException) as exc_info:
                self.validation_middleware.validate_json_body(SampleModel, "Invalid sample")

        assert exc_info.value.message == "Invalid sample"
        assert {error["field"] for error in exc_info.value.validation_errors} == {"title", "count"}

    def test_empty_body_reports_missing_fields(self):
        with self.app.test_request_context('/test', method='POST'):
            with pytest.raises(ValidationException) as exc_info:
                self.validation_middleware.validate_json_body(SampleModel)

        assert {error["type"] for error in exc_info.value.validation_errors} == {"missing"}

    def test_wrong_content_type(self):
        with self.app.test_request_context('/test', method='POST', data="title=x", content_type='text/plain'):
            with pytest.raises(ValidationException, match="Content-Type"):
                self.validation_middleware.validate_json_body(SampleModel)

    def test_malformed_json(self):
        with self.app.test_request_context('/test', method='POST', data="{not json", content_type='application/json'):
            with pytest.raises(ValidationException, match="Invalid JSON"):
                self.validation_middleware.validate_json_body(SampleModel)

    def test_query_params(self):
        with self.app.test_request_context('/test?count=4'):
            filters = self.validation_middleware.validate_query_params(SampleFilters)

        assert filters.count == 4


class TestValidationDecorators:
    """Test the decorators used by route handlers."""

    def setup_method(self):
        self.app = build_app()

        @self.app.post('/items')
        @validate_json(SampleModel, "Invalid item")
        def create_item(payload):
            return {"title": payload.title}, 201

        @self.app.get('/items')
        @validate_query(SampleFilters)
        def list_items(filters):
            return {"count": filters.count}

        self.client = self.app.test_client()

    def test_payload_passed_to_handler(self):
        response = self.client.post('/items', json={"title": "x", "count": 1})

        assert response.status_code == 201
        assert response.get_json() == {"title": "x"}

    def test_invalid_body_is_problem_document(self):
        response = self.client.post('/items', json={"count": 0})
        data = response.get_json()

        assert response.status_code == 400
        assert data["detail"] == "Invalid item"
        assert data["status"] == 400
        assert data["instance"] == "/items"
        assert data["type"].endswith("/validation-error")
        assert data["errors"]

    def test_filters_passed_to_handler(self):
        assert self.client.get('/items?count=7').get_json() == {"count": 7}


class TestAuthMiddleware:
    """Test token checks and role decorators."""

    @pytest.fixture(autouse=True)
    def setup_app(self, fake_redis_client):
        self.auth_service = AuthService(bcrypt_rounds=4)
        self.redis_service = RedisService(client=fake_redis_client)
        self.app = build_app(self.auth_service, self.redis_service)

        @self.app.get('/private')
        @require_auth
        def private(user_context):
            return {"user_id": user_context.user_id, "has_context": g.user_context is user_context}

        @self.app.get('/police')
        @require_role(UserType.POLICE)
        def police_only(user_context):
            return {"user_type": user_context.user_type}

        @self.app.get('/public')
        @optional_auth
        def public(user_context):
            return {"user_id": user_context.user_id if user_context else None}

        self.client = self.app.test_client()

    def token_for(self, user_type="citizen"):
        user = SimpleNamespace(id="user-1", username="someone", name="Someone", user_type=user_type)
        return self.auth_service.generate_access_token(user)["access_token"]

    def test_missing_token(self):
        response = self.client.get('/private')

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Unauthorized"
        assert "login" in response.get_json()["_links"]

    def test_valid_token(self):
        response = self.client.get('/private', headers={"Authorization": f"Bearer {self.token_for()}"})

        assert response.status_code == 200
        assert response.get_json() == {"user_id": "user-1", "has_context": True}

    def test_invalid_token(self):
        response = self.client.get('/private', headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401

    def test_blocked_token(self):
        token = self.token_for()
        self.redis_service.block_token(self.auth_service.extract_token_id(token), 60)

        response = self.client.get('/private', headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Token has been revoked"

    def test_role_mismatch_is_unauthorized(self):
        response = self.client.get('/police', headers={"Authorization": f"Bearer {self.token_for('citizen')}"})

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Unauthorized"

    def test_role_match(self):
        response = self.client.get('/police', headers={"Authorization": f"Bearer {self.token_for('police')}"})

        assert response.status_code == 200
        assert response.get_json() == {"user_type": "police"}

    def test_optional_auth_ignores_bad_token(self):
        anonymous = self.client.get('/public', headers={"Authorization": "Bearer garbage"})
        known = self.client.get('/public', headers={"Authorization": f"Bearer {self.token_for()}"})

        assert anonymous.get_json() == {"user_id": None}
        assert known.get_json() == {"user_id": "user-1"}


class TestErrorHandling:
    """Test error translation and generic handlers."""

    def setup_method(self):
        self.app = build_app()

        @self.app.get('/boom')
        def boom():
            raise RuntimeError("kaboom")

        @self.app.get('/missing')
        def missing():
            raise NotFoundException("Reward not found")

        self.client = self.app.test_client()

    def test_unexpected_error_is_500(self):
        response = self.client.get('/boom')

        assert response.status_code == 500
        assert response.get_json()["status"] == 500

    def test_not_found_exception(self):
        response = self.client.get('/missing')

        assert response.status_code == 404
        assert response.get_json()["detail"] == "Reward not found"

    def test_unknown_route(self):
        assert self.client.get('/nowhere').status_code == 404

    @pytest.mark.parametrize("error,expected", [
        (ResourceNotFoundError("Reward not found"), NotFoundException),
        (OwnershipError("Unauthorized"), AuthenticationException),
        (DuplicateApplicationError("Already applied for this opportunity"), ValidationException),
        (InsufficientCreditsError("Insufficient credits"), ValidationException),
    ])
    def test_translate_ledger_error(self, error, expected):
        translated = translate_ledger_error(error)

        assert isinstance(translated, expected)
        assert translated.message == error.message
