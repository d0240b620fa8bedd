# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Volunteer Portal API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the persistence, authentication and
credits ledger services used by the route blueprints.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
import logging

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.validation import ValidationMiddleware
from middleware.auth import AuthMiddleware
from models.responses import HealthCheckResponse
from services.hal import create_hal_formatter
from services.database import Database
from services.storage import Storage
from services.redis import RedisService
from services.auth import AuthService
from services.ledger import LedgerService

logger = logging.getLogger(__name__)

# OpenAPI info
info = Info(
    title="Volunteer Portal API",
    version="1.0.0",
    description="Police volunteer management: opportunities, applications, credits and rewards"
)

health_tag = Tag(name="Health", description="System health and status")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')

    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',

        # Persistence
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///volunteer_portal.db'),
        'REDIS_URL': os.getenv('REDIS_URL') or None,

        # Security configuration
        'JWT_PRIVATE_KEY': os.getenv('JWT_PRIVATE_KEY') or None,
        'JWT_PUBLIC_KEY': os.getenv('JWT_PUBLIC_KEY') or None,
        'JWT_ACCESS_TOKEN_EXPIRES': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', '86400')),
        'BCRYPT_ROUNDS': int(os.getenv('BCRYPT_ROUNDS', '12')),

        # Feature flags
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', True),
        'SEED_ENDPOINT_ENABLED': _env_flag('SEED_ENDPOINT_ENABLED', environment != 'production'),
        'ENFORCE_OPPORTUNITY_OWNERSHIP': _env_flag('ENFORCE_OPPORTUNITY_OWNERSHIP', False),

        # API configuration
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
    }


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> OpenAPI:
    """
    Build the application.

    Args:
        config_overrides: Values applied on top of the environment configuration

    Returns:
        Configured Flask/OpenAPI application
    """
    config = load_config()
    if config_overrides:
        config.update(config_overrides)

    # Initialize observability first
    tracing_enabled = setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info)
    app.config.update(config)

    # Add observability middleware
    add_observability_middleware(app, instrument=tracing_enabled)

    # Initialize services
    database = Database(app.config['DATABASE_URL'])
    database.create_all()
    storage = Storage(database)
    redis_service = RedisService(app.config['REDIS_URL'])
    auth_service = AuthService(
        app.config['JWT_PRIVATE_KEY'],
        app.config['JWT_PUBLIC_KEY'],
        app.config['JWT_ACCESS_TOKEN_EXPIRES'],
        app.config['BCRYPT_ROUNDS']
    )
    ledger_service = LedgerService(storage, enforce_ownership=app.config['ENFORCE_OPPORTUNITY_OWNERSHIP'])

    # Initialize middleware
    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    validation_middleware = ValidationMiddleware()
    auth_middleware = AuthMiddleware(auth_service, redis_service)
    ErrorHandlerMiddleware(app, hal_formatter)

    # Register custom error handlers
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.database = database
    app.storage = storage
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.ledger_service = ledger_service
    app.hal_formatter = hal_formatter
    app.validation_middleware = validation_middleware
    app.auth_middleware = auth_middleware

    # Register routes
    from routes.auth import auth_bp
    from routes.opportunities import opportunities_bp
    from routes.applications import applications_bp
    from routes.rewards import rewards_bp
    from routes.transactions import transactions_bp
    from routes.police import police_bp

    app.register_api(auth_bp)
    app.register_api(opportunities_bp)
    app.register_api(applications_bp)
    app.register_api(rewards_bp)
    app.register_api(transactions_bp)
    app.register_api(police_bp)

    @app.get('/api/healthz', tags=[health_tag], responses={200: HealthCheckResponse, 503: HealthCheckResponse})
    def health_check():
        """Report database and Redis health; 503 when the database is unreachable."""
        database_health = app.storage.health_check()
        redis_health = app.redis_service.health_check()

        status = "healthy"
        if database_health.get("status") != "healthy":
            status = "unhealthy"
        elif redis_health.get("status") not in ("healthy", "disabled"):
            status = "degraded"

        health_data = {
            "status": status,
            "service": "volunteer-portal-api",
            "version": info.version,
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dependencies": {
                "database": database_health,
                "redis": redis_health
            }
        }
        return jsonify(health_data), 503 if status == "unhealthy" else 200

    logger.info(
        "Application created",
        extra={"environment": app.config['ENVIRONMENT'], "tracing_enabled": tracing_enabled}
    )
    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
