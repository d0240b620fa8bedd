# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone

# Set test environment before the app reads it
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ.pop('REDIS_URL', None)

from app import create_app
from models.enums import UserType, OpportunityCategory
from services.auth import generate_key_pair
from services.ledger import LedgerService

TEST_PASSWORD = "password123"


@pytest.fixture(scope="session")
def jwt_keys():
    """RSA key pair shared by every test app."""
    return generate_key_pair()


@pytest.fixture
def app(tmp_path, jwt_keys):
    """Application backed by a fresh SQLite file."""
    private_key, public_key = jwt_keys
    app = create_app({
        'ENVIRONMENT': 'test',
        'TESTING': True,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'test.db'}",
        'REDIS_URL': None,
        'OTEL_ENABLED': False,
        'JWT_PRIVATE_KEY': private_key,
        'JWT_PUBLIC_KEY': public_key,
        'BCRYPT_ROUNDS': 4,
        'SEED_ENDPOINT_ENABLED': True,
        'ENFORCE_OPPORTUNITY_OWNERSHIP': False,
        'BASE_URL': 'http://localhost:5000',
    })
    yield app
    app.database.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.storage


@pytest.fixture
def ledger(storage):
    return LedgerService(storage)


@pytest.fixture
def make_user(app):
    """Factory creating users directly in storage."""
    def _make_user(username, user_type=UserType.CITIZEN, credits=0, password=TEST_PASSWORD, **kwargs):
        return app.storage.create_user(
            username=username,
            password_hash=app.auth_service.hash_password(password),
            name=kwargs.get('name', username.title()),
            email=kwargs.get('email', f"{username}@example.com"),
            user_type=user_type,
            badge_number=kwargs.get('badge_number'),
            credits=credits
        )
    return _make_user


@pytest.fixture
def police_user(make_user):
    return make_user("officer", UserType.POLICE, badge_number="MH-1024")


@pytest.fixture
def other_police_user(make_user):
    return make_user("inspector", UserType.POLICE, badge_number="MH-2048")


@pytest.fixture
def citizen_user(make_user):
    return make_user("volunteer")


@pytest.fixture
def auth_headers(app):
    """Factory building a bearer header for a user."""
    def _auth_headers(user):
        token = app.auth_service.generate_access_token(user)["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def police_headers(police_user, auth_headers):
    return auth_headers(police_user)


@pytest.fixture
def citizen_headers(citizen_user, auth_headers):
    return auth_headers(citizen_user)


@pytest.fixture
def opportunity_data():
    """Storage-level opportunity fields."""
    return {
        "title": "Traffic Control at Marine Drive",
        "description": "Help manage traffic during the weekend festival",
        "category": OpportunityCategory.TRAFFIC_MANAGEMENT,
        "location": "Marine Drive, Mumbai",
        "date": datetime.now(timezone.utc) + timedelta(days=7),
        "duration": 4,
        "volunteers_needed": 5,
        "credits_reward": 50,
        "is_active": True,
    }


@pytest.fixture
def opportunity_payload():
    """Request body for POST /api/opportunities."""
    return {
        "title": "Traffic Control at Marine Drive",
        "description": "Help manage traffic during the weekend festival",
        "category": "traffic_management",
        "location": "Marine Drive, Mumbai",
        "date": "2030-01-15T09:00:00Z",
        "duration": 4,
        "volunteersNeeded": 5,
        "creditsReward": 50,
    }


@pytest.fixture
def opportunity(storage, police_user, opportunity_data):
    return storage.create_opportunity(opportunity_data, police_user.id)


@pytest.fixture
def reward_data():
    return {
        "title": "Coffee voucher",
        "description": "One free beverage",
        "brand": "Starbucks",
        "category": "Food & Dining",
        "credits_required": 50,
        "is_active": True,
        "is_featured": True,
    }


@pytest.fixture
def reward(storage, reward_data):
    return storage.create_reward(reward_data)


class FakeRedisClient:
    """In-memory stand-in for the redis-py client."""

    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def setex(self, key, ttl, value):
        self.store[key] = (value, ttl)
        return True

    def exists(self, key):
        return 1 if key in self.store else 0


@pytest.fixture
def fake_redis_client():
    return FakeRedisClient()


@pytest.fixture
def user_password():
    return TEST_PASSWORD
