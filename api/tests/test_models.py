# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for Pydantic models.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from models.entities import User, Application, Transaction, UserContext
from models.enums import UserType, ApplicationStatus, OpportunityCategory
from models.requests import (
    RegisterRequest,
    CreateOpportunityRequest,
    UpdateOpportunityRequest,
    CreateApplicationRequest,
    UpdateApplicationStatusRequest,
    OpportunityFilters
)


class TestUserModel:
    """Test User entity."""

    def test_password_never_serialized(self):
        user = User(
            id="u1",
            username="volunteer",
            password="$2b$04$hash",
            name="Volunteer",
            email="volunteer@example.com",
            created_at=datetime.now(timezone.utc)
        )

        data = user.to_dict()

        assert "password" not in data
        assert data["user_type"] == "citizen"
        assert data["credits"] == 0
        assert not user.is_police()

    def test_negative_credits_rejected(self):
        with pytest.raises(ValidationError):
            User(
                id="u1",
                username="volunteer",
                password="hash",
                name="Volunteer",
                email="volunteer@example.com",
                credits=-1,
                created_at=datetime.now(timezone.utc)
            )


class TestApplicationModel:
    """Test Application entity."""

    @pytest.mark.parametrize("status,terminal", [
        (ApplicationStatus.PENDING, False),
        (ApplicationStatus.APPROVED, False),
        (ApplicationStatus.REJECTED, True),
        (ApplicationStatus.COMPLETED, True),
    ])
    def test_is_terminal(self, status, terminal):
        application = Application(
            id="a1",
            opportunity_id="o1",
            user_id="u1",
            status=status,
            applied_at=datetime.now(timezone.utc)
        )
        assert application.is_terminal() is terminal


class TestTransactionModel:
    """Test Transaction entity."""

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            Transaction(
                id="t1",
                user_id="u1",
                type="earned",
                amount=0,
                description="Completed: nothing",
                created_at=datetime.now(timezone.utc)
            )


class TestUserContext:
    """Test UserContext helpers."""

    def test_role_and_token_id(self):
        context = UserContext(
            user_id="u1",
            username="officer",
            name="Officer",
            user_type=UserType.POLICE,
            token_payload={"jti": "abc123"}
        )

        assert context.has_role(UserType.POLICE)
        assert context.has_role("police")
        assert not context.has_role(UserType.CITIZEN)
        assert context.token_id == "abc123"


class TestRegisterRequest:
    """Test registration request validation."""

    def test_camel_case_aliases(self):
        request = RegisterRequest.model_validate({
            "username": "officer",
            "password": "secret1",
            "name": "Officer",
            "email": "Officer@Example.com",
            "userType": "police",
            "badgeNumber": "MH-1"
        })

        assert request.user_type == UserType.POLICE
        assert request.badge_number == "MH-1"
        assert request.email == "officer@example.com"

    def test_defaults_to_citizen(self):
        request = RegisterRequest(username="volunteer", password="secret1", name="V", email="v@example.com")
        assert request.user_type == UserType.CITIZEN

    @pytest.mark.parametrize("field,value", [
        ("email", "not-an-email"),
        ("password", "short"),
        ("username", "ab"),
        ("username", "bad name!"),
        ("userType", "admin"),
    ])
    def test_invalid_fields(self, field, value):
        data = {"username": "volunteer", "password": "secret1", "name": "V", "email": "v@example.com"}
        data[field] = value

        with pytest.raises(ValidationError):
            RegisterRequest.model_validate(data)


class TestOpportunityRequests:
    """Test opportunity request validation."""

    def test_numeric_strings_coerced(self, opportunity_payload):
        opportunity_payload.update({"duration": "3", "volunteersNeeded": "5", "creditsReward": "50"})

        request = CreateOpportunityRequest.model_validate(opportunity_payload)

        assert request.duration == 3
        assert request.volunteers_needed == 5
        assert request.credits_reward == 50
        assert request.is_active is True
        assert request.category == OpportunityCategory.TRAFFIC_MANAGEMENT

    def test_unknown_category_rejected(self, opportunity_payload):
        opportunity_payload["category"] = "parking"
        with pytest.raises(ValidationError):
            CreateOpportunityRequest.model_validate(opportunity_payload)

    def test_credits_reward_must_be_positive(self, opportunity_payload):
        opportunity_payload["creditsReward"] = 0
        with pytest.raises(ValidationError):
            CreateOpportunityRequest.model_validate(opportunity_payload)

    def test_update_requires_a_field(self):
        with pytest.raises(ValidationError, match="At least one field must be provided"):
            UpdateOpportunityRequest.model_validate({})

    def test_update_tracks_set_fields(self):
        request = UpdateOpportunityRequest.model_validate({"isActive": False})

        assert request.model_dump(exclude_unset=True) == {"is_active": False}

    def test_filters_category(self):
        assert OpportunityFilters.model_validate({}).category is None
        with pytest.raises(ValidationError):
            OpportunityFilters.model_validate({"category": "unknown"})


class TestApplicationRequests:
    """Test application request validation."""

    @pytest.mark.parametrize("body", [
        {"opportunityId": "o1"},
        {"opportunity_id": "o1"},
    ])
    def test_opportunity_id_accepted_in_both_cases(self, body):
        assert CreateApplicationRequest.model_validate(body).opportunity_id == "o1"

    @pytest.mark.parametrize("body", [{}, {"opportunityId": 42}, {"opportunityId": "  "}])
    def test_missing_opportunity_id(self, body):
        with pytest.raises(ValidationError, match="opportunityId is required"):
            CreateApplicationRequest.model_validate(body)

    def test_status_must_be_known(self):
        assert UpdateApplicationStatusRequest.model_validate({"status": "approved"}).status == ApplicationStatus.APPROVED
        with pytest.raises(ValidationError):
            UpdateApplicationStatusRequest.model_validate({"status": "archived"})
