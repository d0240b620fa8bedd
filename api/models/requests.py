# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.

Clients send camelCase keys (``volunteersNeeded``); the snake_case field
names are accepted as well.
"""

import re
from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from .enums import UserType, OpportunityCategory, ApplicationStatus


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class RequestModel(BaseModel):
    """Base class for request bodies accepting camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterRequest(RequestModel):
    """Request model for user registration."""

    username: str = Field(..., min_length=3, max_length=100, description="Unique login name")
    password: str = Field(..., min_length=6, max_length=128, description="Plain-text password")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: str = Field(..., description="Email address")
    user_type: UserType = Field(default=UserType.CITIZEN, alias="userType", description="police or citizen")
    badge_number: Optional[str] = Field(None, max_length=50, alias="badgeNumber", description="Police badge number")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        """Validate username characters."""
        if not re.match(r'^[A-Za-z0-9_.-]+$', v):
            raise ValueError('Username may contain only letters, digits, dots, dashes and underscores')
        return v


class LoginRequest(RequestModel):
    """Request model for user authentication."""

    username: str = Field(..., min_length=1, description="Login name")
    password: str = Field(..., min_length=1, description="Plain-text password")


class CreateOpportunityRequest(RequestModel):
    """Request model for creating an opportunity."""

    title: str = Field(..., min_length=1, max_length=200, description="Title")
    description: str = Field(..., min_length=1, max_length=5000, description="Description")
    category: OpportunityCategory = Field(..., description="Category")
    location: str = Field(..., min_length=1, max_length=300, description="Location")
    date: datetime = Field(..., description="Scheduled date (ISO 8601)")
    duration: int = Field(..., ge=1, description="Duration in hours")
    volunteers_needed: int = Field(..., ge=1, alias="volunteersNeeded", description="Volunteers needed")
    credits_reward: int = Field(..., ge=1, alias="creditsReward", description="Credits awarded on completion")
    is_active: bool = Field(default=True, alias="isActive", description="Whether the opportunity is open")


class UpdateOpportunityRequest(RequestModel):
    """Request model for a partial opportunity update."""

    title: Optional[str] = Field(None, min_length=1, max_length=200, description="Title")
    description: Optional[str] = Field(None, min_length=1, max_length=5000, description="Description")
    category: Optional[OpportunityCategory] = Field(None, description="Category")
    location: Optional[str] = Field(None, min_length=1, max_length=300, description="Location")
    date: Optional[datetime] = Field(None, description="Scheduled date (ISO 8601)")
    duration: Optional[int] = Field(None, ge=1, description="Duration in hours")
    volunteers_needed: Optional[int] = Field(None, ge=1, alias="volunteersNeeded", description="Volunteers needed")
    credits_reward: Optional[int] = Field(None, ge=1, alias="creditsReward", description="Credits awarded on completion")
    is_active: Optional[bool] = Field(None, alias="isActive", description="Whether the opportunity is open")

    @model_validator(mode='after')
    def validate_not_empty(self):
        """Require at least one field."""
        if not self.model_fields_set:
            raise ValueError('At least one field must be provided')
        return self


class CreateApplicationRequest(RequestModel):
    """Request model for applying to an opportunity."""

    opportunity_id: str = Field(..., min_length=1, alias="opportunityId", description="Opportunity ID")

    @model_validator(mode='before')
    @classmethod
    def validate_opportunity_id(cls, data: Any):
        """Reject a missing or non-string opportunity id."""
        if not isinstance(data, dict):
            raise ValueError('opportunityId is required')
        value = data.get('opportunityId', data.get('opportunity_id'))
        if not isinstance(value, str) or not value.strip():
            raise ValueError('opportunityId is required')
        return data


class UpdateApplicationStatusRequest(RequestModel):
    """Request model for moving an application through its lifecycle."""

    status: ApplicationStatus = Field(..., description="Requested status")


class OpportunityFilters(BaseModel):
    """Filters for opportunity listing."""

    category: Optional[OpportunityCategory] = Field(None, description="Filter by category")


class OpportunityPath(BaseModel):
    """Path parameters for opportunity routes."""

    opportunity_id: str = Field(..., description="Opportunity ID")


class ApplicationPath(BaseModel):
    """Path parameters for application routes."""

    application_id: str = Field(..., description="Application ID")


class RewardPath(BaseModel):
    """Path parameters for reward routes."""

    reward_id: str = Field(..., description="Reward ID")
