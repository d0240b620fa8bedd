# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.

These models document the OpenAPI schema; handlers build the actual
payloads through ``services.hal.HalFormatter``.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class HalResponse(BaseModel):
    """Base HAL response with links."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    links: Dict[str, HalLink] = Field(default_factory=dict, alias="_links", description="HAL links")


class HalCollection(HalResponse):
    """HAL collection response with embedded items."""

    embedded: Dict[str, List[Dict[str, Any]]] = Field(
        default_factory=dict, alias="_embedded", description="Embedded resources"
    )
    total: int = Field(..., description="Total number of items")


class UserResponse(HalResponse):
    """User response model (without the password hash)."""

    id: str = Field(..., description="User ID")
    username: str = Field(..., description="Login name")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    user_type: str = Field(..., description="police or citizen")
    badge_number: Optional[str] = Field(None, description="Police badge number")
    credits: int = Field(..., description="Credit balance")
    created_at: datetime = Field(..., description="Registration timestamp")


class AuthTokenResponse(BaseModel):
    """Authentication token response."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")
    user: UserResponse = Field(..., description="Authenticated user information")


class RedemptionResponse(BaseModel):
    """Result of redeeming a reward."""

    redemption: Dict[str, Any] = Field(..., description="Created redemption")
    voucher_code: str = Field(..., description="Voucher code to present to the brand")


class PoliceStatsResponse(HalResponse):
    """Police dashboard aggregates."""

    active_opportunities: int = Field(..., description="Owned opportunities that are active")
    total_volunteers: int = Field(..., description="Approved applications on owned opportunities")
    pending_applications: int = Field(..., description="Pending applications on owned opportunities")
    completed_tasks: int = Field(..., description="Completed applications on owned opportunities")


class SeedResponse(BaseModel):
    """Reward catalog seeding result."""

    message: str = Field(..., description="Result message")
    count: int = Field(..., description="Number of rewards inserted")


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Overall health status")
    environment: str = Field(..., description="Environment name")
    timestamp: datetime = Field(..., description="Check timestamp")
    dependencies: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Dependency health")


class ErrorResponse(BaseModel):
    """Error response model following RFC 7807."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Error title")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Error detail")
    instance: str = Field(..., description="Request instance")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation errors")


class SuccessResponse(BaseModel):
    """Generic success response."""

    message: str = Field(..., description="Success message")
