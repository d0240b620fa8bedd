# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the volunteer portal.

These are detached, read-only views of database rows. Storage builds them
from ORM objects with ``model_validate`` so route code never holds a live
session-bound instance.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict
from .enums import UserType, OpportunityCategory, ApplicationStatus, TransactionType


class EntityModel(BaseModel):
    """Base class for entities read from the database."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return self.model_dump(mode="json")


class User(EntityModel):
    """Registered user, either a police officer or a citizen volunteer."""

    id: str = Field(..., description="User ID")
    username: str = Field(..., description="Unique login name")
    password: str = Field(..., exclude=True, description="bcrypt password hash")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    user_type: UserType = Field(default=UserType.CITIZEN, description="Role of the user")
    badge_number: Optional[str] = Field(None, description="Police badge number")
    credits: int = Field(default=0, ge=0, description="Current credit balance")
    created_at: datetime = Field(..., description="Registration timestamp")

    def is_police(self) -> bool:
        return self.user_type == UserType.POLICE.value


class Opportunity(EntityModel):
    """Volunteer opportunity published by a police user."""

    id: str = Field(..., description="Opportunity ID")
    title: str = Field(..., description="Title")
    description: str = Field(..., description="Description")
    category: OpportunityCategory = Field(..., description="Category")
    location: str = Field(..., description="Location")
    date: datetime = Field(..., description="Scheduled date")
    duration: int = Field(..., description="Duration in hours")
    volunteers_needed: int = Field(..., description="Number of volunteers needed")
    credits_reward: int = Field(..., description="Credits awarded on completion")
    created_by_id: str = Field(..., description="ID of the creating police user")
    is_active: bool = Field(default=True, description="Whether the opportunity accepts applications")
    created_at: datetime = Field(..., description="Creation timestamp")


class Application(EntityModel):
    """A citizen's application to an opportunity."""

    id: str = Field(..., description="Application ID")
    opportunity_id: str = Field(..., description="Opportunity ID")
    user_id: str = Field(..., description="Applicant user ID")
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING, description="Lifecycle status")
    applied_at: datetime = Field(..., description="Application timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")

    def is_terminal(self) -> bool:
        return self.status in (ApplicationStatus.COMPLETED.value, ApplicationStatus.REJECTED.value)


class Reward(EntityModel):
    """Brand voucher that can be bought with credits."""

    id: str = Field(..., description="Reward ID")
    title: str = Field(..., description="Title")
    description: str = Field(..., description="Description")
    brand: str = Field(..., description="Brand name")
    category: str = Field(..., description="Reward category")
    credits_required: int = Field(..., description="Price in credits")
    is_active: bool = Field(default=True, description="Whether the reward can be redeemed")
    is_featured: bool = Field(default=False, description="Whether the reward is featured")


class Transaction(EntityModel):
    """Ledger entry; every balance change has exactly one."""

    id: str = Field(..., description="Transaction ID")
    user_id: str = Field(..., description="User ID")
    type: TransactionType = Field(..., description="earned or spent")
    amount: int = Field(..., gt=0, description="Absolute credit amount")
    description: str = Field(..., description="Human-readable description")
    related_id: Optional[str] = Field(None, description="Related opportunity or reward ID")
    created_at: datetime = Field(..., description="Creation timestamp")


class Redemption(EntityModel):
    """A reward bought by a user."""

    id: str = Field(..., description="Redemption ID")
    user_id: str = Field(..., description="User ID")
    reward_id: str = Field(..., description="Reward ID")
    voucher_code: str = Field(..., description="Generated voucher code")
    redeemed_at: datetime = Field(..., description="Redemption timestamp")


class PoliceStats(BaseModel):
    """Dashboard aggregates for a police user."""

    active_opportunities: int = Field(default=0, description="Owned opportunities that are active")
    total_volunteers: int = Field(default=0, description="Approved applications on owned opportunities")
    pending_applications: int = Field(default=0, description="Pending applications on owned opportunities")
    completed_tasks: int = Field(default=0, description="Completed applications on owned opportunities")


class UserContext(BaseModel):
    """Authenticated user context attached to a request."""

    user_id: str = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    name: str = Field(..., description="Display name")
    user_type: UserType = Field(..., description="Role of the user")
    token_payload: Dict[str, Any] = Field(default_factory=dict, description="Decoded JWT claims")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def token_id(self) -> Optional[str]:
        return self.token_payload.get("jti")

    def has_role(self, user_type) -> bool:
        """Check whether the user has the given role."""
        expected = user_type.value if isinstance(user_type, UserType) else user_type
        return self.user_type == expected
