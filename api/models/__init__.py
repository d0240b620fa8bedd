# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - ORM tables, Pydantic schemas and enumerations for the volunteer portal.
"""

# Enumerations
from .enums import (
    UserType,
    OpportunityCategory,
    ApplicationStatus,
    TransactionType
)

# Core entities
from .entities import (
    User,
    Opportunity,
    Application,
    Reward,
    Transaction,
    Redemption,
    PoliceStats,
    UserContext
)

# Request models
from .requests import (
    RegisterRequest,
    LoginRequest,
    CreateOpportunityRequest,
    UpdateOpportunityRequest,
    CreateApplicationRequest,
    UpdateApplicationStatusRequest,
    OpportunityFilters,
    OpportunityPath,
    ApplicationPath,
    RewardPath
)

# Response models
from .responses import (
    HalLink,
    HalResponse,
    HalCollection,
    UserResponse,
    AuthTokenResponse,
    RedemptionResponse,
    PoliceStatsResponse,
    SeedResponse,
    HealthCheckResponse,
    ErrorResponse,
    SuccessResponse
)

__all__ = [
    # Enumerations
    "UserType",
    "OpportunityCategory",
    "ApplicationStatus",
    "TransactionType",

    # Core entities
    "User",
    "Opportunity",
    "Application",
    "Reward",
    "Transaction",
    "Redemption",
    "PoliceStats",
    "UserContext",

    # Request models
    "RegisterRequest",
    "LoginRequest",
    "CreateOpportunityRequest",
    "UpdateOpportunityRequest",
    "CreateApplicationRequest",
    "UpdateApplicationStatusRequest",
    "OpportunityFilters",
    "OpportunityPath",
    "ApplicationPath",
    "RewardPath",

    # Response models
    "HalLink",
    "HalResponse",
    "HalCollection",
    "UserResponse",
    "AuthTokenResponse",
    "RedemptionResponse",
    "PoliceStatsResponse",
    "SeedResponse",
    "HealthCheckResponse",
    "ErrorResponse",
    "SuccessResponse"
]
