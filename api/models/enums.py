# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the volunteer portal.
"""

from enum import Enum


class UserType(str, Enum):
    """Account role enumeration."""
    POLICE = "police"
    CITIZEN = "citizen"


class OpportunityCategory(str, Enum):
    """Volunteer opportunity categories."""
    TRAFFIC_MANAGEMENT = "traffic_management"
    COMMUNITY_EVENTS = "community_events"
    AWARENESS_CAMPAIGNS = "awareness_campaigns"
    EMERGENCY_RESPONSE = "emergency_response"
    SAFETY_INITIATIVE = "safety_initiative"


class ApplicationStatus(str, Enum):
    """Application workflow status enumeration."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class TransactionType(str, Enum):
    """Ledger entry direction."""
    EARNED = "earned"
    SPENT = "spent"
