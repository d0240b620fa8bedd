# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

This module contains pure functions for the two checks the API performs:
the caller's role (police or citizen) and ownership of an opportunity.
"""

from typing import Optional, Union
from dataclasses import dataclass
from models.entities import Opportunity, UserContext
from models.enums import UserType


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None


def check_role(user_context: UserContext, required_type: Union[str, UserType]) -> AuthorizationResult:
    """
    Check that the user has the required role.

    Args:
        user_context: Authenticated user context
        required_type: Role the route requires

    Returns:
        AuthorizationResult indicating if access is granted
    """
    if user_context.has_role(required_type):
        return AuthorizationResult(allowed=True)

    required = required_type.value if isinstance(required_type, UserType) else required_type
    return AuthorizationResult(
        allowed=False,
        reason=f"Requires {required} role"
    )


def check_opportunity_ownership(user_context: UserContext, opportunity: Opportunity) -> AuthorizationResult:
    """
    Check that the user created the opportunity.

    Args:
        user_context: Authenticated user context
        opportunity: Opportunity being managed

    Returns:
        AuthorizationResult indicating if the user owns the opportunity
    """
    if opportunity.created_by_id == user_context.user_id:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Opportunity {opportunity.id} is owned by another user"
    )
