# SPDX-License-Identifier: Apache-2.0

"""
Application domain logic for the volunteer workflow.

This module contains pure functions for application status transitions and
the eligibility checks performed before a citizen applies.
"""

from typing import List, Dict, Optional, Union
from dataclasses import dataclass, field
from models.entities import Application, Opportunity
from models.enums import ApplicationStatus


# pending -> approved | rejected, approved -> completed; the rest are terminal
VALID_TRANSITIONS: Dict[ApplicationStatus, List[ApplicationStatus]] = {
    ApplicationStatus.PENDING: [ApplicationStatus.APPROVED, ApplicationStatus.REJECTED],
    ApplicationStatus.APPROVED: [ApplicationStatus.COMPLETED],
    ApplicationStatus.REJECTED: [],
    ApplicationStatus.COMPLETED: [],
}


@dataclass
class ValidationResult:
    """Result of a domain validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


def _status(value: Union[str, ApplicationStatus]) -> ApplicationStatus:
    return value if isinstance(value, ApplicationStatus) else ApplicationStatus(value)


def validate_status_transition(
    current_status: Union[str, ApplicationStatus],
    new_status: Union[str, ApplicationStatus]
) -> ValidationResult:
    """
    Validate an application status transition.

    Re-setting the current status is rejected like any other transition
    outside the lifecycle.

    Args:
        current_status: Current application status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    current = _status(current_status)
    requested = _status(new_status)

    if requested not in VALID_TRANSITIONS.get(current, []):
        return ValidationResult(
            is_valid=False,
            errors=[f"Invalid status transition from {current.value} to {requested.value}"]
        )

    return ValidationResult(is_valid=True)


def is_completion(new_status: Union[str, ApplicationStatus]) -> bool:
    """Whether the transition awards credits."""
    return _status(new_status) == ApplicationStatus.COMPLETED


def find_existing_application(
    applications: List[Application],
    opportunity_id: str
) -> Optional[Application]:
    """Return the caller's application for ``opportunity_id``, if any."""
    for application in applications:
        if application.opportunity_id == opportunity_id:
            return application
    return None


def can_apply(opportunity: Optional[Opportunity]) -> bool:
    """Only existing, active opportunities accept applications."""
    return opportunity is not None and opportunity.is_active
