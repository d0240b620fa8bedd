# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Ledger service: applications workflow, credit awards and reward redemption.

Every operation that touches a balance runs inside one database
transaction. Balance changes are single conditional UPDATE statements paired
with exactly one ledger row, so ``credits == sum(earned) - sum(spent)`` holds
even under concurrent requests.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from opentelemetry import trace

from domain import applications as application_domain
from domain import ledger as ledger_domain
from domain.authorization import check_opportunity_ownership
from models.entities import Application, Redemption, Transaction, UserContext
from models.enums import ApplicationStatus, TransactionType
from .storage import Storage, DuplicateRecordError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for ledger and workflow rule violations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResourceNotFoundError(LedgerError):
    """A referenced user, opportunity, application or reward does not exist."""


class DuplicateApplicationError(LedgerError):
    pass


class InvalidTransitionError(LedgerError):
    pass


class RewardUnavailableError(LedgerError):
    pass


class InsufficientCreditsError(LedgerError):
    pass


class OwnershipError(LedgerError):
    """Caller does not own the opportunity and ownership is enforced."""


@dataclass
class RedemptionResult:
    """Outcome of a successful redemption."""
    redemption: Redemption
    voucher_code: str
    transaction: Transaction

    def to_dict(self) -> Dict[str, Any]:
        return {
            'redemption': self.redemption.to_dict(),
            'voucher_code': self.voucher_code,
        }


class LedgerService:
    """Coordinates storage calls into atomic ledger operations."""

    def __init__(self, storage: Storage, enforce_ownership: bool = False):
        self.storage = storage
        self.enforce_ownership = enforce_ownership

    def apply(self, user_id: str, opportunity_id: str) -> Application:
        """
        Create a pending application for a citizen.

        Raises:
            ResourceNotFoundError: opportunity missing or inactive
            DuplicateApplicationError: the user already applied
        """
        with tracer.start_as_current_span("ledger.apply") as span:
            span.set_attributes({"user.id": user_id, "opportunity.id": opportunity_id})

            with self.storage.transaction():
                opportunity = self.storage.get_opportunity(opportunity_id)
                if not application_domain.can_apply(opportunity):
                    raise ResourceNotFoundError("Opportunity not found")

                existing = application_domain.find_existing_application(
                    self.storage.get_applications_by_user(user_id), opportunity_id
                )
                if existing is not None:
                    raise DuplicateApplicationError("Already applied for this opportunity")

                try:
                    application = self.storage.create_application(user_id, opportunity_id)
                except DuplicateRecordError:
                    # Lost a race with a concurrent apply
                    raise DuplicateApplicationError("Already applied for this opportunity")

            logger.info(
                "Application submitted",
                extra={"application_id": application.id, "user_id": user_id, "opportunity_id": opportunity_id}
            )
            return application

    def update_application_status(
        self,
        application_id: str,
        new_status,
        actor: UserContext
    ) -> Application:
        """
        Move an application through its lifecycle.

        Completing an application awards the opportunity's credits to the
        applicant in the same transaction as the status change.

        Raises:
            ResourceNotFoundError: application or opportunity missing
            OwnershipError: caller does not own the opportunity (only when enforced)
            InvalidTransitionError: transition outside the lifecycle
        """
        requested = ApplicationStatus(getattr(new_status, 'value', new_status))

        with tracer.start_as_current_span("ledger.update_application_status") as span:
            span.set_attributes({
                "application.id": application_id,
                "application.requested_status": requested.value,
                "user.id": actor.user_id
            })

            with self.storage.transaction():
                application = self.storage.get_application(application_id)
                if application is None:
                    raise ResourceNotFoundError("Application not found")

                opportunity = self.storage.get_opportunity(application.opportunity_id)
                if opportunity is None:
                    raise ResourceNotFoundError("Opportunity not found")

                ownership = check_opportunity_ownership(actor, opportunity)
                if not ownership.allowed:
                    logger.warning(
                        "Status update by non-owner of opportunity",
                        extra={
                            "application_id": application_id,
                            "opportunity_id": opportunity.id,
                            "owner_id": opportunity.created_by_id,
                            "user_id": actor.user_id,
                            "enforced": self.enforce_ownership
                        }
                    )
                    if self.enforce_ownership:
                        raise OwnershipError("Unauthorized")

                transition = application_domain.validate_status_transition(application.status, requested)
                if not transition.is_valid:
                    raise InvalidTransitionError(transition.message)

                completing = application_domain.is_completion(requested)
                updated = self.storage.update_application_status(
                    application_id,
                    requested,
                    expected_status=application.status,
                    completed_at=datetime.now(timezone.utc) if completing else None
                )
                if updated is None:
                    current = self.storage.get_application(application_id)
                    raise InvalidTransitionError(
                        f"Invalid status transition from {current.status} to {requested.value}"
                    )

                if completing:
                    self._award(
                        user_id=application.user_id,
                        amount=opportunity.credits_reward,
                        description=ledger_domain.describe_completion(opportunity.title),
                        related_id=opportunity.id
                    )

            logger.info(
                f"Application {application_id} moved from {application.status} to {requested.value}",
                extra={"application_id": application_id, "user_id": actor.user_id}
            )
            return updated

    def _award(self, user_id: str, amount: int, description: str, related_id: Optional[str]) -> Transaction:
        with tracer.start_as_current_span("ledger.award") as span:
            span.set_attributes({"user.id": user_id, "credits.amount": amount})

            if not self.storage.adjust_user_credits(user_id, amount):
                raise ResourceNotFoundError("User not found")

            transaction = self.storage.create_transaction(
                user_id=user_id,
                type=TransactionType.EARNED,
                amount=amount,
                description=description,
                related_id=related_id
            )
            logger.info(
                "Credits awarded",
                extra={"user_id": user_id, "amount": amount, "transaction_id": transaction.id}
            )
            return transaction

    def redeem(self, user_id: str, reward_id: str) -> RedemptionResult:
        """
        Spend credits on a reward and issue a voucher.

        Raises:
            ResourceNotFoundError: reward or user missing
            RewardUnavailableError: reward inactive
            InsufficientCreditsError: balance below the reward price
        """
        with tracer.start_as_current_span("ledger.redeem") as span:
            span.set_attributes({"user.id": user_id, "reward.id": reward_id})

            with self.storage.transaction():
                reward = self.storage.get_reward(reward_id)
                if reward is None:
                    raise ResourceNotFoundError("Reward not found")
                if not reward.is_active:
                    raise RewardUnavailableError("Reward is not available")

                user = self.storage.get_user(user_id)
                if user is None:
                    raise ResourceNotFoundError("User not found")
                if not ledger_domain.has_sufficient_credits(user.credits, reward.credits_required):
                    raise InsufficientCreditsError("Insufficient credits")

                # Conditional debit; zero rows means a concurrent spend got there first
                if not self.storage.adjust_user_credits(user_id, -reward.credits_required):
                    raise InsufficientCreditsError("Insufficient credits")

                voucher_code = ledger_domain.generate_voucher_code(reward.brand)
                redemption = self.storage.create_redemption(user_id, reward.id, voucher_code)
                transaction = self.storage.create_transaction(
                    user_id=user_id,
                    type=TransactionType.SPENT,
                    amount=reward.credits_required,
                    description=ledger_domain.describe_redemption(reward.title),
                    related_id=reward.id
                )

            span.set_attribute("ledger.redemption_id", redemption.id)
            logger.info(
                "Reward redeemed",
                extra={
                    "user_id": user_id,
                    "reward_id": reward.id,
                    "redemption_id": redemption.id,
                    "amount": reward.credits_required
                }
            )
            return RedemptionResult(redemption=redemption, voucher_code=voucher_code, transaction=transaction)
