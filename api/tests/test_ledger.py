# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the credits ledger: applications workflow, awards and redemptions.
"""

import re
import logging
import threading
import pytest

from domain.ledger import compute_balance, generate_voucher_code
from domain.applications import validate_status_transition
from models.entities import UserContext
from models.enums import ApplicationStatus, UserType
from services.ledger import (
    LedgerService,
    ResourceNotFoundError,
    DuplicateApplicationError,
    InvalidTransitionError,
    RewardUnavailableError,
    InsufficientCreditsError,
    OwnershipError
)

VOUCHER_PATTERN = re.compile(r'^[A-Z]+-[0-9A-F]{8}$')


def context_for(user):
    return UserContext(user_id=user.id, username=user.username, name=user.name, user_type=user.user_type)


class TestVoucherCodes:
    """Test voucher code generation."""

    def test_format(self):
        code = generate_voucher_code("Starbucks")

        assert VOUCHER_PATTERN.match(code)
        assert code.startswith("STARBUCKS-")

    def test_codes_are_random(self):
        assert len({generate_voucher_code("Zomato") for _ in range(20)}) == 20


class TestStatusTransitions:
    """Test the application lifecycle rules."""

    @pytest.mark.parametrize("current,requested", [
        ("pending", "approved"),
        ("pending", "rejected"),
        ("approved", "completed"),
    ])
    def test_allowed(self, current, requested):
        assert validate_status_transition(current, requested).is_valid

    @pytest.mark.parametrize("current,requested", [
        ("pending", "completed"),
        ("pending", "pending"),
        ("approved", "approved"),
        ("approved", "rejected"),
        ("rejected", "approved"),
        ("completed", "approved"),
    ])
    def test_rejected(self, current, requested):
        result = validate_status_transition(current, requested)

        assert not result.is_valid
        assert result.message == f"Invalid status transition from {current} to {requested}"


class TestApply:
    """Test applying to opportunities."""

    def test_creates_pending_application(self, ledger, citizen_user, opportunity):
        application = ledger.apply(citizen_user.id, opportunity.id)

        assert application.status == "pending"
        assert application.user_id == citizen_user.id
        assert application.completed_at is None

    def test_second_apply_rejected(self, ledger, storage, citizen_user, opportunity):
        ledger.apply(citizen_user.id, opportunity.id)

        with pytest.raises(DuplicateApplicationError, match="Already applied for this opportunity"):
            ledger.apply(citizen_user.id, opportunity.id)

        assert len(storage.get_applications_by_user(citizen_user.id)) == 1

    def test_inactive_opportunity(self, ledger, storage, citizen_user, opportunity):
        storage.update_opportunity(opportunity.id, {"is_active": False})

        with pytest.raises(ResourceNotFoundError, match="Opportunity not found"):
            ledger.apply(citizen_user.id, opportunity.id)

    def test_missing_opportunity(self, ledger, citizen_user):
        with pytest.raises(ResourceNotFoundError):
            ledger.apply(citizen_user.id, "missing")


class TestApplicationStatus:
    """Test status changes and the completion award."""

    def test_completion_awards_credits_once(self, ledger, storage, police_user, citizen_user, opportunity):
        actor = context_for(police_user)
        application = ledger.apply(citizen_user.id, opportunity.id)

        ledger.update_application_status(application.id, ApplicationStatus.APPROVED, actor)
        completed = ledger.update_application_status(application.id, "completed", actor)

        assert completed.status == "completed"
        assert completed.completed_at is not None
        assert storage.get_user(citizen_user.id).credits == opportunity.credits_reward

        transactions = storage.get_transactions_by_user(citizen_user.id)
        assert len(transactions) == 1
        assert transactions[0].type == "earned"
        assert transactions[0].amount == opportunity.credits_reward
        assert transactions[0].description == f"Completed: {opportunity.title}"
        assert transactions[0].related_id == opportunity.id

    def test_invalid_transition_has_no_effect(self, ledger, storage, police_user, citizen_user, opportunity):
        actor = context_for(police_user)
        application = ledger.apply(citizen_user.id, opportunity.id)

        with pytest.raises(InvalidTransitionError, match="Invalid status transition from pending to completed"):
            ledger.update_application_status(application.id, ApplicationStatus.COMPLETED, actor)

        assert storage.get_application(application.id).status == "pending"
        assert storage.get_user(citizen_user.id).credits == 0
        assert storage.get_transactions_by_user(citizen_user.id) == []

    def test_completed_is_terminal(self, ledger, police_user, citizen_user, opportunity):
        actor = context_for(police_user)
        application = ledger.apply(citizen_user.id, opportunity.id)
        ledger.update_application_status(application.id, ApplicationStatus.APPROVED, actor)
        ledger.update_application_status(application.id, ApplicationStatus.COMPLETED, actor)

        with pytest.raises(InvalidTransitionError):
            ledger.update_application_status(application.id, ApplicationStatus.COMPLETED, actor)

    def test_missing_application(self, ledger, police_user):
        with pytest.raises(ResourceNotFoundError, match="Application not found"):
            ledger.update_application_status("missing", ApplicationStatus.APPROVED, context_for(police_user))

    def test_non_owner_is_logged(self, ledger, other_police_user, citizen_user, opportunity, caplog):
        application = ledger.apply(citizen_user.id, opportunity.id)

        with caplog.at_level(logging.WARNING, logger="services.ledger"):
            updated = ledger.update_application_status(
                application.id, ApplicationStatus.APPROVED, context_for(other_police_user)
            )

        assert updated.status == "approved"
        assert "Status update by non-owner of opportunity" in caplog.text

    def test_non_owner_rejected_when_enforced(self, storage, other_police_user, citizen_user, opportunity):
        ledger = LedgerService(storage, enforce_ownership=True)
        application = ledger.apply(citizen_user.id, opportunity.id)

        with pytest.raises(OwnershipError):
            ledger.update_application_status(
                application.id, ApplicationStatus.APPROVED, context_for(other_police_user)
            )

        assert storage.get_application(application.id).status == "pending"


class TestRedeem:
    """Test reward redemption."""

    def test_exact_balance(self, ledger, storage, make_user, reward):
        user = make_user("saver", credits=reward.credits_required)

        result = ledger.redeem(user.id, reward.id)

        assert VOUCHER_PATTERN.match(result.voucher_code)
        assert result.redemption.voucher_code == result.voucher_code
        assert result.to_dict()["voucher_code"] == result.voucher_code
        assert storage.get_user(user.id).credits == 0

        transactions = storage.get_transactions_by_user(user.id)
        assert len(transactions) == 1
        assert transactions[0].type == "spent"
        assert transactions[0].description == f"Redeemed: {reward.title}"
        assert transactions[0].related_id == reward.id
        assert len(storage.get_redemptions_by_user(user.id)) == 1

    def test_one_credit_short(self, ledger, storage, make_user, reward):
        user = make_user("saver", credits=reward.credits_required - 1)

        with pytest.raises(InsufficientCreditsError, match="Insufficient credits"):
            ledger.redeem(user.id, reward.id)

        assert storage.get_user(user.id).credits == reward.credits_required - 1
        assert storage.get_transactions_by_user(user.id) == []
        assert storage.get_redemptions_by_user(user.id) == []

    def test_inactive_reward(self, ledger, storage, make_user, reward_data):
        retired = storage.create_reward(dict(reward_data, is_active=False))
        user = make_user("saver", credits=500)

        with pytest.raises(RewardUnavailableError, match="Reward is not available"):
            ledger.redeem(user.id, retired.id)

    def test_missing_reward_and_user(self, ledger, make_user, reward):
        user = make_user("saver", credits=500)

        with pytest.raises(ResourceNotFoundError, match="Reward not found"):
            ledger.redeem(user.id, "missing")
        with pytest.raises(ResourceNotFoundError, match="User not found"):
            ledger.redeem("missing", reward.id)

    def test_concurrent_redemptions_never_overdraw(self, ledger, storage, make_user, reward_data):
        reward = storage.create_reward(dict(reward_data, credits_required=30))
        user = make_user("saver", credits=100)
        outcomes = []
        errors = []
        lock = threading.Lock()

        def redeem():
            try:
                ledger.redeem(user.id, reward.id)
                outcome = "ok"
            except InsufficientCreditsError:
                outcome = "insufficient"
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=redeem) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert outcomes.count("ok") == 3
        assert outcomes.count("insufficient") == 5

        balance = storage.get_user(user.id).credits
        assert balance == 10
        assert balance == 100 - sum(t.amount for t in storage.get_transactions_by_user(user.id))
        assert len(storage.get_redemptions_by_user(user.id)) == 3


class TestBalanceInvariant:
    """Balance always equals earned minus spent."""

    def test_awards_then_redemption(self, ledger, storage, police_user, make_user, opportunity_data, reward_data):
        actor = context_for(police_user)
        volunteer = make_user("volunteer")

        for reward_amount in (50, 70):
            opportunity = storage.create_opportunity(
                dict(opportunity_data, credits_reward=reward_amount), police_user.id
            )
            application = ledger.apply(volunteer.id, opportunity.id)
            ledger.update_application_status(application.id, ApplicationStatus.APPROVED, actor)
            ledger.update_application_status(application.id, ApplicationStatus.COMPLETED, actor)

        reward = storage.create_reward(dict(reward_data, credits_required=80))
        ledger.redeem(volunteer.id, reward.id)

        user = storage.get_user(volunteer.id)
        assert user.credits == 40
        assert compute_balance(storage.get_transactions_by_user(volunteer.id)) == user.credits
        assert user.user_type == UserType.CITIZEN.value
