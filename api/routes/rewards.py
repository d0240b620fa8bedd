# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Rewards catalog and redemption endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.requests import RewardPath
from models.responses import HalCollection, RedemptionResponse, SeedResponse, ErrorResponse
from models.entities import UserContext
from services.ledger import LedgerError
from services.seed import seed_rewards
from middleware.auth import require_auth
from middleware.error_handler import (
    CustomException,
    NotFoundException,
    InternalServerException,
    translate_ledger_error
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

rewards_tag = Tag(name="Rewards", description="Partner rewards bought with volunteer credits")
rewards_bp = APIBlueprint(
    'rewards',
    __name__,
    url_prefix='/api',
    abp_tags=[rewards_tag]
)


@rewards_bp.get('/rewards', responses={200: HalCollection})
def list_rewards():
    """List active rewards, cheapest first."""
    with tracer.start_as_current_span("rewards.list") as span:
        try:
            rewards = current_app.storage.get_rewards()
            span.set_attribute("rewards.count", len(rewards))
            return jsonify(current_app.hal_formatter.format_reward_collection(
                [item.to_dict() for item in rewards], "/api/rewards"
            )), 200
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list rewards: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch rewards")


@rewards_bp.get('/rewards/featured', responses={200: HalCollection})
def list_featured_rewards():
    """List active rewards flagged as featured."""
    with tracer.start_as_current_span("rewards.list_featured") as span:
        try:
            rewards = current_app.storage.get_featured_rewards()
            span.set_attribute("rewards.count", len(rewards))
            return jsonify(current_app.hal_formatter.format_reward_collection(
                [item.to_dict() for item in rewards], "/api/rewards/featured"
            )), 200
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list featured rewards: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch featured rewards")


@rewards_bp.post(
    '/rewards/<reward_id>/redeem',
    responses={200: RedemptionResponse, 400: ErrorResponse, 401: ErrorResponse, 404: ErrorResponse}
)
@require_auth
def redeem_reward(user_context: UserContext, path: RewardPath):
    """
    Redeem a reward.

    Debits the reward price from the caller's balance, records a spent
    transaction and returns a voucher code.
    """
    with tracer.start_as_current_span(
        "rewards.redeem",
        attributes={"user.id": user_context.user_id, "reward.id": path.reward_id}
    ) as span:
        try:
            result = current_app.ledger_service.redeem(user_context.user_id, path.reward_id)

            span.set_attribute("redemption.id", result.redemption.id)
            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_redemption(result.to_dict())), 200

        except LedgerError as e:
            span.set_status(Status(StatusCode.ERROR, e.message))
            raise translate_ledger_error(e)
        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to redeem reward: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to redeem reward")


@rewards_bp.post('/seed-rewards', responses={200: SeedResponse, 404: ErrorResponse})
def seed_reward_catalog():
    """
    Insert the partner reward catalog.

    Only available when ``SEED_ENDPOINT_ENABLED`` is set; re-seeding inserts
    nothing.
    """
    if not current_app.config.get('SEED_ENDPOINT_ENABLED'):
        raise NotFoundException("Not found")

    with tracer.start_as_current_span("rewards.seed") as span:
        try:
            count = seed_rewards(current_app.storage)
            span.set_attribute("rewards.inserted", count)
            return jsonify({"message": "Rewards seeded successfully", "count": count}), 200
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to seed rewards: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to seed rewards")
