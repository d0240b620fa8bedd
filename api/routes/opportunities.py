# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Volunteer opportunity endpoints.

Anyone may browse active opportunities; police users create and manage the
opportunities they own.
"""

from typing import Optional
from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from domain.authorization import check_opportunity_ownership
from models.enums import UserType
from models.requests import (
    CreateOpportunityRequest,
    UpdateOpportunityRequest,
    OpportunityFilters,
    OpportunityPath
)
from models.responses import HalCollection, HalResponse, ErrorResponse
from models.entities import Opportunity, UserContext
from middleware.auth import require_role, optional_auth
from middleware.validation import validate_json, validate_query
from middleware.error_handler import (
    CustomException,
    AuthenticationException,
    NotFoundException,
    InternalServerException
)

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

opportunities_tag = Tag(name="Opportunities", description="Volunteer opportunities published by police")
opportunities_bp = APIBlueprint(
    'opportunities',
    __name__,
    url_prefix='/api',
    abp_tags=[opportunities_tag]
)


def _viewer(user_context: Optional[UserContext]):
    if user_context is None:
        return None, None
    return user_context.user_id, user_context.user_type


def _get_owned_opportunity(user_context: UserContext, opportunity_id: str) -> Opportunity:
    opportunity = current_app.storage.get_opportunity(opportunity_id)
    if opportunity is None:
        raise NotFoundException("Opportunity not found")

    ownership = check_opportunity_ownership(user_context, opportunity)
    if not ownership.allowed:
        logger.warning(
            f"Ownership check failed: {ownership.reason}",
            extra={"user_id": user_context.user_id, "opportunity_id": opportunity_id}
        )
        raise AuthenticationException("Unauthorized")
    return opportunity


@opportunities_bp.get('/opportunities', responses={200: HalCollection, 400: ErrorResponse})
@optional_auth
@validate_query(OpportunityFilters, "Invalid opportunity filters")
def list_opportunities(user_context: Optional[UserContext], filters: OpportunityFilters):
    """
    List active opportunities, newest first.

    Supports an optional ``category`` filter.
    """
    with tracer.start_as_current_span("opportunities.list") as span:
        try:
            category = filters.category.value if filters.category else None
            span.set_attribute("opportunities.category", category or "all")

            opportunities = current_app.storage.get_opportunities(category=category)
            viewer_id, viewer_type = _viewer(user_context)

            response = current_app.hal_formatter.format_opportunity_collection(
                [item.to_dict() for item in opportunities],
                "/api/opportunities",
                viewer_id,
                viewer_type,
                {"category": category}
            )
            span.set_attribute("opportunities.count", len(opportunities))
            span.set_status(Status(StatusCode.OK))
            return jsonify(response), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list opportunities: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch opportunities")


@opportunities_bp.post('/opportunities', responses={201: HalResponse, 400: ErrorResponse, 401: ErrorResponse})
@require_role(UserType.POLICE)
@validate_json(CreateOpportunityRequest, "Invalid opportunity data")
def create_opportunity(user_context: UserContext, payload: CreateOpportunityRequest):
    """Create an opportunity owned by the calling police user."""
    with tracer.start_as_current_span("opportunities.create", attributes={"user.id": user_context.user_id}) as span:
        try:
            opportunity = current_app.storage.create_opportunity(payload.model_dump(), user_context.user_id)

            span.set_attribute("opportunity.id", opportunity.id)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Opportunity created",
                extra={"opportunity_id": opportunity.id, "user_id": user_context.user_id}
            )
            return jsonify(current_app.hal_formatter.format_opportunity(
                opportunity.to_dict(), user_context.user_id, user_context.user_type
            )), 201

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to create opportunity: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to create opportunity")


@opportunities_bp.get('/opportunities/my', responses={200: HalCollection, 401: ErrorResponse})
@require_role(UserType.POLICE)
def list_my_opportunities(user_context: UserContext):
    """List the calling police user's opportunities, newest first."""
    with tracer.start_as_current_span("opportunities.list_mine", attributes={"user.id": user_context.user_id}) as span:
        try:
            opportunities = current_app.storage.get_opportunities_by_creator(user_context.user_id)
            response = current_app.hal_formatter.format_opportunity_collection(
                [item.to_dict() for item in opportunities],
                "/api/opportunities/my",
                user_context.user_id,
                user_context.user_type
            )
            span.set_status(Status(StatusCode.OK))
            return jsonify(response), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list own opportunities: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch opportunities")


@opportunities_bp.get('/opportunities/<opportunity_id>', responses={200: HalResponse, 404: ErrorResponse})
@optional_auth
def get_opportunity(user_context: Optional[UserContext], path: OpportunityPath):
    """Fetch a single opportunity."""
    with tracer.start_as_current_span("opportunities.get", attributes={"opportunity.id": path.opportunity_id}) as span:
        try:
            opportunity = current_app.storage.get_opportunity(path.opportunity_id)
            if opportunity is None:
                span.set_status(Status(StatusCode.ERROR, "Opportunity not found"))
                raise NotFoundException("Opportunity not found")

            viewer_id, viewer_type = _viewer(user_context)
            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_opportunity(
                opportunity.to_dict(), viewer_id, viewer_type
            )), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to fetch opportunity: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch opportunity")


@opportunities_bp.patch(
    '/opportunities/<opportunity_id>',
    responses={200: HalResponse, 400: ErrorResponse, 401: ErrorResponse, 404: ErrorResponse}
)
@require_role(UserType.POLICE)
@validate_json(UpdateOpportunityRequest, "Invalid opportunity data")
def update_opportunity(user_context: UserContext, path: OpportunityPath, payload: UpdateOpportunityRequest):
    """
    Partially update an owned opportunity, e.g. deactivate it with ``{"isActive": false}``.
    """
    with tracer.start_as_current_span(
        "opportunities.update",
        attributes={"opportunity.id": path.opportunity_id, "user.id": user_context.user_id}
    ) as span:
        try:
            _get_owned_opportunity(user_context, path.opportunity_id)

            updates = {
                field: value
                for field, value in payload.model_dump(exclude_unset=True).items()
                if value is not None
            }
            opportunity = current_app.storage.update_opportunity(path.opportunity_id, updates)
            if opportunity is None:
                raise NotFoundException("Opportunity not found")

            span.set_attribute("opportunity.updated_fields", ",".join(sorted(updates)))
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Opportunity updated",
                extra={"opportunity_id": opportunity.id, "user_id": user_context.user_id, "fields": sorted(updates)}
            )
            return jsonify(current_app.hal_formatter.format_opportunity(
                opportunity.to_dict(), user_context.user_id, user_context.user_type
            )), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to update opportunity: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to update opportunity")


@opportunities_bp.get(
    '/opportunities/<opportunity_id>/applications',
    responses={200: HalCollection, 401: ErrorResponse, 404: ErrorResponse}
)
@require_role(UserType.POLICE)
def list_opportunity_applications(user_context: UserContext, path: OpportunityPath):
    """List applications for an owned opportunity, newest first."""
    with tracer.start_as_current_span(
        "opportunities.list_applications",
        attributes={"opportunity.id": path.opportunity_id, "user.id": user_context.user_id}
    ) as span:
        try:
            _get_owned_opportunity(user_context, path.opportunity_id)

            applications = current_app.storage.get_applications_by_opportunity(path.opportunity_id)
            response = current_app.hal_formatter.format_application_collection(
                [item.to_dict() for item in applications],
                f"/api/opportunities/{path.opportunity_id}/applications",
                user_context.user_type
            )
            span.set_status(Status(StatusCode.OK))
            return jsonify(response), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list applications: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch applications")
