# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Volunteer application endpoints.

Citizens apply to opportunities; police move applications through
pending -> approved/rejected -> completed. Completion awards credits.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.enums import UserType
from models.requests import CreateApplicationRequest, UpdateApplicationStatusRequest, ApplicationPath
from models.responses import HalCollection, HalResponse, ErrorResponse
from models.entities import UserContext
from services.ledger import LedgerError
from middleware.auth import require_auth, require_role
from middleware.validation import validate_json
from middleware.error_handler import (
    CustomException,
    InternalServerException,
    translate_ledger_error
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

applications_tag = Tag(name="Applications", description="Volunteer applications and their lifecycle")
applications_bp = APIBlueprint(
    'applications',
    __name__,
    url_prefix='/api',
    abp_tags=[applications_tag]
)


@applications_bp.post('/applications', responses={201: HalResponse, 400: ErrorResponse, 401: ErrorResponse, 404: ErrorResponse})
@require_role(UserType.CITIZEN)
@validate_json(CreateApplicationRequest, "opportunityId is required")
def create_application(user_context: UserContext, payload: CreateApplicationRequest):
    """
    Apply to an active opportunity.

    A citizen may apply to each opportunity once.
    """
    with tracer.start_as_current_span(
        "applications.create",
        attributes={"user.id": user_context.user_id, "opportunity.id": payload.opportunity_id}
    ) as span:
        try:
            application = current_app.ledger_service.apply(user_context.user_id, payload.opportunity_id)

            span.set_attribute("application.id", application.id)
            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_application(
                application.to_dict(), user_context.user_type
            )), 201

        except LedgerError as e:
            span.set_status(Status(StatusCode.ERROR, e.message))
            raise translate_ledger_error(e)
        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to create application: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to create application")


@applications_bp.get('/applications/my', responses={200: HalCollection, 401: ErrorResponse})
@require_auth
def list_my_applications(user_context: UserContext):
    """List the caller's applications, newest first."""
    with tracer.start_as_current_span("applications.list_mine", attributes={"user.id": user_context.user_id}) as span:
        try:
            applications = current_app.storage.get_applications_by_user(user_context.user_id)
            response = current_app.hal_formatter.format_application_collection(
                [item.to_dict() for item in applications],
                "/api/applications/my",
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


@applications_bp.patch(
    '/applications/<application_id>/status',
    responses={200: HalResponse, 400: ErrorResponse, 401: ErrorResponse, 404: ErrorResponse}
)
@require_role(UserType.POLICE)
@validate_json(UpdateApplicationStatusRequest, "Invalid status")
def update_application_status(user_context: UserContext, path: ApplicationPath, payload: UpdateApplicationStatusRequest):
    """
    Change an application's status.

    Moving an approved application to ``completed`` credits the volunteer
    with the opportunity's reward.
    """
    with tracer.start_as_current_span(
        "applications.update_status",
        attributes={
            "application.id": path.application_id,
            "application.requested_status": payload.status.value,
            "user.id": user_context.user_id
        }
    ) as span:
        try:
            application = current_app.ledger_service.update_application_status(
                path.application_id,
                payload.status,
                user_context
            )

            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_application(
                application.to_dict(), user_context.user_type
            )), 200

        except LedgerError as e:
            span.set_status(Status(StatusCode.ERROR, e.message))
            raise translate_ledger_error(e)
        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to update application status: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to update application status")
