# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Police dashboard endpoint.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.enums import UserType
from models.responses import PoliceStatsResponse, ErrorResponse
from models.entities import UserContext
from middleware.auth import require_role
from middleware.error_handler import CustomException, InternalServerException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

police_tag = Tag(name="Police", description="Police dashboard")
police_bp = APIBlueprint(
    'police',
    __name__,
    url_prefix='/api',
    abp_tags=[police_tag]
)


@police_bp.get('/police/stats', responses={200: PoliceStatsResponse, 401: ErrorResponse})
@require_role(UserType.POLICE)
def get_police_stats(user_context: UserContext):
    """
    Aggregate counts over the caller's opportunities.

    Recomputed on every request.
    """
    with tracer.start_as_current_span("police.stats", attributes={"user.id": user_context.user_id}) as span:
        try:
            stats = current_app.storage.get_police_stats(user_context.user_id)
            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_stats(stats.model_dump())), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to compute police stats: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch stats")
