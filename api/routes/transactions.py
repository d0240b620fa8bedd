# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Credit ledger history endpoint.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.responses import HalCollection, ErrorResponse
from models.entities import UserContext
from middleware.auth import require_auth
from middleware.error_handler import CustomException, InternalServerException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

transactions_tag = Tag(name="Transactions", description="Credit ledger history")
transactions_bp = APIBlueprint(
    'transactions',
    __name__,
    url_prefix='/api',
    abp_tags=[transactions_tag]
)


@transactions_bp.get('/transactions/my', responses={200: HalCollection, 401: ErrorResponse})
@require_auth
def list_my_transactions(user_context: UserContext):
    """List the caller's earned and spent credit entries, newest first."""
    with tracer.start_as_current_span("transactions.list_mine", attributes={"user.id": user_context.user_id}) as span:
        try:
            transactions = current_app.storage.get_transactions_by_user(user_context.user_id)
            span.set_attribute("transactions.count", len(transactions))
            span.set_status(Status(StatusCode.OK))
            return jsonify(current_app.hal_formatter.format_transaction_collection(
                [item.to_dict() for item in transactions]
            )), 200

        except CustomException:
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(f"Failed to list transactions: {str(e)}", exc_info=True)
            raise InternalServerException("Failed to fetch transactions")
