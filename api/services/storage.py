# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Storage interface: the only place that issues ORM queries.

Every method runs inside ``Database.transaction()``. When called from an
enclosing transaction (for example a ledger operation) the method joins it;
otherwise it commits on its own. Rows are returned as detached Pydantic
entities.
"""

import logging
from datetime import datetime
from typing import List, Dict, Optional, Any, Iterable
from opentelemetry import trace
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from models import entities
from models.enums import ApplicationStatus, OpportunityCategory, TransactionType, UserType
from models.tables import (
    User as UserRow,
    Opportunity as OpportunityRow,
    Application as ApplicationRow,
    Reward as RewardRow,
    Transaction as TransactionRow,
    Redemption as RedemptionRow,
)
from .database import Database

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class DuplicateRecordError(Exception):
    """Raised when an insert violates a uniqueness constraint."""

    def __init__(self, message: str, entity: str = None):
        self.message = message
        self.entity = entity
        super().__init__(message)


def _enum_value(value):
    return getattr(value, 'value', value)


class Storage:
    """Typed data access over the relational schema."""

    def __init__(self, database: Database):
        self.database = database

    def transaction(self):
        """Open (or join) a database transaction."""
        return self.database.transaction()

    def _insert(self, session, row, entity: str):
        # Savepoint so a constraint violation leaves the outer transaction usable
        try:
            with session.begin_nested():
                session.add(row)
                session.flush()
        except IntegrityError as e:
            logger.warning(f"Duplicate {entity} rejected: {e.orig}")
            raise DuplicateRecordError(f"{entity} already exists", entity=entity) from e
        return row

    # Users

    def get_user(self, user_id: str) -> Optional[entities.User]:
        with self.transaction() as session:
            row = session.execute(
                select(UserRow)
                .where(UserRow.id == user_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            return entities.User.model_validate(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[entities.User]:
        with self.transaction() as session:
            row = session.execute(
                select(UserRow).where(UserRow.username == username)
            ).scalar_one_or_none()
            return entities.User.model_validate(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[entities.User]:
        with self.transaction() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email.lower())
            ).scalar_one_or_none()
            return entities.User.model_validate(row) if row else None

    def create_user(self, username: str, password_hash: str, name: str, email: str,
                    user_type=UserType.CITIZEN, badge_number: str = None,
                    credits: int = 0) -> entities.User:
        """Insert a user; raises DuplicateRecordError on username/email clash."""
        with tracer.start_as_current_span("db.users.create"):
            with self.transaction() as session:
                row = UserRow(
                    username=username,
                    password=password_hash,
                    name=name,
                    email=email.lower(),
                    user_type=UserType(_enum_value(user_type)),
                    badge_number=badge_number,
                    credits=credits,
                )
                self._insert(session, row, "User")
                logger.info(f"Created user {row.id}", extra={'user_id': row.id, 'user_type': row.user_type.value})
                return entities.User.model_validate(row)

    def adjust_user_credits(self, user_id: str, delta: int) -> bool:
        """
        Atomically add ``delta`` to a user's balance.

        The update is conditional on the resulting balance staying
        non-negative. Returns False when no row matched (user missing or
        insufficient credits).
        """
        with tracer.start_as_current_span("db.users.adjust_credits") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("credits.delta", delta)
            with self.transaction() as session:
                result = session.execute(
                    update(UserRow)
                    .where(UserRow.id == user_id, UserRow.credits + delta >= 0)
                    .values(credits=UserRow.credits + delta)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount == 1

    # Opportunities

    def get_opportunities(self, category=None) -> List[entities.Opportunity]:
        """Active opportunities, newest first."""
        with self.transaction() as session:
            query = select(OpportunityRow).where(OpportunityRow.is_active.is_(True))
            if category is not None:
                query = query.where(OpportunityRow.category == OpportunityCategory(_enum_value(category)))
            rows = session.execute(query.order_by(OpportunityRow.created_at.desc())).scalars().all()
            return [entities.Opportunity.model_validate(row) for row in rows]

    def get_opportunity(self, opportunity_id: str) -> Optional[entities.Opportunity]:
        with self.transaction() as session:
            row = session.get(OpportunityRow, opportunity_id, populate_existing=True)
            return entities.Opportunity.model_validate(row) if row else None

    def get_opportunities_by_creator(self, user_id: str) -> List[entities.Opportunity]:
        with self.transaction() as session:
            rows = session.execute(
                select(OpportunityRow)
                .where(OpportunityRow.created_by_id == user_id)
                .order_by(OpportunityRow.created_at.desc())
            ).scalars().all()
            return [entities.Opportunity.model_validate(row) for row in rows]

    def create_opportunity(self, data: Dict[str, Any], created_by_id: str) -> entities.Opportunity:
        with tracer.start_as_current_span("db.opportunities.create"):
            with self.transaction() as session:
                values = dict(data)
                values['category'] = OpportunityCategory(_enum_value(values['category']))
                row = OpportunityRow(created_by_id=created_by_id, **values)
                self._insert(session, row, "Opportunity")
                logger.info(f"Created opportunity {row.id}", extra={'opportunity_id': row.id, 'user_id': created_by_id})
                return entities.Opportunity.model_validate(row)

    def update_opportunity(self, opportunity_id: str, updates: Dict[str, Any]) -> Optional[entities.Opportunity]:
        with tracer.start_as_current_span("db.opportunities.update"):
            with self.transaction() as session:
                row = session.get(OpportunityRow, opportunity_id)
                if row is None:
                    return None
                for field, value in updates.items():
                    if field == 'category':
                        value = OpportunityCategory(_enum_value(value))
                    setattr(row, field, value)
                session.flush()
                return entities.Opportunity.model_validate(row)

    # Applications

    def get_application(self, application_id: str) -> Optional[entities.Application]:
        with self.transaction() as session:
            row = session.get(ApplicationRow, application_id, populate_existing=True)
            return entities.Application.model_validate(row) if row else None

    def get_applications_by_user(self, user_id: str) -> List[entities.Application]:
        with self.transaction() as session:
            rows = session.execute(
                select(ApplicationRow)
                .where(ApplicationRow.user_id == user_id)
                .order_by(ApplicationRow.applied_at.desc())
            ).scalars().all()
            return [entities.Application.model_validate(row) for row in rows]

    def get_applications_by_opportunity(self, opportunity_id: str) -> List[entities.Application]:
        with self.transaction() as session:
            rows = session.execute(
                select(ApplicationRow)
                .where(ApplicationRow.opportunity_id == opportunity_id)
                .order_by(ApplicationRow.applied_at.desc())
            ).scalars().all()
            return [entities.Application.model_validate(row) for row in rows]

    def create_application(self, user_id: str, opportunity_id: str) -> entities.Application:
        """Insert a pending application; raises DuplicateRecordError on a second apply."""
        with tracer.start_as_current_span("db.applications.create"):
            with self.transaction() as session:
                row = ApplicationRow(
                    user_id=user_id,
                    opportunity_id=opportunity_id,
                    status=ApplicationStatus.PENDING,
                )
                self._insert(session, row, "Application")
                logger.info(f"Created application {row.id}", extra={
                    'application_id': row.id, 'opportunity_id': opportunity_id, 'user_id': user_id
                })
                return entities.Application.model_validate(row)

    def update_application_status(self, application_id: str, status, expected_status,
                                  completed_at: datetime = None) -> Optional[entities.Application]:
        """
        Move an application from ``expected_status`` to ``status``.

        Returns None when the application is no longer in the expected
        status, so two concurrent updates cannot both succeed.
        """
        with tracer.start_as_current_span("db.applications.update_status"):
            with self.transaction() as session:
                values: Dict[str, Any] = {'status': ApplicationStatus(_enum_value(status))}
                if completed_at is not None:
                    values['completed_at'] = completed_at
                result = session.execute(
                    update(ApplicationRow)
                    .where(
                        ApplicationRow.id == application_id,
                        ApplicationRow.status == ApplicationStatus(_enum_value(expected_status)),
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    return None
                row = session.get(ApplicationRow, application_id, populate_existing=True)
                return entities.Application.model_validate(row)

    # Rewards

    def get_rewards(self) -> List[entities.Reward]:
        with self.transaction() as session:
            rows = session.execute(
                select(RewardRow).where(RewardRow.is_active.is_(True)).order_by(RewardRow.credits_required)
            ).scalars().all()
            return [entities.Reward.model_validate(row) for row in rows]

    def get_featured_rewards(self) -> List[entities.Reward]:
        with self.transaction() as session:
            rows = session.execute(
                select(RewardRow)
                .where(RewardRow.is_active.is_(True), RewardRow.is_featured.is_(True))
                .order_by(RewardRow.credits_required)
            ).scalars().all()
            return [entities.Reward.model_validate(row) for row in rows]

    def get_reward(self, reward_id: str) -> Optional[entities.Reward]:
        with self.transaction() as session:
            row = session.get(RewardRow, reward_id)
            return entities.Reward.model_validate(row) if row else None

    def create_reward(self, data: Dict[str, Any]) -> entities.Reward:
        with self.transaction() as session:
            row = RewardRow(**data)
            self._insert(session, row, "Reward")
            return entities.Reward.model_validate(row)

    def create_rewards(self, items: Iterable[Dict[str, Any]]) -> List[entities.Reward]:
        """Bulk insert rewards in one transaction."""
        with tracer.start_as_current_span("db.rewards.bulk_create"):
            with self.transaction() as session:
                rows = [RewardRow(**data) for data in items]
                session.add_all(rows)
                session.flush()
                logger.info(f"Inserted {len(rows)} rewards")
                return [entities.Reward.model_validate(row) for row in rows]

    # Ledger

    def create_transaction(self, user_id: str, type, amount: int, description: str,
                           related_id: str = None) -> entities.Transaction:
        with tracer.start_as_current_span("db.transactions.create"):
            with self.transaction() as session:
                row = TransactionRow(
                    user_id=user_id,
                    type=TransactionType(_enum_value(type)),
                    amount=amount,
                    description=description,
                    related_id=related_id,
                )
                self._insert(session, row, "Transaction")
                return entities.Transaction.model_validate(row)

    def get_transactions_by_user(self, user_id: str) -> List[entities.Transaction]:
        with self.transaction() as session:
            rows = session.execute(
                select(TransactionRow)
                .where(TransactionRow.user_id == user_id)
                .order_by(TransactionRow.created_at.desc())
            ).scalars().all()
            return [entities.Transaction.model_validate(row) for row in rows]

    def create_redemption(self, user_id: str, reward_id: str, voucher_code: str) -> entities.Redemption:
        with tracer.start_as_current_span("db.redemptions.create"):
            with self.transaction() as session:
                row = RedemptionRow(user_id=user_id, reward_id=reward_id, voucher_code=voucher_code)
                self._insert(session, row, "Redemption")
                return entities.Redemption.model_validate(row)

    def get_redemptions_by_user(self, user_id: str) -> List[entities.Redemption]:
        with self.transaction() as session:
            rows = session.execute(
                select(RedemptionRow)
                .where(RedemptionRow.user_id == user_id)
                .order_by(RedemptionRow.redeemed_at.desc())
            ).scalars().all()
            return [entities.Redemption.model_validate(row) for row in rows]

    # Statistics

    def get_police_stats(self, user_id: str) -> entities.PoliceStats:
        """Aggregate dashboard counts over the opportunities owned by ``user_id``."""
        with tracer.start_as_current_span("db.police.stats"):
            with self.transaction() as session:
                active = session.execute(
                    select(func.count(OpportunityRow.id)).where(
                        OpportunityRow.created_by_id == user_id,
                        OpportunityRow.is_active.is_(True),
                    )
                ).scalar_one()

                rows = session.execute(
                    select(ApplicationRow.status, func.count(ApplicationRow.id))
                    .join(OpportunityRow, ApplicationRow.opportunity_id == OpportunityRow.id)
                    .where(OpportunityRow.created_by_id == user_id)
                    .group_by(ApplicationRow.status)
                ).all()
                counts = {_enum_value(status): count for status, count in rows}

                return entities.PoliceStats(
                    active_opportunities=active,
                    total_volunteers=counts.get(ApplicationStatus.APPROVED.value, 0),
                    pending_applications=counts.get(ApplicationStatus.PENDING.value, 0),
                    completed_tasks=counts.get(ApplicationStatus.COMPLETED.value, 0),
                )

    def health_check(self) -> Dict[str, Any]:
        return self.database.health_check()
