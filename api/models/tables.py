# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Relational schema for the volunteer portal.

Tables map one-to-one onto the domain entities. Foreign keys reference
``users``, ``opportunities`` and ``rewards``; nothing is ever hard-deleted.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .enums import ApplicationStatus, OpportunityCategory, TransactionType, UserType


def generate_id() -> str:
    """Generate a new primary key as a UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_class):
    return [member.value for member in enum_class]


class Base(DeclarativeBase):
    pass


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    user_type: Mapped[UserType] = mapped_column(
        SAEnum(UserType, name="user_type", values_callable=_enum_values),
        nullable=False,
        default=UserType.CITIZEN,
    )
    badge_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    opportunities: Mapped[list["Opportunity"]] = relationship(back_populates="creator")
    applications: Mapped[list["Application"]] = relationship(back_populates="user")


class Opportunity(Base):
    """Maps to the 'opportunities' table."""

    __tablename__ = "opportunities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[OpportunityCategory] = mapped_column(
        SAEnum(OpportunityCategory, name="opportunity_category", values_callable=_enum_values),
        nullable=False,
    )
    location: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # hours
    volunteers_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    creator: Mapped[User] = relationship(back_populates="opportunities")
    applications: Mapped[list["Application"]] = relationship(back_populates="opportunity")


class Application(Base):
    """Maps to the 'applications' table."""

    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("user_id", "opportunity_id", name="uq_applications_user_opportunity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    opportunity_id: Mapped[str] = mapped_column(ForeignKey("opportunities.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[ApplicationStatus] = mapped_column(
        SAEnum(ApplicationStatus, name="application_status", values_callable=_enum_values),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    opportunity: Mapped[Opportunity] = relationship(back_populates="applications")
    user: Mapped[User] = relationship(back_populates="applications")


class Reward(Base):
    """Maps to the 'rewards' table."""

    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    credits_required: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Transaction(Base):
    """Maps to the append-only 'transactions' ledger."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type", values_callable=_enum_values),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    related_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)  # opportunity or reward id
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Redemption(Base):
    """Maps to the 'redemptions' table."""

    __tablename__ = "redemptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    reward_id: Mapped[str] = mapped_column(ForeignKey("rewards.id"), nullable=False)
    voucher_code: Mapped[str] = mapped_column(String(120), nullable=False)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
