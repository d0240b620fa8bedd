# SPDX-License-Identifier: Apache-2.0

"""
Credits ledger domain logic.

Pure helpers for voucher codes, ledger descriptions and balance checks. The
side-effecting award and redeem flows live in ``services.ledger``.
"""

import secrets
from typing import Iterable

from models.entities import Transaction
from models.enums import TransactionType


def generate_voucher_code(brand: str) -> str:
    """Build a voucher code of the form ``{BRAND}-{8 uppercase hex}``."""
    return f"{brand.upper()}-{secrets.token_hex(4).upper()}"


def describe_completion(opportunity_title: str) -> str:
    return f"Completed: {opportunity_title}"


def describe_redemption(reward_title: str) -> str:
    return f"Redeemed: {reward_title}"


def has_sufficient_credits(balance: int, cost: int) -> bool:
    return balance >= cost


def compute_balance(transactions: Iterable[Transaction]) -> int:
    """Sum of earned minus sum of spent amounts."""
    balance = 0
    for transaction in transactions:
        if transaction.type == TransactionType.EARNED.value:
            balance += transaction.amount
        else:
            balance -= transaction.amount
    return balance
