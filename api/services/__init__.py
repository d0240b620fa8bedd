# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, authentication, caching and the credits ledger.
"""

from .database import Database
from .storage import Storage, DuplicateRecordError
from .ledger import LedgerService, LedgerError, RedemptionResult
from .seed import REWARD_CATALOG, seed_rewards

__all__ = [
    "Database",
    "Storage",
    "DuplicateRecordError",
    "LedgerService",
    "LedgerError",
    "RedemptionResult",
    "REWARD_CATALOG",
    "seed_rewards"
]
