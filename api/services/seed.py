# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Fixed reward catalog used to populate a fresh database.
"""

import logging
from typing import List, Dict, Any

from .storage import Storage

logger = logging.getLogger(__name__)

REWARD_CATALOG: List[Dict[str, Any]] = [
    {
        "title": "20% Off Any Beverage",
        "description": "Valid at all Mumbai Starbucks locations. Cannot be combined with other offers.",
        "brand": "Starbucks",
        "category": "Food & Dining",
        "credits_required": 200,
        "is_active": True,
        "is_featured": True,
    },
    {
        "title": "₹500 Off Eyewear",
        "description": "Get ₹500 discount on any eyewear purchase above ₹2000. Valid online and in-store.",
        "brand": "Lenskart",
        "category": "Shopping",
        "credits_required": 400,
        "is_active": True,
        "is_featured": True,
    },
    {
        "title": "Free Delivery for 1 Month",
        "description": "Enjoy free delivery on all orders for 30 days. No minimum order value required.",
        "brand": "Zomato",
        "category": "Food & Dining",
        "credits_required": 300,
        "is_active": True,
        "is_featured": True,
    },
    {
        "title": "Amazon - ₹200 Gift Card",
        "description": "Amazon gift card worth ₹200. Use for any purchase on Amazon.in",
        "brand": "Amazon",
        "category": "Shopping",
        "credits_required": 500,
        "is_active": True,
        "is_featured": False,
    },
    {
        "title": "BookMyShow - 2 Movie Tickets",
        "description": "Get 2 free movie tickets for any show in Mumbai multiplexes",
        "brand": "BookMyShow",
        "category": "Entertainment",
        "credits_required": 600,
        "is_active": True,
        "is_featured": False,
    },
    {
        "title": "Cult.fit - 1 Week Free Pass",
        "description": "Access to all Cult.fit gyms and classes for 7 days",
        "brand": "Cult.fit",
        "category": "Health & Wellness",
        "credits_required": 250,
        "is_active": True,
        "is_featured": False,
    },
]


def seed_rewards(storage: Storage) -> int:
    """
    Insert catalog rewards that are not present yet.

    Returns the number of rewards inserted; re-seeding inserts nothing.
    """
    with storage.transaction():
        existing = {(reward.brand, reward.title) for reward in storage.get_rewards()}
        missing = [item for item in REWARD_CATALOG if (item["brand"], item["title"]) not in existing]
        if missing:
            storage.create_rewards(missing)

    logger.info(f"Reward catalog seeded: {len(missing)} inserted, {len(existing)} already present")
    return len(missing)
