"""
Default service catalogue inserted on first startup.
"""

from __future__ import annotations

import logging

from contractor_api.records import SERVICES
from contractor_api.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_SERVICES = (
    {
        "name": "Plumbing Repair",
        "description": "Fix leaks, unclog drains, repair fixtures",
        "category": "plumbing",
        "base_price": 75.0,
        "unit": "per hour",
    },
    {
        "name": "Electrical Work",
        "description": "Wiring, outlet installation, lighting fixtures",
        "category": "electrical",
        "base_price": 85.0,
        "unit": "per hour",
    },
    {
        "name": "Carpentry",
        "description": "Custom woodwork, repairs, installations",
        "category": "carpentry",
        "base_price": 65.0,
        "unit": "per hour",
    },
    {
        "name": "Painting",
        "description": "Interior and exterior painting services",
        "category": "painting",
        "base_price": 45.0,
        "unit": "per hour",
    },
    {
        "name": "Lawn Care",
        "description": "Mowing, trimming, landscaping",
        "category": "landscaping",
        "base_price": 40.0,
        "unit": "per hour",
    },
    {
        "name": "Appliance Repair",
        "description": "Fix washers, dryers, refrigerators, dishwashers",
        "category": "appliance",
        "base_price": 80.0,
        "unit": "per service call",
    },
    {
        "name": "Furniture Assembly",
        "description": "IKEA and other furniture assembly",
        "category": "assembly",
        "base_price": 50.0,
        "unit": "per item",
    },
    {
        "name": "General Handyman",
        "description": "Various small repairs and odd jobs",
        "category": "general",
        "base_price": 55.0,
        "unit": "per hour",
    },
)


def seed_default_services(store: RecordStore) -> int:
    """Insert the default catalogue if no service exists; returns how many were added."""
    if store.count(SERVICES) > 0:
        return 0
    for service in DEFAULT_SERVICES:
        store.create(SERVICES, dict(service))
    logger.info("Seeded %d default services", len(DEFAULT_SERVICES))
    return len(DEFAULT_SERVICES)
