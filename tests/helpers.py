"""
Values shared by fixtures and test modules.
"""

from datetime import datetime, timezone

# Fixed "now" so audit stamps can be asserted exactly
FIXED_NOW = datetime(2024, 5, 17, 12, 30, tzinfo=timezone.utc)
ACTOR_ID = 7


def fixed_clock() -> datetime:
    return FIXED_NOW
