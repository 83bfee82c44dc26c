"""Default booking configuration values used when a tenant has no override."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

MIN_LEAD_MINUTES_KEY = "booking_min_lead_minutes"
STATUS_GRACE_MINUTES_KEY = "booking_status_grace_minutes"
PRICING_RULES_KEY = "pricing_rules"

BOOKING_SETTING_DEFAULTS: Dict[str, Any] = {
    MIN_LEAD_MINUTES_KEY: 30,
    STATUS_GRACE_MINUTES_KEY: 15,
    # None means identity pricing
    PRICING_RULES_KEY: None,
}

# Opening window applied when a shop has no working-hours rows for the weekday
DEFAULT_OPEN_MINUTES = 9 * 60
DEFAULT_CLOSE_MINUTES = 18 * 60

MINUTES_PER_DAY = 24 * 60

PRICE_TOLERANCE = Decimal("0.01")
