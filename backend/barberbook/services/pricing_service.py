# backend/barberbook/services/pricing_service.py
"""
Dynamic pricing for bookings.

Starting from the sum of catalog prices, the tenant's pricing rules are
applied in a fixed order, each stage working on the running total:

1. Peak/off-peak multiplier
2. Campaign adjustment
3. Coupon adjustment
4. Customer segment adjustment

All amounts are Decimals rounded half-up to two places. A missing or
unreadable rule document leaves the base total unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
import math
from typing import Any, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants.booking_defaults import MINUTES_PER_DAY
from ..core.exceptions import RepositoryException
from ..schemas.pricing_rules import PeakHourRule, PercentOrAmount, PricingContext, PricingRules
from ..utils.time_utils import to_minutes
from .base import BaseService
from .config_service import TenantConfigService
from .working_hours import weekday_index

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


@dataclass(frozen=True)
class AppliedAdjustments:
    peak_multiplier: Optional[Decimal] = None
    campaign_id: Optional[str] = None
    coupon_code: Optional[str] = None
    segment: Optional[str] = None


@dataclass(frozen=True)
class PricingResult:
    base_total: Decimal
    final_total: Decimal
    applied: AppliedAdjustments = field(default_factory=AppliedAdjustments)

    def matches(self, expected: Decimal, tolerance: Decimal) -> bool:
        return abs(Decimal(expected) - self.final_total) <= tolerance


def apply_adjustment(current: Decimal, adjustment: PercentOrAmount) -> Decimal:
    """Apply a percent or amount discount; non-positive values change nothing."""
    value = _to_decimal(adjustment.value)
    if value is None or value <= 0:
        return current
    if adjustment.type == "percent":
        return max(ZERO, round2(current * (1 - value / 100)))
    return max(ZERO, round2(current - value))


def rule_covers(rule: PeakHourRule, start_min: int, end_min: int) -> bool:
    range_start = to_minutes(rule.start) if rule.start else 0
    range_end = to_minutes(rule.end) if rule.end else MINUTES_PER_DAY
    return start_min >= range_start and end_min <= range_end


def _peak_multiplier(
    rules: PricingRules, weekday: int, start_min: int, end_min: int
) -> Optional[Decimal]:
    for rule in rules.peak_hours:
        if rule.weekday is not None and rule.weekday != weekday:
            continue
        multiplier = _to_decimal(rule.multiplier)
        # Identity rules never claim the slot, so off-peak can still apply
        if multiplier is None or multiplier == 1:
            continue
        if rule_covers(rule, start_min, end_min):
            return multiplier
    off_peak = _to_decimal(rules.off_peak_multiplier) if rules.off_peak_multiplier else None
    if off_peak is not None and off_peak != 1:
        return off_peak
    return None


def _find(items: Iterable[Any], predicate) -> Optional[Any]:
    return next((item for item in items if predicate(item)), None)


def apply_pricing_rules(
    rules: Optional[PricingRules],
    shop_id: str,
    booking_date: date,
    start_min: int,
    end_min: int,
    base_total: Decimal,
    context: Optional[PricingContext] = None,
) -> PricingResult:
    """Pure pricing computation; identical inputs always give identical output."""
    base = round2(Decimal(base_total))
    if rules is None:
        return PricingResult(base_total=base, final_total=base)

    final = base
    peak_multiplier = _peak_multiplier(rules, weekday_index(booking_date), start_min, end_min)
    if peak_multiplier is not None:
        final = round2(final * peak_multiplier)

    campaign_id = coupon_code = segment = None
    context = context or PricingContext()

    if context.campaign_id:
        campaign = _find(
            rules.campaigns, lambda c: c.id == context.campaign_id and c.active
        )
        if (
            campaign is not None
            and (campaign.shop_ids is None or shop_id in campaign.shop_ids)
            and (campaign.start_date is None or booking_date >= campaign.start_date)
            and (campaign.end_date is None or booking_date <= campaign.end_date)
        ):
            final = apply_adjustment(final, campaign)
            campaign_id = campaign.id

    if context.coupon_code:
        coupon = _find(rules.coupons, lambda c: c.code == context.coupon_code and c.active)
        if coupon is not None:
            final = apply_adjustment(final, coupon)
            coupon_code = coupon.code

    if context.customer_segment:
        segment_rule = _find(rules.segments, lambda s: s.segment == context.customer_segment)
        if segment_rule is not None:
            final = apply_adjustment(final, segment_rule)
            segment = segment_rule.segment

    return PricingResult(
        base_total=base,
        final_total=round2(final),
        applied=AppliedAdjustments(
            peak_multiplier=peak_multiplier,
            campaign_id=campaign_id,
            coupon_code=coupon_code,
            segment=segment,
        ),
    )


class PricingService(BaseService):
    """Computes booking prices from tenant pricing rules."""

    def __init__(self, db: Session, config_service: Optional[TenantConfigService] = None) -> None:
        super().__init__(db)
        self.config_service = config_service or TenantConfigService(db)

    def _load_rules(self, tenant_id: str) -> Optional[PricingRules]:
        try:
            return self.config_service.get_pricing_rules(tenant_id)
        except (ValidationError, RepositoryException, SQLAlchemyError, TypeError, ValueError) as exc:
            # Pricing never blocks a booking on a configuration problem
            self.logger.warning(
                f"Pricing rules unavailable for tenant {tenant_id}, using base price: {exc}"
            )
            return None

    @BaseService.measure_operation("compute_dynamic_pricing")
    def compute_dynamic_pricing(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_min: int,
        end_min: int,
        base_total: Decimal,
        context: Optional[PricingContext] = None,
    ) -> PricingResult:
        """
        Price a booking interval.

        Args:
            tenant_id: Tenant whose rules apply
            shop_id: Shop the booking is at (for shop-restricted campaigns)
            booking_date: Shop-local calendar date
            start_min: Interval start, minutes since midnight
            end_min: Interval end, minutes since midnight
            base_total: Sum of catalog prices
            context: Optional campaign, coupon and segment hints

        Returns:
            PricingResult with the final total and the adjustments applied
        """
        rules = self._load_rules(tenant_id)
        result = apply_pricing_rules(
            rules, shop_id, booking_date, start_min, end_min, base_total, context
        )
        if result.final_total != result.base_total:
            self.logger.debug(
                f"Adjusted price for tenant {tenant_id}: {result.base_total} -> "
                f"{result.final_total} ({result.applied})"
            )
        return result
