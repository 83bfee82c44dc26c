"""Pydantic schemas for tenant pricing rules.

Rules are stored as JSON under the ``pricing_rules`` tenant setting using
camelCase keys (``peakHours``, ``offPeakMultiplier``, ``shopIds`` ...).
Unknown keys are ignored so older documents keep loading.
"""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _RuleModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True
    )


class PercentOrAmount(_RuleModel):
    type: Literal["percent", "amount"]
    value: float = 0.0


class PeakHourRule(_RuleModel):
    weekday: Optional[int] = Field(None, ge=0, le=6, description="0=Sunday .. 6=Saturday")
    start: Optional[str] = Field(None, description="Range start HH:mm, defaults to 00:00")
    end: Optional[str] = Field(None, description="Range end HH:mm, defaults to 24:00")
    multiplier: float = 1.0


class CampaignRule(PercentOrAmount):
    id: str
    active: bool = True
    shop_ids: Optional[List[str]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "CampaignRule":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Campaign endDate must not precede startDate")
        return self


class CouponRule(PercentOrAmount):
    code: str
    active: bool = True
    # Stored for reporting; usage limits are not enforced at booking time
    max_usage_per_customer: Optional[int] = Field(None, ge=0)


class SegmentRule(PercentOrAmount):
    segment: str


class PricingRules(_RuleModel):
    peak_hours: List[PeakHourRule] = Field(default_factory=list)
    off_peak_multiplier: Optional[float] = None
    campaigns: List[CampaignRule] = Field(default_factory=list)
    coupons: List[CouponRule] = Field(default_factory=list)
    segments: List[SegmentRule] = Field(default_factory=list)


class PricingContext(BaseModel):
    """Optional client-supplied pricing hints."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True
    )

    campaign_id: Optional[str] = None
    coupon_code: Optional[str] = None
    customer_segment: Optional[str] = None
