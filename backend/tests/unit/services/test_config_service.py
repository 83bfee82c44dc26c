# backend/tests/unit/services/test_config_service.py
import math

import pytest
from pydantic import ValidationError

from barberbook.constants.booking_defaults import (
    MIN_LEAD_MINUTES_KEY,
    PRICING_RULES_KEY,
    STATUS_GRACE_MINUTES_KEY,
)
from barberbook.models import TenantSetting
from barberbook.services.config_service import TenantConfigService
from tests.factories.booking_builders import OTHER_TENANT_ID, TENANT_ID, set_tenant_setting


@pytest.fixture
def config(db):
    return TenantConfigService(db)


class TestDefaults:
    def test_lead_and_grace_defaults(self, config):
        assert config.get_min_lead_minutes(TENANT_ID) == 30
        assert config.get_status_grace_minutes(TENANT_ID) == 15

    def test_pricing_rules_default_to_identity(self, config):
        assert config.get_pricing_rules(TENANT_ID) is None


class TestOverrides:
    def test_raw_number(self, db, config):
        set_tenant_setting(db, MIN_LEAD_MINUTES_KEY, 45)
        assert config.get_min_lead_minutes(TENANT_ID) == 45

    def test_value_object(self, db, config):
        set_tenant_setting(db, STATUS_GRACE_MINUTES_KEY, {"value": 5})
        assert config.get_status_grace_minutes(TENANT_ID) == 5

    def test_fractional_values_are_floored(self, db, config):
        set_tenant_setting(db, MIN_LEAD_MINUTES_KEY, 12.9)
        assert config.get_min_lead_minutes(TENANT_ID) == 12

    def test_zero_grace_is_allowed(self, db, config):
        set_tenant_setting(db, STATUS_GRACE_MINUTES_KEY, 0)
        assert config.get_status_grace_minutes(TENANT_ID) == 0

    @pytest.mark.parametrize("value", [0, -5, "sixty", True, None, {"value": "x"}])
    def test_invalid_lead_time_falls_back(self, db, config, value):
        set_tenant_setting(db, MIN_LEAD_MINUTES_KEY, value)
        assert config.get_min_lead_minutes(TENANT_ID) == 30

    def test_negative_grace_falls_back(self, db, config):
        set_tenant_setting(db, STATUS_GRACE_MINUTES_KEY, -1)
        assert config.get_status_grace_minutes(TENANT_ID) == 15

    def test_settings_are_tenant_scoped(self, db, config):
        set_tenant_setting(db, MIN_LEAD_MINUTES_KEY, 90, tenant_id=OTHER_TENANT_ID)
        assert config.get_min_lead_minutes(TENANT_ID) == 30
        assert config.get_min_lead_minutes(OTHER_TENANT_ID) == 90


class TestPricingRules:
    def test_parses_camel_case_document(self, db, config):
        set_tenant_setting(
            db, PRICING_RULES_KEY, {"peakHours": [{"weekday": 5, "multiplier": 1.25}], "offPeakMultiplier": 0.9}
        )

        rules = config.get_pricing_rules(TENANT_ID)

        assert rules.peak_hours[0].weekday == 5
        assert math.isclose(rules.off_peak_multiplier, 0.9)

    def test_non_object_document_is_identity(self, db, config):
        set_tenant_setting(db, PRICING_RULES_KEY, ["not", "rules"])
        assert config.get_pricing_rules(TENANT_ID) is None

    def test_malformed_document_raises(self, db, config):
        set_tenant_setting(db, PRICING_RULES_KEY, {"coupons": [{"code": "X", "type": "bogus"}]})
        with pytest.raises(ValidationError):
            config.get_pricing_rules(TENANT_ID)


class TestSetSetting:
    def test_upsert_creates_and_updates(self, db, config):
        config.set_setting(TENANT_ID, MIN_LEAD_MINUTES_KEY, 20)
        config.set_setting(TENANT_ID, MIN_LEAD_MINUTES_KEY, 25)

        records = db.query(TenantSetting).filter_by(tenant_id=TENANT_ID).all()
        assert len(records) == 1
        assert config.get_min_lead_minutes(TENANT_ID) == 25

    def test_pricing_rules_are_validated_and_normalized(self, config):
        stored = config.set_setting(
            TENANT_ID, PRICING_RULES_KEY, {"peak_hours": [{"multiplier": 1.1}]}
        )

        assert stored == {"peakHours": [{"multiplier": 1.1}], "campaigns": [], "coupons": [], "segments": []}

    def test_invalid_pricing_rules_are_not_stored(self, db, config):
        with pytest.raises(ValidationError):
            config.set_setting(TENANT_ID, PRICING_RULES_KEY, {"peakHours": [{"weekday": 7}]})

        assert db.query(TenantSetting).count() == 0
