# backend/tests/unit/services/test_base_service.py
"""Unit tests for BaseService transaction handling and operation timing."""

import logging
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barberbook.core.exceptions import ServiceException, ValidationException
from barberbook.monitoring.prometheus_metrics import REGISTRY
from barberbook.services.base import BaseService


class SampleService(BaseService):
    @BaseService.measure_operation("do_work")
    def do_work(self, fail: bool = False):
        if fail:
            raise ValidationException("nope")
        return "done"


class TestTransaction:
    def test_commits_on_success(self):
        db = Mock(spec=Session)
        service = BaseService(db)

        with service.transaction():
            pass

        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_database_errors_become_service_exceptions(self):
        db = Mock(spec=Session)
        db.commit.side_effect = SQLAlchemyError("connection lost")
        service = BaseService(db)

        with pytest.raises(ServiceException):
            with service.transaction():
                pass

        db.rollback.assert_called_once()

    def test_domain_errors_propagate_after_rollback(self):
        db = Mock(spec=Session)
        service = BaseService(db)

        with pytest.raises(ValidationException):
            with service.transaction():
                raise ValidationException("bad input")

        db.rollback.assert_called_once()
        db.commit.assert_not_called()


class TestMeasureOperation:
    def test_failures_are_recorded_as_errors(self):
        labels = {"service": "SampleService", "operation": "do_work", "status": "error"}
        before = REGISTRY.get_sample_value("barberbook_service_operation_duration_seconds_count", labels) or 0.0

        with pytest.raises(ValidationException):
            SampleService(Mock(spec=Session)).do_work(fail=True)

        after = REGISTRY.get_sample_value("barberbook_service_operation_duration_seconds_count", labels)
        assert after == before + 1

    def test_feeds_prometheus_histogram(self):
        labels = {"service": "SampleService", "operation": "do_work", "status": "success"}
        before = REGISTRY.get_sample_value("barberbook_service_operation_duration_seconds_count", labels) or 0.0

        SampleService(Mock(spec=Session)).do_work()

        after = REGISTRY.get_sample_value("barberbook_service_operation_duration_seconds_count", labels)
        assert after == before + 1

    def test_slow_operations_are_logged(self, caplog):
        service = SampleService(Mock(spec=Session))

        with patch("barberbook.services.base.settings") as fake_settings:
            fake_settings.slow_operation_threshold_seconds = -1
            fake_settings.metrics_enabled = False
            with caplog.at_level(logging.WARNING):
                service.do_work()

        assert "Slow operation detected: do_work" in caplog.text

    def test_logger_uses_class_name(self):
        assert SampleService(Mock(spec=Session)).logger.name == "SampleService"
