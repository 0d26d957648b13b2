"""Tests de validación de payloads de telemetría y de reglas de alerta."""

import math
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from telemetry_ingest.core.validation.payload_validator import validate_telemetry
from telemetry_ingest.core.validation.rule_validator import AlertRuleIn


class TestValidateTelemetry:
    def test_full_payload(self):
        result = validate_telemetry(
            {"deviceId": "d1", "temperature": 21.43, "humidity": 48.2, "timestamp": 1767225600000}
        )

        assert result.valid
        assert result.payload.device_id == "d1"
        assert result.payload.humidity == 48.2

    def test_optional_fields(self):
        result = validate_telemetry({"deviceId": "d1", "temperature": 21})

        assert result.valid
        assert result.payload.humidity is None
        assert result.payload.timestamp is None

    def test_snake_case_device_id_warns(self):
        result = validate_telemetry({"device_id": "d1", "temperature": 21})

        assert result.valid
        assert result.warnings

    @pytest.mark.parametrize(
        "data",
        [
            {"temperature": 21},
            {"deviceId": "", "temperature": 21},
            {"deviceId": "d1"},
            {"deviceId": "d1", "temperature": "21"},
            {"deviceId": "d1", "temperature": True},
            {"deviceId": "d1", "temperature": math.nan},
            {"deviceId": "d1", "temperature": 21, "humidity": "wet"},
            {"deviceId": "d1", "temperature": 21, "timestamp": -5},
        ],
    )
    def test_invalid_payloads(self, data):
        result = validate_telemetry(data)

        assert not result.valid
        assert result.error

    def test_non_object(self):
        assert not validate_telemetry([1, 2, 3]).valid

    def test_error_names_field(self):
        result = validate_telemetry({"temperature": 21})

        assert "deviceId" in result.error


class TestAlertRuleIn:
    def _base(self, **fields):
        data = {"deviceId": "d1", "type": "temperature", "maxThreshold": 25, "emails": ["a@b.co"]}
        data.update(fields)
        return data

    def test_accepts_camel_case(self):
        rule = AlertRuleIn.model_validate(
            self._base(startTime="22:00", endTime="06:00", daysOfWeek=[5, 1, 1])
        )

        assert rule.device_id == "d1"
        assert rule.days_of_week == [1, 5]

    def test_requires_a_threshold(self):
        with pytest.raises(ValidationError, match="At least one threshold"):
            AlertRuleIn.model_validate(self._base(maxThreshold=None))

    def test_min_below_max(self):
        with pytest.raises(ValidationError, match="less than maximum"):
            AlertRuleIn.model_validate(self._base(minThreshold=30))

    def test_time_format(self):
        with pytest.raises(ValidationError, match="HH:MM"):
            AlertRuleIn.model_validate(self._base(startTime="24:00"))

    def test_days_out_of_range(self):
        with pytest.raises(ValidationError, match="Days of week"):
            AlertRuleIn.model_validate(self._base(daysOfWeek=[7]))

    def test_invalid_email(self):
        with pytest.raises(ValidationError, match="valid email"):
            AlertRuleIn.model_validate(self._base(emails=["nope"]))

    @pytest.mark.parametrize("email", ["a@b..c", "a@.b.c", "a@b.c.", "a@-b.c"])
    def test_malformed_domain_rejected(self, email):
        """Dominios con etiquetas vacías o guiones al borde no son válidos."""
        with pytest.raises(ValidationError, match="valid email"):
            AlertRuleIn.model_validate(self._base(emails=["ops@example.com", email]))

    def test_emails_are_stripped(self):
        rule = AlertRuleIn.model_validate(self._base(emails=["  ops@example.com "]))

        assert rule.emails == ["ops@example.com"]

    def test_emails_required(self):
        with pytest.raises(ValidationError):
            AlertRuleIn.model_validate(self._base(emails=[]))

    def test_date_range_order(self):
        with pytest.raises(ValidationError, match="Start date"):
            AlertRuleIn.model_validate(
                self._base(startDate="2026-03-05T00:00:00Z", endDate="2026-03-01T00:00:00Z")
            )

    def test_naive_dates_become_utc(self):
        rule = AlertRuleIn.model_validate(self._base(startDate="2026-03-05T00:00:00"))

        assert rule.start_date == datetime(2026, 3, 5, tzinfo=timezone.utc)
