"""Unit tests for AlertEvaluator."""

import uuid
from datetime import datetime, timezone

import pytest

from ecoai_engine.adapters.alert_evaluator import SEVERITY_CRITICAL, SEVERITY_WARNING, AlertEvaluator
from ecoai_engine.core.models import AlertThreshold

from conftest import stamp


def _threshold(metric_type: str, value: float, active: bool = True, message: str | None = None) -> AlertThreshold:
    return stamp(
        AlertThreshold(
            company_id=uuid.UUID(int=1),
            metric_type=metric_type,
            threshold_value=value,
            alert_message=message,
            active=active,
        )
    )


class TestAlertEvaluator:
    """Tests for threshold severity rules."""

    @pytest.fixture
    def evaluator(self) -> AlertEvaluator:
        return AlertEvaluator(warning_percent=80.0, critical_percent=100.0)

    def test_exactly_at_threshold_is_critical(self, evaluator: AlertEvaluator) -> None:
        alerts = evaluator.evaluate([_threshold("AI_USAGE_KWH", 1000.0)], {"AI_USAGE_KWH": 1000.0})

        assert len(alerts) == 1
        assert alerts[0].severity == SEVERITY_CRITICAL
        assert alerts[0].percent_of_threshold == pytest.approx(100.0)
        assert "Exceeded" in alerts[0].title

    def test_just_below_warning_raises_nothing(self, evaluator: AlertEvaluator) -> None:
        alerts = evaluator.evaluate([_threshold("AI_USAGE_KWH", 1000.0)], {"AI_USAGE_KWH": 799.0})
        assert alerts == []

    def test_warning_band(self, evaluator: AlertEvaluator) -> None:
        alerts = evaluator.evaluate([_threshold("MONTHLY_COST", 500.0)], {"MONTHLY_COST": 400.0})

        assert alerts[0].severity == SEVERITY_WARNING
        assert "Approaching" in alerts[0].title

    def test_critical_sorted_before_warning(self, evaluator: AlertEvaluator) -> None:
        thresholds = [
            _threshold("TOTAL_ENERGY_KWH", 1000.0),
            _threshold("CARBON_EMISSION_KG", 100.0),
            _threshold("MONTHLY_COST", 100.0),
        ]
        values = {"TOTAL_ENERGY_KWH": 900.0, "CARBON_EMISSION_KG": 150.0, "MONTHLY_COST": 85.0}
        alerts = evaluator.evaluate(thresholds, values)

        assert [a.metric_type for a in alerts] == ["CARBON_EMISSION_KG", "TOTAL_ENERGY_KWH", "MONTHLY_COST"]
        assert [a.severity for a in alerts] == [SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_WARNING]

    def test_inactive_and_missing_metrics_are_skipped(self, evaluator: AlertEvaluator) -> None:
        thresholds = [_threshold("AI_USAGE_KWH", 10.0, active=False), _threshold("MONTHLY_COST", 10.0)]
        assert evaluator.evaluate(thresholds, {"AI_USAGE_KWH": 100.0}) == []

    def test_custom_message_and_timestamp(self, evaluator: AlertEvaluator) -> None:
        now = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
        alerts = evaluator.evaluate(
            [_threshold("AI_USAGE_KWH", 100.0, message="Slow down the GPUs")],
            {"AI_USAGE_KWH": 120.0},
            now=now,
        )
        assert alerts[0].message == "Slow down the GPUs"
        assert alerts[0].triggered_at == now

    def test_warning_above_critical_rejected(self) -> None:
        with pytest.raises(ValueError):
            AlertEvaluator(warning_percent=110.0, critical_percent=100.0)
