"""Unit tests for TrendForecaster."""

import uuid
from datetime import date

import pytest

from ecoai_engine.adapters.trend_forecaster import TrendBucket, TrendForecaster, add_months

from conftest import make_record


def _bucket(start: date, ai_kwh: float, record_count: int = 1) -> TrendBucket:
    return TrendBucket(
        period=start.strftime("%b %Y"),
        period_start=start,
        total_kwh=ai_kwh / 0.3,
        ai_kwh=ai_kwh,
        co2e_kg=ai_kwh / 0.3 * 0.386,
        ai_co2e_kg=ai_kwh * 0.386,
        cost=ai_kwh / 0.3 * 0.12,
        ai_cost=ai_kwh * 0.12,
        record_count=record_count,
    )


class TestMonthHelpers:
    def test_add_months_crosses_year_boundaries(self) -> None:
        assert add_months(date(2025, 1, 31), -1) == date(2024, 12, 1)
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 1)
        assert add_months(date(2025, 6, 15), 0) == date(2025, 6, 1)


class TestMonthlyTrend:
    """Tests for monthly bucketing."""

    @pytest.fixture
    def forecaster(self) -> TrendForecaster:
        return TrendForecaster()

    def test_buckets_are_oldest_first_with_zero_months(self, forecaster: TrendForecaster) -> None:
        company_id = uuid.uuid4()
        records = [
            make_record(company_id, date(2025, 4, 10), 1000.0),
            make_record(company_id, date(2025, 6, 1), 500.0),
            make_record(company_id, date(2025, 6, 14), 500.0),
        ]
        buckets = forecaster.monthly_trend(records, months=3, as_of=date(2025, 6, 15))

        assert [b.period for b in buckets] == ["Apr 2025", "May 2025", "Jun 2025"]
        assert buckets[0].total_kwh == pytest.approx(1000.0)
        assert buckets[1].record_count == 0
        assert buckets[1].total_kwh == 0.0
        assert buckets[2].ai_kwh == pytest.approx(300.0)
        assert buckets[2].record_count == 2

    def test_records_outside_window_are_ignored(self, forecaster: TrendForecaster) -> None:
        company_id = uuid.uuid4()
        records = [
            make_record(company_id, date(2025, 1, 10), 1000.0),
            make_record(company_id, date(2025, 6, 20), 1000.0),
        ]
        buckets = forecaster.monthly_trend(records, months=2, as_of=date(2025, 6, 15))
        assert sum(b.record_count for b in buckets) == 0

    def test_months_must_be_positive(self, forecaster: TrendForecaster) -> None:
        with pytest.raises(ValueError):
            forecaster.monthly_trend([], months=0, as_of=date(2025, 6, 15))


class TestForecast:
    """Tests for the linear projection."""

    @pytest.fixture
    def forecaster(self) -> TrendForecaster:
        return TrendForecaster(confidence_band=0.15)

    def test_linear_history_extrapolates_exactly(self, forecaster: TrendForecaster) -> None:
        buckets = [_bucket(date(2025, m, 1), 100.0 * m) for m in (1, 2, 3)]
        points = forecaster.forecast(buckets, months_ahead=2)

        assert [p.period for p in points] == ["Apr 2025", "May 2025"]
        assert points[0].predicted_ai_kwh == pytest.approx(400.0)
        assert points[1].predicted_ai_kwh == pytest.approx(500.0)
        assert points[0].predicted_cost == pytest.approx(400.0 * 0.12)
        assert all(p.is_projection for p in points)

    def test_confidence_band_brackets_prediction(self, forecaster: TrendForecaster) -> None:
        buckets = [_bucket(date(2025, m, 1), v) for m, v in ((1, 120.0), (2, 90.0), (3, 150.0), (4, 130.0))]
        for point in forecaster.forecast(buckets, months_ahead=3):
            assert point.confidence_low == point.predicted_ai_kwh * 0.85
            assert point.confidence_high == point.predicted_ai_kwh * 1.15
            assert point.confidence_low <= point.predicted_ai_kwh <= point.confidence_high

    def test_fewer_than_two_history_months_returns_empty(self, forecaster: TrendForecaster) -> None:
        buckets = [
            _bucket(date(2025, 1, 1), 0.0, record_count=0),
            _bucket(date(2025, 2, 1), 0.0, record_count=0),
            _bucket(date(2025, 3, 1), 300.0),
        ]
        assert forecaster.forecast(buckets, months_ahead=3) == []
        assert forecaster.forecast([], months_ahead=3) == []

    def test_leading_empty_months_are_not_history(self, forecaster: TrendForecaster) -> None:
        buckets = [
            _bucket(date(2025, 1, 1), 0.0, record_count=0),
            _bucket(date(2025, 2, 1), 200.0),
            _bucket(date(2025, 3, 1), 200.0),
        ]
        points = forecaster.forecast(buckets, months_ahead=1)
        assert points[0].predicted_ai_kwh == pytest.approx(200.0)

    def test_declining_trend_is_floored_at_zero(self, forecaster: TrendForecaster) -> None:
        buckets = [_bucket(date(2025, m, 1), v) for m, v in ((1, 300.0), (2, 150.0), (3, 10.0))]
        points = forecaster.forecast(buckets, months_ahead=6)
        assert all(p.predicted_ai_kwh >= 0.0 for p in points)
        assert points[-1].predicted_ai_kwh == 0.0
        assert points[-1].confidence_high == 0.0

    def test_invalid_band_rejected(self) -> None:
        with pytest.raises(ValueError):
            TrendForecaster(confidence_band=1.5)
