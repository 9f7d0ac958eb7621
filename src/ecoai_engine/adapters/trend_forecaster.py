"""TrendForecaster adapter for monthly energy trends and forward projection.

Buckets ledger records into calendar months and projects AI energy, AI
emissions and AI cost forward with a least-squares linear fit over the
historical buckets. Every projected point carries a symmetric confidence
band around the predicted AI kWh.

The forecaster is a pure computation adapter: it receives records that
were already fetched by the service layer and never touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

from ecoai_engine.observability import get_logger

logger = get_logger(__name__)

# Minimum non-empty months required before extrapolating
MIN_BUCKETS_FOR_FORECAST: int = 2

DEFAULT_CONFIDENCE_BAND: float = 0.15

PERIOD_LABEL_FORMAT = "%b %Y"


class LedgerEntry(Protocol):
    """The record fields the forecaster reads."""

    usage_date: date
    total_kwh: float
    ai_attributed_kwh: float
    co2e_kg: float
    ai_co2e_kg: float
    cost: float
    ai_cost: float


@dataclass(frozen=True)
class TrendBucket:
    """Aggregated usage for one calendar month."""

    period: str
    period_start: date
    total_kwh: float
    ai_kwh: float
    co2e_kg: float
    ai_co2e_kg: float
    cost: float
    ai_cost: float
    record_count: int


@dataclass(frozen=True)
class ForecastPoint:
    """Projected AI usage for one future month.

    confidence_low / confidence_high bracket predicted_ai_kwh.
    """

    period: str
    period_start: date
    predicted_ai_kwh: float
    predicted_co2e_kg: float
    predicted_cost: float
    confidence_low: float
    confidence_high: float
    is_projection: bool = True


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """First day of the month `months` away from `day`'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _linear_regression(x_values: list[int], y_values: list[float]) -> tuple[float, float]:
    """Least-squares slope and intercept."""
    n = len(x_values)
    if n < 2:
        return 0.0, y_values[0] if y_values else 0.0

    sum_x = sum(x_values)
    sum_y = sum(y_values)
    sum_xy = sum(x * y for x, y in zip(x_values, y_values))
    sum_x2 = sum(x ** 2 for x in x_values)

    denom = n * sum_x2 - sum_x ** 2
    if denom == 0:
        return 0.0, sum_y / n

    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


class TrendForecaster:
    """Monthly trend aggregation and linear projection.

    Args:
        confidence_band: Half-width of the confidence band as a fraction of
            the predicted value (0.15 gives predicted * 0.85 .. * 1.15).
    """

    def __init__(self, confidence_band: float = DEFAULT_CONFIDENCE_BAND) -> None:
        if not 0.0 <= confidence_band < 1.0:
            raise ValueError("confidence_band must be in [0, 1)")
        self._low_factor = 1.0 - confidence_band
        self._high_factor = 1.0 + confidence_band

    def monthly_trend(
        self,
        records: Iterable[LedgerEntry],
        months: int,
        as_of: date,
    ) -> list[TrendBucket]:
        """Aggregate records into `months` trailing calendar months.

        The last bucket is the month containing `as_of`. Months without
        records are returned as zero buckets. Records outside the window
        are ignored.

        Args:
            records: Ledger records, any order.
            months: Number of buckets (>= 1).
            as_of: Reference date.

        Returns:
            Buckets ordered oldest first.
        """
        if months < 1:
            raise ValueError("months must be >= 1")

        first = add_months(as_of, -(months - 1))
        starts = [add_months(first, i) for i in range(months)]
        sums: dict[date, list[float]] = {start: [0.0] * 7 for start in starts}

        for record in records:
            key = month_start(record.usage_date)
            if key not in sums or record.usage_date > as_of:
                continue
            acc = sums[key]
            acc[0] += record.total_kwh
            acc[1] += record.ai_attributed_kwh
            acc[2] += record.co2e_kg
            acc[3] += record.ai_co2e_kg
            acc[4] += record.cost
            acc[5] += record.ai_cost
            acc[6] += 1

        return [
            TrendBucket(
                period=start.strftime(PERIOD_LABEL_FORMAT),
                period_start=start,
                total_kwh=sums[start][0],
                ai_kwh=sums[start][1],
                co2e_kg=sums[start][2],
                ai_co2e_kg=sums[start][3],
                cost=sums[start][4],
                ai_cost=sums[start][5],
                record_count=int(sums[start][6]),
            )
            for start in starts
        ]

    def forecast(self, buckets: list[TrendBucket], months_ahead: int) -> list[ForecastPoint]:
        """Project the next `months_ahead` months from historical buckets.

        History starts at the first bucket that has any records; leading
        empty months are months before tracking began, not zero usage.
        With fewer than two historical buckets no forecast is produced.

        Args:
            buckets: Monthly buckets, oldest first (output of monthly_trend).
            months_ahead: Number of future months to project.

        Returns:
            One ForecastPoint per future month, or [] on insufficient data.
        """
        if months_ahead < 1:
            return []

        first_active = next((i for i, b in enumerate(buckets) if b.record_count > 0), None)
        history = buckets[first_active:] if first_active is not None else []

        if len(history) < MIN_BUCKETS_FOR_FORECAST:
            logger.info(
                "forecast_skipped_insufficient_history",
                history_months=len(history),
                min_required=MIN_BUCKETS_FOR_FORECAST,
            )
            return []

        x_values = list(range(len(history)))
        fits = {
            "ai_kwh": _linear_regression(x_values, [b.ai_kwh for b in history]),
            "ai_co2e_kg": _linear_regression(x_values, [b.ai_co2e_kg for b in history]),
            "ai_cost": _linear_regression(x_values, [b.ai_cost for b in history]),
        }

        def project(metric: str, x: int) -> float:
            slope, intercept = fits[metric]
            return max(0.0, intercept + slope * x)

        last_start = history[-1].period_start
        points: list[ForecastPoint] = []
        for offset in range(1, months_ahead + 1):
            x = len(history) - 1 + offset
            predicted_kwh = project("ai_kwh", x)
            start = add_months(last_start, offset)
            points.append(
                ForecastPoint(
                    period=start.strftime(PERIOD_LABEL_FORMAT),
                    period_start=start,
                    predicted_ai_kwh=predicted_kwh,
                    predicted_co2e_kg=project("ai_co2e_kg", x),
                    predicted_cost=project("ai_cost", x),
                    confidence_low=predicted_kwh * self._low_factor,
                    confidence_high=predicted_kwh * self._high_factor,
                )
            )

        logger.info(
            "forecast_generated",
            history_months=len(history),
            months_ahead=months_ahead,
            ai_kwh_slope=round(fits["ai_kwh"][0], 4),
        )
        return points
