"""Threshold evaluation for energy, carbon and cost alerts.

Alerts are computed on read from the current metric values and are never
persisted, so they always reflect the ledger as of the request.

Severity is derived from percent_of_threshold = current / threshold * 100:
    >= critical_percent (100)  -> CRITICAL
    >= warning_percent  (80)   -> WARNING
    below warning_percent      -> no alert
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Protocol

from ecoai_engine.core.models import MetricType
from ecoai_engine.observability import get_logger

logger = get_logger(__name__)

SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_WARNING = "WARNING"

_SEVERITY_ORDER: dict[str, int] = {SEVERITY_CRITICAL: 0, SEVERITY_WARNING: 1}

_METRIC_TITLES: dict[str, str] = {
    MetricType.AI_USAGE_KWH.value: "AI Energy Usage",
    MetricType.TOTAL_ENERGY_KWH.value: "Total Energy",
    MetricType.CARBON_EMISSION_KG.value: "Carbon Emission",
    MetricType.MONTHLY_COST.value: "Monthly Cost",
}


class ThresholdLike(Protocol):
    id: uuid.UUID
    company_id: uuid.UUID
    metric_type: str
    threshold_value: float
    alert_message: str | None
    active: bool


@dataclass(frozen=True)
class Alert:
    """A threshold that the current value has reached or is approaching."""

    threshold_id: uuid.UUID
    company_id: uuid.UUID
    metric_type: str
    title: str
    message: str
    threshold_value: float
    current_value: float
    percent_of_threshold: float
    severity: str
    triggered_at: datetime


class AlertEvaluator:
    """Evaluate thresholds against current metric values.

    Args:
        warning_percent: Percent of threshold at which a WARNING fires.
        critical_percent: Percent of threshold at which a CRITICAL fires.
    """

    def __init__(self, warning_percent: float = 80.0, critical_percent: float = 100.0) -> None:
        if warning_percent > critical_percent:
            raise ValueError("warning_percent must not exceed critical_percent")
        self._warning = warning_percent
        self._critical = critical_percent

    def severity_for(self, percent_of_threshold: float) -> str | None:
        if percent_of_threshold >= self._critical:
            return SEVERITY_CRITICAL
        if percent_of_threshold >= self._warning:
            return SEVERITY_WARNING
        return None

    def evaluate(
        self,
        thresholds: Iterable[ThresholdLike],
        current_values: Mapping[str, float],
        now: datetime | None = None,
    ) -> list[Alert]:
        """Return alerts for every active threshold at or above the warning level.

        Args:
            thresholds: Configured thresholds; inactive ones are skipped.
            current_values: Current value per metric type (MetricType value).
            now: Timestamp stamped on the alerts (defaults to now, UTC).

        Returns:
            Alerts ordered CRITICAL first, otherwise in threshold order.
        """
        triggered_at = now or datetime.now(timezone.utc)
        alerts: list[Alert] = []

        for threshold in thresholds:
            if not threshold.active or threshold.threshold_value <= 0:
                continue
            current = current_values.get(threshold.metric_type)
            if current is None:
                continue

            percent = current / threshold.threshold_value * 100.0
            severity = self.severity_for(percent)
            if severity is None:
                continue

            exceeded = percent >= self._critical
            status = "Threshold Exceeded" if exceeded else "Approaching Threshold"
            title = f"{_METRIC_TITLES.get(threshold.metric_type, 'Alert')} {status}"
            message = threshold.alert_message or (
                f"Current {threshold.metric_type.replace('_', ' ').lower()} is at "
                f"{percent:.1f}% of the configured threshold."
            )
            alerts.append(
                Alert(
                    threshold_id=threshold.id,
                    company_id=threshold.company_id,
                    metric_type=threshold.metric_type,
                    title=title,
                    message=message,
                    threshold_value=threshold.threshold_value,
                    current_value=current,
                    percent_of_threshold=percent,
                    severity=severity,
                    triggered_at=triggered_at,
                )
            )
            logger.warning(
                "alert_threshold_reached",
                company_id=str(threshold.company_id),
                metric_type=threshold.metric_type,
                severity=severity,
                percent_of_threshold=round(percent, 2),
                current_value=current,
                threshold_value=threshold.threshold_value,
            )

        alerts.sort(key=lambda a: _SEVERITY_ORDER[a.severity])
        return alerts
