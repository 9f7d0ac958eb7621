"""What-if scenario simulation.

Each scenario is a pure transform of a baseline (AI kWh, AI CO2e, AI cost
over the trailing window):

  GROWTH         projected_kwh = baseline_kwh * (1 + growth_percent / 100)
  EFFICIENCY     projected_kwh = baseline_kwh * (1 - efficiency_percent / 100)
  REGION_CHANGE  kWh and cost unchanged; CO2e recomputed at the target intensity

Growth and efficiency scale CO2e and cost by the same factor as energy.
percent_change refers to the scenario's driver metric: AI kWh for growth
and efficiency, CO2e for region change.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from ecoai_engine.core.models import SimulationType
from ecoai_engine.errors import ValidationError
from ecoai_engine.observability import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Baseline:
    ai_kwh: float
    co2e_kg: float
    cost: float


@dataclass(frozen=True)
class SimulationResult:
    """Before/after comparison for one scenario."""

    simulation_type: str
    description: str
    baseline_ai_kwh: float
    baseline_co2e_kg: float
    baseline_cost: float
    projected_ai_kwh: float
    projected_co2e_kg: float
    projected_cost: float
    energy_delta_kwh: float
    carbon_delta_kg: float
    cost_delta: float
    percent_change: float
    parameters: dict[str, Any] = field(default_factory=dict)

    def baseline_values(self) -> dict[str, float]:
        return {
            "ai_kwh": self.baseline_ai_kwh,
            "co2e_kg": self.baseline_co2e_kg,
            "cost": self.baseline_cost,
        }

    def projected_values(self) -> dict[str, float]:
        return {
            "ai_kwh": self.projected_ai_kwh,
            "co2e_kg": self.projected_co2e_kg,
            "cost": self.projected_cost,
        }


def _validate_percent(value: float, field_name: str, maximum: float | None = None) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative number", field=field_name, value=value)
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field_name} must be <= {maximum:g}", field=field_name, value=value)


def _relative_change(baseline: float, projected: float) -> float:
    if baseline == 0:
        return 0.0
    return (projected - baseline) / baseline * 100.0


def _build(
    simulation_type: SimulationType,
    description: str,
    baseline: Baseline,
    projected: Baseline,
    percent_change: float,
    parameters: dict[str, Any],
) -> SimulationResult:
    result = SimulationResult(
        simulation_type=simulation_type.value,
        description=description,
        baseline_ai_kwh=baseline.ai_kwh,
        baseline_co2e_kg=baseline.co2e_kg,
        baseline_cost=baseline.cost,
        projected_ai_kwh=projected.ai_kwh,
        projected_co2e_kg=projected.co2e_kg,
        projected_cost=projected.cost,
        energy_delta_kwh=projected.ai_kwh - baseline.ai_kwh,
        carbon_delta_kg=projected.co2e_kg - baseline.co2e_kg,
        cost_delta=projected.cost - baseline.cost,
        percent_change=percent_change,
        parameters=parameters,
    )
    logger.info(
        "simulation_completed",
        simulation_type=result.simulation_type,
        percent_change=round(result.percent_change, 4),
        carbon_delta_kg=round(result.carbon_delta_kg, 4),
    )
    return result


def _scaled(baseline: Baseline, factor: float) -> Baseline:
    return Baseline(
        ai_kwh=baseline.ai_kwh * factor,
        co2e_kg=baseline.co2e_kg * factor,
        cost=baseline.cost * factor,
    )


class ScenarioSimulator:
    """Stateless what-if calculator."""

    def simulate_growth(
        self,
        baseline: Baseline,
        growth_percent: float,
        months_ahead: int,
    ) -> SimulationResult:
        """Project AI usage after `growth_percent` growth.

        The result is the single end state at the horizon; months_ahead
        labels the horizon and is not compounded.

        Raises:
            ValidationError: If growth_percent is negative or months_ahead < 1.
        """
        _validate_percent(growth_percent, "growth_percent")
        if months_ahead < 1:
            raise ValidationError("months_ahead must be >= 1", field="months_ahead", value=months_ahead)

        projected = _scaled(baseline, 1.0 + growth_percent / 100.0)
        return _build(
            SimulationType.GROWTH,
            f"AI Growth Simulation ({growth_percent:g}% over {months_ahead} months)",
            baseline,
            projected,
            _relative_change(baseline.ai_kwh, projected.ai_kwh),
            {"growth_percent": growth_percent, "months_ahead": months_ahead},
        )

    def simulate_efficiency(self, baseline: Baseline, efficiency_percent: float) -> SimulationResult:
        """Project AI usage after an efficiency gain of `efficiency_percent`.

        Raises:
            ValidationError: If efficiency_percent is outside [0, 100].
        """
        _validate_percent(efficiency_percent, "efficiency_percent", maximum=100.0)

        projected = _scaled(baseline, 1.0 - efficiency_percent / 100.0)
        return _build(
            SimulationType.EFFICIENCY,
            f"Efficiency Improvement Simulation ({efficiency_percent:g}% reduction)",
            baseline,
            projected,
            _relative_change(baseline.ai_kwh, projected.ai_kwh),
            {"efficiency_percent": efficiency_percent},
        )

    def simulate_region_change(
        self,
        baseline: Baseline,
        to_region: str,
        to_label: str,
        to_intensity_g_per_kwh: float,
        from_region: str | None = None,
        from_label: str | None = None,
        from_intensity_g_per_kwh: float | None = None,
    ) -> SimulationResult:
        """Recompute emissions as if the baseline energy ran in `to_region`.

        When a source region is given, the baseline CO2e is recomputed at
        the source intensity; otherwise the recorded baseline CO2e is used.
        """
        if from_intensity_g_per_kwh is not None:
            baseline = Baseline(
                ai_kwh=baseline.ai_kwh,
                co2e_kg=baseline.ai_kwh * from_intensity_g_per_kwh / 1000.0,
                cost=baseline.cost,
            )
        projected = Baseline(
            ai_kwh=baseline.ai_kwh,
            co2e_kg=baseline.ai_kwh * to_intensity_g_per_kwh / 1000.0,
            cost=baseline.cost,
        )

        source = from_label or "Current mix"
        source_intensity = (
            f"{from_intensity_g_per_kwh:.0f}" if from_intensity_g_per_kwh is not None else "recorded"
        )
        description = (
            f"Region Change: {source} -> {to_label} "
            f"(Carbon intensity: {source_intensity} -> {to_intensity_g_per_kwh:.0f} gCO2/kWh)"
        )
        return _build(
            SimulationType.REGION_CHANGE,
            description,
            baseline,
            projected,
            _relative_change(baseline.co2e_kg, projected.co2e_kg),
            {"from_region": from_region, "to_region": to_region},
        )
