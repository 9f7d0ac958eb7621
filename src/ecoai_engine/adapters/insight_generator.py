"""Optimization insight generation.

Derives ranked recommendations from a company's recent ledger records.
Each heuristic fires only when the data supports it, and every insight
carries a quantified impact (value + unit) next to its prose.

Heuristics:
  REGION        AI load concentrated in high-intensity grids with a cleaner region available
  BATCHING      many small records, i.e. AI work spread thinly across runs
  EFFICIENCY    observed AI share well above the company baseline
  SCHEDULING    high AI energy in the current month
  CARBON_BUDGET emissions tracked but no carbon threshold configured
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ecoai_engine.core.regions import RegionRegistry
from ecoai_engine.observability import get_logger

logger = get_logger(__name__)

PRIORITY_HIGH = "HIGH"
PRIORITY_MEDIUM = "MEDIUM"
PRIORITY_LOW = "LOW"

_PRIORITY_RANK: dict[str, int] = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 1, PRIORITY_LOW: 2}


class InsightEntry(Protocol):
    total_kwh: float
    ai_attributed_kwh: float
    co2e_kg: float
    ai_cost: float
    carbon_intensity_used: float


@dataclass(frozen=True)
class Insight:
    category: str
    priority: str
    title: str
    description: str
    impact: str
    impact_value: float
    impact_unit: str
    actionable: str | None = None


@dataclass(frozen=True)
class InsightContext:
    """Inputs for insight generation.

    Attributes:
        records: Records in the analysis window.
        base_ai_percentage: Company baseline AI share (0.0–1.0).
        current_month_ai_kwh: AI kWh in the current calendar month.
        currency: Company currency code for cost impacts.
        has_carbon_threshold: Whether an active CARBON_EMISSION_KG threshold exists.
    """

    records: Sequence[InsightEntry]
    base_ai_percentage: float
    current_month_ai_kwh: float
    currency: str
    has_carbon_threshold: bool


class InsightGenerator:
    """Heuristic recommendation engine.

    Args:
        registry: Region defaults, used to find the cleanest alternative.
        high_intensity_g_per_kwh: Intensity at or above which a grid is "high".
        region_share_percent: Minimum share of AI kWh in high grids for a REGION insight.
        batching_min_records: Minimum record count for a BATCHING insight.
        batching_small_record_kwh: Mean AI kWh per record below which records count as small.
        efficiency_excess_points: Percentage points above baseline for an EFFICIENCY insight.
        efficiency_reduction_fraction: Assumed achievable AI kWh reduction.
        scheduling_monthly_ai_kwh: Current-month AI kWh above which SCHEDULING fires.
    """

    def __init__(
        self,
        registry: RegionRegistry,
        high_intensity_g_per_kwh: float = 450.0,
        region_share_percent: float = 25.0,
        batching_min_records: int = 20,
        batching_small_record_kwh: float = 50.0,
        efficiency_excess_points: float = 10.0,
        efficiency_reduction_fraction: float = 0.15,
        scheduling_monthly_ai_kwh: float = 5000.0,
    ) -> None:
        self._registry = registry
        self._high_intensity = high_intensity_g_per_kwh
        self._region_share = region_share_percent
        self._batching_min_records = batching_min_records
        self._batching_small_kwh = batching_small_record_kwh
        self._efficiency_excess = efficiency_excess_points
        self._efficiency_reduction = efficiency_reduction_fraction
        self._scheduling_kwh = scheduling_monthly_ai_kwh

    def generate(self, context: InsightContext) -> list[Insight]:
        """Run every heuristic and return insights ranked HIGH > MEDIUM > LOW."""
        candidates = [
            self._region_insight(context),
            self._batching_insight(context),
            self._efficiency_insight(context),
            self._scheduling_insight(context),
            self._carbon_budget_insight(context),
        ]
        insights = [i for i in candidates if i is not None]
        insights.sort(key=lambda i: _PRIORITY_RANK[i.priority])

        logger.info(
            "insights_generated",
            record_count=len(context.records),
            insight_count=len(insights),
            categories=[i.category for i in insights],
        )
        return insights

    def _region_insight(self, context: InsightContext) -> Insight | None:
        total_ai = sum(r.ai_attributed_kwh for r in context.records)
        if total_ai <= 0 or len(self._registry) == 0:
            return None

        high = [r for r in context.records if r.carbon_intensity_used >= self._high_intensity]
        high_ai = sum(r.ai_attributed_kwh for r in high)
        share = high_ai / total_ai * 100.0
        if share < self._region_share:
            return None

        alternative = self._registry.lowest_intensity()
        savings_kg = sum(
            r.ai_attributed_kwh * max(r.carbon_intensity_used - alternative.intensity_g_per_kwh, 0.0)
            for r in high
        ) / 1000.0
        if savings_kg <= 0:
            return None

        return Insight(
            category="REGION",
            priority=PRIORITY_HIGH,
            title="Consider Greener Regions",
            description=(
                f"{share:.0f}% of your AI energy runs on grids at or above "
                f"{self._high_intensity:.0f} gCO2/kWh. Moving it to {alternative.label} "
                f"({alternative.intensity_g_per_kwh:.0f} gCO2/kWh) would cut emissions sharply."
            ),
            impact=f"Up to {savings_kg:,.1f} kg CO2e avoided per period",
            impact_value=savings_kg,
            impact_unit="kgCO2e",
            actionable=f"Evaluate moving non-latency-critical workloads to {alternative.code}",
        )

    def _batching_insight(self, context: InsightContext) -> Insight | None:
        count = len(context.records)
        if count < self._batching_min_records:
            return None
        mean_ai = sum(r.ai_attributed_kwh for r in context.records) / count
        if mean_ai >= self._batching_small_kwh:
            return None

        ai_cost = sum(r.ai_cost for r in context.records)
        savings = ai_cost * 0.10
        return Insight(
            category="BATCHING",
            priority=PRIORITY_MEDIUM,
            title="Batch AI Workloads",
            description=(
                f"AI usage is spread across {count} small records averaging "
                f"{mean_ai:.1f} kWh. Running AI tasks in batches during off-peak hours "
                "improves utilization."
            ),
            impact=f"About {savings:,.2f} {context.currency} saved (10% of AI cost)",
            impact_value=savings,
            impact_unit=context.currency,
            actionable="Schedule batch inference jobs during night hours (10 PM - 6 AM)",
        )

    def _efficiency_insight(self, context: InsightContext) -> Insight | None:
        total = sum(r.total_kwh for r in context.records)
        if total <= 0:
            return None
        ai = sum(r.ai_attributed_kwh for r in context.records)
        observed_points = ai / total * 100.0
        baseline_points = context.base_ai_percentage * 100.0
        if observed_points - baseline_points <= self._efficiency_excess:
            return None

        reducible_kwh = ai * self._efficiency_reduction
        return Insight(
            category="EFFICIENCY",
            priority=PRIORITY_MEDIUM,
            title="Model Optimization",
            description=(
                f"AI accounts for {observed_points:.1f}% of energy against a company baseline "
                f"of {baseline_points:.1f}%. Quantization, pruning or distillation can reduce "
                "energy per inference while keeping accuracy."
            ),
            impact=f"About {reducible_kwh:,.1f} kWh reducible ({self._efficiency_reduction:.0%} of AI energy)",
            impact_value=reducible_kwh,
            impact_unit="kWh",
            actionable="Review top energy-consuming models for optimization opportunities",
        )

    def _scheduling_insight(self, context: InsightContext) -> Insight | None:
        if context.current_month_ai_kwh <= self._scheduling_kwh:
            return None
        return Insight(
            category="SCHEDULING",
            priority=PRIORITY_LOW,
            title="Spread Peak Loads",
            description=(
                f"{context.current_month_ai_kwh:,.0f} kWh of AI energy this month. Distributing "
                "workloads more evenly across time reduces peak demand charges."
            ),
            impact="5-10% cost reduction on peak charges",
            impact_value=context.current_month_ai_kwh,
            impact_unit="kWh",
            actionable="Implement a workload queue with rate limiting",
        )

    def _carbon_budget_insight(self, context: InsightContext) -> Insight | None:
        if context.has_carbon_threshold:
            return None
        co2e = sum(r.co2e_kg for r in context.records)
        if co2e <= 0:
            return None
        return Insight(
            category="CARBON_BUDGET",
            priority=PRIORITY_MEDIUM,
            title="Set Carbon Budgets",
            description=(
                f"{co2e:,.1f} kg CO2e were emitted in this period with no carbon threshold "
                "configured. Monthly carbon budgets make emissions accountable."
            ),
            impact="Improved ESG reporting and accountability",
            impact_value=co2e,
            impact_unit="kgCO2e",
            actionable="Define a monthly CO2e threshold for the company",
        )
