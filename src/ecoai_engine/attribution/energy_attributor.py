"""EnergyAttributor: assigns a share of metered energy to AI workloads.

Attribution rule:
    ai_kwh = total_kwh * department.ai_usage_weight    (department given)
    ai_kwh = total_kwh * company.base_ai_percentage     (company-wide record)

The result is clamped to [0, total_kwh]. The share actually applied is
returned alongside the result so the ledger can snapshot it; attribution
is never recomputed for historical records.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from ecoai_engine.errors import ValidationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttributionResult:
    """Outcome of attributing one energy reading.

    Attributes:
        total_kwh: The metered reading.
        ai_attributed_kwh: The AI share in kWh, within [0, total_kwh].
        share_used: The fraction applied (department weight or company baseline).
        source: "department" or "company_baseline".
    """

    total_kwh: float
    ai_attributed_kwh: float
    share_used: float
    source: str


def _check_fraction(value: float, field: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{field} must be between 0 and 1", field=field, value=value)


class EnergyAttributor:
    """Stateless AI attribution calculator."""

    def attribute(
        self,
        total_kwh: float,
        company_base_ai_percentage: float,
        department_weight: float | None = None,
    ) -> AttributionResult:
        """Compute the AI-attributed share of a reading.

        Args:
            total_kwh: Metered consumption; must be >= 0.
            company_base_ai_percentage: Company baseline fraction (0.0–1.0).
            department_weight: Department AI weight (0.0–1.0), or None for a
                company-wide record.

        Returns:
            AttributionResult with the clamped AI kWh and the share applied.

        Raises:
            ValidationError: If total_kwh is negative or a fraction is out of range.
        """
        if total_kwh < 0:
            raise ValidationError("total_kwh must be >= 0", field="total_kwh", value=total_kwh)
        _check_fraction(company_base_ai_percentage, "base_ai_percentage")

        if department_weight is not None:
            _check_fraction(department_weight, "ai_usage_weight")
            share, source = department_weight, "department"
        else:
            share, source = company_base_ai_percentage, "company_baseline"

        ai_kwh = min(max(total_kwh * share, 0.0), total_kwh)

        logger.debug(
            "attribution_computed",
            total_kwh=total_kwh,
            share_used=share,
            source=source,
            ai_attributed_kwh=ai_kwh,
        )
        return AttributionResult(
            total_kwh=total_kwh,
            ai_attributed_kwh=ai_kwh,
            share_used=share,
            source=source,
        )

    @staticmethod
    def explain(result: AttributionResult) -> str:
        """Render a human-readable explanation of an attribution."""
        share_label = "Department weight" if result.source == "department" else "Company AI baseline"
        return (
            "Attribution Calculation:\n"
            f"Total Energy:      {result.total_kwh:,.2f} kWh\n"
            f"{share_label + ':':<19}{result.share_used * 100:,.1f}%\n"
            f"Formula:           {result.total_kwh:.2f} x {result.share_used:.4f}\n"
            f"AI Energy:         {result.ai_attributed_kwh:,.2f} kWh\n"
        )
