"""Carbon and cost calculation.

Formulas:
    co2e_kg = kwh * intensity_g_per_kwh / 1000
    cost    = kwh * electricity_cost_per_kwh

Intensity resolution: company override for (company, region) first, then
the region registry default. A region found in neither is an error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ecoai_engine.core.regions import RegionRegistry, normalize_region
from ecoai_engine.errors import NotFoundError, ValidationError

GRAMS_PER_KG: float = 1000.0


@dataclass(frozen=True)
class ResolvedIntensity:
    """The intensity applied to a region and where it came from."""

    region: str
    label: str
    intensity_g_per_kwh: float
    is_override: bool


@dataclass(frozen=True)
class CarbonCost:
    """CO2e mass and cost for an amount of energy."""

    kwh: float
    co2e_kg: float
    cost: float
    intensity_g_per_kwh: float


class CarbonCostCalculator:
    """Pure carbon/cost calculator bound to one company's overrides.

    Args:
        registry: Default region intensities.
        overrides: Company overrides keyed by region code (any case).
        electricity_cost_per_kwh: The company's electricity price.
    """

    def __init__(
        self,
        registry: RegionRegistry,
        overrides: Mapping[str, float] | None = None,
        electricity_cost_per_kwh: float = 0.0,
    ) -> None:
        if electricity_cost_per_kwh < 0:
            raise ValidationError(
                "electricity_cost_per_kwh must be >= 0",
                field="electricity_cost_per_kwh",
                value=electricity_cost_per_kwh,
            )
        self._registry = registry
        self._overrides = {normalize_region(k): float(v) for k, v in (overrides or {}).items()}
        self._price = electricity_cost_per_kwh

    @property
    def electricity_cost_per_kwh(self) -> float:
        return self._price

    def resolve_intensity(self, region: str) -> ResolvedIntensity:
        """Resolve the effective intensity for a region.

        Raises:
            NotFoundError: If the region has neither an override nor a default.
        """
        code = normalize_region(region)
        default = self._registry.get(code)
        label = default.label if default is not None else code
        if code in self._overrides:
            return ResolvedIntensity(code, label, self._overrides[code], is_override=True)
        if default is None:
            raise NotFoundError("Region", code)
        return ResolvedIntensity(code, label, default.intensity_g_per_kwh, is_override=False)

    def is_resolvable(self, region: str) -> bool:
        code = normalize_region(region)
        return code in self._overrides or code in self._registry

    @staticmethod
    def co2e_kg(kwh: float, intensity_g_per_kwh: float) -> float:
        return kwh * intensity_g_per_kwh / GRAMS_PER_KG

    def cost(self, kwh: float) -> float:
        return kwh * self._price

    def calculate(self, kwh: float, region: str) -> CarbonCost:
        """CO2e and cost of `kwh` consumed in `region`.

        Raises:
            ValidationError: If kwh is negative.
            NotFoundError: If the region cannot be resolved.
        """
        if kwh < 0:
            raise ValidationError("kWh must be >= 0", field="kwh", value=kwh)
        resolved = self.resolve_intensity(region)
        return CarbonCost(
            kwh=kwh,
            co2e_kg=self.co2e_kg(kwh, resolved.intensity_g_per_kwh),
            cost=self.cost(kwh),
            intensity_g_per_kwh=resolved.intensity_g_per_kwh,
        )
