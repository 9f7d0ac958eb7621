"""AI energy attribution.

Splits metered electricity into the share consumed by AI workloads using
department weights or the company-wide baseline.

Modules:
    energy_attributor: EnergyAttributor: per-record attribution and explanation
"""

from ecoai_engine.attribution.energy_attributor import AttributionResult, EnergyAttributor

__all__ = ["AttributionResult", "EnergyAttributor"]
