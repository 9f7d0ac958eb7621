"""Default carbon intensity factors by region.

Values are grams of CO2-equivalent per kWh of grid electricity, taken from
IEA and national grid averages. They are approximations; companies with
better data register overrides (CarbonConfig) which take precedence.

The registry is read-only. Services receive it by injection and never
mutate it.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping


@dataclass(frozen=True)
class RegionIntensity:
    """A region code with its label and default intensity (gCO2/kWh)."""

    code: str
    label: str
    intensity_g_per_kwh: float


def normalize_region(code: str) -> str:
    """Canonical form of a region code: stripped and upper-cased."""
    return code.strip().upper()


class RegionRegistry:
    """Immutable lookup of default region intensities.

    Args:
        regions: Region entries; codes are normalized on load and the
            first occurrence of a code wins.
    """

    def __init__(self, regions: Iterable[RegionIntensity]) -> None:
        table: dict[str, RegionIntensity] = {}
        for region in regions:
            code = normalize_region(region.code)
            table.setdefault(code, RegionIntensity(code, region.label, region.intensity_g_per_kwh))
        self._table: Mapping[str, RegionIntensity] = MappingProxyType(table)

    def get(self, code: str) -> RegionIntensity | None:
        return self._table.get(normalize_region(code))

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_region(code) in self._table

    def __iter__(self) -> Iterator[RegionIntensity]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)

    def lowest_intensity(self) -> RegionIntensity:
        """Region with the smallest default intensity."""
        return min(self._table.values(), key=lambda r: r.intensity_g_per_kwh)


DEFAULT_REGIONS: tuple[RegionIntensity, ...] = (
    # High carbon intensity
    RegionIntensity("IN", "India", 708.0),
    RegionIntensity("AU", "Australia", 656.0),
    RegionIntensity("CN", "China", 555.0),
    RegionIntensity("PL", "Poland", 650.0),
    RegionIntensity("ZA", "South Africa", 900.0),
    # Medium
    RegionIntensity("US", "United States", 386.0),
    RegionIntensity("JP", "Japan", 457.0),
    RegionIntensity("DE", "Germany", 350.0),
    RegionIntensity("UK", "United Kingdom", 233.0),
    RegionIntensity("IT", "Italy", 315.0),
    # Low
    RegionIntensity("EU", "European Union (Avg)", 276.0),
    RegionIntensity("CA", "Canada", 120.0),
    RegionIntensity("FR", "France", 56.0),
    RegionIntensity("SE", "Sweden", 41.0),
    RegionIntensity("NO", "Norway", 26.0),
    # Cloud provider regions (approximate, by location)
    RegionIntensity("US-EAST", "AWS US East", 380.0),
    RegionIntensity("US-WEST", "AWS US West", 300.0),
    RegionIntensity("EU-WEST", "AWS EU West (Ireland)", 296.0),
    RegionIntensity("EU-NORTH", "AWS EU North (Stockholm)", 45.0),
    RegionIntensity("AP-SOUTH", "AWS Asia Pacific (Mumbai)", 708.0),
)

DEFAULT_REGION_REGISTRY = RegionRegistry(DEFAULT_REGIONS)
