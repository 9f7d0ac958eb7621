"""Cross-sectional and longitudinal comparisons over ledger records.

Pure functions over already-fetched records:
  - department comparison (share of AI energy per department)
  - region breakdown
  - year-over-year (year to date vs the same window one year earlier)
"""
from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol


class DepartmentLike(Protocol):
    id: uuid.UUID
    name: str
    team: str | None
    ai_usage_weight: float


class AttributedEntry(Protocol):
    usage_date: date
    department_id: uuid.UUID | None
    region: str
    total_kwh: float
    ai_attributed_kwh: float
    co2e_kg: float


@dataclass(frozen=True)
class DepartmentComparison:
    department_id: uuid.UUID
    department_name: str
    team: str | None
    ai_usage_weight: float
    ai_energy_kwh: float
    total_energy_kwh: float
    percentage: float


@dataclass(frozen=True)
class RegionBreakdown:
    region: str
    total_kwh: float
    ai_kwh: float
    co2e_kg: float


@dataclass(frozen=True)
class YearOverYear:
    period: str
    this_year_start: date
    this_year_end: date
    last_year_start: date
    last_year_end: date
    this_year_ai_kwh: float
    this_year_total_kwh: float
    last_year_ai_kwh: float
    last_year_total_kwh: float
    ai_kwh_change_percent: float
    total_kwh_change_percent: float


def percent_change(previous: float, current: float) -> float:
    """(current - previous) / previous * 100, defined as 0 when previous is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100.0


def one_year_earlier(day: date) -> date:
    """Same calendar day one year earlier; Feb 29 maps to Feb 28."""
    if day.month == 2 and day.day == 29:
        return date(day.year - 1, 2, 28)
    return day.replace(year=day.year - 1)


def compare_departments(
    departments: Iterable[DepartmentLike],
    records: Iterable[AttributedEntry],
) -> list[DepartmentComparison]:
    """AI energy per department with its share of the departmental total.

    Records without a department (company-wide usage) or pointing at a
    department no longer in `departments` are excluded from both the rows
    and the denominator. Percentages sum to 100 when any department has
    nonzero AI energy, and are all 0 otherwise.

    Returns:
        One row per department, sorted by AI energy descending.
    """
    departments = list(departments)
    known = {d.id for d in departments}
    ai_by_dept: dict[uuid.UUID, float] = defaultdict(float)
    total_by_dept: dict[uuid.UUID, float] = defaultdict(float)

    for record in records:
        if record.department_id is None or record.department_id not in known:
            continue
        ai_by_dept[record.department_id] += record.ai_attributed_kwh
        total_by_dept[record.department_id] += record.total_kwh

    denominator = sum(ai_by_dept.values())
    rows = [
        DepartmentComparison(
            department_id=dept.id,
            department_name=dept.name,
            team=dept.team,
            ai_usage_weight=dept.ai_usage_weight,
            ai_energy_kwh=ai_by_dept[dept.id],
            total_energy_kwh=total_by_dept[dept.id],
            percentage=(ai_by_dept[dept.id] / denominator * 100.0) if denominator > 0 else 0.0,
        )
        for dept in departments
    ]
    rows.sort(key=lambda r: r.ai_energy_kwh, reverse=True)
    return rows


def breakdown_by_region(records: Iterable[AttributedEntry]) -> list[RegionBreakdown]:
    """Total/AI energy and emissions per region, largest AI load first."""
    sums: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0, 0.0])
    for record in records:
        acc = sums[record.region]
        acc[0] += record.total_kwh
        acc[1] += record.ai_attributed_kwh
        acc[2] += record.co2e_kg

    rows = [RegionBreakdown(region, acc[0], acc[1], acc[2]) for region, acc in sums.items()]
    rows.sort(key=lambda r: r.ai_kwh, reverse=True)
    return rows


def year_over_year(records: Iterable[AttributedEntry], as_of: date) -> YearOverYear:
    """Compare year-to-date usage against the same window last year.

    This year: Jan 1 .. as_of. Last year: Jan 1 of the previous year ..
    one_year_earlier(as_of). Both bounds inclusive.
    """
    this_start = date(as_of.year, 1, 1)
    last_start = date(as_of.year - 1, 1, 1)
    last_end = one_year_earlier(as_of)

    this_ai = this_total = last_ai = last_total = 0.0
    for record in records:
        if this_start <= record.usage_date <= as_of:
            this_ai += record.ai_attributed_kwh
            this_total += record.total_kwh
        elif last_start <= record.usage_date <= last_end:
            last_ai += record.ai_attributed_kwh
            last_total += record.total_kwh

    return YearOverYear(
        period=f"{as_of.year} vs {as_of.year - 1}",
        this_year_start=this_start,
        this_year_end=as_of,
        last_year_start=last_start,
        last_year_end=last_end,
        this_year_ai_kwh=this_ai,
        this_year_total_kwh=this_total,
        last_year_ai_kwh=last_ai,
        last_year_total_kwh=last_total,
        ai_kwh_change_percent=percent_change(last_ai, this_ai),
        total_kwh_change_percent=percent_change(last_total, this_total),
    )
