"""Abstract interfaces (Protocol classes) for the EcoAI carbon engine.

All services depend on these interfaces, not concrete implementations.
This enables dependency injection and test doubles without coupling to
SQLAlchemy.
"""

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from ecoai_engine.core.models import (
    AlertThreshold,
    CarbonConfig,
    Company,
    Department,
    EnergyRecord,
    SimulationScenario,
)


@runtime_checkable
class ICompanyRepository(Protocol):
    """Repository interface for companies."""

    async def create(self, company: Company) -> Company:
        ...

    async def get_by_id(self, company_id: uuid.UUID) -> Company | None:
        ...

    async def get_for_update(self, company_id: uuid.UUID) -> Company | None:
        """Load a company under a row lock held until the transaction ends."""
        ...

    async def list_all(self) -> list[Company]:
        ...

    async def update(self, company: Company) -> Company:
        ...

    async def delete(self, company: Company) -> None:
        """Delete a company; its departments, records, configs and thresholds cascade."""
        ...


@runtime_checkable
class IDepartmentRepository(Protocol):
    """Repository interface for departments."""

    async def create(self, department: Department) -> Department:
        ...

    async def get_by_id(self, department_id: uuid.UUID) -> Department | None:
        ...

    async def list_by_company(self, company_id: uuid.UUID) -> list[Department]:
        """List a company's departments ordered by name."""
        ...

    async def update(self, department: Department) -> Department:
        ...

    async def delete(self, department: Department) -> None:
        ...


@runtime_checkable
class IEnergyRecordRepository(Protocol):
    """Repository interface for the append-only energy ledger."""

    async def create(self, record: EnergyRecord) -> EnergyRecord:
        """Append a record. Records are never updated afterwards."""
        ...

    async def get_by_id(self, record_id: uuid.UUID) -> EnergyRecord | None:
        ...

    async def list_by_company(
        self,
        company_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        region: str | None = None,
    ) -> list[EnergyRecord]:
        """List records in an inclusive date range, ascending by usage_date."""
        ...

    async def sum_by_company_period(
        self,
        company_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> dict[str, float]:
        """Aggregate a date range.

        Returns:
            Dict with total_kwh, ai_kwh, co2e_kg, ai_co2e_kg, cost, ai_cost
            and record_count (0 for an empty range).
        """
        ...


@runtime_checkable
class ICarbonConfigRepository(Protocol):
    """Repository interface for company carbon intensity overrides."""

    async def create(self, config: CarbonConfig) -> CarbonConfig:
        ...

    async def update(self, config: CarbonConfig) -> CarbonConfig:
        ...

    async def list_by_company(self, company_id: uuid.UUID) -> list[CarbonConfig]:
        ...

    async def get_by_company_region(self, company_id: uuid.UUID, region: str) -> CarbonConfig | None:
        ...


@runtime_checkable
class IAlertThresholdRepository(Protocol):
    """Repository interface for alert thresholds."""

    async def create(self, threshold: AlertThreshold) -> AlertThreshold:
        ...

    async def update(self, threshold: AlertThreshold) -> AlertThreshold:
        ...

    async def list_by_company(
        self,
        company_id: uuid.UUID,
        active: bool | None = None,
    ) -> list[AlertThreshold]:
        ...

    async def get_by_company_metric(
        self,
        company_id: uuid.UUID,
        metric_type: str,
    ) -> AlertThreshold | None:
        ...


@runtime_checkable
class ISimulationScenarioRepository(Protocol):
    """Repository interface for archived simulation results."""

    async def create(self, scenario: SimulationScenario) -> SimulationScenario:
        ...

    async def list_by_company(self, company_id: uuid.UUID) -> list[SimulationScenario]:
        """List saved scenarios, newest first."""
        ...
