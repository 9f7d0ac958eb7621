"""SQLAlchemy repositories for the EcoAI carbon engine.

All repositories extend BaseRepository and implement the interfaces
defined in core/interfaces.py.
"""

import uuid
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ecoai_engine.core.models import (
    AlertThreshold,
    CarbonConfig,
    Company,
    Department,
    EnergyRecord,
    SimulationScenario,
)
from ecoai_engine.database import BaseRepository


class CompanyRepository(BaseRepository[Company]):
    """Repository for eco_companies."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Company)

    async def get_for_update(self, company_id: uuid.UUID) -> Company | None:
        """Load a company and hold its row lock until the transaction ends.

        Ledger writers call this first, so concurrent writers for one
        company queue on the database row until the earlier transaction
        commits or rolls back, whichever process they run in.
        """
        query = select(Company).where(Company.id == company_id).with_for_update()
        result = await self._session.execute(query)
        return result.scalar_one_or_none()


class DepartmentRepository(BaseRepository[Department]):
    """Repository for eco_departments."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Department)

    async def list_by_company(self, company_id: uuid.UUID) -> list[Department]:
        query = (
            select(Department)
            .where(Department.company_id == company_id)
            .order_by(Department.name)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())


class EnergyRecordRepository(BaseRepository[EnergyRecord]):
    """Repository for eco_energy_records, the append-only ledger."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, EnergyRecord)

    async def list_by_company(
        self,
        company_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        region: str | None = None,
    ) -> list[EnergyRecord]:
        """List records for a company in an inclusive date range.

        Args:
            company_id: Owning company.
            start_date: Optional lower bound (inclusive).
            end_date: Optional upper bound (inclusive).
            region: Optional normalized region code to match exactly.

        Returns:
            Records ordered by usage_date ascending, then creation time.
        """
        query = select(EnergyRecord).where(EnergyRecord.company_id == company_id)
        if start_date is not None:
            query = query.where(EnergyRecord.usage_date >= start_date)
        if end_date is not None:
            query = query.where(EnergyRecord.usage_date <= end_date)
        if region is not None:
            query = query.where(EnergyRecord.region == region)
        query = query.order_by(EnergyRecord.usage_date.asc(), EnergyRecord.created_at.asc())

        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def sum_by_company_period(
        self,
        company_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> dict[str, float]:
        """Aggregate all derived metrics over an inclusive date range."""
        query = select(
            func.coalesce(func.sum(EnergyRecord.total_kwh), 0.0).label("total_kwh"),
            func.coalesce(func.sum(EnergyRecord.ai_attributed_kwh), 0.0).label("ai_kwh"),
            func.coalesce(func.sum(EnergyRecord.co2e_kg), 0.0).label("co2e_kg"),
            func.coalesce(func.sum(EnergyRecord.ai_co2e_kg), 0.0).label("ai_co2e_kg"),
            func.coalesce(func.sum(EnergyRecord.cost), 0.0).label("cost"),
            func.coalesce(func.sum(EnergyRecord.ai_cost), 0.0).label("ai_cost"),
            func.count(EnergyRecord.id).label("record_count"),
        ).where(
            EnergyRecord.company_id == company_id,
            EnergyRecord.usage_date >= start_date,
            EnergyRecord.usage_date <= end_date,
        )
        result = await self._session.execute(query)
        row = result.one()
        return {
            "total_kwh": float(row.total_kwh),
            "ai_kwh": float(row.ai_kwh),
            "co2e_kg": float(row.co2e_kg),
            "ai_co2e_kg": float(row.ai_co2e_kg),
            "cost": float(row.cost),
            "ai_cost": float(row.ai_cost),
            "record_count": int(row.record_count),
        }


class CarbonConfigRepository(BaseRepository[CarbonConfig]):
    """Repository for eco_carbon_configs."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CarbonConfig)

    async def list_by_company(self, company_id: uuid.UUID) -> list[CarbonConfig]:
        query = (
            select(CarbonConfig)
            .where(CarbonConfig.company_id == company_id)
            .order_by(CarbonConfig.region)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def get_by_company_region(self, company_id: uuid.UUID, region: str) -> CarbonConfig | None:
        query = select(CarbonConfig).where(
            CarbonConfig.company_id == company_id,
            CarbonConfig.region == region,
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none()


class AlertThresholdRepository(BaseRepository[AlertThreshold]):
    """Repository for eco_alert_thresholds."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, AlertThreshold)

    async def list_by_company(
        self,
        company_id: uuid.UUID,
        active: bool | None = None,
    ) -> list[AlertThreshold]:
        query = select(AlertThreshold).where(AlertThreshold.company_id == company_id)
        if active is not None:
            query = query.where(AlertThreshold.active == active)
        query = query.order_by(AlertThreshold.created_at)
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def get_by_company_metric(
        self,
        company_id: uuid.UUID,
        metric_type: str,
    ) -> AlertThreshold | None:
        query = select(AlertThreshold).where(
            AlertThreshold.company_id == company_id,
            AlertThreshold.metric_type == metric_type,
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none()


class SimulationScenarioRepository(BaseRepository[SimulationScenario]):
    """Repository for eco_simulation_scenarios."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SimulationScenario)

    async def list_by_company(self, company_id: uuid.UUID) -> list[SimulationScenario]:
        query = (
            select(SimulationScenario)
            .where(SimulationScenario.company_id == company_id)
            .order_by(SimulationScenario.created_at.desc())
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())
