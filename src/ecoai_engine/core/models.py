"""SQLAlchemy ORM models for the EcoAI carbon engine.

All tables use the `eco_` prefix and extend EcoAIModel, which supplies
id (UUID), created_at, and updated_at columns.

Domain model:
  Company            : aggregate root; AI baseline share, electricity price, currency
  Department         : AI usage weight overriding the company baseline
  EnergyRecord       : append-only metered usage with a derived snapshot
  CarbonConfig       : per-company override of a region's carbon intensity
  AlertThreshold     : per-company, per-metric alert limit
  SimulationScenario : archived what-if simulation result

Everything below Company cascades on company delete. EnergyRecord keeps
only a weak reference to its department (no FK) plus a name snapshot, so
deleting a department never rewrites history.
"""
from __future__ import annotations

import uuid
from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ecoai_engine.database import EcoAIModel


class PeriodType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class DataSource(str, Enum):
    MANUAL = "MANUAL"
    CSV_IMPORT = "CSV_IMPORT"


class MetricType(str, Enum):
    AI_USAGE_KWH = "AI_USAGE_KWH"
    TOTAL_ENERGY_KWH = "TOTAL_ENERGY_KWH"
    CARBON_EMISSION_KG = "CARBON_EMISSION_KG"
    MONTHLY_COST = "MONTHLY_COST"


class SimulationType(str, Enum):
    GROWTH = "GROWTH"
    REGION_CHANGE = "REGION_CHANGE"
    EFFICIENCY = "EFFICIENCY"


class Company(EcoAIModel):
    """An organization whose electricity usage is tracked.

    base_ai_percentage is the fraction (0.0–1.0) of energy attributed to AI
    when a record names no department.

    Table: eco_companies
    """

    __tablename__ = "eco_companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    region: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="US",
        comment="Primary region code used when a record omits one",
    )
    base_ai_percentage: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.30,
        comment="Fraction of energy attributed to AI without a department weight (0.0–1.0)",
    )
    electricity_cost_per_kwh: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.12,
        comment="Electricity price per kWh in the company currency",
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    departments: Mapped[list["Department"]] = relationship(
        "Department",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    energy_records: Mapped[list["EnergyRecord"]] = relationship(
        "EnergyRecord",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    carbon_configs: Mapped[list["CarbonConfig"]] = relationship(
        "CarbonConfig",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    alert_thresholds: Mapped[list["AlertThreshold"]] = relationship(
        "AlertThreshold",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    scenarios: Mapped[list["SimulationScenario"]] = relationship(
        "SimulationScenario",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )


class Department(EcoAIModel):
    """A department or team inside a company.

    Table: eco_departments
    """

    __tablename__ = "eco_departments"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    team: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_usage_weight: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.50,
        comment="Fraction of this department's energy attributed to AI (0.0–1.0)",
    )
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    company: Mapped["Company"] = relationship("Company", back_populates="departments", lazy="noload")

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_eco_departments_company_name"),
    )


class EnergyRecord(EcoAIModel):
    """A metered electricity reading with its derived snapshot.

    The derived columns (ai_attributed_kwh through ai_share_used) are
    computed once when the record is written and never updated. A
    correction is a new record.

    Table: eco_energy_records
    """

    __tablename__ = "eco_energy_records"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
        comment="Weak reference to eco_departments (no FK)",
    )
    department_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Department name at write time",
    )
    usage_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_kwh: Mapped[float] = mapped_column(Float, nullable=False)
    region: Mapped[str] = mapped_column(String(50), nullable=False)
    period_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PeriodType.DAILY.value,
        comment="DAILY | WEEKLY | MONTHLY",
    )
    data_source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DataSource.MANUAL.value,
        comment="MANUAL | CSV_IMPORT",
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Derived snapshot
    ai_attributed_kwh: Mapped[float] = mapped_column(Float, nullable=False)
    co2e_kg: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Emissions of total_kwh at carbon_intensity_used",
    )
    ai_co2e_kg: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Emissions of ai_attributed_kwh at carbon_intensity_used",
    )
    cost: Mapped[float] = mapped_column(Float, nullable=False)
    ai_cost: Mapped[float] = mapped_column(Float, nullable=False)
    carbon_intensity_used: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="gCO2/kWh resolved at write time",
    )
    ai_share_used: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Department weight or company baseline applied at write time",
    )

    __table_args__ = (
        Index("ix_eco_energy_records_company_date", "company_id", "usage_date"),
    )


class CarbonConfig(EcoAIModel):
    """Company-specific carbon intensity for a region.

    Table: eco_carbon_configs
    """

    __tablename__ = "eco_carbon_configs"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    region: Mapped[str] = mapped_column(String(50), nullable=False)
    carbon_intensity: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="gCO2 per kWh",
    )
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="gCO2/kWh")
    valid_year: Mapped[int] = mapped_column(Integer, nullable=False, default=2024)

    __table_args__ = (
        UniqueConstraint("company_id", "region", name="uq_eco_carbon_configs_company_region"),
    )


class AlertThreshold(EcoAIModel):
    """An alert limit for one metric of one company.

    Table: eco_alert_thresholds
    """

    __tablename__ = "eco_alert_thresholds"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    metric_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="AI_USAGE_KWH | TOTAL_ENERGY_KWH | CARBON_EMISSION_KG | MONTHLY_COST",
    )
    threshold_value: Mapped[float] = mapped_column(Float, nullable=False)
    alert_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "metric_type", name="uq_eco_alert_thresholds_company_metric"),
    )


class SimulationScenario(EcoAIModel):
    """A saved what-if simulation result.

    Table: eco_simulation_scenarios
    """

    __tablename__ = "eco_simulation_scenarios"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    simulation_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="GROWTH | REGION_CHANGE | EFFICIENCY",
    )
    parameters: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    baseline_values: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    results: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
