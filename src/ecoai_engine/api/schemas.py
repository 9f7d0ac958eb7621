"""Pydantic request and response schemas for the EcoAI carbon engine API.

All API inputs and outputs are typed Pydantic models, never raw dicts.
Range checks that belong to the domain (fractions, non-negative kWh) are
repeated in the services so non-HTTP callers get the same guarantees.
"""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from ecoai_engine.core.models import DataSource, MetricType, PeriodType, SimulationType


# ---------------------------------------------------------------------------
# Companies and departments
# ---------------------------------------------------------------------------


class CreateCompanyRequest(BaseModel):
    """Request body for creating a company."""

    name: str = Field(min_length=1, max_length=255)
    industry: str | None = Field(default=None, max_length=255)
    country: str | None = Field(default=None, max_length=100)
    region: str | None = Field(default=None, max_length=50, description="Primary region code, e.g. US, EU-WEST")
    base_ai_percentage: float | None = Field(
        default=None,
        description="Fraction (0.0–1.0) of energy attributed to AI without a department",
    )
    electricity_cost_per_kwh: float | None = Field(default=None, description="Electricity price per kWh")
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class UpdateCompanyRequest(BaseModel):
    """Partial update for a company; omitted fields are unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    industry: str | None = Field(default=None, max_length=255)
    country: str | None = Field(default=None, max_length=100)
    region: str | None = Field(default=None, max_length=50)
    base_ai_percentage: float | None = None
    electricity_cost_per_kwh: float | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class CompanyResponse(BaseModel):
    id: uuid.UUID
    name: str
    industry: str | None
    country: str | None
    region: str
    base_ai_percentage: float
    electricity_cost_per_kwh: float
    currency: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreateDepartmentRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    team: str | None = Field(default=None, max_length=255)
    product: str | None = Field(default=None, max_length=255)
    description: str | None = None
    ai_usage_weight: float | None = Field(default=None, description="Fraction (0.0–1.0) attributed to AI")
    employee_count: int | None = None


class UpdateDepartmentRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    team: str | None = Field(default=None, max_length=255)
    product: str | None = Field(default=None, max_length=255)
    description: str | None = None
    ai_usage_weight: float | None = None
    employee_count: int | None = None


class DepartmentResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    name: str
    team: str | None
    product: str | None
    description: str | None
    ai_usage_weight: float
    employee_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Energy ledger
# ---------------------------------------------------------------------------


class CreateEnergyRecordRequest(BaseModel):
    """Request body for appending one energy reading."""

    usage_date: date
    total_kwh: float = Field(description="Metered consumption in kWh (>= 0)")
    department_id: uuid.UUID | None = None
    region: str | None = Field(default=None, max_length=50, description="Defaults to the company region")
    period_type: PeriodType = PeriodType.DAILY
    data_source: DataSource = DataSource.MANUAL


class EnergyRecordResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    department_id: uuid.UUID | None
    department_name: str | None
    usage_date: date
    total_kwh: float
    region: str
    period_type: str
    data_source: str
    currency: str
    ai_attributed_kwh: float
    co2e_kg: float
    ai_co2e_kg: float
    cost: float
    ai_cost: float
    carbon_intensity_used: float
    ai_share_used: float
    created_at: datetime

    model_config = {"from_attributes": True}


class ImportCsvRequest(BaseModel):
    """CSV text with header date,totalKwh,departmentName,region."""

    content: str


class RejectedRowResponse(BaseModel):
    row_number: int
    reason: str

    model_config = {"from_attributes": True}


class ImportResultResponse(BaseModel):
    success: bool
    records_imported: int
    rejected_rows: list[RejectedRowResponse]

    model_config = {"from_attributes": True}


class RecordAttributionResponse(BaseModel):
    """How a stored record's AI share was derived, with a readable breakdown."""

    record_id: uuid.UUID
    total_kwh: float
    ai_attributed_kwh: float
    share_used: float
    source: str = Field(description="department or company_baseline")
    explanation: str

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Dashboard and analytics
# ---------------------------------------------------------------------------


class DashboardSummaryResponse(BaseModel):
    """Executive KPIs for the trailing window."""

    total_energy_kwh: float
    ai_energy_kwh: float
    ai_percentage: float
    total_co2e_kg: float
    ai_co2e_kg: float
    total_cost: float
    ai_cost: float
    currency: str
    energy_change_percent: float
    carbon_change_percent: float
    cost_change_percent: float
    period_type: str
    department_count: int
    data_point_count: int

    model_config = {"from_attributes": True}


class DepartmentComparisonResponse(BaseModel):
    department_id: uuid.UUID
    department_name: str
    team: str | None
    ai_usage_weight: float
    ai_energy_kwh: float
    total_energy_kwh: float
    percentage: float

    model_config = {"from_attributes": True}


class RegionBreakdownResponse(BaseModel):
    region: str
    total_kwh: float
    ai_kwh: float
    co2e_kg: float

    model_config = {"from_attributes": True}


class TrendBucketResponse(BaseModel):
    period: str
    period_start: date
    total_kwh: float
    ai_kwh: float
    co2e_kg: float
    ai_co2e_kg: float
    cost: float
    ai_cost: float
    record_count: int

    model_config = {"from_attributes": True}


class ForecastPointResponse(BaseModel):
    period: str
    period_start: date
    predicted_ai_kwh: float
    predicted_co2e_kg: float
    predicted_cost: float
    confidence_low: float
    confidence_high: float
    is_projection: bool

    model_config = {"from_attributes": True}


class YearOverYearResponse(BaseModel):
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

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Carbon configuration
# ---------------------------------------------------------------------------


class RegionDefaultResponse(BaseModel):
    code: str
    label: str
    intensity_g_per_kwh: float

    model_config = {"from_attributes": True}


class EffectiveIntensityResponse(BaseModel):
    """Intensity new records in a region are written with for one company."""

    region: str
    label: str
    intensity_g_per_kwh: float
    is_override: bool

    model_config = {"from_attributes": True}


class UpsertCarbonConfigRequest(BaseModel):
    region: str = Field(min_length=1, max_length=50)
    carbon_intensity: float = Field(description="gCO2 per kWh (>= 0)")
    valid_year: int | None = Field(default=None, ge=1990, le=2100)


class CarbonConfigResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    region: str
    carbon_intensity: float
    unit: str
    valid_year: int
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Alerts and insights
# ---------------------------------------------------------------------------


class ConfigureThresholdRequest(BaseModel):
    metric_type: MetricType
    threshold_value: float = Field(description="Alert limit (> 0) in the metric's unit")
    alert_message: str | None = None
    active: bool = True


class ThresholdResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    metric_type: str
    threshold_value: float
    alert_message: str | None
    active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AlertResponse(BaseModel):
    threshold_id: uuid.UUID
    company_id: uuid.UUID
    metric_type: str
    title: str
    message: str
    threshold_value: float
    current_value: float
    percent_of_threshold: float
    severity: str
    triggered_at: datetime

    model_config = {"from_attributes": True}


class InsightResponse(BaseModel):
    category: str
    priority: str
    title: str
    description: str
    impact: str
    impact_value: float
    impact_unit: str
    actionable: str | None

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    """Everything the executive dashboard renders, in one payload."""

    summary: DashboardSummaryResponse
    department_breakdown: list[DepartmentComparisonResponse]
    region_breakdown: list[RegionBreakdownResponse]
    trends: list[TrendBucketResponse]
    forecasts: list[ForecastPointResponse]
    alerts: list[AlertResponse]
    insights: list[InsightResponse]

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------


class GrowthSimulationRequest(BaseModel):
    growth_percent: float = Field(description="Expected AI usage growth in percent (>= 0)")
    months_ahead: int | None = Field(default=None, ge=1, le=120)


class RegionChangeSimulationRequest(BaseModel):
    to_region: str = Field(min_length=1, max_length=50)
    from_region: str | None = Field(default=None, max_length=50)


class EfficiencySimulationRequest(BaseModel):
    efficiency_percent: float = Field(description="Energy reduction in percent (0–100)")


class SimulationResponse(BaseModel):
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
    parameters: dict[str, Any]

    model_config = {"from_attributes": True}


class SaveScenarioRequest(BaseModel):
    """Run a simulation and archive it under a name."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    simulation_type: SimulationType
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="growth_percent/months_ahead, efficiency_percent, or to_region/from_region",
    )


class ScenarioResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    name: str
    description: str | None
    simulation_type: str
    parameters: dict[str, Any]
    baseline_values: dict[str, Any]
    results: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
