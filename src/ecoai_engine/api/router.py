"""FastAPI router for the EcoAI carbon engine API.

All routes are thin. They validate inputs, call services, and return
Pydantic response models. No business logic belongs here.

Endpoints (all under /api/v1):
  POST/GET        /companies                                   Create / list companies
  GET/PUT/DELETE  /companies/{id}                              Read / update / delete (cascade)
  POST/GET        /companies/{id}/departments                  Create / list departments
  PUT/DELETE      /companies/{id}/departments/{dept_id}        Update / delete a department
  POST/GET        /companies/{id}/energy                       Append / list energy records
  POST            /companies/{id}/energy/import                CSV bulk import
  GET             /companies/{id}/energy/{record_id}/attribution Explain a record's AI attribution
  GET             /companies/{id}/dashboard                    Full dashboard
  GET             /companies/{id}/dashboard/summary            Executive summary
  GET             /companies/{id}/dashboard/departments        Department breakdown
  GET             /companies/{id}/dashboard/regions            Region breakdown
  GET             /companies/{id}/analytics/trends             Monthly trends
  GET             /companies/{id}/analytics/forecast           AI usage forecast
  GET             /companies/{id}/analytics/departments        Department comparison
  GET             /companies/{id}/analytics/yoy                Year-over-year
  GET             /carbon/defaults                             Region intensity defaults
  GET/POST        /companies/{id}/carbon/configs               List / upsert intensity overrides
  GET             /companies/{id}/carbon/intensity/{region}    Effective intensity (override or default)
  GET/POST        /companies/{id}/alerts/thresholds            List / configure thresholds
  GET             /companies/{id}/alerts                       Active alerts
  GET             /companies/{id}/insights                     Optimization insights
  POST            /companies/{id}/simulations/growth           Growth scenario
  POST            /companies/{id}/simulations/region-change    Region change scenario
  POST            /companies/{id}/simulations/efficiency       Efficiency scenario
  POST/GET        /companies/{id}/simulations/scenarios        Save / list scenarios
"""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ecoai_engine.adapters.repositories import (
    AlertThresholdRepository,
    CarbonConfigRepository,
    CompanyRepository,
    DepartmentRepository,
    EnergyRecordRepository,
    SimulationScenarioRepository,
)
from ecoai_engine.api.schemas import (
    AlertResponse,
    CarbonConfigResponse,
    CompanyResponse,
    ConfigureThresholdRequest,
    CreateCompanyRequest,
    CreateDepartmentRequest,
    CreateEnergyRecordRequest,
    DashboardResponse,
    DashboardSummaryResponse,
    DepartmentComparisonResponse,
    DepartmentResponse,
    EffectiveIntensityResponse,
    EfficiencySimulationRequest,
    EnergyRecordResponse,
    ForecastPointResponse,
    GrowthSimulationRequest,
    ImportCsvRequest,
    ImportResultResponse,
    InsightResponse,
    RecordAttributionResponse,
    RegionBreakdownResponse,
    RegionChangeSimulationRequest,
    RegionDefaultResponse,
    SaveScenarioRequest,
    ScenarioResponse,
    SimulationResponse,
    ThresholdResponse,
    TrendBucketResponse,
    UpdateCompanyRequest,
    UpdateDepartmentRequest,
    UpsertCarbonConfigRequest,
    YearOverYearResponse,
)
from ecoai_engine.core.services import (
    AlertsService,
    AnalyticsService,
    CarbonConfigService,
    CompanyService,
    DashboardService,
    DepartmentService,
    EnergyLedgerService,
    SimulationService,
)
from ecoai_engine.database import get_db_session
from ecoai_engine.settings import Settings

router = APIRouter(tags=["ecoai"])
settings = Settings()


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def _get_company_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CompanyService:
    return CompanyService(company_repo=CompanyRepository(session), settings=settings)


def _get_department_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DepartmentService:
    return DepartmentService(
        department_repo=DepartmentRepository(session),
        company_repo=CompanyRepository(session),
        settings=settings,
    )


def _build_carbon_service(session: AsyncSession) -> CarbonConfigService:
    return CarbonConfigService(
        carbon_config_repo=CarbonConfigRepository(session),
        company_repo=CompanyRepository(session),
    )


def _get_carbon_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CarbonConfigService:
    return _build_carbon_service(session)


def _get_ledger_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> EnergyLedgerService:
    return EnergyLedgerService(
        record_repo=EnergyRecordRepository(session),
        company_repo=CompanyRepository(session),
        department_repo=DepartmentRepository(session),
        carbon_service=_build_carbon_service(session),
    )


def _build_analytics_service(session: AsyncSession) -> AnalyticsService:
    return AnalyticsService(
        record_repo=EnergyRecordRepository(session),
        department_repo=DepartmentRepository(session),
        company_repo=CompanyRepository(session),
        settings=settings,
    )


def _build_alerts_service(session: AsyncSession) -> AlertsService:
    return AlertsService(
        threshold_repo=AlertThresholdRepository(session),
        record_repo=EnergyRecordRepository(session),
        company_repo=CompanyRepository(session),
        settings=settings,
    )


def _get_analytics_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AnalyticsService:
    return _build_analytics_service(session)


def _get_alerts_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AlertsService:
    return _build_alerts_service(session)


def _get_dashboard_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DashboardService:
    """Build DashboardService; it composes the analytics and alerts services."""
    return DashboardService(
        record_repo=EnergyRecordRepository(session),
        department_repo=DepartmentRepository(session),
        company_repo=CompanyRepository(session),
        analytics=_build_analytics_service(session),
        alerts=_build_alerts_service(session),
        settings=settings,
    )


def _get_simulation_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SimulationService:
    return SimulationService(
        record_repo=EnergyRecordRepository(session),
        company_repo=CompanyRepository(session),
        scenario_repo=SimulationScenarioRepository(session),
        carbon_service=_build_carbon_service(session),
        settings=settings,
    )


# ---------------------------------------------------------------------------
# Company endpoints
# ---------------------------------------------------------------------------


@router.post("/companies", response_model=CompanyResponse, status_code=201, summary="Create a company")
async def create_company(
    request: CreateCompanyRequest,
    service: Annotated[CompanyService, Depends(_get_company_service)],
) -> CompanyResponse:
    company = await service.create_company(**request.model_dump())
    return CompanyResponse.model_validate(company)


@router.get("/companies", response_model=list[CompanyResponse], summary="List companies")
async def list_companies(
    service: Annotated[CompanyService, Depends(_get_company_service)],
) -> list[CompanyResponse]:
    companies = await service.list_companies()
    return [CompanyResponse.model_validate(c) for c in companies]


@router.get("/companies/{company_id}", response_model=CompanyResponse, summary="Get a company")
async def get_company(
    company_id: uuid.UUID,
    service: Annotated[CompanyService, Depends(_get_company_service)],
) -> CompanyResponse:
    company = await service.get_company(company_id)
    return CompanyResponse.model_validate(company)


@router.put("/companies/{company_id}", response_model=CompanyResponse, summary="Update a company")
async def update_company(
    company_id: uuid.UUID,
    request: UpdateCompanyRequest,
    service: Annotated[CompanyService, Depends(_get_company_service)],
) -> CompanyResponse:
    company = await service.update_company(company_id, **request.model_dump(exclude_unset=True))
    return CompanyResponse.model_validate(company)


@router.delete("/companies/{company_id}", status_code=204, summary="Delete a company and its data")
async def delete_company(
    company_id: uuid.UUID,
    service: Annotated[CompanyService, Depends(_get_company_service)],
) -> Response:
    """Delete a company. Departments, records, overrides, thresholds and scenarios cascade."""
    await service.delete_company(company_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Department endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/companies/{company_id}/departments",
    response_model=DepartmentResponse,
    status_code=201,
    summary="Create a department",
)
async def create_department(
    company_id: uuid.UUID,
    request: CreateDepartmentRequest,
    service: Annotated[DepartmentService, Depends(_get_department_service)],
) -> DepartmentResponse:
    department = await service.create_department(company_id, **request.model_dump())
    return DepartmentResponse.model_validate(department)


@router.get(
    "/companies/{company_id}/departments",
    response_model=list[DepartmentResponse],
    summary="List departments",
)
async def list_departments(
    company_id: uuid.UUID,
    service: Annotated[DepartmentService, Depends(_get_department_service)],
) -> list[DepartmentResponse]:
    departments = await service.list_departments(company_id)
    return [DepartmentResponse.model_validate(d) for d in departments]


@router.put(
    "/companies/{company_id}/departments/{department_id}",
    response_model=DepartmentResponse,
    summary="Update a department",
)
async def update_department(
    company_id: uuid.UUID,
    department_id: uuid.UUID,
    request: UpdateDepartmentRequest,
    service: Annotated[DepartmentService, Depends(_get_department_service)],
) -> DepartmentResponse:
    """Update a department. Records already written keep their attribution snapshot."""
    department = await service.update_department(
        company_id,
        department_id,
        **request.model_dump(exclude_unset=True),
    )
    return DepartmentResponse.model_validate(department)


@router.delete(
    "/companies/{company_id}/departments/{department_id}",
    status_code=204,
    summary="Delete a department",
)
async def delete_department(
    company_id: uuid.UUID,
    department_id: uuid.UUID,
    service: Annotated[DepartmentService, Depends(_get_department_service)],
) -> Response:
    await service.delete_department(company_id, department_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Energy ledger endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/companies/{company_id}/energy",
    response_model=EnergyRecordResponse,
    status_code=201,
    summary="Append an energy record",
)
async def append_energy_record(
    company_id: uuid.UUID,
    request: CreateEnergyRecordRequest,
    service: Annotated[EnergyLedgerService, Depends(_get_ledger_service)],
) -> EnergyRecordResponse:
    """Record a reading. AI attribution, CO2e and cost are derived and frozen on write."""
    record = await service.append_record(
        company_id=company_id,
        usage_date=request.usage_date,
        total_kwh=request.total_kwh,
        department_id=request.department_id,
        region=request.region,
        period_type=request.period_type.value,
        data_source=request.data_source.value,
    )
    return EnergyRecordResponse.model_validate(record)


@router.get(
    "/companies/{company_id}/energy",
    response_model=list[EnergyRecordResponse],
    summary="List energy records",
)
async def list_energy_records(
    company_id: uuid.UUID,
    service: Annotated[EnergyLedgerService, Depends(_get_ledger_service)],
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
    region: Annotated[str | None, Query(min_length=1, max_length=50)] = None,
) -> list[EnergyRecordResponse]:
    records = await service.list_records(company_id, start_date, end_date, region=region)
    return [EnergyRecordResponse.model_validate(r) for r in records]


@router.post(
    "/companies/{company_id}/energy/import",
    response_model=ImportResultResponse,
    summary="Bulk import energy records from CSV",
)
async def import_energy_csv(
    company_id: uuid.UUID,
    request: ImportCsvRequest,
    service: Annotated[EnergyLedgerService, Depends(_get_ledger_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    strict: Annotated[bool, Query(description="Respond 422 if any row is rejected")] = False,
) -> ImportResultResponse:
    """Import CSV rows. Valid rows are kept even when others are rejected.

    In strict mode the accepted rows are committed before the 422 is
    raised, since the request session rolls back on any exception.
    """
    result = await service.import_csv(company_id, request.content)
    if strict and result.rejected_rows:
        await session.commit()
        result.raise_for_rejections()
    return ImportResultResponse.model_validate(result)


@router.get(
    "/companies/{company_id}/energy/{record_id}/attribution",
    response_model=RecordAttributionResponse,
    summary="Explain a record's AI attribution",
)
async def explain_energy_record(
    company_id: uuid.UUID,
    record_id: uuid.UUID,
    service: Annotated[EnergyLedgerService, Depends(_get_ledger_service)],
) -> RecordAttributionResponse:
    attribution = await service.explain_record(company_id, record_id)
    return RecordAttributionResponse.model_validate(attribution)


# ---------------------------------------------------------------------------
# Dashboard endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/companies/{company_id}/dashboard",
    response_model=DashboardResponse,
    summary="Full executive dashboard",
)
async def get_dashboard(
    company_id: uuid.UUID,
    service: Annotated[DashboardService, Depends(_get_dashboard_service)],
) -> DashboardResponse:
    dashboard = await service.get_dashboard(company_id)
    return DashboardResponse.model_validate(dashboard)


@router.get(
    "/companies/{company_id}/dashboard/summary",
    response_model=DashboardSummaryResponse,
    summary="Executive summary KPIs",
)
async def get_dashboard_summary(
    company_id: uuid.UUID,
    service: Annotated[DashboardService, Depends(_get_dashboard_service)],
) -> DashboardSummaryResponse:
    summary = await service.get_summary(company_id)
    return DashboardSummaryResponse.model_validate(summary)


@router.get(
    "/companies/{company_id}/dashboard/departments",
    response_model=list[DepartmentComparisonResponse],
    summary="Department breakdown for the dashboard window",
)
async def get_dashboard_departments(
    company_id: uuid.UUID,
    service: Annotated[DashboardService, Depends(_get_dashboard_service)],
) -> list[DepartmentComparisonResponse]:
    rows = await service.get_department_breakdown(company_id)
    return [DepartmentComparisonResponse.model_validate(r) for r in rows]


@router.get(
    "/companies/{company_id}/dashboard/regions",
    response_model=list[RegionBreakdownResponse],
    summary="Region breakdown for the dashboard window",
)
async def get_dashboard_regions(
    company_id: uuid.UUID,
    service: Annotated[DashboardService, Depends(_get_dashboard_service)],
) -> list[RegionBreakdownResponse]:
    rows = await service.get_region_breakdown(company_id)
    return [RegionBreakdownResponse.model_validate(r) for r in rows]


# ---------------------------------------------------------------------------
# Analytics endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/companies/{company_id}/analytics/trends",
    response_model=list[TrendBucketResponse],
    summary="Monthly usage trends",
)
async def get_trends(
    company_id: uuid.UUID,
    service: Annotated[AnalyticsService, Depends(_get_analytics_service)],
    months: Annotated[int | None, Query(ge=1, le=60)] = None,
) -> list[TrendBucketResponse]:
    buckets = await service.get_trends(company_id, months)
    return [TrendBucketResponse.model_validate(b) for b in buckets]


@router.get(
    "/companies/{company_id}/analytics/forecast",
    response_model=list[ForecastPointResponse],
    summary="Forecast AI usage",
)
async def get_forecast(
    company_id: uuid.UUID,
    service: Annotated[AnalyticsService, Depends(_get_analytics_service)],
    months: Annotated[int | None, Query(ge=1, le=24)] = None,
) -> list[ForecastPointResponse]:
    """Linear projection of AI energy, emissions and cost; empty with under two months of history."""
    points = await service.get_forecast(company_id, months)
    return [ForecastPointResponse.model_validate(p) for p in points]


@router.get(
    "/companies/{company_id}/analytics/departments",
    response_model=list[DepartmentComparisonResponse],
    summary="Compare departments",
)
async def get_department_comparison(
    company_id: uuid.UUID,
    service: Annotated[AnalyticsService, Depends(_get_analytics_service)],
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> list[DepartmentComparisonResponse]:
    rows = await service.compare_departments(company_id, start_date, end_date)
    return [DepartmentComparisonResponse.model_validate(r) for r in rows]


@router.get(
    "/companies/{company_id}/analytics/yoy",
    response_model=YearOverYearResponse,
    summary="Year-over-year comparison",
)
async def get_year_over_year(
    company_id: uuid.UUID,
    service: Annotated[AnalyticsService, Depends(_get_analytics_service)],
) -> YearOverYearResponse:
    result = await service.year_over_year(company_id)
    return YearOverYearResponse.model_validate(result)


# ---------------------------------------------------------------------------
# Carbon configuration endpoints
# ---------------------------------------------------------------------------


@router.get("/carbon/defaults", response_model=list[RegionDefaultResponse], summary="Region intensity defaults")
async def list_carbon_defaults(
    service: Annotated[CarbonConfigService, Depends(_get_carbon_service)],
) -> list[RegionDefaultResponse]:
    return [RegionDefaultResponse.model_validate(r) for r in service.list_defaults()]


@router.get(
    "/companies/{company_id}/carbon/configs",
    response_model=list[CarbonConfigResponse],
    summary="List carbon intensity overrides",
)
async def list_carbon_configs(
    company_id: uuid.UUID,
    service: Annotated[CarbonConfigService, Depends(_get_carbon_service)],
) -> list[CarbonConfigResponse]:
    configs = await service.list_configs(company_id)
    return [CarbonConfigResponse.model_validate(c) for c in configs]


@router.post(
    "/companies/{company_id}/carbon/configs",
    response_model=CarbonConfigResponse,
    summary="Create or update a carbon intensity override",
)
async def upsert_carbon_config(
    company_id: uuid.UUID,
    request: UpsertCarbonConfigRequest,
    service: Annotated[CarbonConfigService, Depends(_get_carbon_service)],
) -> CarbonConfigResponse:
    config = await service.upsert_config(
        company_id,
        region=request.region,
        carbon_intensity=request.carbon_intensity,
        valid_year=request.valid_year,
    )
    return CarbonConfigResponse.model_validate(config)


@router.get(
    "/companies/{company_id}/carbon/intensity/{region}",
    response_model=EffectiveIntensityResponse,
    summary="Effective carbon intensity for a region",
)
async def get_effective_intensity(
    company_id: uuid.UUID,
    region: str,
    service: Annotated[CarbonConfigService, Depends(_get_carbon_service)],
) -> EffectiveIntensityResponse:
    """Company override if one exists, otherwise the region default."""
    resolved = await service.effective_intensity(company_id, region)
    return EffectiveIntensityResponse.model_validate(resolved)


# ---------------------------------------------------------------------------
# Alert and insight endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/companies/{company_id}/alerts/thresholds",
    response_model=list[ThresholdResponse],
    summary="List alert thresholds",
)
async def list_thresholds(
    company_id: uuid.UUID,
    service: Annotated[AlertsService, Depends(_get_alerts_service)],
) -> list[ThresholdResponse]:
    thresholds = await service.list_thresholds(company_id)
    return [ThresholdResponse.model_validate(t) for t in thresholds]


@router.post(
    "/companies/{company_id}/alerts/thresholds",
    response_model=ThresholdResponse,
    summary="Configure an alert threshold",
)
async def configure_threshold(
    company_id: uuid.UUID,
    request: ConfigureThresholdRequest,
    service: Annotated[AlertsService, Depends(_get_alerts_service)],
) -> ThresholdResponse:
    """Create or replace the threshold for one metric."""
    threshold = await service.configure_threshold(
        company_id,
        metric_type=request.metric_type.value,
        threshold_value=request.threshold_value,
        alert_message=request.alert_message,
        active=request.active,
    )
    return ThresholdResponse.model_validate(threshold)


@router.get("/companies/{company_id}/alerts", response_model=list[AlertResponse], summary="Active alerts")
async def get_alerts(
    company_id: uuid.UUID,
    service: Annotated[AlertsService, Depends(_get_alerts_service)],
) -> list[AlertResponse]:
    """Thresholds at 80% or more of their limit this month, CRITICAL first."""
    alerts = await service.check_alerts(company_id)
    return [AlertResponse.model_validate(a) for a in alerts]


@router.get(
    "/companies/{company_id}/insights",
    response_model=list[InsightResponse],
    summary="Optimization insights",
)
async def get_insights(
    company_id: uuid.UUID,
    service: Annotated[AlertsService, Depends(_get_alerts_service)],
) -> list[InsightResponse]:
    insights = await service.generate_insights(company_id)
    return [InsightResponse.model_validate(i) for i in insights]


# ---------------------------------------------------------------------------
# Simulation endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/companies/{company_id}/simulations/growth",
    response_model=SimulationResponse,
    summary="Simulate AI usage growth",
)
async def simulate_growth(
    company_id: uuid.UUID,
    request: GrowthSimulationRequest,
    service: Annotated[SimulationService, Depends(_get_simulation_service)],
) -> SimulationResponse:
    result = await service.simulate_growth(company_id, request.growth_percent, request.months_ahead)
    return SimulationResponse.model_validate(result)


@router.post(
    "/companies/{company_id}/simulations/region-change",
    response_model=SimulationResponse,
    summary="Simulate moving AI workloads to another region",
)
async def simulate_region_change(
    company_id: uuid.UUID,
    request: RegionChangeSimulationRequest,
    service: Annotated[SimulationService, Depends(_get_simulation_service)],
) -> SimulationResponse:
    result = await service.simulate_region_change(company_id, request.to_region, request.from_region)
    return SimulationResponse.model_validate(result)


@router.post(
    "/companies/{company_id}/simulations/efficiency",
    response_model=SimulationResponse,
    summary="Simulate an efficiency improvement",
)
async def simulate_efficiency(
    company_id: uuid.UUID,
    request: EfficiencySimulationRequest,
    service: Annotated[SimulationService, Depends(_get_simulation_service)],
) -> SimulationResponse:
    result = await service.simulate_efficiency(company_id, request.efficiency_percent)
    return SimulationResponse.model_validate(result)


@router.post(
    "/companies/{company_id}/simulations/scenarios",
    response_model=ScenarioResponse,
    status_code=201,
    summary="Run and save a simulation scenario",
)
async def save_scenario(
    company_id: uuid.UUID,
    request: SaveScenarioRequest,
    service: Annotated[SimulationService, Depends(_get_simulation_service)],
) -> ScenarioResponse:
    scenario = await service.save_scenario(
        company_id,
        name=request.name,
        simulation_type=request.simulation_type.value,
        parameters=request.parameters,
        description=request.description,
    )
    return ScenarioResponse.model_validate(scenario)


@router.get(
    "/companies/{company_id}/simulations/scenarios",
    response_model=list[ScenarioResponse],
    summary="List saved scenarios",
)
async def list_scenarios(
    company_id: uuid.UUID,
    service: Annotated[SimulationService, Depends(_get_simulation_service)],
) -> list[ScenarioResponse]:
    scenarios = await service.list_scenarios(company_id)
    return [ScenarioResponse.model_validate(s) for s in scenarios]
