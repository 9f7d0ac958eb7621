"""Business logic services for the EcoAI carbon engine.

All services depend on repository interfaces (not concrete
implementations) and receive dependencies via constructor injection.
No framework code (FastAPI, SQLAlchemy) belongs here.

Key invariants:
- EnergyLedgerService: Derives the attribution/carbon/cost snapshot once at write time;
  writes for one company are serialized on the company row lock until commit.
- AnalyticsService: Monthly trends, linear forecast, department comparison and YoY.
- DashboardService: Executive summary over a trailing window vs the window before it.
- AlertsService: Thresholds evaluated month-to-date; heuristic insights.
- SimulationService: What-if scenarios over the trailing baseline window.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from ecoai_engine.adapters.alert_evaluator import Alert, AlertEvaluator
from ecoai_engine.adapters.csv_importer import RejectedRow, parse_energy_csv
from ecoai_engine.adapters.insight_generator import Insight, InsightContext, InsightGenerator
from ecoai_engine.adapters.scenario_simulator import Baseline, ScenarioSimulator, SimulationResult
from ecoai_engine.adapters.trend_forecaster import ForecastPoint, TrendBucket, TrendForecaster, add_months
from ecoai_engine.adapters.usage_comparator import (
    DepartmentComparison,
    RegionBreakdown,
    YearOverYear,
    breakdown_by_region,
    compare_departments,
    percent_change,
    year_over_year,
)
from ecoai_engine.attribution import AttributionResult, EnergyAttributor
from ecoai_engine.core.carbon import CarbonCostCalculator, ResolvedIntensity
from ecoai_engine.core.interfaces import (
    IAlertThresholdRepository,
    ICarbonConfigRepository,
    ICompanyRepository,
    IDepartmentRepository,
    IEnergyRecordRepository,
    ISimulationScenarioRepository,
)
from ecoai_engine.core.locks import CompanyLockRegistry, ledger_write_locks
from ecoai_engine.core.models import (
    AlertThreshold,
    CarbonConfig,
    Company,
    DataSource,
    Department,
    EnergyRecord,
    MetricType,
    PeriodType,
    SimulationScenario,
    SimulationType,
)
from ecoai_engine.core.regions import DEFAULT_REGION_REGISTRY, RegionIntensity, RegionRegistry, normalize_region
from ecoai_engine.errors import NotFoundError, PartialImportFailure, ValidationError
from ecoai_engine.observability import get_logger
from ecoai_engine.settings import Settings

logger = get_logger(__name__)


def _check_fraction(value: float, field_name: str) -> None:
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{field_name} must be between 0 and 1", field=field_name, value=value)


def _check_non_negative(value: float, field_name: str) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{field_name} must be >= 0", field=field_name, value=value)


def _check_enum(value: str, enum_cls: type, field_name: str) -> str:
    allowed = {member.value for member in enum_cls}
    if value not in allowed:
        raise ValidationError(
            f"{field_name} must be one of {sorted(allowed)}",
            field=field_name,
            value=value,
        )
    return value


def _check_date_range(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("start_date must not be after end_date", field="start_date", value=str(start_date))


def _number_param(parameters: dict[str, Any], name: str) -> float:
    """Read a required numeric simulation parameter."""
    if name not in parameters or parameters[name] is None:
        raise ValidationError(f"Missing simulation parameter: {name}", field=name)
    value = parameters[name]
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", field=name, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a number", field=name, value=value) from exc
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a finite number", field=name, value=value)
    return number


def _optional_int_param(parameters: dict[str, Any], name: str) -> int | None:
    """Read an optional whole-number simulation parameter."""
    value = parameters.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{name} must be a whole number", field=name, value=value)
    try:
        number = float(value)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a whole number", field=name, value=value) from exc
    if not number.is_integer():
        raise ValidationError(f"{name} must be a whole number", field=name, value=value)
    return int(number)


def _text_param(parameters: dict[str, Any], name: str, required: bool = True) -> str | None:
    """Read a region-code style simulation parameter."""
    value = parameters.get(name)
    if value is None:
        if required:
            raise ValidationError(f"Missing simulation parameter: {name}", field=name)
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string", field=name, value=value)
    return value


async def _require_company(company_repo: ICompanyRepository, company_id: uuid.UUID) -> Company:
    company = await company_repo.get_by_id(company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    return company


async def _lock_company(company_repo: ICompanyRepository, company_id: uuid.UUID) -> Company:
    company = await company_repo.get_for_update(company_id)
    if company is None:
        raise NotFoundError("Company", company_id)
    return company


# ---------------------------------------------------------------------------
# Companies and departments
# ---------------------------------------------------------------------------


class CompanyService:
    """Create and maintain companies (the aggregate root)."""

    _UPDATABLE = frozenset(
        {"name", "industry", "country", "region", "base_ai_percentage", "electricity_cost_per_kwh", "currency"}
    )

    def __init__(self, company_repo: ICompanyRepository, settings: Settings) -> None:
        self._company_repo = company_repo
        self._settings = settings

    @staticmethod
    def _validate(values: dict[str, Any]) -> None:
        if "name" in values and not (values["name"] or "").strip():
            raise ValidationError("name must not be empty", field="name", value=values["name"])
        if values.get("base_ai_percentage") is not None:
            _check_fraction(values["base_ai_percentage"], "base_ai_percentage")
        if values.get("electricity_cost_per_kwh") is not None:
            _check_non_negative(values["electricity_cost_per_kwh"], "electricity_cost_per_kwh")

    async def create_company(
        self,
        name: str,
        industry: str | None = None,
        country: str | None = None,
        region: str | None = None,
        base_ai_percentage: float | None = None,
        electricity_cost_per_kwh: float | None = None,
        currency: str | None = None,
    ) -> Company:
        """Create a company, filling omitted economics from settings defaults.

        Raises:
            ValidationError: If the AI baseline is outside [0, 1] or the price is negative.
        """
        self._validate(
            {
                "name": name,
                "base_ai_percentage": base_ai_percentage,
                "electricity_cost_per_kwh": electricity_cost_per_kwh,
            }
        )
        company = Company(
            name=name.strip(),
            industry=industry,
            country=country,
            region=normalize_region(region or self._settings.default_region),
            base_ai_percentage=(
                base_ai_percentage if base_ai_percentage is not None else self._settings.default_base_ai_percentage
            ),
            electricity_cost_per_kwh=(
                electricity_cost_per_kwh
                if electricity_cost_per_kwh is not None
                else self._settings.default_electricity_cost_per_kwh
            ),
            currency=(currency or self._settings.default_currency).upper(),
        )
        persisted = await self._company_repo.create(company)
        logger.info("company_created", company_id=str(persisted.id), name=persisted.name, region=persisted.region)
        return persisted

    async def get_company(self, company_id: uuid.UUID) -> Company:
        """Raises NotFoundError if the company does not exist."""
        return await _require_company(self._company_repo, company_id)

    async def list_companies(self) -> list[Company]:
        return await self._company_repo.list_all()

    async def update_company(self, company_id: uuid.UUID, **changes: Any) -> Company:
        """Apply a partial update. Keys with None values are ignored."""
        company = await _require_company(self._company_repo, company_id)
        values = {k: v for k, v in changes.items() if k in self._UPDATABLE and v is not None}
        self._validate(values)
        if "region" in values:
            values["region"] = normalize_region(values["region"])
        if "currency" in values:
            values["currency"] = values["currency"].upper()
        for key, value in values.items():
            setattr(company, key, value)

        updated = await self._company_repo.update(company)
        logger.info("company_updated", company_id=str(company_id), fields=sorted(values))
        return updated

    async def delete_company(self, company_id: uuid.UUID) -> None:
        """Delete a company and, by cascade, everything it owns."""
        company = await _require_company(self._company_repo, company_id)
        await self._company_repo.delete(company)
        ledger_write_locks.discard(company_id)
        logger.info("company_deleted", company_id=str(company_id))


class DepartmentService:
    """Manage the departments whose AI weights drive attribution."""

    _UPDATABLE = frozenset({"name", "team", "product", "description", "ai_usage_weight", "employee_count"})

    def __init__(
        self,
        department_repo: IDepartmentRepository,
        company_repo: ICompanyRepository,
        settings: Settings,
    ) -> None:
        self._department_repo = department_repo
        self._company_repo = company_repo
        self._settings = settings

    @staticmethod
    def _validate(values: dict[str, Any]) -> None:
        if "name" in values and not (values["name"] or "").strip():
            raise ValidationError("name must not be empty", field="name", value=values["name"])
        if values.get("ai_usage_weight") is not None:
            _check_fraction(values["ai_usage_weight"], "ai_usage_weight")
        if values.get("employee_count") is not None and values["employee_count"] < 0:
            raise ValidationError("employee_count must be >= 0", field="employee_count", value=values["employee_count"])

    async def _check_name_free(
        self,
        company_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        existing = await self._department_repo.list_by_company(company_id)
        for department in existing:
            if department.id != exclude_id and department.name.lower() == name.strip().lower():
                raise ValidationError(f"Department '{name}' already exists", field="name", value=name)

    async def get_department(self, company_id: uuid.UUID, department_id: uuid.UUID) -> Department:
        """Return a department owned by the company.

        Raises:
            NotFoundError: If it does not exist or belongs to another company.
        """
        department = await self._department_repo.get_by_id(department_id)
        if department is None or department.company_id != company_id:
            raise NotFoundError("Department", department_id)
        return department

    async def create_department(
        self,
        company_id: uuid.UUID,
        name: str,
        team: str | None = None,
        product: str | None = None,
        description: str | None = None,
        ai_usage_weight: float | None = None,
        employee_count: int | None = None,
    ) -> Department:
        await _require_company(self._company_repo, company_id)
        self._validate({"name": name, "ai_usage_weight": ai_usage_weight, "employee_count": employee_count})
        await self._check_name_free(company_id, name)

        department = Department(
            company_id=company_id,
            name=name.strip(),
            team=team,
            product=product,
            description=description,
            ai_usage_weight=(
                ai_usage_weight if ai_usage_weight is not None else self._settings.default_department_ai_weight
            ),
            employee_count=(
                employee_count if employee_count is not None else self._settings.default_department_employee_count
            ),
        )
        persisted = await self._department_repo.create(department)
        logger.info(
            "department_created",
            company_id=str(company_id),
            department_id=str(persisted.id),
            ai_usage_weight=persisted.ai_usage_weight,
        )
        return persisted

    async def list_departments(self, company_id: uuid.UUID) -> list[Department]:
        await _require_company(self._company_repo, company_id)
        return await self._department_repo.list_by_company(company_id)

    async def update_department(
        self,
        company_id: uuid.UUID,
        department_id: uuid.UUID,
        **changes: Any,
    ) -> Department:
        """Apply a partial update. Existing records keep their snapshot."""
        department = await self.get_department(company_id, department_id)
        values = {k: v for k, v in changes.items() if k in self._UPDATABLE and v is not None}
        self._validate(values)
        if "name" in values:
            await self._check_name_free(company_id, values["name"], exclude_id=department_id)
            values["name"] = values["name"].strip()
        for key, value in values.items():
            setattr(department, key, value)

        updated = await self._department_repo.update(department)
        logger.info("department_updated", company_id=str(company_id), department_id=str(department_id))
        return updated

    async def delete_department(self, company_id: uuid.UUID, department_id: uuid.UUID) -> None:
        department = await self.get_department(company_id, department_id)
        await self._department_repo.delete(department)
        logger.info("department_deleted", company_id=str(company_id), department_id=str(department_id))


# ---------------------------------------------------------------------------
# Carbon configuration
# ---------------------------------------------------------------------------


class CarbonConfigService:
    """Region intensity defaults and per-company overrides."""

    def __init__(
        self,
        carbon_config_repo: ICarbonConfigRepository,
        company_repo: ICompanyRepository,
        registry: RegionRegistry = DEFAULT_REGION_REGISTRY,
    ) -> None:
        self._config_repo = carbon_config_repo
        self._company_repo = company_repo
        self._registry = registry

    @property
    def registry(self) -> RegionRegistry:
        return self._registry

    def list_defaults(self) -> list[RegionIntensity]:
        return list(self._registry)

    async def list_configs(self, company_id: uuid.UUID) -> list[CarbonConfig]:
        await _require_company(self._company_repo, company_id)
        return await self._config_repo.list_by_company(company_id)

    async def upsert_config(
        self,
        company_id: uuid.UUID,
        region: str,
        carbon_intensity: float,
        valid_year: int | None = None,
    ) -> CarbonConfig:
        """Create or replace the company's intensity for a region.

        New records resolve through the override immediately; existing
        records keep the intensity captured when they were written.
        """
        await _require_company(self._company_repo, company_id)
        _check_non_negative(carbon_intensity, "carbon_intensity")
        code = normalize_region(region)
        if not code:
            raise ValidationError("region must not be empty", field="region", value=region)

        existing = await self._config_repo.get_by_company_region(company_id, code)
        if existing is not None:
            existing.carbon_intensity = carbon_intensity
            if valid_year is not None:
                existing.valid_year = valid_year
            config = await self._config_repo.update(existing)
        else:
            config = await self._config_repo.create(
                CarbonConfig(
                    company_id=company_id,
                    region=code,
                    carbon_intensity=carbon_intensity,
                    unit="gCO2/kWh",
                    valid_year=valid_year if valid_year is not None else date.today().year,
                )
            )

        logger.info(
            "carbon_config_upserted",
            company_id=str(company_id),
            region=code,
            carbon_intensity=carbon_intensity,
            created=existing is None,
        )
        return config

    async def build_calculator(self, company: Company) -> CarbonCostCalculator:
        """Calculator bound to the company's overrides and electricity price."""
        configs = await self._config_repo.list_by_company(company.id)
        return CarbonCostCalculator(
            registry=self._registry,
            overrides={c.region: c.carbon_intensity for c in configs},
            electricity_cost_per_kwh=company.electricity_cost_per_kwh,
        )

    async def effective_intensity(self, company_id: uuid.UUID, region: str) -> ResolvedIntensity:
        """The intensity a new record in this region would be written with.

        Raises:
            NotFoundError: If the company does not exist, or the region has
                neither an override nor a registry default.
        """
        company = await _require_company(self._company_repo, company_id)
        calculator = await self.build_calculator(company)
        return calculator.resolve_intensity(region)


# ---------------------------------------------------------------------------
# Energy ledger
# ---------------------------------------------------------------------------


@dataclass
class ImportResult:
    """Outcome of a bulk CSV import.

    success is True when at least one row was imported, or when nothing
    was rejected (an empty file is a successful no-op).
    """

    records_imported: int
    rejected_rows: list[RejectedRow] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.records_imported > 0 or not self.rejected_rows

    def raise_for_rejections(self) -> None:
        """Raise PartialImportFailure if any row was rejected."""
        if self.rejected_rows:
            raise PartialImportFailure(
                records_imported=self.records_imported,
                rejected_rows=[r.to_dict() for r in self.rejected_rows],
            )


@dataclass
class RecordAttribution:
    """How one stored record's AI share was derived."""

    record_id: uuid.UUID
    total_kwh: float
    ai_attributed_kwh: float
    share_used: float
    source: str
    explanation: str


class EnergyLedgerService:
    """Append-only ledger of energy readings.

    Every write resolves attribution, carbon intensity and cost once and
    stores them on the record, so later changes to department weights,
    overrides or prices never rewrite history.

    Writes for one company are serialized by the company row lock taken
    through get_for_update, held until the request transaction commits.
    The in-process lock registry additionally queues same-process writers
    before they reach the database.
    """

    def __init__(
        self,
        record_repo: IEnergyRecordRepository,
        company_repo: ICompanyRepository,
        department_repo: IDepartmentRepository,
        carbon_service: CarbonConfigService,
        locks: CompanyLockRegistry = ledger_write_locks,
        attributor: EnergyAttributor | None = None,
    ) -> None:
        self._record_repo = record_repo
        self._company_repo = company_repo
        self._department_repo = department_repo
        self._carbon_service = carbon_service
        self._locks = locks
        self._attributor = attributor or EnergyAttributor()

    def _derive(
        self,
        company: Company,
        calculator: CarbonCostCalculator,
        usage_date: date,
        total_kwh: float,
        region: str,
        department: Department | None,
        period_type: str,
        data_source: str,
    ) -> EnergyRecord:
        attribution = self._attributor.attribute(
            total_kwh,
            company.base_ai_percentage,
            department.ai_usage_weight if department is not None else None,
        )
        total = calculator.calculate(total_kwh, region)
        ai_co2e = calculator.co2e_kg(attribution.ai_attributed_kwh, total.intensity_g_per_kwh)
        return EnergyRecord(
            company_id=company.id,
            department_id=department.id if department is not None else None,
            department_name=department.name if department is not None else None,
            usage_date=usage_date,
            total_kwh=total_kwh,
            region=normalize_region(region),
            period_type=period_type,
            data_source=data_source,
            currency=company.currency,
            ai_attributed_kwh=attribution.ai_attributed_kwh,
            co2e_kg=total.co2e_kg,
            ai_co2e_kg=ai_co2e,
            cost=total.cost,
            ai_cost=calculator.cost(attribution.ai_attributed_kwh),
            carbon_intensity_used=total.intensity_g_per_kwh,
            ai_share_used=attribution.share_used,
        )

    async def append_record(
        self,
        company_id: uuid.UUID,
        usage_date: date,
        total_kwh: float,
        department_id: uuid.UUID | None = None,
        region: str | None = None,
        period_type: str = PeriodType.DAILY.value,
        data_source: str = DataSource.MANUAL.value,
    ) -> EnergyRecord:
        """Validate, derive and persist one energy record.

        Args:
            company_id: Owning company.
            usage_date: Calendar date of the reading.
            total_kwh: Metered consumption (>= 0).
            department_id: Department within the company, or None for company-wide usage.
            region: Region code; defaults to the company's primary region.
            period_type: DAILY | WEEKLY | MONTHLY.
            data_source: MANUAL | CSV_IMPORT.

        Returns:
            The persisted EnergyRecord with its derived snapshot.

        Raises:
            ValidationError: If total_kwh is negative or an enum value is unknown.
            NotFoundError: If the company, department or region cannot be resolved.
        """
        _check_non_negative(total_kwh, "total_kwh")
        _check_enum(period_type, PeriodType, "period_type")
        _check_enum(data_source, DataSource, "data_source")

        company = await _lock_company(self._company_repo, company_id)
        department: Department | None = None
        if department_id is not None:
            department = await self._department_repo.get_by_id(department_id)
            if department is None or department.company_id != company_id:
                raise NotFoundError("Department", department_id)

        calculator = await self._carbon_service.build_calculator(company)
        record = self._derive(
            company,
            calculator,
            usage_date,
            total_kwh,
            region or company.region,
            department,
            period_type,
            data_source,
        )

        async with self._locks.for_company(company_id):
            persisted = await self._record_repo.create(record)

        logger.info(
            "energy_record_appended",
            company_id=str(company_id),
            record_id=str(persisted.id),
            usage_date=str(usage_date),
            total_kwh=total_kwh,
            ai_attributed_kwh=persisted.ai_attributed_kwh,
            region=persisted.region,
        )
        return persisted

    async def import_csv(self, company_id: uuid.UUID, content: str) -> ImportResult:
        """Import CSV rows (date,totalKwh,departmentName,region).

        Rows are validated independently: a bad row is rejected with its
        reason and does not prevent the others from importing.
        Department names match case-insensitively.

        Raises:
            NotFoundError: If the company does not exist.
        """
        company = await _lock_company(self._company_repo, company_id)
        rows, rejected = parse_energy_csv(content)
        departments = {d.name.lower(): d for d in await self._department_repo.list_by_company(company_id)}
        calculator = await self._carbon_service.build_calculator(company)

        imported = 0
        async with self._locks.for_company(company_id):
            for row in rows:
                department: Department | None = None
                if row.department_name:
                    department = departments.get(row.department_name.lower())
                    if department is None:
                        rejected.append(RejectedRow(row.row_number, f"Unknown department: {row.department_name}"))
                        continue

                region = row.region or company.region
                if not calculator.is_resolvable(region):
                    rejected.append(RejectedRow(row.row_number, f"Unknown region: {region}"))
                    continue

                record = self._derive(
                    company,
                    calculator,
                    row.usage_date,
                    row.total_kwh,
                    region,
                    department,
                    PeriodType.DAILY.value,
                    DataSource.CSV_IMPORT.value,
                )
                await self._record_repo.create(record)
                imported += 1

        rejected.sort(key=lambda r: r.row_number)
        for row in rejected:
            logger.warning(
                "energy_import_row_rejected",
                company_id=str(company_id),
                row_number=row.row_number,
                reason=row.reason,
            )

        result = ImportResult(records_imported=imported, rejected_rows=rejected)
        logger.info(
            "energy_import_completed",
            company_id=str(company_id),
            records_imported=imported,
            rejected_count=len(rejected),
            success=result.success,
        )
        return result

    async def list_records(
        self,
        company_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        region: str | None = None,
    ) -> list[EnergyRecord]:
        """Records in an optional inclusive range, ascending by date.

        A region filter is normalized the same way records are on write,
        so "us" and "US" select the same rows.
        """
        _check_date_range(start_date, end_date)
        await _require_company(self._company_repo, company_id)
        return await self._record_repo.list_by_company(
            company_id,
            start_date,
            end_date,
            region=normalize_region(region) if region is not None else None,
        )

    async def explain_record(self, company_id: uuid.UUID, record_id: uuid.UUID) -> RecordAttribution:
        """Explain how a stored record's AI share was attributed.

        Uses the share and kWh frozen on the record, so the explanation
        matches what was written even if weights changed since.

        Raises:
            NotFoundError: If the company or the record does not exist, or
                the record belongs to another company.
        """
        await _require_company(self._company_repo, company_id)
        record = await self._record_repo.get_by_id(record_id)
        if record is None or record.company_id != company_id:
            raise NotFoundError("EnergyRecord", record_id)

        attribution = AttributionResult(
            total_kwh=record.total_kwh,
            ai_attributed_kwh=record.ai_attributed_kwh,
            share_used=record.ai_share_used,
            source="department" if record.department_id is not None else "company_baseline",
        )
        return RecordAttribution(
            record_id=record.id,
            total_kwh=attribution.total_kwh,
            ai_attributed_kwh=attribution.ai_attributed_kwh,
            share_used=attribution.share_used,
            source=attribution.source,
            explanation=self._attributor.explain(attribution),
        )


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class AnalyticsService:
    """Trends, forecasts, department comparison and year-over-year."""

    def __init__(
        self,
        record_repo: IEnergyRecordRepository,
        department_repo: IDepartmentRepository,
        company_repo: ICompanyRepository,
        settings: Settings,
        forecaster: TrendForecaster | None = None,
    ) -> None:
        self._record_repo = record_repo
        self._department_repo = department_repo
        self._company_repo = company_repo
        self._settings = settings
        self._forecaster = forecaster or TrendForecaster(settings.forecast_confidence_band)

    async def _monthly_buckets(self, company_id: uuid.UUID, months: int, as_of: date) -> list[TrendBucket]:
        start = add_months(as_of, -(months - 1))
        records = await self._record_repo.list_by_company(company_id, start, as_of)
        return self._forecaster.monthly_trend(records, months, as_of)

    async def get_trends(
        self,
        company_id: uuid.UUID,
        months: int | None = None,
        as_of: date | None = None,
    ) -> list[TrendBucket]:
        """Monthly buckets for the trailing `months` months, oldest first."""
        months = months if months is not None else self._settings.trend_default_months
        if months < 1:
            raise ValidationError("months must be >= 1", field="months", value=months)
        await _require_company(self._company_repo, company_id)
        return await self._monthly_buckets(company_id, months, as_of or date.today())

    async def get_forecast(
        self,
        company_id: uuid.UUID,
        months_ahead: int | None = None,
        as_of: date | None = None,
    ) -> list[ForecastPoint]:
        """Linear projection of AI usage; [] with fewer than two months of history."""
        months_ahead = months_ahead if months_ahead is not None else self._settings.forecast_default_months
        if months_ahead < 1:
            raise ValidationError("months must be >= 1", field="months", value=months_ahead)
        await _require_company(self._company_repo, company_id)
        buckets = await self._monthly_buckets(
            company_id,
            self._settings.forecast_history_months,
            as_of or date.today(),
        )
        return self._forecaster.forecast(buckets, months_ahead)

    async def compare_departments(
        self,
        company_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[DepartmentComparison]:
        _check_date_range(start_date, end_date)
        await _require_company(self._company_repo, company_id)
        departments = await self._department_repo.list_by_company(company_id)
        records = await self._record_repo.list_by_company(company_id, start_date, end_date)
        return compare_departments(departments, records)

    async def year_over_year(self, company_id: uuid.UUID, as_of: date | None = None) -> YearOverYear:
        as_of = as_of or date.today()
        await _require_company(self._company_repo, company_id)
        records = await self._record_repo.list_by_company(company_id, date(as_of.year - 1, 1, 1), as_of)
        return year_over_year(records, as_of)


# ---------------------------------------------------------------------------
# Alerts and insights
# ---------------------------------------------------------------------------


class AlertsService:
    """Threshold configuration, alert evaluation and optimization insights."""

    def __init__(
        self,
        threshold_repo: IAlertThresholdRepository,
        record_repo: IEnergyRecordRepository,
        company_repo: ICompanyRepository,
        settings: Settings,
        registry: RegionRegistry = DEFAULT_REGION_REGISTRY,
    ) -> None:
        self._threshold_repo = threshold_repo
        self._record_repo = record_repo
        self._company_repo = company_repo
        self._settings = settings
        self._evaluator = AlertEvaluator(settings.alert_warning_percent, settings.alert_critical_percent)
        self._insights = InsightGenerator(
            registry,
            high_intensity_g_per_kwh=settings.insight_high_intensity_g_per_kwh,
            region_share_percent=settings.insight_region_share_percent,
            batching_min_records=settings.insight_batching_min_records,
            batching_small_record_kwh=settings.insight_batching_small_record_kwh,
            efficiency_excess_points=settings.insight_efficiency_excess_points,
            efficiency_reduction_fraction=settings.insight_efficiency_reduction_fraction,
            scheduling_monthly_ai_kwh=settings.insight_scheduling_monthly_ai_kwh,
        )

    async def configure_threshold(
        self,
        company_id: uuid.UUID,
        metric_type: str,
        threshold_value: float,
        alert_message: str | None = None,
        active: bool = True,
    ) -> AlertThreshold:
        """Create or replace the company's threshold for a metric.

        Raises:
            ValidationError: If the metric is unknown or the value is not > 0.
        """
        await _require_company(self._company_repo, company_id)
        _check_enum(metric_type, MetricType, "metric_type")
        if not math.isfinite(threshold_value) or threshold_value <= 0:
            raise ValidationError("threshold_value must be > 0", field="threshold_value", value=threshold_value)

        existing = await self._threshold_repo.get_by_company_metric(company_id, metric_type)
        if existing is not None:
            existing.threshold_value = threshold_value
            existing.alert_message = alert_message
            existing.active = active
            threshold = await self._threshold_repo.update(existing)
        else:
            threshold = await self._threshold_repo.create(
                AlertThreshold(
                    company_id=company_id,
                    metric_type=metric_type,
                    threshold_value=threshold_value,
                    alert_message=alert_message,
                    active=active,
                )
            )

        logger.info(
            "alert_threshold_configured",
            company_id=str(company_id),
            metric_type=metric_type,
            threshold_value=threshold_value,
            active=active,
        )
        return threshold

    async def list_thresholds(self, company_id: uuid.UUID) -> list[AlertThreshold]:
        await _require_company(self._company_repo, company_id)
        return await self._threshold_repo.list_by_company(company_id)

    async def current_metric_values(self, company_id: uuid.UUID, as_of: date) -> dict[str, float]:
        """Month-to-date value of every alertable metric."""
        sums = await self._record_repo.sum_by_company_period(company_id, as_of.replace(day=1), as_of)
        return {
            MetricType.AI_USAGE_KWH.value: sums["ai_kwh"],
            MetricType.TOTAL_ENERGY_KWH.value: sums["total_kwh"],
            MetricType.CARBON_EMISSION_KG.value: sums["co2e_kg"],
            MetricType.MONTHLY_COST.value: sums["cost"],
        }

    async def check_alerts(self, company_id: uuid.UUID, as_of: date | None = None) -> list[Alert]:
        """Evaluate active thresholds against the current month to date."""
        as_of = as_of or date.today()
        await _require_company(self._company_repo, company_id)
        thresholds = await self._threshold_repo.list_by_company(company_id, active=True)
        if not thresholds:
            return []
        values = await self.current_metric_values(company_id, as_of)
        return self._evaluator.evaluate(thresholds, values)

    async def generate_insights(self, company_id: uuid.UUID, as_of: date | None = None) -> list[Insight]:
        """Ranked recommendations over the dashboard window."""
        as_of = as_of or date.today()
        company = await _require_company(self._company_repo, company_id)
        window_start = as_of - timedelta(days=self._settings.dashboard_window_days - 1)
        records = await self._record_repo.list_by_company(company_id, window_start, as_of)
        month = await self._record_repo.sum_by_company_period(company_id, as_of.replace(day=1), as_of)
        thresholds = await self._threshold_repo.list_by_company(company_id, active=True)

        context = InsightContext(
            records=records,
            base_ai_percentage=company.base_ai_percentage,
            current_month_ai_kwh=month["ai_kwh"],
            currency=company.currency,
            has_carbon_threshold=any(
                t.metric_type == MetricType.CARBON_EMISSION_KG.value for t in thresholds
            ),
        )
        return self._insights.generate(context)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DashboardSummary:
    """Executive KPIs for the trailing window, with changes vs the window before it."""

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


@dataclass(frozen=True)
class Dashboard:
    summary: DashboardSummary
    department_breakdown: list[DepartmentComparison]
    region_breakdown: list[RegionBreakdown]
    trends: list[TrendBucket]
    forecasts: list[ForecastPoint]
    alerts: list[Alert]
    insights: list[Insight]


class DashboardService:
    """Aggregates the ledger into executive views."""

    def __init__(
        self,
        record_repo: IEnergyRecordRepository,
        department_repo: IDepartmentRepository,
        company_repo: ICompanyRepository,
        analytics: AnalyticsService,
        alerts: AlertsService,
        settings: Settings,
    ) -> None:
        self._record_repo = record_repo
        self._department_repo = department_repo
        self._company_repo = company_repo
        self._analytics = analytics
        self._alerts = alerts
        self._settings = settings

    def _window(self, as_of: date) -> tuple[date, date]:
        return as_of - timedelta(days=self._settings.dashboard_window_days - 1), as_of

    async def get_summary(self, company_id: uuid.UUID, as_of: date | None = None) -> DashboardSummary:
        as_of = as_of or date.today()
        company = await _require_company(self._company_repo, company_id)
        start, end = self._window(as_of)
        days = self._settings.dashboard_window_days
        current = await self._record_repo.sum_by_company_period(company_id, start, end)
        previous = await self._record_repo.sum_by_company_period(
            company_id,
            start - timedelta(days=days),
            start - timedelta(days=1),
        )
        departments = await self._department_repo.list_by_company(company_id)

        total = current["total_kwh"]
        return DashboardSummary(
            total_energy_kwh=total,
            ai_energy_kwh=current["ai_kwh"],
            ai_percentage=(current["ai_kwh"] / total * 100.0) if total > 0 else 0.0,
            total_co2e_kg=current["co2e_kg"],
            ai_co2e_kg=current["ai_co2e_kg"],
            total_cost=current["cost"],
            ai_cost=current["ai_cost"],
            currency=company.currency,
            energy_change_percent=percent_change(previous["total_kwh"], current["total_kwh"]),
            carbon_change_percent=percent_change(previous["co2e_kg"], current["co2e_kg"]),
            cost_change_percent=percent_change(previous["cost"], current["cost"]),
            period_type=f"LAST_{days}_DAYS",
            department_count=len(departments),
            data_point_count=int(current["record_count"]),
        )

    async def get_department_breakdown(
        self,
        company_id: uuid.UUID,
        as_of: date | None = None,
    ) -> list[DepartmentComparison]:
        start, end = self._window(as_of or date.today())
        return await self._analytics.compare_departments(company_id, start, end)

    async def get_region_breakdown(
        self,
        company_id: uuid.UUID,
        as_of: date | None = None,
    ) -> list[RegionBreakdown]:
        await _require_company(self._company_repo, company_id)
        start, end = self._window(as_of or date.today())
        records = await self._record_repo.list_by_company(company_id, start, end)
        return breakdown_by_region(records)

    async def get_dashboard(self, company_id: uuid.UUID, as_of: date | None = None) -> Dashboard:
        """Summary, breakdowns, trends, forecast, alerts and insights in one view."""
        as_of = as_of or date.today()
        dashboard = Dashboard(
            summary=await self.get_summary(company_id, as_of),
            department_breakdown=await self.get_department_breakdown(company_id, as_of),
            region_breakdown=await self.get_region_breakdown(company_id, as_of),
            trends=await self._analytics.get_trends(company_id, as_of=as_of),
            forecasts=await self._analytics.get_forecast(company_id, as_of=as_of),
            alerts=await self._alerts.check_alerts(company_id, as_of),
            insights=await self._alerts.generate_insights(company_id, as_of),
        )
        logger.info(
            "dashboard_built",
            company_id=str(company_id),
            data_point_count=dashboard.summary.data_point_count,
            alert_count=len(dashboard.alerts),
            insight_count=len(dashboard.insights),
        )
        return dashboard


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------


class SimulationService:
    """What-if scenarios over the trailing baseline window."""

    def __init__(
        self,
        record_repo: IEnergyRecordRepository,
        company_repo: ICompanyRepository,
        scenario_repo: ISimulationScenarioRepository,
        carbon_service: CarbonConfigService,
        settings: Settings,
        simulator: ScenarioSimulator | None = None,
    ) -> None:
        self._record_repo = record_repo
        self._company_repo = company_repo
        self._scenario_repo = scenario_repo
        self._carbon_service = carbon_service
        self._settings = settings
        self._simulator = simulator or ScenarioSimulator()

    async def get_baseline(self, company_id: uuid.UUID, as_of: date | None = None) -> Baseline:
        """AI kWh, AI CO2e and AI cost over the trailing baseline window."""
        as_of = as_of or date.today()
        start = as_of - timedelta(days=self._settings.simulation_baseline_days - 1)
        sums = await self._record_repo.sum_by_company_period(company_id, start, as_of)
        return Baseline(ai_kwh=sums["ai_kwh"], co2e_kg=sums["ai_co2e_kg"], cost=sums["ai_cost"])

    async def simulate_growth(
        self,
        company_id: uuid.UUID,
        growth_percent: float,
        months_ahead: int | None = None,
        as_of: date | None = None,
    ) -> SimulationResult:
        await _require_company(self._company_repo, company_id)
        baseline = await self.get_baseline(company_id, as_of)
        return self._simulator.simulate_growth(
            baseline,
            growth_percent,
            months_ahead if months_ahead is not None else self._settings.simulation_default_months_ahead,
        )

    async def simulate_efficiency(
        self,
        company_id: uuid.UUID,
        efficiency_percent: float,
        as_of: date | None = None,
    ) -> SimulationResult:
        await _require_company(self._company_repo, company_id)
        baseline = await self.get_baseline(company_id, as_of)
        return self._simulator.simulate_efficiency(baseline, efficiency_percent)

    async def simulate_region_change(
        self,
        company_id: uuid.UUID,
        to_region: str,
        from_region: str | None = None,
        as_of: date | None = None,
    ) -> SimulationResult:
        """Recompute baseline emissions at another region's intensity.

        Raises:
            NotFoundError: If either region cannot be resolved.
        """
        company = await _require_company(self._company_repo, company_id)
        calculator = await self._carbon_service.build_calculator(company)
        target = calculator.resolve_intensity(to_region)
        source = calculator.resolve_intensity(from_region) if from_region else None

        baseline = await self.get_baseline(company_id, as_of)
        return self._simulator.simulate_region_change(
            baseline,
            to_region=target.region,
            to_label=target.label,
            to_intensity_g_per_kwh=target.intensity_g_per_kwh,
            from_region=source.region if source else None,
            from_label=source.label if source else None,
            from_intensity_g_per_kwh=source.intensity_g_per_kwh if source else None,
        )

    async def run(
        self,
        company_id: uuid.UUID,
        simulation_type: str,
        parameters: dict[str, Any],
        as_of: date | None = None,
    ) -> SimulationResult:
        """Dispatch a simulation by type with its parameter dict.

        Parameters arrive as untyped JSON, so each one is checked before
        dispatch and a bad value surfaces as a ValidationError on its field.
        """
        _check_enum(simulation_type, SimulationType, "simulation_type")
        if simulation_type == SimulationType.GROWTH.value:
            return await self.simulate_growth(
                company_id,
                _number_param(parameters, "growth_percent"),
                _optional_int_param(parameters, "months_ahead"),
                as_of,
            )
        if simulation_type == SimulationType.EFFICIENCY.value:
            return await self.simulate_efficiency(company_id, _number_param(parameters, "efficiency_percent"), as_of)
        return await self.simulate_region_change(
            company_id,
            _text_param(parameters, "to_region"),
            _text_param(parameters, "from_region", required=False),
            as_of,
        )

    async def save_scenario(
        self,
        company_id: uuid.UUID,
        name: str,
        simulation_type: str,
        parameters: dict[str, Any],
        description: str | None = None,
        as_of: date | None = None,
    ) -> SimulationScenario:
        """Run a simulation and archive its baseline and results."""
        if not name.strip():
            raise ValidationError("name must not be empty", field="name", value=name)
        result = await self.run(company_id, simulation_type, parameters, as_of)

        scenario = SimulationScenario(
            company_id=company_id,
            name=name.strip(),
            description=description or result.description,
            simulation_type=result.simulation_type,
            parameters=result.parameters,
            baseline_values=result.baseline_values(),
            results={
                **result.projected_values(),
                "energy_delta_kwh": result.energy_delta_kwh,
                "carbon_delta_kg": result.carbon_delta_kg,
                "cost_delta": result.cost_delta,
                "percent_change": result.percent_change,
            },
        )
        persisted = await self._scenario_repo.create(scenario)
        logger.info(
            "simulation_scenario_saved",
            company_id=str(company_id),
            scenario_id=str(persisted.id),
            simulation_type=persisted.simulation_type,
        )
        return persisted

    async def list_scenarios(self, company_id: uuid.UUID) -> list[SimulationScenario]:
        await _require_company(self._company_repo, company_id)
        return await self._scenario_repo.list_by_company(company_id)
