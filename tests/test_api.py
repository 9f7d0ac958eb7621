"""API endpoint tests for the EcoAI carbon engine.

Tests validate request/response shapes, error mapping and service
delegation. Services are replaced through FastAPI dependency overrides,
so no database is needed.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ecoai_engine.adapters.alert_evaluator import Alert
from ecoai_engine.adapters.csv_importer import RejectedRow
from ecoai_engine.adapters.scenario_simulator import Baseline, ScenarioSimulator
from ecoai_engine.api import router as router_module
from ecoai_engine.core.carbon import ResolvedIntensity
from ecoai_engine.core.models import AlertThreshold, Company, SimulationScenario
from ecoai_engine.core.services import DashboardSummary, ImportResult, RecordAttribution
from ecoai_engine.database import get_db_session
from ecoai_engine.errors import NotFoundError, ValidationError
from ecoai_engine.main import app

from conftest import make_record, stamp


@pytest.fixture
def services() -> dict[str, MagicMock]:
    return {
        "company": MagicMock(),
        "department": MagicMock(),
        "ledger": MagicMock(),
        "carbon": MagicMock(),
        "analytics": MagicMock(),
        "alerts": MagicMock(),
        "dashboard": MagicMock(),
        "simulation": MagicMock(),
    }


class RecordingSession:
    """Session double that records transaction calls in order."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def commit(self) -> None:
        self.calls.append("commit")

    async def rollback(self) -> None:
        self.calls.append("rollback")


@pytest.fixture
def db_session() -> RecordingSession:
    return RecordingSession()


@pytest.fixture
def client(services: dict[str, MagicMock], db_session: RecordingSession) -> Iterator[TestClient]:
    async def session_override() -> AsyncIterator[RecordingSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    overrides = {
        router_module._get_company_service: services["company"],
        router_module._get_department_service: services["department"],
        router_module._get_ledger_service: services["ledger"],
        router_module._get_carbon_service: services["carbon"],
        router_module._get_analytics_service: services["analytics"],
        router_module._get_alerts_service: services["alerts"],
        router_module._get_dashboard_service: services["dashboard"],
        router_module._get_simulation_service: services["simulation"],
    }
    for dependency, service in overrides.items():
        app.dependency_overrides[dependency] = (lambda bound: lambda: bound)(service)
    app.dependency_overrides[get_db_session] = session_override
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Company endpoint tests
# ---------------------------------------------------------------------------


class TestCompanyEndpoints:
    """Tests for /api/v1/companies endpoints."""

    def test_create_company(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        services["company"].create_company = AsyncMock(return_value=company)

        response = client.post("/api/v1/companies", json={"name": "Acme Analytics", "region": "US"})

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Acme Analytics"
        assert body["base_ai_percentage"] == 0.30
        kwargs = services["company"].create_company.await_args.kwargs
        assert kwargs["name"] == "Acme Analytics"
        assert kwargs["base_ai_percentage"] is None

    def test_create_company_requires_name(self, client: TestClient) -> None:
        response = client.post("/api/v1/companies", json={"name": ""})
        assert response.status_code == 422

    def test_missing_company_is_404(self, client: TestClient, services: dict[str, MagicMock]) -> None:
        company_id = uuid.uuid4()
        services["company"].get_company = AsyncMock(side_effect=NotFoundError("Company", company_id))

        response = client.get(f"/api/v1/companies/{company_id}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"
        assert str(company_id) in response.json()["message"]

    def test_domain_validation_error_is_422(self, client: TestClient, services: dict[str, MagicMock]) -> None:
        services["company"].create_company = AsyncMock(
            side_effect=ValidationError("base_ai_percentage must be between 0 and 1", "base_ai_percentage", 2.0)
        )

        response = client.post("/api/v1/companies", json={"name": "X", "base_ai_percentage": 2.0})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "base_ai_percentage"

    def test_update_passes_only_set_fields(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        services["company"].update_company = AsyncMock(return_value=company)

        response = client.put(f"/api/v1/companies/{company.id}", json={"electricity_cost_per_kwh": 0.2})

        assert response.status_code == 200
        services["company"].update_company.assert_awaited_once_with(company.id, electricity_cost_per_kwh=0.2)

    def test_delete_company(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        services["company"].delete_company = AsyncMock(return_value=None)
        response = client.delete(f"/api/v1/companies/{company.id}")
        assert response.status_code == 204


# ---------------------------------------------------------------------------
# Energy endpoint tests
# ---------------------------------------------------------------------------


class TestEnergyEndpoints:
    """Tests for /api/v1/companies/{id}/energy endpoints."""

    def test_append_record(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        record = make_record(company.id, date(2025, 6, 1), 1000.0)
        services["ledger"].append_record = AsyncMock(return_value=record)

        response = client.post(
            f"/api/v1/companies/{company.id}/energy",
            json={"usage_date": "2025-06-01", "total_kwh": 1000.0, "region": "US"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ai_attributed_kwh"] == pytest.approx(300.0)
        assert body["co2e_kg"] == pytest.approx(386.0)
        kwargs = services["ledger"].append_record.await_args.kwargs
        assert kwargs["usage_date"] == date(2025, 6, 1)
        assert kwargs["period_type"] == "DAILY"

    def test_invalid_calendar_date_is_422(self, client: TestClient, company: Company) -> None:
        response = client.post(
            f"/api/v1/companies/{company.id}/energy",
            json={"usage_date": "2025-02-30", "total_kwh": 10.0},
        )
        assert response.status_code == 422

    def test_import_returns_result(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        services["ledger"].import_csv = AsyncMock(
            return_value=ImportResult(records_imported=2, rejected_rows=[RejectedRow(3, "Unknown region: XX")])
        )

        response = client.post(
            f"/api/v1/companies/{company.id}/energy/import",
            json={"content": "date,totalKwh\n2025-06-01,1\n"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "records_imported": 2,
            "rejected_rows": [{"row_number": 3, "reason": "Unknown region: XX"}],
        }

    def test_strict_import_with_rejections_is_422(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        db_session: RecordingSession,
        company: Company,
    ) -> None:
        services["ledger"].import_csv = AsyncMock(
            return_value=ImportResult(records_imported=1, rejected_rows=[RejectedRow(2, "invalid totalKwh 'x'")])
        )

        response = client.post(
            f"/api/v1/companies/{company.id}/energy/import?strict=true",
            json={"content": "2025-06-01,x\n2025-06-02,1\n"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "PARTIAL_IMPORT"
        assert body["details"]["records_imported"] == 1
        assert db_session.calls[0] == "commit"

    def test_strict_import_without_rejections_commits_once(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        db_session: RecordingSession,
        company: Company,
    ) -> None:
        services["ledger"].import_csv = AsyncMock(return_value=ImportResult(records_imported=2))

        response = client.post(
            f"/api/v1/companies/{company.id}/energy/import?strict=true",
            json={"content": "2025-06-01,1\n2025-06-02,1\n"},
        )

        assert response.status_code == 200
        assert db_session.calls == ["commit"]

    def test_list_records_forwards_range(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        services["ledger"].list_records = AsyncMock(return_value=[])

        response = client.get(
            f"/api/v1/companies/{company.id}/energy",
            params={"start_date": "2025-06-01", "end_date": "2025-06-30"},
        )

        assert response.status_code == 200
        services["ledger"].list_records.assert_awaited_once_with(
            company.id, date(2025, 6, 1), date(2025, 6, 30), region=None
        )

    def test_list_records_forwards_region(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        record = make_record(company.id, date(2025, 6, 1), 100.0, region="DE")
        services["ledger"].list_records = AsyncMock(return_value=[record])

        response = client.get(f"/api/v1/companies/{company.id}/energy", params={"region": "de"})

        assert response.status_code == 200
        assert [r["region"] for r in response.json()] == ["DE"]
        services["ledger"].list_records.assert_awaited_once_with(company.id, None, None, region="de")

    def test_explain_record_attribution(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        record_id = uuid.uuid4()
        services["ledger"].explain_record = AsyncMock(
            return_value=RecordAttribution(
                record_id=record_id,
                total_kwh=1000.0,
                ai_attributed_kwh=300.0,
                share_used=0.30,
                source="company_baseline",
                explanation="Attribution Calculation:\n",
            )
        )

        response = client.get(f"/api/v1/companies/{company.id}/energy/{record_id}/attribution")

        assert response.status_code == 200
        body = response.json()
        assert body["record_id"] == str(record_id)
        assert body["source"] == "company_baseline"
        assert body["explanation"].startswith("Attribution Calculation:")
        services["ledger"].explain_record.assert_awaited_once_with(company.id, record_id)

    def test_explain_missing_record_is_404(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        record_id = uuid.uuid4()
        services["ledger"].explain_record = AsyncMock(side_effect=NotFoundError("EnergyRecord", record_id))

        response = client.get(f"/api/v1/companies/{company.id}/energy/{record_id}/attribution")

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Dashboard, analytics and carbon endpoint tests
# ---------------------------------------------------------------------------


class TestReadEndpoints:
    """Tests for dashboard, analytics and carbon read endpoints."""

    def test_dashboard_summary(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        summary = DashboardSummary(
            total_energy_kwh=1000.0,
            ai_energy_kwh=300.0,
            ai_percentage=30.0,
            total_co2e_kg=386.0,
            ai_co2e_kg=115.8,
            total_cost=120.0,
            ai_cost=36.0,
            currency="USD",
            energy_change_percent=0.0,
            carbon_change_percent=0.0,
            cost_change_percent=0.0,
            period_type="LAST_30_DAYS",
            department_count=2,
            data_point_count=1,
        )
        services["dashboard"].get_summary = AsyncMock(return_value=summary)

        response = client.get(f"/api/v1/companies/{company.id}/dashboard/summary")

        assert response.status_code == 200
        assert response.json()["ai_percentage"] == 30.0
        assert response.json()["period_type"] == "LAST_30_DAYS"

    def test_forecast_months_bounds(self, client: TestClient, company: Company) -> None:
        response = client.get(f"/api/v1/companies/{company.id}/analytics/forecast", params={"months": 0})
        assert response.status_code == 422

    def test_carbon_defaults(self, client: TestClient, services: dict[str, MagicMock]) -> None:
        from ecoai_engine.core.regions import DEFAULT_REGION_REGISTRY

        services["carbon"].list_defaults = MagicMock(return_value=list(DEFAULT_REGION_REGISTRY))

        response = client.get("/api/v1/carbon/defaults")

        assert response.status_code == 200
        us = next(r for r in response.json() if r["code"] == "US")
        assert us["intensity_g_per_kwh"] == 386.0

    def test_effective_intensity(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        services["carbon"].effective_intensity = AsyncMock(
            return_value=ResolvedIntensity("DE", "Germany", 300.0, is_override=True)
        )

        response = client.get(f"/api/v1/companies/{company.id}/carbon/intensity/de")

        assert response.status_code == 200
        assert response.json() == {
            "region": "DE",
            "label": "Germany",
            "intensity_g_per_kwh": 300.0,
            "is_override": True,
        }
        services["carbon"].effective_intensity.assert_awaited_once_with(company.id, "de")

    def test_effective_intensity_unknown_region_is_404(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        services["carbon"].effective_intensity = AsyncMock(side_effect=NotFoundError("Region", "ATLANTIS"))

        response = client.get(f"/api/v1/companies/{company.id}/carbon/intensity/atlantis")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Alert endpoint tests
# ---------------------------------------------------------------------------


class TestAlertEndpoints:
    """Tests for thresholds and alerts."""

    def test_threshold_metric_must_be_known(self, client: TestClient, company: Company) -> None:
        response = client.post(
            f"/api/v1/companies/{company.id}/alerts/thresholds",
            json={"metric_type": "WATER_LITRES", "threshold_value": 10.0},
        )
        assert response.status_code == 422

    def test_list_thresholds(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
        carbon_threshold: AlertThreshold,
    ) -> None:
        services["alerts"].list_thresholds = AsyncMock(return_value=[carbon_threshold])

        response = client.get(f"/api/v1/companies/{company.id}/alerts/thresholds")

        assert response.status_code == 200
        assert response.json()[0]["metric_type"] == "CARBON_EMISSION_KG"
        assert response.json()[0]["threshold_value"] == 1000.0

    def test_alerts_render(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        alert = Alert(
            threshold_id=uuid.uuid4(),
            company_id=company.id,
            metric_type="AI_USAGE_KWH",
            title="AI Energy Usage Threshold Exceeded",
            message="Current ai usage kwh is at 100.0% of the configured threshold.",
            threshold_value=1000.0,
            current_value=1000.0,
            percent_of_threshold=100.0,
            severity="CRITICAL",
            triggered_at=datetime(2025, 6, 15, tzinfo=timezone.utc),
        )
        services["alerts"].check_alerts = AsyncMock(return_value=[alert])

        response = client.get(f"/api/v1/companies/{company.id}/alerts")

        assert response.status_code == 200
        assert response.json()[0]["severity"] == "CRITICAL"


# ---------------------------------------------------------------------------
# Simulation endpoint tests
# ---------------------------------------------------------------------------


class TestSimulationEndpoints:
    """Tests for /api/v1/companies/{id}/simulations endpoints."""

    def test_efficiency_simulation(
        self,
        client: TestClient,
        services: dict[str, MagicMock],
        company: Company,
    ) -> None:
        result = ScenarioSimulator().simulate_efficiency(Baseline(300.0, 115.8, 36.0), 0.0)
        services["simulation"].simulate_efficiency = AsyncMock(return_value=result)

        response = client.post(
            f"/api/v1/companies/{company.id}/simulations/efficiency",
            json={"efficiency_percent": 0.0},
        )

        assert response.status_code == 200
        body: dict[str, Any] = response.json()
        assert body["projected_ai_kwh"] == body["baseline_ai_kwh"]
        assert body["simulation_type"] == "EFFICIENCY"

    def test_scenario_type_must_be_known(self, client: TestClient, company: Company) -> None:
        response = client.post(
            f"/api/v1/companies/{company.id}/simulations/scenarios",
            json={"name": "Moonshot", "simulation_type": "TELEPORT", "parameters": {}},
        )
        assert response.status_code == 422

    def test_list_scenarios(self, client: TestClient, services: dict[str, MagicMock], company: Company) -> None:
        scenario = stamp(
            SimulationScenario(
                company_id=company.id,
                name="Move to Norway",
                description=None,
                simulation_type="REGION_CHANGE",
                parameters={"to_region": "NO"},
                baseline_values={"ai_kwh": 300.0, "co2e_kg": 115.8, "cost": 36.0},
                results={"ai_kwh": 300.0, "co2e_kg": 7.8, "cost": 36.0},
            )
        )
        services["simulation"].list_scenarios = AsyncMock(return_value=[scenario])

        response = client.get(f"/api/v1/companies/{company.id}/simulations/scenarios")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Move to Norway"
        assert response.json()[0]["results"]["co2e_kg"] == 7.8

    @pytest.mark.parametrize(
        "parameters",
        [{"growth_percent": "abc"}, {"growth_percent": None}, {"growth_percent": 5, "months_ahead": "later"}],
    )
    def test_malformed_scenario_parameters_are_422(
        self,
        client: TestClient,
        company: Company,
        company_repo: AsyncMock,
        record_repo: AsyncMock,
        scenario_repo: AsyncMock,
        carbon_config_repo: AsyncMock,
        settings: Any,
        parameters: dict[str, Any],
    ) -> None:
        from ecoai_engine.core.services import CarbonConfigService, SimulationService

        simulation = SimulationService(
            record_repo=record_repo,
            company_repo=company_repo,
            scenario_repo=scenario_repo,
            carbon_service=CarbonConfigService(carbon_config_repo=carbon_config_repo, company_repo=company_repo),
            settings=settings,
        )
        app.dependency_overrides[router_module._get_simulation_service] = lambda: simulation

        response = client.post(
            f"/api/v1/companies/{company.id}/simulations/scenarios",
            json={"name": "Grow", "simulation_type": "GROWTH", "parameters": parameters},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        scenario_repo.create.assert_not_awaited()
