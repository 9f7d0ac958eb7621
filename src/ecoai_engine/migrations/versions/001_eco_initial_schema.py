"""Create initial eco_ schema tables.

Revision ID: 001_eco_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001_eco_initial"
down_revision = None
branch_labels = None
depends_on = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def _company_fk() -> sa.Column:
    return sa.Column(
        "company_id",
        UUID(as_uuid=True),
        sa.ForeignKey("eco_companies.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create all eco_ tables."""

    # eco_companies
    op.create_table(
        "eco_companies",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("industry", sa.String(255), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("region", sa.String(50), nullable=False, server_default="US"),
        sa.Column("base_ai_percentage", sa.Float, nullable=False, server_default="0.30"),
        sa.Column("electricity_cost_per_kwh", sa.Float, nullable=False, server_default="0.12"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
    )
    op.create_index("ix_eco_companies_name", "eco_companies", ["name"])

    # eco_departments
    op.create_table(
        "eco_departments",
        *_base_columns(),
        _company_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("team", sa.String(255), nullable=True),
        sa.Column("product", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("ai_usage_weight", sa.Float, nullable=False, server_default="0.50"),
        sa.Column("employee_count", sa.Integer, nullable=False, server_default="10"),
        sa.UniqueConstraint("company_id", "name", name="uq_eco_departments_company_name"),
    )
    op.create_index("ix_eco_departments_company_id", "eco_departments", ["company_id"])

    # eco_energy_records (department_id is a weak reference, no FK)
    op.create_table(
        "eco_energy_records",
        *_base_columns(),
        _company_fk(),
        sa.Column("department_id", UUID(as_uuid=True), nullable=True),
        sa.Column("department_name", sa.String(255), nullable=True),
        sa.Column("usage_date", sa.Date, nullable=False),
        sa.Column("total_kwh", sa.Float, nullable=False),
        sa.Column("region", sa.String(50), nullable=False),
        sa.Column("period_type", sa.String(20), nullable=False, server_default="DAILY"),
        sa.Column("data_source", sa.String(20), nullable=False, server_default="MANUAL"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("ai_attributed_kwh", sa.Float, nullable=False),
        sa.Column("co2e_kg", sa.Float, nullable=False),
        sa.Column("ai_co2e_kg", sa.Float, nullable=False),
        sa.Column("cost", sa.Float, nullable=False),
        sa.Column("ai_cost", sa.Float, nullable=False),
        sa.Column("carbon_intensity_used", sa.Float, nullable=False),
        sa.Column("ai_share_used", sa.Float, nullable=False),
    )
    op.create_index("ix_eco_energy_records_company_id", "eco_energy_records", ["company_id"])
    op.create_index("ix_eco_energy_records_department_id", "eco_energy_records", ["department_id"])
    op.create_index("ix_eco_energy_records_usage_date", "eco_energy_records", ["usage_date"])
    op.create_index("ix_eco_energy_records_company_date", "eco_energy_records", ["company_id", "usage_date"])

    # eco_carbon_configs
    op.create_table(
        "eco_carbon_configs",
        *_base_columns(),
        _company_fk(),
        sa.Column("region", sa.String(50), nullable=False),
        sa.Column("carbon_intensity", sa.Float, nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default="gCO2/kWh"),
        sa.Column("valid_year", sa.Integer, nullable=False, server_default="2024"),
        sa.UniqueConstraint("company_id", "region", name="uq_eco_carbon_configs_company_region"),
    )
    op.create_index("ix_eco_carbon_configs_company_id", "eco_carbon_configs", ["company_id"])

    # eco_alert_thresholds
    op.create_table(
        "eco_alert_thresholds",
        *_base_columns(),
        _company_fk(),
        sa.Column("metric_type", sa.String(50), nullable=False),
        sa.Column("threshold_value", sa.Float, nullable=False),
        sa.Column("alert_message", sa.Text, nullable=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("company_id", "metric_type", name="uq_eco_alert_thresholds_company_metric"),
    )
    op.create_index("ix_eco_alert_thresholds_company_id", "eco_alert_thresholds", ["company_id"])

    # eco_simulation_scenarios
    op.create_table(
        "eco_simulation_scenarios",
        *_base_columns(),
        _company_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("simulation_type", sa.String(30), nullable=False),
        sa.Column("parameters", JSONB, nullable=False, server_default="{}"),
        sa.Column("baseline_values", JSONB, nullable=False, server_default="{}"),
        sa.Column("results", JSONB, nullable=False, server_default="{}"),
    )
    op.create_index("ix_eco_simulation_scenarios_company_id", "eco_simulation_scenarios", ["company_id"])


def downgrade() -> None:
    """Drop all eco_ tables (children first)."""
    for table in (
        "eco_simulation_scenarios",
        "eco_alert_thresholds",
        "eco_carbon_configs",
        "eco_energy_records",
        "eco_departments",
        "eco_companies",
    ):
        op.drop_table(table)
