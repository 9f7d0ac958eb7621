"""Unit tests for EnergyAttributor."""

import pytest

from ecoai_engine.attribution import AttributionResult, EnergyAttributor
from ecoai_engine.errors import ValidationError


class TestEnergyAttributor:
    """Tests for AI share attribution."""

    @pytest.fixture
    def attributor(self) -> EnergyAttributor:
        return EnergyAttributor()

    def test_company_baseline_applies_without_department(self, attributor: EnergyAttributor) -> None:
        result = attributor.attribute(1000.0, company_base_ai_percentage=0.30)

        assert result.ai_attributed_kwh == pytest.approx(300.0)
        assert result.share_used == 0.30
        assert result.source == "company_baseline"

    def test_department_weight_overrides_company_baseline(self, attributor: EnergyAttributor) -> None:
        result = attributor.attribute(1000.0, company_base_ai_percentage=0.30, department_weight=0.80)

        assert result.ai_attributed_kwh == pytest.approx(800.0)
        assert result.share_used == 0.80
        assert result.source == "department"

    @pytest.mark.parametrize("total", [0.0, 0.5, 1.0, 123.456, 1_000_000.0])
    @pytest.mark.parametrize("share", [0.0, 0.3, 1.0])
    def test_ai_share_is_bounded_by_total(self, attributor: EnergyAttributor, total: float, share: float) -> None:
        result = attributor.attribute(total, company_base_ai_percentage=share)
        assert 0.0 <= result.ai_attributed_kwh <= total

    def test_zero_weight_department_attributes_nothing(self, attributor: EnergyAttributor) -> None:
        result = attributor.attribute(500.0, company_base_ai_percentage=0.30, department_weight=0.0)
        assert result.ai_attributed_kwh == 0.0

    def test_negative_total_raises_validation_error(self, attributor: EnergyAttributor) -> None:
        with pytest.raises(ValidationError) as exc_info:
            attributor.attribute(-1.0, company_base_ai_percentage=0.30)
        assert exc_info.value.field == "total_kwh"

    @pytest.mark.parametrize("baseline", [-0.01, 1.01])
    def test_out_of_range_baseline_raises(self, attributor: EnergyAttributor, baseline: float) -> None:
        with pytest.raises(ValidationError) as exc_info:
            attributor.attribute(100.0, company_base_ai_percentage=baseline)
        assert exc_info.value.field == "base_ai_percentage"

    def test_out_of_range_department_weight_raises(self, attributor: EnergyAttributor) -> None:
        with pytest.raises(ValidationError) as exc_info:
            attributor.attribute(100.0, company_base_ai_percentage=0.30, department_weight=1.5)
        assert exc_info.value.field == "ai_usage_weight"

    def test_explain_mentions_inputs_and_result(self) -> None:
        result = AttributionResult(total_kwh=1000.0, ai_attributed_kwh=300.0, share_used=0.30, source="company_baseline")
        text = EnergyAttributor.explain(result)

        assert "1,000.00 kWh" in text
        assert "Company AI baseline" in text
        assert "300.00 kWh" in text
