"""Unit tests for the CSV energy parser."""

from datetime import date

from ecoai_engine.adapters.csv_importer import parse_energy_csv


class TestParseEnergyCsv:
    """Tests for row-independent CSV parsing."""

    def test_parses_header_and_rows(self) -> None:
        content = (
            "date,totalKwh,departmentName,region\n"
            "2025-06-01,1200.5,Machine Learning,US\n"
            "2025-06-02,300,,\n"
        )
        rows, rejected = parse_energy_csv(content)

        assert rejected == []
        assert len(rows) == 2
        assert rows[0].row_number == 2
        assert rows[0].usage_date == date(2025, 6, 1)
        assert rows[0].total_kwh == 1200.5
        assert rows[0].department_name == "Machine Learning"
        assert rows[0].region == "US"
        assert rows[1].department_name is None
        assert rows[1].region is None

    def test_header_is_optional(self) -> None:
        rows, rejected = parse_energy_csv("2025-06-01,10\n")
        assert len(rows) == 1
        assert rows[0].row_number == 1
        assert rejected == []

    def test_bad_rows_are_rejected_individually(self) -> None:
        content = (
            "date,totalKwh,departmentName,region\n"
            "2025-06-01,100,,US\n"
            "2025/06/02,100,,US\n"
            "2025-02-30,100,,US\n"
            "2025-06-03,abc,,US\n"
            "2025-06-04,-5,,US\n"
            "2025-06-05\n"
            "2025-06-06,50,,\n"
        )
        rows, rejected = parse_energy_csv(content)

        assert [r.row_number for r in rows] == [2, 8]
        assert [r.row_number for r in rejected] == [3, 4, 5, 6, 7]
        assert "YYYY-MM-DD" in rejected[0].reason
        assert "invalid date" in rejected[1].reason
        assert "totalKwh" in rejected[2].reason
        assert ">= 0" in rejected[3].reason

    def test_blank_lines_are_skipped(self) -> None:
        rows, rejected = parse_energy_csv("date,totalKwh\n\n2025-06-01,1\n\n")
        assert len(rows) == 1
        assert rows[0].row_number == 3
        assert rejected == []

    def test_quoted_newline_keeps_line_numbers(self) -> None:
        content = (
            "date,totalKwh,departmentName,region\n"
            "2025-06-01,100,\"Machine\nLearning\",US\n"
            "2025-06-02,abc,,US\n"
            "2025-06-03,50,,US\n"
        )
        rows, rejected = parse_energy_csv(content)

        assert [r.row_number for r in rows] == [2, 5]
        assert rows[0].department_name == "Machine\nLearning"
        assert [r.row_number for r in rejected] == [4]

    def test_non_finite_kwh_rejected(self) -> None:
        _, rejected = parse_energy_csv("2025-06-01,nan\n2025-06-01,inf\n")
        assert len(rejected) == 2

    def test_rejected_row_serializes(self) -> None:
        _, rejected = parse_energy_csv("bad,1\n")
        assert rejected[0].to_dict() == {"row_number": 1, "reason": rejected[0].reason}
