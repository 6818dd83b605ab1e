from __future__ import annotations

import pytest

from results_eval.domain.models.quarters import (
    QuarterLabel,
    QuarterStatement,
    RawLabeledRow,
    quarter_range,
)


def test_parse_accepts_common_layouts():
    assert QuarterLabel.parse("2024-Sep") == QuarterLabel(2024, "Sep")
    assert QuarterLabel.parse("2024 sep") == QuarterLabel(2024, "Sep")
    assert QuarterLabel.parse("Sep 2024") == QuarterLabel(2024, "Sep")
    assert str(QuarterLabel.parse(" Mar-2020 ")) == "2020-Mar"


@pytest.mark.parametrize("text", ["2024-Feb", "Q2 2024", "", "2024"])
def test_parse_rejects_malformed_labels(text):
    with pytest.raises(ValueError):
        QuarterLabel.parse(text)


def test_fiscal_quarters_map_to_calendar_labels():
    assert QuarterLabel.from_fiscal(1, 2025) == QuarterLabel(2024, "Jun")
    assert QuarterLabel.from_fiscal(2, 2025) == QuarterLabel(2024, "Sep")
    assert QuarterLabel.from_fiscal(3, 2025) == QuarterLabel(2024, "Dec")
    assert QuarterLabel.from_fiscal(4, 2025) == QuarterLabel(2025, "Mar")
    assert QuarterLabel.from_fiscal(5, 2025) is None


def test_ordering_follows_calendar():
    labels = [QuarterLabel(2021, "Mar"), QuarterLabel(2020, "Dec"), QuarterLabel(2020, "Jun")]
    assert [str(label) for label in sorted(labels)] == ["2020-Jun", "2020-Dec", "2021-Mar"]
    assert QuarterLabel(2020, "Dec").next() == QuarterLabel(2021, "Mar")
    assert QuarterLabel(2020, "Dec").previous_year() == QuarterLabel(2019, "Dec")


def test_quarter_range_is_inclusive():
    labels = quarter_range(QuarterLabel(2023, "Dec"), QuarterLabel(2024, "Jun"))
    assert [str(label) for label in labels] == ["2023-Dec", "2024-Mar", "2024-Jun"]
    with pytest.raises(ValueError):
        quarter_range(QuarterLabel(2024, "Jun"), QuarterLabel(2023, "Dec"))


def test_statement_label_inferred_from_date_end():
    statement = QuarterStatement.from_mapping(
        {
            "quarter": None,
            "meta": {"dateEnd": "30-Jun-25"},
            "rows": [{"label": "Net Sales", "valueRaw": "1,000", "valueNumber": 1000}],
        }
    )
    assert statement.resolve_label() == QuarterLabel(2025, "Jun")
    assert statement.rows == [RawLabeledRow("Net Sales", "1,000", 1000.0)]

    with pytest.raises(ValueError):
        QuarterStatement(rows=[], meta={"dateEnd": "sometime"}).resolve_label()
