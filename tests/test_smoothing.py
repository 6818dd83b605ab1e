from __future__ import annotations

import dataclasses

import pytest

from results_eval.domain.models.quarters import QuarterLabel, QuarterStatement, RawLabeledRow, quarter_range
from results_eval.domain.models.records import CanonicalQuarterRecord, EntityType
from results_eval.domain.services.extraction import CanonicalExtractor
from results_eval.domain.services.smoothing import EPSSmoother, window_bounds


def _record(label: QuarterLabel, *, other_income=10.0, operating_profit=100.0, tax_pct=25.0, entity=EntityType.NON_BANK, eps=5.0):
    return CanonicalQuarterRecord(
        quarter=label,
        entity_type=entity,
        sales=1000.0,
        expenses=900.0,
        operating_profit=operating_profit,
        margin_pct=10.0,
        other_income=other_income,
        interest=5.0,
        depreciation=5.0,
        profit_before_tax=100.0,
        tax_pct=tax_pct,
        net_profit=75.0,
        eps=eps,
    )


def _series(count: int, **overrides):
    labels = quarter_range(QuarterLabel(2020, "Mar"), QuarterLabel(2030, "Dec"))[:count]
    return [_record(label, **overrides) for label in labels]


def test_window_reaches_forward_near_series_start():
    assert window_bounds(0, 10) == (0, 5)
    assert window_bounds(4, 10) == (0, 5)
    assert window_bounds(5, 10) == (0, 5)
    assert window_bounds(6, 10) == (1, 6)
    assert window_bounds(1, 3) == (0, 2)


def test_smoothed_eps_uses_window_medians_and_mean_tax():
    result = EPSSmoother().smooth(_series(6), total_shares=100_000_000)
    # (100 + 10 - 5 - 5) crore * 0.75 / 1e8 shares
    assert [record.eps_smooth for record in result.records] == [7.5] * 6
    assert result.total_shares == 100_000_000
    assert result.windows[0].median_other_income == 10.0


def test_early_quarters_share_the_forward_window():
    records = _series(8)
    records = [
        dataclasses.replace(record, other_income=float(index * 10))
        for index, record in enumerate(records)
    ]
    result = EPSSmoother().smooth(records, total_shares=100_000_000)
    first, sixth, last = result.windows[0], result.windows[5], result.windows[7]
    # indexes 0..5 -> other income 0..50, median of an even window averages the middle pair
    assert first.median_other_income == pytest.approx(25.0)
    assert sixth.median_other_income == pytest.approx(25.0)
    assert (last.window_start, last.window_end) == (2, 7)
    assert last.median_other_income == pytest.approx(45.0)


def test_missing_share_count_leaves_smoothed_eps_empty():
    result = EPSSmoother().smooth(_series(3), total_shares=None)
    assert all(record.eps_smooth is None for record in result.records)
    assert EPSSmoother().smooth(_series(3), total_shares=0).total_shares is None


def test_bank_quarters_copy_reported_eps():
    records = _series(3, entity=EntityType.BANK, eps=4.2)
    result = EPSSmoother().smooth(records, total_shares=100_000_000)
    assert [record.eps_smooth for record in result.records] == [4.2, 4.2, 4.2]
    assert result.windows == []


def test_smoothed_eps_matches_across_output_units():
    rows = [
        RawLabeledRow("Net Sales", None, 100000),
        RawLabeledRow("Other Income", None, 1000),
        RawLabeledRow("Finance Costs", None, 500),
        RawLabeledRow("Depreciation", None, 500),
        RawLabeledRow("Profit before tax", None, 20000),
        RawLabeledRow("Tax", None, 5000),
        RawLabeledRow("Net Profit", None, 15000),
        RawLabeledRow("Basic EPS", None, 15.0),
    ]
    statements = [QuarterStatement(rows=rows, quarter=quarter) for quarter in ("2024-Mar", "2024-Jun")]

    smoothed = {}
    for unit in ("crore", "million"):
        extractor = CanonicalExtractor(unit)
        records = [extractor.extract(statement) for statement in statements]
        result = EPSSmoother(rupees_per_unit=extractor.rupees_per_unit).smooth(records, total_shares=1_000_000_000)
        smoothed[unit] = [record.eps_smooth for record in result.records]

    # (2000 + 100 - 50 - 50) crore * 0.75 / 1e9 shares
    assert smoothed["crore"] == [15.0, 15.0]
    assert smoothed["million"] == smoothed["crore"]
