from __future__ import annotations

import dataclasses

import pytest

from results_eval.domain.models.quarters import QuarterLabel
from results_eval.domain.models.records import CanonicalQuarterRecord, EntityType
from results_eval.domain.services.growth import GrowthCalculator, prepare_series


def _mk(quarter: str, sales: float, eps: float, eps_smooth=None) -> CanonicalQuarterRecord:
    return CanonicalQuarterRecord(
        quarter=QuarterLabel.parse(quarter),
        entity_type=EntityType.NON_BANK,
        sales=sales,
        expenses=0.0,
        operating_profit=0.0,
        margin_pct=0.0,
        other_income=0.0,
        interest=0.0,
        depreciation=0.0,
        profit_before_tax=0.0,
        tax_pct=0.0,
        net_profit=0.0,
        eps=eps,
        eps_smooth=eps_smooth,
    )


def test_qoq_change_without_prior_year():
    rows = GrowthCalculator().calculate([_mk("2020-Mar", 18587, 11.67), _mk("2020-Jun", 17842, 10.8)])

    second = rows[1]
    assert second.sales_qoq_change == -745
    assert second.sales_qoq_pct == pytest.approx(-4.008, abs=1e-3)
    assert second.eps_qoq_change == pytest.approx(-0.87)
    assert second.sales_yoy_change is None
    assert second.sales_yoy_pct is None
    assert second.eps_yoy_change is None
    assert second.eps_yoy_pct is None
    assert rows[0].sales_qoq_pct is None


def test_yoy_uses_label_lookup_not_position():
    series = [
        _mk("2020-Jun", 100, 2.0),
        _mk("2021-Mar", 150, 3.0),
        _mk("2021-Jun", 120, -1.0),
    ]
    rows = GrowthCalculator().calculate(series)
    last = rows[-1]
    assert last.sales_yoy_change == 20
    assert last.sales_yoy_pct == pytest.approx(20.0)
    # percent change divides by |base|
    assert last.eps_qoq_pct == pytest.approx(-133.3333, abs=1e-4)
    # 2021-Mar has a neighbour but no 2020-Mar
    assert rows[1].sales_qoq_pct == pytest.approx(50.0)
    assert rows[1].sales_yoy_pct is None


def test_zero_base_has_no_percentage():
    rows = GrowthCalculator().calculate([_mk("2020-Mar", 0, 0.0), _mk("2020-Jun", 10, 1.0)])
    assert rows[1].sales_qoq_change == 10
    assert rows[1].sales_qoq_pct is None
    assert rows[1].eps_qoq_pct is None


def test_series_is_sorted_and_deduplicated():
    first = _mk("2020-Jun", 100, 1.0)
    duplicate = _mk("2020-Jun", 999, 9.0)
    series = prepare_series([_mk("2020-Sep", 110, 1.1), first, duplicate])
    assert [str(record.quarter) for record in series] == ["2020-Jun", "2020-Sep"]
    assert series[0] is first

    with pytest.raises(TypeError):
        prepare_series({"2020-Jun": first})


def test_smoothed_eps_preferred_when_enabled():
    series = [_mk("2020-Mar", 100, 1.0, eps_smooth=2.0), _mk("2020-Jun", 100, 1.5, eps_smooth=3.0)]
    smooth = GrowthCalculator().calculate(series)
    reported = GrowthCalculator(use_smooth_eps=False).calculate(series)
    assert smooth[1].eps == 3.0
    assert smooth[1].eps_qoq_pct == pytest.approx(50.0)
    assert reported[1].eps == 1.5


def test_growth_is_idempotent():
    series = [_mk("2019-Jun", 90, 1.0), _mk("2020-Mar", 95, 1.2), _mk("2020-Jun", 100, 1.3)]
    calculator = GrowthCalculator()
    assert calculator.calculate(series) == calculator.calculate(list(series))
    assert [dataclasses.asdict(row) for row in calculator.calculate(series)] == [
        dataclasses.asdict(row) for row in calculator.calculate(series)
    ]
