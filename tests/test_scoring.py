from __future__ import annotations

import math

import pytest

from results_eval.domain.services.scoring import (
    PerformanceScorer,
    ScoringInputs,
    add_performance_to_rows,
    composite,
    estimate_growth,
    lerp,
    ratio_to_price_qoq_score,
    ratio_to_price_yoy_score,
    ratio_to_qoq_score,
    ratio_to_score,
    round_score,
    safe_pe,
)


def _inputs(**overrides) -> ScoringInputs:
    values = {
        "eps": 15.62,
        "current_close": 1855.9,
        "sales_yoy_pct": 40.0,
        "eps_yoy_pct": 2.0,
        "price_yoy_pct": None,
        "sales_qoq_pct": 20.0,
        "eps_qoq_pct": 0.0,
        "price_qoq_pct": 50.0,
    }
    values.update(overrides)
    return ScoringInputs(**values)


def test_growth_bands_meet_at_boundaries():
    assert estimate_growth(10) == 8
    assert estimate_growth(9.9999) == pytest.approx(8, abs=1e-3)
    assert estimate_growth(0) == 5
    assert estimate_growth(5) == 6.5
    assert estimate_growth(200) == 70
    assert estimate_growth(10_000) == 70


def test_estimate_growth_rejects_bad_pe():
    with pytest.raises(ValueError):
        estimate_growth(-1)
    with pytest.raises(ValueError):
        estimate_growth(math.nan)


def test_expected_growth_from_price_and_eps():
    pe = safe_pe(1855.9, 15.62)
    assert pe == pytest.approx(29.704, abs=1e-3)
    assert estimate_growth(pe) == 14.91
    assert safe_pe(100, 0) is None
    assert safe_pe(100, -2) is None
    assert safe_pe(None, 2) is None


def test_lerp_clamps_outside_domain():
    assert lerp(-5, 0, 1, 2, 4) == 2
    assert lerp(5, 0, 1, 2, 4) == 4
    assert lerp(0.5, 0, 1, 2, 4) == 3


def test_fundamental_curves():
    assert ratio_to_score(1) == 5
    assert ratio_to_score(0.2) == -10
    assert ratio_to_score(0.5) == pytest.approx(-5)
    assert ratio_to_score(2.5) == 10
    assert ratio_to_qoq_score(-2.5) == -10
    assert ratio_to_qoq_score(-1.5) == -10
    assert ratio_to_qoq_score(-0.5) == pytest.approx(-5)
    assert ratio_to_qoq_score(2) == pytest.approx(6.5)
    assert ratio_to_score(math.nan) == -10


def test_price_curves():
    assert ratio_to_price_yoy_score(-1) == -10
    assert ratio_to_price_yoy_score(-0.5) == pytest.approx(-7.5)
    assert ratio_to_price_yoy_score(0.5) == pytest.approx(0)
    assert ratio_to_price_yoy_score(5) == 10
    assert ratio_to_price_qoq_score(-3) == -10
    assert ratio_to_price_qoq_score(-1.5) == pytest.approx(-7.5)
    assert ratio_to_price_qoq_score(3.5) == pytest.approx(7.5)
    assert ratio_to_price_qoq_score(6) == 10


def test_round_score_and_composite():
    assert round_score(1.2349) == 1.23
    assert round_score(-2.344) == -2.34
    score = composite([3, -4])
    assert score.x == -7
    assert score.abs_sqrt_x == pytest.approx(2.6458, abs=1e-4)


def test_full_score_with_independent_price_gating():
    performance = PerformanceScorer().score(_inputs())

    assert performance.yoy.expected_growth == 14.91
    assert performance.yoy.sales.score == 10
    assert performance.yoy.eps.score == -10
    assert performance.yoy.price is None
    assert performance.qoq.expected_growth == pytest.approx(3.7275)
    assert performance.qoq.sales.score == 10
    assert performance.qoq.eps.score == 0
    assert performance.qoq.price is not None
    assert performance.final_performance_score.x == 100
    assert performance.final_performance_score.abs_sqrt_x == 10
    assert performance.final_price_score is None

    payload = performance.to_dict()
    assert payload["yoy"]["expectedYoyGrowth"] == 14.91
    assert "expectedQoqGrowth" in payload["qoq"]


@pytest.mark.parametrize("eps", [0.0, -3.0, None, math.inf])
def test_unusable_eps_nulls_both_blocks(eps):
    performance = PerformanceScorer().score(_inputs(eps=eps))
    assert performance.yoy is None
    assert performance.qoq is None
    assert performance.final_performance_score is None


def test_missing_growth_nulls_only_that_block():
    performance = PerformanceScorer().score(_inputs(sales_yoy_pct=None))
    assert performance.yoy is None
    assert performance.qoq is not None
    assert performance.final_performance_score is None


def test_final_price_score_needs_both_horizons():
    performance = PerformanceScorer().score(_inputs(price_yoy_pct=14.91 * 3, price_qoq_pct=-100.0))
    assert performance.yoy.price.score == 10
    assert performance.qoq.price.score == -10
    assert performance.final_price_score.x == 0


def test_add_performance_to_rows():
    rows = [
        {
            "Quarter": "2024-Jun",
            "EPS": "15.62",
            "currentDateClosePrice": 1855.9,
            "sales_yoy_pct": 40.0,
            "eps_yoy_pct": 2.0,
            "sales_qoq_pct": 20.0,
            "eps_qoq_pct": 0.0,
        },
        {"Quarter": "2024-Sep", "EPS": 0, "currentDateClosePrice": 1900.0},
    ]
    scored = add_performance_to_rows(rows)
    assert scored[0]["Quarter"] == "2024-Jun"
    assert scored[0]["performance"]["final_performance_score"] == {"x": 100, "abs_sqrt_x": 10}
    assert scored[1]["performance"]["yoy"] is None
    assert "performance" not in rows[0]

    with pytest.raises(TypeError):
        add_performance_to_rows(tuple(rows))


def test_rows_without_price_qoq_use_previous_close():
    growth = {"EPS": 15.62, "sales_yoy_pct": 40.0, "eps_yoy_pct": 2.0, "sales_qoq_pct": 20.0, "eps_qoq_pct": 0.0}
    rows = [
        {"Quarter": "2024-Mar", "currentDateClosePrice": 1800.0, "price_yoy_pct": 10.0, **growth},
        {"Quarter": "2024-Jun", "currentDateClosePrice": None},
        {"Quarter": "2024-Sep", "currentDateClosePrice": 1855.9, "price_yoy_pct": 10.0, **growth},
        {"Quarter": "2024-Dec", "currentDateClosePrice": 1700.0, "price_qoq_pct": 2.5},
    ]
    scored = add_performance_to_rows(rows)

    assert scored[0]["price_qoq_pct"] is None
    assert scored[0]["performance"]["qoq"]["price"] is None
    assert scored[1]["price_qoq_pct"] is None
    # 1800 is the nearest earlier close; the unpriced row is skipped
    assert scored[2]["price_qoq_pct"] == pytest.approx(3.1056, abs=1e-4)
    assert scored[2]["performance"]["qoq"]["price"] is not None
    assert scored[2]["performance"]["final_price_score"] is not None
    assert scored[3]["price_qoq_pct"] == 2.5
    assert "price_qoq_pct" not in rows[2]


def test_composite_rounds_ties_away_from_zero():
    # 0.125^2 * 2 = 0.03125 exactly
    assert composite([0.125, 0.125]).x == 0.0313
    assert composite([-0.125, -0.125]).x == -0.0313
