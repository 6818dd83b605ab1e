"""Performance scoring against PE-implied growth.

This module implements:
- The expected-growth model: a PE band table interpolated linearly inside each band
- Four ratio-to-score curves (fundamentals/price, YoY/QoQ) bounded to [-10, 10]
- YoY and QoQ performance blocks gated on complete inputs
- Signed-square composites over the component scores

Missing or unusable inputs never raise; the affected block is ``None``.
"""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from results_eval.domain.models.records import (
    ComponentScore,
    CompositeScore,
    DatedPricedRecord,
    EvaluatedQuarter,
    PerformanceBlock,
    PerformanceScore,
)
from results_eval.domain.services.numeric import is_finite, round_fixed, to_number


@dataclass(frozen=True)
class GrowthBand:
    pe_min: float
    pe_max: float
    yoy_min: float
    yoy_max: float


PE_GROWTH_TABLE = (
    GrowthBand(0, 10, 5, 8),
    GrowthBand(10, 20, 8, 12),
    GrowthBand(20, 30, 12, 15),
    GrowthBand(30, 40, 15, 20),
    GrowthBand(40, 80, 20, 35),
    GrowthBand(80, 100, 35, 50),
    GrowthBand(100, 200, 50, 70),
    GrowthBand(200, math.inf, 70, 100),
)


def lerp(x: float, x1: float, x2: float, y1: float, y2: float) -> float:
    """Linear interpolation clamped to ``y1`` at or below ``x1`` and ``y2`` at or above ``x2``."""
    if x <= x1:
        return y1
    if x >= x2:
        return y2
    return y1 + (x - x1) * (y2 - y1) / (x2 - x1)


def estimate_growth(pe: float) -> float:
    """Expected YoY growth (percent) for a price-to-earnings multiple."""
    if not isinstance(pe, (int, float)) or isinstance(pe, bool) or math.isnan(pe):
        raise ValueError(f"PE must be a number, got {pe!r}")
    if pe < 0:
        raise ValueError(f"PE must be non-negative, got {pe}")
    for band in PE_GROWTH_TABLE:
        if math.isinf(band.pe_max) and pe >= band.pe_min:
            return float(band.yoy_min)
        if band.pe_min <= pe < band.pe_max:
            return round_fixed(lerp(pe, band.pe_min, band.pe_max, band.yoy_min, band.yoy_max), 2)
    raise ValueError(f"No growth band covers PE {pe}")


def safe_pe(price: Optional[float], eps: Optional[float]) -> Optional[float]:
    """Price over annualised quarterly EPS, or ``None`` when undefined or negative."""
    if not is_finite(price) or not is_finite(eps) or eps == 0:
        return None
    pe = price / (4 * eps)
    if not math.isfinite(pe) or pe < 0:
        return None
    return pe


def ratio_to_score(ratio: float) -> float:
    if not is_finite(ratio) or ratio < 0.30:
        return -10.0
    if ratio < 0.7:
        return lerp(ratio, 0.30, 0.7, -10, 0)
    if ratio < 1:
        return lerp(ratio, 0.7, 1, 0, 5)
    if ratio < 2:
        return lerp(ratio, 1, 2, 5, 10)
    return 10.0


def ratio_to_qoq_score(ratio: float) -> float:
    if not is_finite(ratio) or ratio <= -2:
        return -10.0
    if ratio < 0:
        # (-2, -1] clamps to -10 through lerp.
        return lerp(ratio, -1, 0, -10, 0)
    if ratio < 1:
        return lerp(ratio, 0, 1, 0, 3)
    if ratio < 3:
        return lerp(ratio, 1, 3, 3, 10)
    return 10.0


def ratio_to_price_yoy_score(ratio: float) -> float:
    if not is_finite(ratio) or ratio <= -1:
        return -10.0
    if ratio < 0:
        return lerp(ratio, -1, 0, -10, -5)
    if ratio < 1:
        return lerp(ratio, 0, 1, -5, 5)
    if ratio < 3:
        return lerp(ratio, 1, 3, 5, 10)
    return 10.0


def ratio_to_price_qoq_score(ratio: float) -> float:
    if not is_finite(ratio) or ratio <= -3:
        return -10.0
    if ratio < 0:
        return lerp(ratio, -3, 0, -10, -5)
    if ratio < 1:
        return lerp(ratio, 0, 1, -5, 5)
    if ratio < 6:
        return lerp(ratio, 1, 6, 5, 10)
    return 10.0


def round_score(value: float) -> float:
    return math.floor((value + sys.float_info.epsilon) * 100 + 0.5) / 100


def composite(scores: Sequence[float]) -> CompositeScore:
    """Signed sum of squares, plus the square root of its magnitude."""
    x = round_fixed(sum(math.copysign(score * score, score) for score in scores), 4)
    return CompositeScore(x=x, abs_sqrt_x=round_fixed(math.sqrt(abs(x)), 4))


@dataclass(frozen=True)
class ScoringInputs:
    eps: Optional[float]
    current_close: Optional[float]
    sales_yoy_pct: Optional[float] = None
    eps_yoy_pct: Optional[float] = None
    price_yoy_pct: Optional[float] = None
    sales_qoq_pct: Optional[float] = None
    eps_qoq_pct: Optional[float] = None
    price_qoq_pct: Optional[float] = None

    @classmethod
    def from_record(cls, record: DatedPricedRecord) -> "ScoringInputs":
        growth = record.growth
        return cls(
            eps=growth.eps,
            current_close=record.current_close,
            sales_yoy_pct=growth.sales_yoy_pct,
            eps_yoy_pct=growth.eps_yoy_pct,
            price_yoy_pct=record.price_yoy_pct,
            sales_qoq_pct=growth.sales_qoq_pct,
            eps_qoq_pct=growth.eps_qoq_pct,
            price_qoq_pct=record.price_qoq_pct,
        )

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "ScoringInputs":
        return cls(
            eps=to_number(row.get("EPS")),
            current_close=to_number(row.get("currentDateClosePrice")),
            sales_yoy_pct=to_number(row.get("sales_yoy_pct")),
            eps_yoy_pct=to_number(row.get("eps_yoy_pct")),
            price_yoy_pct=to_number(row.get("price_yoy_pct")),
            sales_qoq_pct=to_number(row.get("sales_qoq_pct")),
            eps_qoq_pct=to_number(row.get("eps_qoq_pct")),
            price_qoq_pct=to_number(row.get("price_qoq_pct")),
        )


class PerformanceScorer:
    """Score quarters by comparing actual growth with what the PE implies."""

    def expected_yoy_growth(self, inputs: ScoringInputs) -> Optional[float]:
        pe = safe_pe(inputs.current_close, inputs.eps)
        if pe is None:
            return None
        expected = estimate_growth(pe)
        return expected if expected > 0 else None

    def evaluate_yoy(self, inputs: ScoringInputs) -> Optional[PerformanceBlock]:
        if not (is_finite(inputs.sales_yoy_pct) and is_finite(inputs.eps_yoy_pct)):
            return None
        expected = self.expected_yoy_growth(inputs)
        if expected is None:
            return None
        return self._block(
            "yoy",
            expected,
            round_fixed(expected, 2),
            inputs.sales_yoy_pct,
            inputs.eps_yoy_pct,
            inputs.price_yoy_pct,
            fundamentals_curve=ratio_to_score,
            price_curve=ratio_to_price_yoy_score,
        )

    def evaluate_qoq(self, inputs: ScoringInputs) -> Optional[PerformanceBlock]:
        if not (is_finite(inputs.sales_qoq_pct) and is_finite(inputs.eps_qoq_pct)):
            return None
        expected_yoy = self.expected_yoy_growth(inputs)
        if expected_yoy is None:
            return None
        expected = expected_yoy / 4
        return self._block(
            "qoq",
            expected,
            round_fixed(expected, 4),
            inputs.sales_qoq_pct,
            inputs.eps_qoq_pct,
            inputs.price_qoq_pct,
            fundamentals_curve=ratio_to_qoq_score,
            price_curve=ratio_to_price_qoq_score,
        )

    @staticmethod
    def _block(
        horizon: str,
        expected: float,
        reported_expected: float,
        sales_pct: float,
        eps_pct: float,
        price_pct: Optional[float],
        *,
        fundamentals_curve,
        price_curve,
    ) -> PerformanceBlock:
        def component(actual: float, curve) -> ComponentScore:
            ratio = actual / expected
            return ComponentScore(actual=actual, ratio=ratio, score=round_score(curve(ratio)))

        return PerformanceBlock(
            horizon=horizon,
            expected_growth=reported_expected,
            sales=component(sales_pct, fundamentals_curve),
            eps=component(eps_pct, fundamentals_curve),
            price=component(price_pct, price_curve) if is_finite(price_pct) else None,
        )

    def score(self, inputs: ScoringInputs) -> PerformanceScore:
        yoy = self.evaluate_yoy(inputs)
        qoq = self.evaluate_qoq(inputs)
        final_performance = None
        final_price = None
        if yoy is not None and qoq is not None:
            final_performance = composite([yoy.sales.score, yoy.eps.score, qoq.sales.score, qoq.eps.score])
            if yoy.price is not None and qoq.price is not None:
                final_price = composite([yoy.price.score, qoq.price.score])
        return PerformanceScore(
            yoy=yoy,
            qoq=qoq,
            final_performance_score=final_performance,
            final_price_score=final_price,
        )

    def evaluate(self, records: Sequence[DatedPricedRecord]) -> List[EvaluatedQuarter]:
        if not isinstance(records, (list, tuple)):
            raise TypeError(f"Expected a list of records, got {type(records).__name__}")
        return [
            EvaluatedQuarter(record=record, performance=self.score(ScoringInputs.from_record(record)))
            for record in records
        ]


def derive_row_price_qoq(rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Copy rows, filling a missing ``price_qoq_pct`` from the nearest earlier row with a close."""
    output = [dict(row) for row in rows]
    for index, row in enumerate(output):
        if to_number(row.get("price_qoq_pct")) is not None:
            continue
        current = to_number(row.get("currentDateClosePrice"))
        previous = next(
            (
                close
                for close in (to_number(item.get("currentDateClosePrice")) for item in reversed(output[:index]))
                if close is not None
            ),
            None,
        )
        price_qoq = None
        if current is not None and previous is not None and previous != 0:
            price_qoq = (current - previous) / previous * 100
        row["price_qoq_pct"] = price_qoq
    return output


def add_performance_to_rows(rows: List[Mapping[str, Any]], scorer: Optional[PerformanceScorer] = None) -> List[Dict[str, Any]]:
    """Score plain dict rows that already carry EPS, close and growth percentages.

    Rows without ``price_qoq_pct`` get it from the previous priced row first.
    """
    if not isinstance(rows, list):
        raise TypeError(f"Expected a list of rows, got {type(rows).__name__}")
    scorer = scorer or PerformanceScorer()
    output = derive_row_price_qoq(rows)
    for payload in output:
        payload["performance"] = scorer.score(ScoringInputs.from_mapping(payload)).to_dict()
    return output
