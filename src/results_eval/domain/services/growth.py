"""Quarter-over-quarter and year-over-year growth for Sales and EPS."""
from __future__ import annotations

from typing import Dict, List, Sequence

from results_eval.domain.models.quarters import QuarterLabel
from results_eval.domain.models.records import CanonicalQuarterRecord, GrowthRecord
from results_eval.domain.services.numeric import change, pct_change


def prepare_series(records: Sequence[CanonicalQuarterRecord]) -> List[CanonicalQuarterRecord]:
    """Sort ascending by quarter, keeping the first record seen for each label."""
    if not isinstance(records, (list, tuple)):
        raise TypeError(f"Expected a list of quarter records, got {type(records).__name__}")
    unique: Dict[QuarterLabel, CanonicalQuarterRecord] = {}
    for record in records:
        unique.setdefault(record.quarter, record)
    return sorted(unique.values(), key=lambda record: record.quarter)


class GrowthCalculator:
    """QoQ compares against the previous record by position; YoY looks up last year's label."""

    def __init__(self, use_smooth_eps: bool = True) -> None:
        self.use_smooth_eps = use_smooth_eps

    def eps_for(self, record: CanonicalQuarterRecord) -> float:
        if self.use_smooth_eps and record.eps_smooth is not None:
            return record.eps_smooth
        return record.eps

    def calculate(self, records: Sequence[CanonicalQuarterRecord]) -> List[GrowthRecord]:
        series = prepare_series(records)
        by_label = {record.quarter: record for record in series}
        output: List[GrowthRecord] = []
        for index, record in enumerate(series):
            sales = record.sales
            eps = self.eps_for(record)
            previous = series[index - 1] if index > 0 else None
            last_year = by_label.get(record.quarter.previous_year())

            prev_sales = previous.sales if previous else None
            prev_eps = self.eps_for(previous) if previous else None
            ly_sales = last_year.sales if last_year else None
            ly_eps = self.eps_for(last_year) if last_year else None

            output.append(
                GrowthRecord(
                    record=record,
                    sales=sales,
                    eps=eps,
                    sales_qoq_change=change(sales, prev_sales),
                    sales_qoq_pct=pct_change(sales, prev_sales),
                    sales_yoy_change=change(sales, ly_sales),
                    sales_yoy_pct=pct_change(sales, ly_sales),
                    eps_qoq_change=change(eps, prev_eps),
                    eps_qoq_pct=pct_change(eps, prev_eps),
                    eps_yoy_change=change(eps, ly_eps),
                    eps_yoy_pct=pct_change(eps, ly_eps),
                )
            )
        return output
