"""Per-stage quarter records produced by the evaluation pipeline.

Each stage wraps the record of the stage before it instead of mutating it:
``CanonicalQuarterRecord`` -> ``GrowthRecord`` -> ``DatedPricedRecord`` ->
``EvaluatedQuarter``. ``to_dict`` methods emit the flat JSON shape consumed
by downstream dashboards.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from results_eval.domain.models.quarters import QuarterLabel


class EntityType(str, Enum):
    NON_BANK = "non_bank"
    BANK = "bank"
    NBFC = "nbfc"


@dataclass(frozen=True)
class CanonicalQuarterRecord:
    """One quarter in Screener-style columns; monetary fields share one unit."""

    quarter: QuarterLabel
    entity_type: EntityType
    sales: float
    expenses: float
    operating_profit: float
    margin_pct: float
    other_income: float
    interest: float
    depreciation: float
    profit_before_tax: float
    tax_pct: float
    net_profit: float
    eps: float
    eps_smooth: Optional[float] = None
    gross_npa_pct: Optional[float] = None
    net_npa_pct: Optional[float] = None

    @property
    def is_bank_shape(self) -> bool:
        return self.entity_type in (EntityType.BANK, EntityType.NBFC)

    def to_dict(self) -> Dict[str, Any]:
        if self.is_bank_shape:
            payload: Dict[str, Any] = {
                "Quarter": str(self.quarter),
                "Revenue": self.sales,
                "Interest": self.interest,
                "Expenses": self.expenses,
                "Financing Profit": self.operating_profit,
                "Financing Margin %": self.margin_pct,
                "Other Income": self.other_income,
                "Depreciation": self.depreciation,
                "Profit before tax": self.profit_before_tax,
                "Tax %": self.tax_pct,
                "Net Profit": self.net_profit,
                "EPS in Rs": self.eps,
                "Gross NPA %": self.gross_npa_pct,
                "Net NPA %": self.net_npa_pct,
            }
        else:
            payload = {
                "Quarter": str(self.quarter),
                "Sales": self.sales,
                "Expenses": self.expenses,
                "Operating Profit": self.operating_profit,
                "OPM %": self.margin_pct,
                "Other Income": self.other_income,
                "Interest": self.interest,
                "Depreciation": self.depreciation,
                "Profit before tax": self.profit_before_tax,
                "Tax %": self.tax_pct,
                "Net Profit": self.net_profit,
                "EPS in Rs": self.eps,
            }
        if self.eps_smooth is not None:
            payload["EPS smooth in Rs"] = self.eps_smooth
        return payload


@dataclass(frozen=True)
class GrowthRecord:
    """Sales and EPS change versus the previous quarter and the same quarter last year."""

    record: CanonicalQuarterRecord
    sales: Optional[float]
    eps: Optional[float]
    sales_qoq_change: Optional[float] = None
    sales_qoq_pct: Optional[float] = None
    sales_yoy_change: Optional[float] = None
    sales_yoy_pct: Optional[float] = None
    eps_qoq_change: Optional[float] = None
    eps_qoq_pct: Optional[float] = None
    eps_yoy_change: Optional[float] = None
    eps_yoy_pct: Optional[float] = None

    @property
    def quarter(self) -> QuarterLabel:
        return self.record.quarter

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Quarter": str(self.quarter),
            "Sales": self.sales,
            "EPS": self.eps,
            "sales_qoq_change": self.sales_qoq_change,
            "sales_qoq_pct": self.sales_qoq_pct,
            "sales_yoy_change": self.sales_yoy_change,
            "sales_yoy_pct": self.sales_yoy_pct,
            "eps_qoq_change": self.eps_qoq_change,
            "eps_qoq_pct": self.eps_qoq_pct,
            "eps_yoy_change": self.eps_yoy_change,
            "eps_yoy_pct": self.eps_yoy_pct,
        }


@dataclass(frozen=True)
class DatedPricedRecord:
    """Growth record plus announcement date and the closes around it."""

    growth: GrowthRecord
    date_time_raw: Optional[str] = None
    current_close: Optional[float] = None
    current_close_date: Optional[str] = None
    past_year_close: Optional[float] = None
    past_year_close_date: Optional[str] = None
    price_yoy_pct: Optional[float] = None
    price_qoq_pct: Optional[float] = None

    @property
    def quarter(self) -> QuarterLabel:
        return self.growth.quarter

    def to_dict(self) -> Dict[str, Any]:
        payload = self.growth.to_dict()
        payload.update(
            {
                "dateTimeRaw": self.date_time_raw,
                "currentDateClosePrice": self.current_close,
                "pastYearDateClosePrice": self.past_year_close,
                "price_yoy_pct": self.price_yoy_pct,
                "price_qoq_pct": self.price_qoq_pct,
            }
        )
        return payload


@dataclass(frozen=True)
class ComponentScore:
    actual: float
    ratio: float
    score: float

    def to_dict(self) -> Dict[str, float]:
        return {"actual": self.actual, "ratio": self.ratio, "score": self.score}


@dataclass(frozen=True)
class PerformanceBlock:
    """Scores for one horizon (``yoy`` or ``qoq``) against the PE-implied growth."""

    horizon: str
    expected_growth: float
    sales: ComponentScore
    eps: ComponentScore
    price: Optional[ComponentScore] = None

    def to_dict(self) -> Dict[str, Any]:
        key = "expectedYoyGrowth" if self.horizon == "yoy" else "expectedQoqGrowth"
        return {
            key: self.expected_growth,
            "sales": self.sales.to_dict(),
            "eps": self.eps.to_dict(),
            "price": self.price.to_dict() if self.price is not None else None,
        }


@dataclass(frozen=True)
class CompositeScore:
    x: float
    abs_sqrt_x: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "abs_sqrt_x": self.abs_sqrt_x}


@dataclass(frozen=True)
class PerformanceScore:
    yoy: Optional[PerformanceBlock] = None
    qoq: Optional[PerformanceBlock] = None
    final_performance_score: Optional[CompositeScore] = None
    final_price_score: Optional[CompositeScore] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "yoy": self.yoy.to_dict() if self.yoy else None,
            "qoq": self.qoq.to_dict() if self.qoq else None,
            "final_performance_score": (
                self.final_performance_score.to_dict() if self.final_performance_score else None
            ),
            "final_price_score": self.final_price_score.to_dict() if self.final_price_score else None,
        }


@dataclass(frozen=True)
class EvaluatedQuarter:
    """Final pipeline output for one quarter."""

    record: DatedPricedRecord
    performance: PerformanceScore

    @property
    def quarter(self) -> QuarterLabel:
        return self.record.quarter

    def to_dict(self) -> Dict[str, Any]:
        payload = self.record.to_dict()
        payload["performance"] = self.performance.to_dict()
        payload["details"] = self.record.growth.record.to_dict()
        return payload
