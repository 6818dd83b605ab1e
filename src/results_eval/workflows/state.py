"""Workflow state definitions shared by LangGraph nodes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from results_eval.domain.models.quarters import CompanyEvent, QuarterLabel, QuarterStatement
from results_eval.domain.models.records import (
    CanonicalQuarterRecord,
    DatedPricedRecord,
    EvaluatedQuarter,
    GrowthRecord,
)
from results_eval.domain.services.smoothing import SmoothingWindow


class EvaluationState(TypedDict, total=False):
    symbol: str
    bse_code: Optional[str]
    market_screener_code: Optional[str]
    price_symbol: Optional[str]
    quarter_from: Optional[QuarterLabel]
    quarter_to: Optional[QuarterLabel]
    run_date: str

    statements: List[QuarterStatement]
    events: List[CompanyEvent]
    total_shares: Optional[float]

    canonical: List[CanonicalQuarterRecord]
    smoothing_windows: List[SmoothingWindow]
    growth: List[GrowthRecord]
    dated: List[DatedPricedRecord]
    evaluated: List[EvaluatedQuarter]
    persisted_rows: int
    stage_order: List[str]

    logs: List[str]
    errors: List[str]

    extras: Dict[str, Any]
