"""Workflow blueprint describing evaluation stages and their handlers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, TYPE_CHECKING

from results_eval.workflows.nodes import (
    canonicalize,
    dates,
    eps_smoothing,
    growth,
    ingest,
    performance,
    persist,
    prices,
)

if TYPE_CHECKING:
    from results_eval.workflows.context import WorkflowContext
    from results_eval.workflows.state import EvaluationState


@dataclass
class StageSpec:
    """Single LangGraph stage definition."""

    key: str
    description: str
    handler: Callable[["EvaluationState", "WorkflowContext"], "EvaluationState"]
    depends_on: List[str] = field(default_factory=list)


def build_default_stages() -> List[StageSpec]:
    """Return the ordered stages for the quarterly evaluation workflow."""
    return [
        StageSpec(
            key="ingest_inputs",
            description="Resolve company ids; load statements, events and share count unless supplied.",
            handler=ingest.run,
        ),
        StageSpec(
            key="canonicalize",
            description="Detect bank/non-bank layout and extract Screener-style quarter records.",
            handler=canonicalize.run,
            depends_on=["ingest_inputs"],
        ),
        StageSpec(
            key="smooth_eps",
            description="Rolling six-quarter medians of one-off lines to derive smoothed EPS.",
            handler=eps_smoothing.run,
            depends_on=["canonicalize"],
        ),
        StageSpec(
            key="compute_growth",
            description="QoQ by position and YoY by label for Sales and EPS.",
            handler=growth.run,
            depends_on=["smooth_eps"],
        ),
        StageSpec(
            key="attach_dates",
            description="Map earnings release/call titles to quarters and copy announcement dates.",
            handler=dates.run,
            depends_on=["compute_growth"],
        ),
        StageSpec(
            key="attach_prices",
            description="Closing prices on and one year before each announcement, with backward search.",
            handler=prices.run,
            depends_on=["attach_dates"],
        ),
        StageSpec(
            key="score_performance",
            description="Compare actual growth with PE-implied growth and aggregate scores.",
            handler=performance.run,
            depends_on=["compute_growth", "attach_prices"],
        ),
        StageSpec(
            key="persist_results",
            description="Upsert evaluated quarters into SQLite.",
            handler=persist.run,
            depends_on=["score_performance"],
        ),
    ]
