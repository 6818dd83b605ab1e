"""LangGraph node scoring each quarter against PE-implied growth."""
from __future__ import annotations

from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    dated = state.get("dated") or []

    logs.append(f"PerformanceAgent -> score {len(dated)} quarters")
    try:
        evaluated = context.scorer.evaluate(dated)
    except Exception as exc:  # pylint: disable=broad-except
        state["evaluated"] = []
        errors.append(f"Performance scoring failed: {exc}")
        return state
    scored = sum(1 for item in evaluated if item.performance.final_performance_score is not None)
    logs.append(f"PerformanceAgent -> {scored} quarters carry a final performance score")
    state["evaluated"] = evaluated
    return state
