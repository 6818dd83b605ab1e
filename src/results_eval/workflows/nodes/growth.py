"""LangGraph node computing QoQ/YoY growth for Sales and EPS."""
from __future__ import annotations

from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    canonical = state.get("canonical") or []

    logs.append("GrowthAgent -> compute QoQ and YoY changes")
    try:
        state["growth"] = context.growth_calculator.calculate(canonical)
    except Exception as exc:  # pylint: disable=broad-except
        state["growth"] = []
        errors.append(f"Growth calculation failed: {exc}")
    return state
