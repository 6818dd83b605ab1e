"""LangGraph node attaching smoothed EPS to canonical records."""
from __future__ import annotations

from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    canonical = state.get("canonical") or []

    if not context.config.smooth_eps:
        logs.append("SmoothingAgent -> disabled; reported EPS used downstream")
        return state
    if not canonical:
        logs.append("SmoothingAgent -> skipped because no canonical quarters exist")
        return state

    shares = state.get("total_shares")
    logs.append(f"SmoothingAgent -> smooth EPS over {len(canonical)} quarters")
    try:
        result = context.smoother.smooth(canonical, shares)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"EPS smoothing failed: {exc}")
        return state
    if result.total_shares is None:
        logs.append("SmoothingAgent -> no usable share count; smoothed EPS left empty for non-bank quarters")
    state["canonical"] = result.records
    state["smoothing_windows"] = result.windows
    return state
