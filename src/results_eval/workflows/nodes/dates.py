"""LangGraph node mapping earnings events onto quarters."""
from __future__ import annotations

from results_eval.domain.services.reconciliation import attach_dates, wrap_growth
from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    dated = wrap_growth(state.get("growth") or [])
    events = state.get("events") or []

    try:
        dated = attach_dates(dated, events)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Date attachment failed: {exc}")
    matched = sum(1 for record in dated if record.date_time_raw)
    logs.append(f"DateAgent -> {matched}/{len(dated)} quarters matched to an announcement date")
    state["dated"] = dated
    return state
