"""LangGraph node storing evaluated quarters in SQLite."""
from __future__ import annotations

from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    evaluated = state.get("evaluated") or []
    symbol = state.get("price_symbol") or state["symbol"]

    if context.repository is None or not context.config.persist_results:
        logs.append("PersistAgent -> persistence disabled")
        return state
    try:
        state["persisted_rows"] = context.repository.upsert_evaluations(symbol, evaluated)
        status = "ok" if evaluated and not state.get("errors") else "partial" if evaluated else "empty"
        context.repository.record_run(symbol, status, rows=len(evaluated), error="; ".join(errors) or None)
        logs.append(f"PersistAgent -> stored {state['persisted_rows']} quarters for {symbol}")
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Persist failed: {exc}")
    return state
