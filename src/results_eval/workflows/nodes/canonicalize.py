"""LangGraph node turning raw statement rows into canonical quarter records."""
from __future__ import annotations

from typing import List

from results_eval.domain.models.records import CanonicalQuarterRecord
from results_eval.domain.services.growth import prepare_series
from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statements = state.get("statements") or []

    logs.append(f"CanonicalizeAgent -> extract {len(statements)} statements ({context.extractor.unit})")
    records: List[CanonicalQuarterRecord] = []
    for position, statement in enumerate(statements):
        try:
            records.append(context.extractor.extract(statement))
        except ValueError as exc:
            errors.append(f"Canonicalize failed for statement #{position}: {exc}")

    series = prepare_series(records)
    if len(series) < len(records):
        logs.append(f"CanonicalizeAgent -> dropped {len(records) - len(series)} duplicate quarters")
    banks = sum(1 for record in series if record.is_bank_shape)
    if banks:
        logs.append(f"CanonicalizeAgent -> {banks} quarters use the bank-type layout")
    state["canonical"] = series
    return state
