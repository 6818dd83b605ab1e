"""LangGraph node collecting statements, events and share count for one company."""
from __future__ import annotations

import dataclasses
from typing import List

from results_eval.domain.models.quarters import QuarterStatement
from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    symbol = state["symbol"]

    ids = context.directory.resolve(symbol)
    bse_code = state.get("bse_code") or (ids.bse_code if ids else None)
    market_screener_code = state.get("market_screener_code") or (ids.market_screener_code if ids else None)
    state["bse_code"] = bse_code
    state["market_screener_code"] = market_screener_code
    state["price_symbol"] = state.get("price_symbol") or (ids.nse_symbol if ids else symbol)
    logs.append(
        f"IngestAgent -> {symbol} resolved to BSE {bse_code or '?'} / MarketScreener {market_screener_code or '?'}"
    )

    statements = state.get("statements")
    if statements is None:
        statements = []
        if not bse_code:
            errors.append(f"Ingest failed: no BSE code known for {symbol}")
        else:
            try:
                statements = context.store.load_statements(bse_code)
                logs.append(f"IngestAgent -> loaded {len(statements)} quarterly statements")
            except (OSError, ValueError) as exc:
                errors.append(f"Ingest failed: {exc}")
    if bse_code and bse_code in context.config.nbfc_codes:
        statements = [dataclasses.replace(statement, nbfc=True) for statement in statements]
        logs.append("IngestAgent -> NBFC statement layout selected")
    state["statements"] = _filter_range(state, statements)

    if state.get("events") is None:
        try:
            state["events"] = context.store.load_events(market_screener_code)
        except (OSError, ValueError) as exc:
            state["events"] = []
            errors.append(f"Event load failed: {exc}")
    logs.append(f"IngestAgent -> {len(state['events'])} company events available")

    if state.get("total_shares") is None:
        try:
            state["total_shares"] = context.store.load_share_count(state["price_symbol"])
        except (OSError, ValueError) as exc:
            state["total_shares"] = None
            errors.append(f"Share count load failed: {exc}")
    return state


def _filter_range(state: EvaluationState, statements: List[QuarterStatement]) -> List[QuarterStatement]:
    start = state.get("quarter_from")
    end = state.get("quarter_to")
    if start is None and end is None:
        return list(statements)
    kept: List[QuarterStatement] = []
    for statement in statements:
        try:
            label = statement.resolve_label()
        except ValueError:
            # Let canonicalize report the bad label.
            kept.append(statement)
            continue
        if (start is None or label >= start) and (end is None or label <= end):
            kept.append(statement)
    return kept
