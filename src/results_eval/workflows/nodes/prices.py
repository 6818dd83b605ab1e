"""LangGraph node resolving closes around each announcement date."""
from __future__ import annotations

from results_eval.domain.services.reconciliation import (
    PriceCache,
    PriceResolver,
    attach_prices,
    derive_price_qoq,
)
from results_eval.workflows.context import WorkflowContext
from results_eval.workflows.state import EvaluationState


def run(state: EvaluationState, context: WorkflowContext) -> EvaluationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    dated = state.get("dated") or []
    symbol = state.get("price_symbol") or state.get("symbol")

    if context.price_source is None:
        logs.append("PriceAgent -> no price source configured; price fields stay empty")
    elif dated:
        resolver = PriceResolver(
            context.price_source,
            PriceCache(),
            current_lookback_days=context.config.current_lookback_days,
            past_year_lookback_days=context.config.past_year_lookback_days,
        )
        logs.append(f"PriceAgent -> resolve closes for {symbol}")
        try:
            dated = attach_prices(dated, symbol, resolver)
        except Exception as exc:  # pylint: disable=broad-except
            errors.append(f"Price attachment failed: {exc}")
        state.setdefault("extras", {})["price_lookups"] = len(resolver.cache)

    state["dated"] = derive_price_qoq(dated)
    priced = sum(1 for record in state["dated"] if record.current_close is not None)
    logs.append(f"PriceAgent -> {priced}/{len(dated)} quarters priced")
    return state
