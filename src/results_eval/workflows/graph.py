"""LangGraph workflow assembly for the quarterly evaluation pipeline."""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from langgraph.graph import END, StateGraph

from config import Config
from results_eval.domain.models.quarters import CompanyEvent, QuarterLabel, QuarterStatement
from results_eval.domain.services.extraction import CanonicalExtractor
from results_eval.domain.services.growth import GrowthCalculator
from results_eval.domain.services.reconciliation import PriceSource
from results_eval.domain.services.scoring import PerformanceScorer
from results_eval.domain.services.smoothing import EPSSmoother
from results_eval.infrastructure.data_providers.local_store import LocalDataStore
from results_eval.infrastructure.data_providers.price_history import PriceHistoryClient
from results_eval.infrastructure.db.sqlite import SQLiteRepository
from results_eval.infrastructure.directory import CompanyDirectory
from results_eval.workflows import context as context_module
from results_eval.workflows.blueprint import StageSpec, build_default_stages
from results_eval.workflows.state import EvaluationState


class EvaluationWorkflow:
    """Compose LangGraph nodes into a runnable evaluation pipeline."""

    def __init__(
        self,
        config: Config,
        *,
        price_source: Optional[PriceSource] = None,
        use_network: bool = True,
        repository: Optional[SQLiteRepository] = None,
    ) -> None:
        self._config = config
        self._context = self._build_context(price_source, use_network, repository)
        self._stages: List[StageSpec] = build_default_stages()
        self._graph = self._build_graph()

    @property
    def context(self) -> context_module.WorkflowContext:
        return self._context

    def _build_context(
        self,
        price_source: Optional[PriceSource],
        use_network: bool,
        repository: Optional[SQLiteRepository],
    ) -> context_module.WorkflowContext:
        if price_source is None and use_network:
            price_source = PriceHistoryClient(
                self._config.price_api_base_url,
                timeout=self._config.price_timeout,
                max_retries=self._config.price_max_attempts,
                throttle_seconds=self._config.price_throttle_seconds,
                proxy_url=self._config.proxy_url,
            )
        if repository is None and self._config.persist_results:
            repository = SQLiteRepository(
                database_uri=f"sqlite:///{self._config.database_path}",
                echo=self._config.sqlite_echo,
            )
        extractor = CanonicalExtractor(self._config.output_unit)
        return context_module.WorkflowContext(
            config=self._config,
            store=LocalDataStore(self._config.data_dir),
            directory=CompanyDirectory.from_file(self._config.companies_file),
            extractor=extractor,
            smoother=EPSSmoother(rupees_per_unit=extractor.rupees_per_unit),
            growth_calculator=GrowthCalculator(use_smooth_eps=self._config.smooth_eps),
            scorer=PerformanceScorer(),
            price_source=price_source,
            repository=repository,
        )

    def _build_graph(self):
        builder = StateGraph(dict)

        if not self._stages:
            raise RuntimeError("Workflow blueprint is empty; cannot build LangGraph.")

        for stage in self._stages:
            builder.add_node(stage.key, self._wrap(stage.handler))

        # Each stage consumes the previous stage's full output, so run them strictly in order.
        builder.set_entry_point(self._stages[0].key)
        for current, nxt in zip(self._stages, self._stages[1:]):
            builder.add_edge(current.key, nxt.key)
        builder.add_edge(self._stages[-1].key, END)

        return builder.compile(checkpointer=None)

    def _wrap(self, func: Callable[[EvaluationState, context_module.WorkflowContext], EvaluationState]):
        def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            return func(state, self._context)

        return wrapper

    def run(
        self,
        symbol: str,
        *,
        quarter_from: Optional[QuarterLabel] = None,
        quarter_to: Optional[QuarterLabel] = None,
        statements: Optional[Sequence[QuarterStatement]] = None,
        events: Optional[Sequence[CompanyEvent]] = None,
        total_shares: Optional[float] = None,
        bse_code: Optional[str] = None,
        price_symbol: Optional[str] = None,
    ) -> EvaluationState:
        """Execute the workflow for a single company."""
        initial_state: EvaluationState = {
            "symbol": symbol,
            "quarter_from": quarter_from,
            "quarter_to": quarter_to,
            "run_date": datetime.now().date().isoformat(),
            "logs": [],
            "errors": [],
            "extras": {},
            "stage_order": [stage.key for stage in self._stages],
        }
        if statements is not None:
            initial_state["statements"] = list(statements)
        if events is not None:
            initial_state["events"] = list(events)
        if total_shares is not None:
            initial_state["total_shares"] = total_shares
        if bse_code:
            initial_state["bse_code"] = bse_code
        if price_symbol:
            initial_state["price_symbol"] = price_symbol
        result: EvaluationState = self._graph.invoke(initial_state)
        return result  # type: ignore[return-value]

    @staticmethod
    def results(state: EvaluationState) -> List[Dict[str, Any]]:
        """Flatten evaluated quarters into JSON-ready dicts."""
        return [item.to_dict() for item in state.get("evaluated") or []]

    def persist_state(self, state: EvaluationState, path: Path) -> None:
        """Write the evaluated quarter array to disk as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.results(state), default=_json_serializer, indent=2, ensure_ascii=False)
        path.write_text(payload, encoding="utf-8")

    def default_output_path(self, state: EvaluationState) -> Path:
        symbol = state.get("price_symbol") or state["symbol"]
        return self._config.output_dir / "performance" / f"{symbol}.json"

    def describe_stages(self) -> List[str]:
        """Return human-readable workflow stage descriptions."""
        return [f"{stage.key}: {stage.description}" for stage in self._stages]

    def close(self) -> None:
        self._context.close()

    def __del__(self) -> None:  # pragma: no cover
        try:
            self._context.close()
        except Exception:  # pylint: disable=broad-except
            pass


def _json_serializer(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return asdict(value)
    if hasattr(value, "tolist"):
        return value.tolist()
    return str(value)
