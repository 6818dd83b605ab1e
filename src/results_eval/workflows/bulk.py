"""Evaluate many companies on a bounded worker pool."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from results_eval.domain.models.quarters import QuarterLabel
from results_eval.workflows.graph import EvaluationWorkflow

logger = logging.getLogger(__name__)


@dataclass
class BulkSummary:
    params: Dict[str, Any]
    ok: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"params": self.params, "ok": self.ok, "failed": self.failed}


class BulkEvaluator:
    """Run the evaluation workflow per symbol; one symbol failing never stops the others."""

    def __init__(
        self,
        workflow: EvaluationWorkflow,
        *,
        concurrency: int = 3,
        retries: int = 2,
        backoff_seconds: float = 1.0,
        output_dir: Optional[Path] = None,
    ) -> None:
        self._workflow = workflow
        self.concurrency = max(1, concurrency)
        self.retries = max(0, retries)
        self.backoff_seconds = backoff_seconds
        self.output_dir = output_dir

    def run(
        self,
        symbols: Sequence[str],
        *,
        quarter_from: Optional[QuarterLabel] = None,
        quarter_to: Optional[QuarterLabel] = None,
    ) -> BulkSummary:
        unique = list(dict.fromkeys(symbol.strip().upper() for symbol in symbols if symbol and symbol.strip()))
        summary = BulkSummary(
            params={
                "symbols": len(unique),
                "from": str(quarter_from) if quarter_from else None,
                "to": str(quarter_to) if quarter_to else None,
                "concurrency": self.concurrency,
                "retries": self.retries,
            }
        )
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="evaluate") as executor:
            futures = {
                executor.submit(self._evaluate_with_retry, symbol, quarter_from, quarter_to): symbol
                for symbol in unique
            }
            for future in as_completed(futures):
                symbol = futures[future]
                try:
                    summary.ok.append(future.result())
                except Exception as exc:  # pylint: disable=broad-except
                    logger.warning("Evaluation failed for %s: %s", symbol, exc)
                    summary.failed.append({"symbol": symbol, "error": str(exc)})
        summary.ok.sort(key=lambda item: item["symbol"])
        summary.failed.sort(key=lambda item: item["symbol"])
        return summary

    def _evaluate_with_retry(
        self,
        symbol: str,
        quarter_from: Optional[QuarterLabel],
        quarter_to: Optional[QuarterLabel],
    ) -> Dict[str, Any]:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.retries + 2):
            try:
                return self._evaluate(symbol, quarter_from, quarter_to)
            except Exception as exc:  # pylint: disable=broad-except
                last_exc = exc
                if attempt > self.retries:
                    break
                logger.debug("Retrying %s after attempt %s: %s", symbol, attempt, exc)
                time.sleep(self.backoff_seconds * attempt)
        if last_exc:
            raise last_exc
        raise RuntimeError(f"Evaluation of {symbol} failed without exception")

    def _evaluate(
        self,
        symbol: str,
        quarter_from: Optional[QuarterLabel],
        quarter_to: Optional[QuarterLabel],
    ) -> Dict[str, Any]:
        state = self._workflow.run(symbol, quarter_from=quarter_from, quarter_to=quarter_to)
        evaluated = state.get("evaluated") or []
        if not evaluated:
            reasons = "; ".join(state.get("errors") or []) or "no quarters evaluated"
            raise RuntimeError(reasons)
        if self.output_dir is not None:
            target = self.output_dir / f"{state.get('price_symbol') or symbol}.json"
        else:
            target = self._workflow.default_output_path(state)
        self._workflow.persist_state(state, target)
        return {
            "symbol": symbol,
            "bse_code": state.get("bse_code"),
            "output_file": str(target),
            "rows": len(evaluated),
            "warnings": list(state.get("errors") or []),
        }
