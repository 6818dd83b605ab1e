"""Workflow dependency container."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config import Config
from results_eval.domain.services.extraction import CanonicalExtractor
from results_eval.domain.services.growth import GrowthCalculator
from results_eval.domain.services.reconciliation import PriceSource
from results_eval.domain.services.scoring import PerformanceScorer
from results_eval.domain.services.smoothing import EPSSmoother
from results_eval.infrastructure.data_providers.local_store import LocalDataStore
from results_eval.infrastructure.db.sqlite import SQLiteRepository
from results_eval.infrastructure.directory import CompanyDirectory


@dataclass
class WorkflowContext:
    """Holds heavy-weight dependencies shared by LangGraph nodes."""

    config: Config
    store: LocalDataStore
    directory: CompanyDirectory
    extractor: CanonicalExtractor
    smoother: EPSSmoother
    growth_calculator: GrowthCalculator
    scorer: PerformanceScorer
    price_source: Optional[PriceSource] = None
    repository: Optional[SQLiteRepository] = None

    def close(self) -> None:
        """Release any dependencies that need explicit cleanup."""
        closer = getattr(self.price_source, "close", None)
        if callable(closer):
            closer()
        if self.repository is not None:
            self.repository.close()
