"""File-backed sources for statements, company events and share counts.

Layout under the data directory::

    statements/<bse_code>.json   {"companyCode": ..., "results": [{quarter, meta, rows, nbfc}, ...]}
    info/<marketscreener>.json   {"pastEvents": {"events": [{title, dateTimeRaw, dateTimeISO}, ...]}}
    shares.json                  {"<NSE symbol>": <absolute outstanding shares>, ...}
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from results_eval.domain.models.quarters import CompanyEvent, QuarterStatement, statements_from_payload
from results_eval.domain.services.numeric import to_number

logger = logging.getLogger(__name__)


class LocalDataStore:
    """Read collaborator payloads that a fetcher has already written to disk."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def statements_path(self, bse_code: str) -> Path:
        return self._data_dir / "statements" / f"{bse_code}.json"

    def events_path(self, market_screener_code: str) -> Path:
        return self._data_dir / "info" / f"{market_screener_code}.json"

    def load_statements(self, bse_code: str) -> List[QuarterStatement]:
        path = self.statements_path(bse_code)
        if not path.exists():
            raise FileNotFoundError(f"No statements stored for {bse_code} at {path}")
        payload = self._read(path)
        items = payload.get("results") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise ValueError(f"Statements file {path} has no results list")
        return statements_from_payload(item for item in items if isinstance(item, dict) and item.get("ok", True))

    def load_events(self, market_screener_code: Optional[str]) -> List[CompanyEvent]:
        if not market_screener_code:
            return []
        path = self.events_path(market_screener_code)
        if not path.exists():
            logger.debug("No company info file at %s", path)
            return []
        payload = self._read(path)
        if isinstance(payload, dict):
            events = (payload.get("pastEvents") or {}).get("events") or payload.get("events") or []
        else:
            events = payload
        return [CompanyEvent.from_mapping(event) for event in events if isinstance(event, dict)]

    def load_share_count(self, nse_symbol: str) -> Optional[float]:
        path = self._data_dir / "shares.json"
        if not path.exists():
            return None
        counts: Dict[str, Any] = self._read(path)
        return to_number(counts.get(nse_symbol.upper(), counts.get(nse_symbol)))

    @staticmethod
    def _read(path: Path) -> Any:
        return json.loads(path.read_text(encoding="utf-8"))
