"""Company identifier cross-reference between NSE, BSE, MarketScreener and Zerodha."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class CompanyIds:
    nse_symbol: str
    zerodha_instrument: Optional[str]
    market_screener_code: Optional[str]
    bse_code: Optional[str]
    bse_path: Optional[str]


class CompanyDirectory:
    """Index over ``companies_info.json``: ``{NSE: [zerodha, marketscreener, "slug/SYMBOL/bsecode"]}``."""

    def __init__(self, entries: Mapping[str, Any]) -> None:
        self._by_nse: Dict[str, CompanyIds] = {}
        self._by_bse: Dict[str, CompanyIds] = {}
        self._by_market_screener: Dict[str, CompanyIds] = {}
        self._by_zerodha: Dict[str, CompanyIds] = {}
        for symbol, values in (entries or {}).items():
            if not isinstance(values, list):
                continue
            ids = self._parse_entry(str(symbol), values)
            self._by_nse.setdefault(ids.nse_symbol.upper(), ids)
            if ids.bse_code:
                self._by_bse.setdefault(ids.bse_code, ids)
            if ids.market_screener_code:
                self._by_market_screener.setdefault(ids.market_screener_code, ids)
            if ids.zerodha_instrument:
                self._by_zerodha.setdefault(ids.zerodha_instrument.upper(), ids)

    @classmethod
    def from_file(cls, path: Path) -> "CompanyDirectory":
        if not path.exists():
            return cls({})
        return cls(json.loads(path.read_text(encoding="utf-8")))

    @staticmethod
    def _parse_entry(symbol: str, values: List[Any]) -> CompanyIds:
        def at(position: int) -> Optional[str]:
            value = values[position] if len(values) > position else None
            if value is None:
                return None
            return str(value).strip() or None

        bse_path = at(2)
        bse_code = bse_path.rstrip("/").split("/")[-1] if bse_path else None
        return CompanyIds(
            nse_symbol=symbol.strip(),
            zerodha_instrument=at(0),
            market_screener_code=at(1),
            bse_code=bse_code or None,
            bse_path=bse_path,
        )

    def __len__(self) -> int:
        return len(self._by_nse)

    def by_nse(self, symbol: str) -> Optional[CompanyIds]:
        return self._by_nse.get((symbol or "").strip().upper())

    def by_bse_code(self, code: str) -> Optional[CompanyIds]:
        return self._by_bse.get(str(code).strip())

    def by_market_screener(self, code: str) -> Optional[CompanyIds]:
        return self._by_market_screener.get((code or "").strip())

    def by_zerodha(self, instrument: str) -> Optional[CompanyIds]:
        return self._by_zerodha.get((instrument or "").strip().upper())

    def resolve(self, identifier: str) -> Optional[CompanyIds]:
        """Look an identifier up in every namespace, NSE first."""
        return (
            self.by_nse(identifier)
            or self.by_bse_code(identifier)
            or self.by_market_screener(identifier)
            or self.by_zerodha(identifier)
        )

    def symbols(self) -> List[str]:
        return sorted(ids.nse_symbol for ids in self._by_nse.values())
