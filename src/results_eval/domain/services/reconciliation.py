"""Attach announcement dates and market closes to growth records.

Dates come from company event titles such as ``"Q2 2025 Earnings Release"``;
closes come from a price-history source queried one calendar day at a time,
stepping backwards over non-trading days. Either step may fail for a single
quarter without affecting the others; failures simply leave fields ``None``.
"""
from __future__ import annotations

import dataclasses
import logging
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from results_eval.domain.models.quarters import CompanyEvent, QuarterLabel
from results_eval.domain.models.records import DatedPricedRecord, GrowthRecord
from results_eval.domain.services.numeric import is_finite, to_number

logger = logging.getLogger(__name__)

EVENT_KINDS = ("Release", "Call")
CURRENT_LOOKBACK_DAYS = 7
PAST_YEAR_LOOKBACK_DAYS = 10

_PROJECTED = re.compile(r"Projected", re.IGNORECASE)
_ANNOUNCEMENT_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")


def _title_patterns(kind: str) -> Tuple[Tuple[re.Pattern, Optional[int]], ...]:
    return (
        (re.compile(rf"\bQ\s*([1-4])\s+(\d{{4}})\s+Earnings\s+{kind}\b", re.IGNORECASE), None),
        (re.compile(rf"\bFY\s+(\d{{4}})\s+Earnings\s+{kind}\b", re.IGNORECASE), 4),
        (re.compile(rf"\bInterim\s+(\d{{4}})\s+Earnings\s+{kind}\b", re.IGNORECASE), 2),
    )


_PATTERNS = {kind: _title_patterns(kind) for kind in EVENT_KINDS}


def quarter_label_from_title(title: Optional[str], kind: str = "Release") -> Optional[QuarterLabel]:
    """Infer the fiscal quarter an earnings event title refers to."""
    if not title or _PROJECTED.search(title):
        return None
    for pattern, fixed_quarter in _PATTERNS[kind]:
        match = pattern.search(title)
        if not match:
            continue
        if fixed_quarter is None:
            return QuarterLabel.from_fiscal(int(match.group(1)), int(match.group(2)))
        return QuarterLabel.from_fiscal(fixed_quarter, int(match.group(1)))
    return None


class EarningsIndex:
    """Earnings releases and calls keyed by the quarter they report on."""

    def __init__(self, events: Sequence[CompanyEvent]) -> None:
        if not isinstance(events, (list, tuple)):
            raise TypeError(f"Expected a list of events, got {type(events).__name__}")
        self.releases: Dict[QuarterLabel, CompanyEvent] = {}
        self.calls: Dict[QuarterLabel, CompanyEvent] = {}
        for event in events:
            for kind, bucket in (("Release", self.releases), ("Call", self.calls)):
                label = quarter_label_from_title(event.title, kind)
                if label is not None:
                    bucket.setdefault(label, event)

    def lookup(self, label: QuarterLabel) -> Optional[CompanyEvent]:
        return self.releases.get(label) or self.calls.get(label)


def wrap_growth(records: Sequence[GrowthRecord]) -> List[DatedPricedRecord]:
    return [DatedPricedRecord(growth=record) for record in records]


def attach_dates(records: Sequence[DatedPricedRecord], events: Sequence[CompanyEvent]) -> List[DatedPricedRecord]:
    """Copy the matching event's raw date onto each record; unmatched records keep what they had."""
    if not isinstance(records, (list, tuple)):
        raise TypeError(f"Expected a list of records, got {type(records).__name__}")
    index = EarningsIndex(events)
    output: List[DatedPricedRecord] = []
    for record in records:
        event = index.lookup(record.quarter)
        if event is not None:
            record = dataclasses.replace(record, date_time_raw=event.date_time_raw)
        output.append(record)
    return output


def parse_announcement_date(raw: Optional[str]) -> Optional[date]:
    """Parse ``DD/MM/YYYY`` optionally followed by a time; ``Today`` and junk give ``None``."""
    if not raw or not isinstance(raw, str):
        return None
    cleaned = " ".join(raw.replace(",", " ").split()).lower()
    match = _ANNOUNCEMENT_DATE.match(cleaned)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12 and year >= 1900):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


class PriceSource(Protocol):
    def get_price_at(self, date_iso: str, symbol: str) -> Optional[Mapping[str, Any]]:
        ...


class PriceCache:
    """Closes keyed by ``(symbol, day)``; ``None`` is cached as a known miss."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], Optional[float]] = {}

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Tuple[str, str]) -> Optional[float]:
        return self._entries.get(key)

    def put(self, key: Tuple[str, str], close: Optional[float]) -> None:
        self._entries[key] = close


class PriceResolver:
    """Resolve closes sequentially through a cache owned by one pipeline run."""

    def __init__(
        self,
        source: PriceSource,
        cache: Optional[PriceCache] = None,
        *,
        current_lookback_days: int = CURRENT_LOOKBACK_DAYS,
        past_year_lookback_days: int = PAST_YEAR_LOOKBACK_DAYS,
    ) -> None:
        self._source = source
        self.cache = cache if cache is not None else PriceCache()
        self.current_lookback_days = current_lookback_days
        self.past_year_lookback_days = past_year_lookback_days

    def close_on(self, symbol: str, day: date) -> Optional[float]:
        key = (symbol, day.isoformat())
        if key in self.cache:
            return self.cache.get(key)
        close: Optional[float] = None
        try:
            candle = self._source.get_price_at(day.isoformat(), symbol)
            if isinstance(candle, Mapping):
                close = to_number(candle.get("close"))
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("No close for %s on %s: %s", symbol, day, exc)
        self.cache.put(key, close)
        return close

    def nearest_close(self, symbol: str, day: date, max_back_days: int) -> Optional[Tuple[float, date]]:
        """Walk back from ``day`` at most ``max_back_days`` steps to the first trading close."""
        for offset in range(max_back_days + 1):
            candidate = day - timedelta(days=offset)
            close = self.close_on(symbol, candidate)
            if close is not None:
                return close, candidate
        return None


def prior_year_day(day: date) -> date:
    """Same day and month one year earlier; 29 Feb falls back to 28 Feb."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return date(day.year - 1, 2, 28)


def attach_prices(records: Sequence[DatedPricedRecord], symbol: str, resolver: PriceResolver) -> List[DatedPricedRecord]:
    if not isinstance(records, (list, tuple)):
        raise TypeError(f"Expected a list of records, got {type(records).__name__}")
    if not symbol:
        raise ValueError("A price symbol is required to attach prices")
    output: List[DatedPricedRecord] = []
    for record in records:
        day = parse_announcement_date(record.date_time_raw)
        if day is None:
            output.append(record)
            continue
        current = resolver.nearest_close(symbol, day, resolver.current_lookback_days)
        past = resolver.nearest_close(symbol, prior_year_day(day), resolver.past_year_lookback_days)
        current_close = current[0] if current else None
        past_close = past[0] if past else None
        price_yoy = None
        if is_finite(current_close) and is_finite(past_close) and past_close != 0:
            price_yoy = (current_close - past_close) / past_close * 100
        output.append(
            dataclasses.replace(
                record,
                current_close=current_close,
                current_close_date=current[1].isoformat() if current else None,
                past_year_close=past_close,
                past_year_close_date=past[1].isoformat() if past else None,
                price_yoy_pct=price_yoy,
            )
        )
    return output


def derive_price_qoq(records: Sequence[DatedPricedRecord]) -> List[DatedPricedRecord]:
    """Fill ``price_qoq_pct`` from the nearest earlier record that has a close."""
    if not isinstance(records, (list, tuple)):
        raise TypeError(f"Expected a list of records, got {type(records).__name__}")
    output: List[DatedPricedRecord] = []
    for index, record in enumerate(records):
        if is_finite(record.price_qoq_pct):
            output.append(record)
            continue
        previous_close = next(
            (item.current_close for item in reversed(records[:index]) if is_finite(item.current_close)),
            None,
        )
        price_qoq = None
        if is_finite(record.current_close) and previous_close is not None and previous_close != 0:
            price_qoq = (record.current_close - previous_close) / previous_close * 100
        output.append(dataclasses.replace(record, price_qoq_pct=price_qoq))
    return output
