"""Smoothed EPS from a trailing window of one-off prone lines.

Other income, depreciation and interest swing from quarter to quarter, so
the smoothed figure replaces them with their window medians and applies the
window's mean tax rate to operating profit. Near the start of a series the
window reaches forward into later quarters instead of shrinking.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from results_eval.domain.models.records import CanonicalQuarterRecord
from results_eval.domain.services.numeric import is_finite, round_fixed

WINDOW_SIZE = 6
CRORE = 10_000_000


@dataclass(frozen=True)
class SmoothingWindow:
    quarter: str
    window_start: int
    window_end: int
    median_other_income: float
    median_depreciation: float
    median_interest: float
    mean_tax_pct: float


@dataclass
class SmoothingResult:
    records: List[CanonicalQuarterRecord]
    windows: List[SmoothingWindow] = field(default_factory=list)
    total_shares: Optional[float] = None


def window_bounds(index: int, length: int, size: int = WINDOW_SIZE) -> tuple:
    if index >= size - 1:
        return index - (size - 1), index
    return 0, min(length - 1, size - 1)


def _median(values: Sequence[float]) -> float:
    finite = [value for value in values if is_finite(value)]
    return float(np.median(finite)) if finite else 0.0


def _mean(values: Sequence[float]) -> float:
    finite = [value for value in values if is_finite(value)]
    return float(np.mean(finite)) if finite else 0.0


class EPSSmoother:
    """Attach ``eps_smooth`` to every record of an ascending series."""

    def __init__(self, window_size: int = WINDOW_SIZE, *, rupees_per_unit: float = CRORE) -> None:
        self.window_size = window_size
        # Record amounts are in crore or million; shares are a plain count.
        self.rupees_per_unit = rupees_per_unit

    def smooth(self, records: Sequence[CanonicalQuarterRecord], total_shares: Optional[float]) -> SmoothingResult:
        shares = total_shares if is_finite(total_shares) and total_shares > 0 else None
        smoothed: List[CanonicalQuarterRecord] = []
        windows: List[SmoothingWindow] = []
        for index, record in enumerate(records):
            if record.is_bank_shape:
                # Provisioning already normalises credit costs for lenders.
                smoothed.append(dataclasses.replace(record, eps_smooth=record.eps))
                continue
            start, end = window_bounds(index, len(records), self.window_size)
            window = records[start : end + 1]
            stats = SmoothingWindow(
                quarter=str(record.quarter),
                window_start=start,
                window_end=end,
                median_other_income=_median([item.other_income for item in window]),
                median_depreciation=_median([item.depreciation for item in window]),
                median_interest=_median([item.interest for item in window]),
                mean_tax_pct=_mean([item.tax_pct for item in window]),
            )
            windows.append(stats)
            eps_smooth = self._eps_smooth(record, stats, shares, self.rupees_per_unit)
            smoothed.append(dataclasses.replace(record, eps_smooth=eps_smooth))
        return SmoothingResult(records=smoothed, windows=windows, total_shares=shares)

    @staticmethod
    def _eps_smooth(
        record: CanonicalQuarterRecord,
        stats: SmoothingWindow,
        shares: Optional[float],
        rupees_per_unit: float,
    ) -> Optional[float]:
        if shares is None:
            return None
        earnings = (
            record.operating_profit
            + stats.median_other_income
            - stats.median_depreciation
            - stats.median_interest
        )
        after_tax = earnings * rupees_per_unit * (1 - stats.mean_tax_pct / 100)
        return round_fixed(after_tax / shares, 2)
