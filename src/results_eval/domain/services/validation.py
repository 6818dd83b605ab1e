"""Sanity checks on announcement dates attached to evaluated quarters.

Results for a quarter ending in month M are published between the first day
of M+1 and the first day of M+4. A date outside that window usually means the
event title was mapped to the wrong fiscal quarter.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from results_eval.domain.models.quarters import QuarterLabel

_DATE_TIME = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})\s*(am|pm)?)?$", re.IGNORECASE)

STATUS_OK = "OK"
STATUS_ERR = "ERR"
STATUS_IGNORED = "IGNORED"


@dataclass(frozen=True)
class ValidationResult:
    status: str
    quarter: Optional[str] = None
    date_time_raw: Optional[str] = None
    reason: Optional[str] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "Quarter": self.quarter,
            "dateTimeRaw": self.date_time_raw,
            "reason": self.reason,
            "windowStart": self.window_start.isoformat() if self.window_start else None,
            "windowEnd": self.window_end.isoformat() if self.window_end else None,
        }


def parse_date_time_raw(raw: Optional[str]) -> Optional[datetime]:
    if not raw or not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    if trimmed.lower() == "today":
        return None
    match = _DATE_TIME.match(trimmed)
    if not match:
        return None
    day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour = int(match.group(4)) if match.group(4) else 0
    minute = int(match.group(5)) if match.group(5) else 0
    meridiem = (match.group(6) or "").lower()
    if meridiem == "pm" and hour != 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def _add_months(year: int, month: int, months: int) -> datetime:
    total = year * 12 + (month - 1) + months
    return datetime(total // 12, total % 12 + 1, 1)


def release_window(label: QuarterLabel) -> tuple:
    return _add_months(label.year, label.month_number, 1), _add_months(label.year, label.month_number, 4)


def validate_record(quarter: Optional[str], date_time_raw: Optional[str]) -> ValidationResult:
    try:
        label = QuarterLabel.parse(quarter or "")
    except ValueError:
        return ValidationResult(STATUS_ERR, quarter, date_time_raw, reason="Unparsable Quarter")
    announced = parse_date_time_raw(date_time_raw)
    if announced is None:
        return ValidationResult(STATUS_IGNORED, quarter, date_time_raw)
    start, end = release_window(label)
    if start <= announced < end:
        return ValidationResult(STATUS_OK, quarter, date_time_raw, window_start=start, window_end=end)
    return ValidationResult(
        STATUS_ERR,
        quarter,
        date_time_raw,
        reason="dateTimeRaw outside valid release window",
        window_start=start,
        window_end=end,
    )


def validate_rows(rows: Sequence[Mapping[str, Any]]) -> List[ValidationResult]:
    if not isinstance(rows, (list, tuple)):
        raise TypeError(f"Expected a list of rows, got {type(rows).__name__}")
    return [validate_record(row.get("Quarter"), row.get("dateTimeRaw")) for row in rows]
