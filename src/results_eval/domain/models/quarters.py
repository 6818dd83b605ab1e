"""Quarter labels and the raw inputs handed over by data collaborators."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any, Dict, Iterable, List, Mapping, Optional

QUARTER_MONTHS = ("Mar", "Jun", "Sep", "Dec")
MONTH_NUMBERS = {"Mar": 3, "Jun": 6, "Sep": 9, "Dec": 12}

_LABEL_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})[-\s]+(?P<month>[A-Za-z]{3})$"),
    re.compile(r"^(?P<month>[A-Za-z]{3})[-\s]+(?P<year>\d{4})$"),
)
_DATE_END_PATTERN = re.compile(r"(\d{1,2})-(\w{3})-(\d{2,4})")


@total_ordering
@dataclass(frozen=True)
class QuarterLabel:
    """A fiscal quarter identified by calendar year and quarter-end month."""

    year: int
    month: str

    def __post_init__(self) -> None:
        if self.month not in MONTH_NUMBERS:
            raise ValueError(f"Bad quarter month {self.month!r}; expected one of {QUARTER_MONTHS}")

    @classmethod
    def parse(cls, text: str) -> "QuarterLabel":
        """Parse ``2024-Sep``, ``2024 Sep`` or ``Sep 2024``."""
        if not isinstance(text, str):
            raise ValueError(f"Bad quarter label: {text!r}")
        cleaned = text.strip()
        for pattern in _LABEL_PATTERNS:
            match = pattern.match(cleaned)
            if match:
                month = match.group("month").capitalize()
                if month in MONTH_NUMBERS:
                    return cls(int(match.group("year")), month)
        raise ValueError(f"Bad quarter label: {text!r}")

    @classmethod
    def from_fiscal(cls, quarter: int, fiscal_year: int) -> Optional["QuarterLabel"]:
        """Map an Indian fiscal quarter (April to March) to its calendar label."""
        if fiscal_year < 1900 or quarter not in (1, 2, 3, 4):
            return None
        if quarter == 4:
            return cls(fiscal_year, "Mar")
        return cls(fiscal_year - 1, ("Jun", "Sep", "Dec")[quarter - 1])

    @classmethod
    def from_date_end(cls, date_end: str) -> Optional["QuarterLabel"]:
        """Infer a label from a statement period end such as ``30-Jun-25``."""
        match = _DATE_END_PATTERN.search(date_end or "")
        if not match:
            return None
        year = match.group(3)
        if len(year) == 2:
            year = "20" + year
        return cls.parse(f"{year}-{match.group(2)}")

    @property
    def month_number(self) -> int:
        return MONTH_NUMBERS[self.month]

    @property
    def index(self) -> int:
        return self.year * 4 + QUARTER_MONTHS.index(self.month)

    def previous_year(self) -> "QuarterLabel":
        return QuarterLabel(self.year - 1, self.month)

    def next(self) -> "QuarterLabel":
        position = QUARTER_MONTHS.index(self.month)
        if position == len(QUARTER_MONTHS) - 1:
            return QuarterLabel(self.year + 1, QUARTER_MONTHS[0])
        return QuarterLabel(self.year, QUARTER_MONTHS[position + 1])

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, QuarterLabel):
            return NotImplemented
        return self.index < other.index

    def __str__(self) -> str:
        return f"{self.year}-{self.month}"


def quarter_range(start: QuarterLabel, end: QuarterLabel) -> List[QuarterLabel]:
    """Enumerate quarters from ``start`` to ``end`` inclusive."""
    if end < start:
        raise ValueError(f"Quarter range is inverted: {start} > {end}")
    labels = [start]
    while labels[-1] < end:
        labels.append(labels[-1].next())
    return labels


@dataclass(frozen=True)
class RawLabeledRow:
    """One labeled line of a source financial statement."""

    label: str
    value_raw: Optional[str] = None
    value_number: Optional[float] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "RawLabeledRow":
        number = payload.get("valueNumber", payload.get("value_number"))
        raw = payload.get("valueRaw", payload.get("value_raw"))
        return cls(
            label=str(payload.get("label") or ""),
            value_raw=None if raw is None else str(raw),
            value_number=float(number) if isinstance(number, (int, float)) and not isinstance(number, bool) else None,
        )


@dataclass(frozen=True)
class QuarterStatement:
    """A quarter's raw rows plus whatever identifies the period."""

    rows: List[RawLabeledRow] = field(default_factory=list)
    quarter: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    nbfc: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "QuarterStatement":
        rows = payload.get("rows") or []
        return cls(
            rows=[RawLabeledRow.from_mapping(row) for row in rows if isinstance(row, Mapping)],
            quarter=payload.get("quarter"),
            meta=dict(payload.get("meta") or {}),
            nbfc=bool(payload.get("nbfc", False)),
        )

    def resolve_label(self) -> QuarterLabel:
        """Return the statement's label, inferring it from ``meta.dateEnd`` when absent."""
        if self.quarter:
            return QuarterLabel.parse(self.quarter)
        label = QuarterLabel.from_date_end(str(self.meta.get("dateEnd") or ""))
        if label is None:
            raise ValueError("Statement carries neither a quarter label nor a parsable dateEnd")
        return label


@dataclass(frozen=True)
class CompanyEvent:
    """A dated corporate event such as an earnings release or call."""

    title: str
    date_time_raw: Optional[str] = None
    date_time_iso: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "CompanyEvent":
        return cls(
            title=str(payload.get("title") or ""),
            date_time_raw=payload.get("dateTimeRaw"),
            date_time_iso=payload.get("dateTimeISO"),
        )


def statements_from_payload(items: Iterable[Mapping[str, Any]]) -> List[QuarterStatement]:
    return [QuarterStatement.from_mapping(item) for item in items]
