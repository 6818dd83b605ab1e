"""Canonical quarter extraction from raw labeled statement rows.

Exchange filings label the same concept in many ways, so every concept is
looked up through an ordered list of candidate labels: an exact
(case-insensitive) pass over all candidates first, then a substring pass.
A concept that matches nothing reads as ``0`` so the arithmetic below stays
defined. Source values arrive in INR million.
"""
from __future__ import annotations

import math
import re
from typing import Dict, Optional, Sequence, Tuple

from results_eval.domain.models.quarters import QuarterStatement, RawLabeledRow
from results_eval.domain.models.records import CanonicalQuarterRecord, EntityType
from results_eval.domain.services.numeric import round_fixed

LABELS: Dict[str, Tuple[str, ...]] = {
    "sales": ("Net Sales", "Revenue from operations", "Sales"),
    "other_income": ("Other Income",),
    "finance_costs": (
        "Finance Costs",
        "Finance cost",
        "Finance charges",
        "Interest and finance charges",
    ),
    "depreciation": ("Depreciation and amortisation expense", "Depreciation"),
    "pbt": (
        "Profit (+)/ Loss (-) from Ordinary Activities before Tax",
        "Profit before exceptional items and tax",
        "Profit before tax",
        "Profit/(loss) before tax",
    ),
    "tax_total": ("Tax", "Total tax expense", "Tax expense", "Provision for tax"),
    "tax_current": ("Current tax",),
    "tax_deferred": ("Deferred tax",),
    "net_profit": (
        "Net Profit",
        "Net Profit (+)/ Loss (-) from Ordinary Activities after Tax",
        "Profit for the period",
        "Profit/(loss) for the period",
        "Net Profit after Mino Inter & Share of P & L",
        "Income Attributable to Consolidated Group",
    ),
    "eps_basic": (
        "Basic EPS for continuing operation",
        "Basic EPS (in Rs.)",
        "Basic EPS",
        "EPS after Extraordinary items (in Rs)",
        "Basic EPS after Extraordinary items",
        "Basic EPS before Extraordinary items",
    ),
    "eps_diluted": (
        "Diluted EPS for continuing operation",
        "Diluted EPS (in Rs.)",
        "Diluted EPS",
        "Diluted EPS after Extraordinary items",
        "Diluted EPS before Extraordinary items",
    ),
}

BANK_LABELS: Dict[str, Tuple[str, ...]] = {
    "revenue": (
        "Interest Earned/Net Income from sales/services",
        "Interest Earned",
        "Total interest earned",
        "Net Income from sales/services",
    ),
    "interest_expended": ("Interest Expended", "Interest expended"),
    "operating_expenses": ("Operating Expenses",),
    "employee_cost": ("Employee Cost", "Employee benefit expense"),
    "other_operating": ("Other operating expenses", "Other Expenses"),
    "provisions": ("Provisions (other than tax) and Contingencies", "Provisions and contingencies"),
    "depreciation": ("Depreciation", "Depreciation and amortisation expense"),
    "gross_npa_pct": ("% of Gross NPAs", "Gross NPA %", "Gross NPA percentage"),
    "net_npa_pct": ("% of Net NPAs", "Net NPA %", "Net NPA percentage"),
}

NBFC_LABELS: Dict[str, Tuple[str, ...]] = {
    "revenue": ("Total Revenue from operations",),
    "total_expenses": ("Total Expenses",),
    "eps_basic": ("Basic EPS (in Rs.)", "Basic (Rs.)"),
    "eps_diluted": ("Diluted EPS (in Rs.)", "Diluted (Rs.)"),
}

UNIT_DIVISORS = {"crore": 10.0, "million": 1.0}
# Rupees per output unit, used to turn unit figures back into per-share amounts.
UNIT_RUPEES = {"crore": 10_000_000, "million": 1_000_000}

_NUMBER_PATTERN = re.compile(r"[+-]?\d[\d,]*\.?\d*")


def parse_number_loose(value, fallback: float = 0.0) -> float:
    """Pull the first number out of strings like ``"1,234.5 Cr"``."""
    if value is None:
        return fallback
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else fallback
    match = _NUMBER_PATTERN.search(str(value))
    if not match:
        return fallback
    try:
        number = float(match.group(0).replace(",", ""))
    except ValueError:
        return fallback
    return number if math.isfinite(number) else fallback


def find_row(rows: Sequence[RawLabeledRow], candidates: Sequence[str]) -> Optional[RawLabeledRow]:
    """Return the first row matching a candidate label, exact pass before substring pass."""
    normalized = [(row, (row.label or "").strip().lower()) for row in rows]
    for candidate in candidates:
        wanted = candidate.lower()
        for row, label in normalized:
            if label == wanted:
                return row
    for candidate in candidates:
        wanted = candidate.lower()
        for row, label in normalized:
            if wanted in label:
                return row
    return None


def value_by_labels(rows: Sequence[RawLabeledRow], candidates: Sequence[str]) -> float:
    row = find_row(rows, candidates)
    if row is None:
        return 0.0
    if row.value_number is not None and math.isfinite(row.value_number):
        return row.value_number
    return parse_number_loose(row.value_raw, 0.0)


def detect_entity_type(rows: Sequence[RawLabeledRow], *, nbfc: bool = False) -> EntityType:
    """Classify a statement as bank-type when interest income and expense lines are both present."""
    if nbfc:
        return EntityType.NBFC
    has_revenue = find_row(rows, BANK_LABELS["revenue"]) is not None
    has_interest = find_row(rows, BANK_LABELS["interest_expended"]) is not None
    has_opex = any(
        find_row(rows, BANK_LABELS[key]) is not None
        for key in ("operating_expenses", "employee_cost", "other_operating")
    )
    if has_revenue and has_interest and has_opex:
        return EntityType.BANK
    return EntityType.NON_BANK


def round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _finite_or_zero(value: float) -> float:
    return value if value and math.isfinite(value) else 0.0


class CanonicalExtractor:
    """Turn one quarter's raw rows into a ``CanonicalQuarterRecord``."""

    def __init__(self, unit: str = "crore") -> None:
        unit = (unit or "crore").lower()
        if unit not in UNIT_DIVISORS:
            raise ValueError(f"Unsupported output unit {unit!r}; expected one of {sorted(UNIT_DIVISORS)}")
        self.unit = unit
        self._divisor = UNIT_DIVISORS[unit]
        self.rupees_per_unit = UNIT_RUPEES[unit]

    def extract(self, statement: QuarterStatement) -> CanonicalQuarterRecord:
        quarter = statement.resolve_label()
        entity_type = detect_entity_type(statement.rows, nbfc=statement.nbfc)
        if entity_type is EntityType.BANK:
            fields = self._bank_fields(statement.rows)
        elif entity_type is EntityType.NBFC:
            fields = self._nbfc_fields(statement.rows)
        else:
            fields = self._non_bank_fields(statement.rows)
        return CanonicalQuarterRecord(quarter=quarter, entity_type=entity_type, **fields)

    def _convert(self, value: float) -> float:
        return value / self._divisor

    def _non_bank_fields(self, rows: Sequence[RawLabeledRow]) -> Dict[str, Optional[float]]:
        sales = value_by_labels(rows, LABELS["sales"])
        other_income = value_by_labels(rows, LABELS["other_income"])
        interest = abs(value_by_labels(rows, LABELS["finance_costs"]))
        depreciation = abs(value_by_labels(rows, LABELS["depreciation"]))
        pbt = value_by_labels(rows, LABELS["pbt"])
        tax = abs(self._tax(rows))
        net_profit = value_by_labels(rows, LABELS["net_profit"])
        # Screener "Expenses" is a plug figure, not a reported line.
        expenses = sales + other_income - interest - depreciation - pbt

        sales_u = self._convert(sales)
        expenses_u = self._convert(expenses)
        pbt_u = self._convert(pbt)
        operating_profit = sales_u - expenses_u
        margin = operating_profit / sales_u * 100 if sales_u != 0 else 0.0
        tax_pct = self._convert(tax) / pbt_u * 100 if pbt_u > 0 else 0.0

        return {
            "sales": round_half_up(sales_u),
            "expenses": round_half_up(expenses_u),
            "operating_profit": round_half_up(operating_profit),
            "margin_pct": round_half_up(margin),
            "other_income": round_half_up(self._convert(other_income)),
            "interest": round_half_up(self._convert(interest)),
            "depreciation": round_half_up(self._convert(depreciation)),
            "profit_before_tax": round_half_up(pbt_u),
            "tax_pct": round_half_up(tax_pct),
            "net_profit": round_half_up(self._convert(net_profit)),
            "eps": self._eps(rows, LABELS["eps_basic"], LABELS["eps_diluted"]),
        }

    def _bank_fields(self, rows: Sequence[RawLabeledRow]) -> Dict[str, Optional[float]]:
        revenue = value_by_labels(rows, BANK_LABELS["revenue"])
        interest = abs(value_by_labels(rows, BANK_LABELS["interest_expended"]))
        operating_expenses = value_by_labels(rows, BANK_LABELS["operating_expenses"])
        if not operating_expenses:
            operating_expenses = abs(value_by_labels(rows, BANK_LABELS["employee_cost"])) + abs(
                value_by_labels(rows, BANK_LABELS["other_operating"])
            )
        provisions = abs(value_by_labels(rows, BANK_LABELS["provisions"]))
        depreciation = abs(value_by_labels(rows, BANK_LABELS["depreciation"]))
        other_income = value_by_labels(rows, LABELS["other_income"])
        pbt = value_by_labels(rows, LABELS["pbt"])
        tax = abs(self._tax(rows))
        net_profit = value_by_labels(rows, LABELS["net_profit"])

        pbt_u = self._convert(pbt)
        tax_pct = self._convert(tax) / pbt_u * 100 if pbt_u > 0 else 0.0
        return self._bank_shape(
            revenue=revenue,
            interest=interest,
            expenses=operating_expenses + provisions,
            other_income=other_income,
            depreciation=depreciation,
            pbt=pbt,
            tax_pct=tax_pct,
            net_profit=net_profit,
            eps=self._eps(rows, LABELS["eps_basic"], LABELS["eps_diluted"]),
            rows=rows,
        )

    def _nbfc_fields(self, rows: Sequence[RawLabeledRow]) -> Dict[str, Optional[float]]:
        revenue = value_by_labels(rows, NBFC_LABELS["revenue"])
        interest = abs(value_by_labels(rows, LABELS["finance_costs"]))
        depreciation = abs(value_by_labels(rows, LABELS["depreciation"]))
        total_expenses = abs(value_by_labels(rows, NBFC_LABELS["total_expenses"]))
        pbt = value_by_labels(rows, LABELS["pbt"])
        net_profit = value_by_labels(rows, LABELS["net_profit"])

        pbt_u = self._convert(pbt)
        tax_u = abs(pbt_u - self._convert(net_profit))
        tax_pct = tax_u / pbt_u * 100 if pbt_u > 0 else 0.0
        return self._bank_shape(
            revenue=revenue,
            interest=interest,
            expenses=total_expenses - interest - depreciation,
            other_income=value_by_labels(rows, LABELS["other_income"]),
            depreciation=depreciation,
            pbt=pbt,
            tax_pct=tax_pct,
            net_profit=net_profit,
            eps=self._eps(rows, NBFC_LABELS["eps_basic"], NBFC_LABELS["eps_diluted"]),
            rows=rows,
        )

    def _bank_shape(
        self,
        *,
        revenue: float,
        interest: float,
        expenses: float,
        other_income: float,
        depreciation: float,
        pbt: float,
        tax_pct: float,
        net_profit: float,
        eps: float,
        rows: Sequence[RawLabeledRow],
    ) -> Dict[str, Optional[float]]:
        revenue_u = self._convert(revenue)
        interest_u = self._convert(interest)
        expenses_u = self._convert(expenses)
        financing_profit = revenue_u - interest_u - expenses_u
        margin = financing_profit / revenue_u * 100 if revenue_u != 0 else 0.0
        return {
            "sales": round_half_up(revenue_u),
            "expenses": round_half_up(expenses_u),
            "operating_profit": round_half_up(financing_profit),
            "margin_pct": round_half_up(margin),
            "other_income": round_half_up(self._convert(other_income)),
            "interest": round_half_up(interest_u),
            "depreciation": round_half_up(self._convert(depreciation)),
            "profit_before_tax": round_half_up(self._convert(pbt)),
            "tax_pct": round_half_up(tax_pct),
            "net_profit": round_half_up(self._convert(net_profit)),
            "eps": eps,
            "gross_npa_pct": round_fixed(abs(_finite_or_zero(value_by_labels(rows, BANK_LABELS["gross_npa_pct"]))), 2),
            "net_npa_pct": round_fixed(abs(_finite_or_zero(value_by_labels(rows, BANK_LABELS["net_npa_pct"]))), 2),
        }

    @staticmethod
    def _tax(rows: Sequence[RawLabeledRow]) -> float:
        tax = value_by_labels(rows, LABELS["tax_total"])
        if not tax:
            tax = value_by_labels(rows, LABELS["tax_current"]) + value_by_labels(rows, LABELS["tax_deferred"])
        return tax

    @staticmethod
    def _eps(rows: Sequence[RawLabeledRow], basic: Sequence[str], diluted: Sequence[str]) -> float:
        eps = value_by_labels(rows, basic)
        if not eps or not math.isfinite(eps):
            eps = value_by_labels(rows, diluted)
        return round_fixed(eps, 2) if eps and math.isfinite(eps) else 0.0
