"""Tabular exports and Markdown rendering of evaluation outputs."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from results_eval.domain.models.records import CanonicalQuarterRecord, EvaluatedQuarter

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

SUMMARY_COLUMNS = [
    "Quarter",
    "dateTimeRaw",
    "Sales",
    "EPS",
    "sales_yoy_pct",
    "eps_yoy_pct",
    "sales_qoq_pct",
    "eps_qoq_pct",
    "currentDateClosePrice",
    "price_yoy_pct",
    "price_qoq_pct",
    "expectedYoyGrowth",
    "performance_x",
    "performance_abs_sqrt_x",
    "price_x",
]


def canonical_frame(records: Sequence[CanonicalQuarterRecord]) -> pd.DataFrame:
    """Screener-style columns, one row per quarter."""
    return pd.DataFrame([record.to_dict() for record in records])


def to_delimited(records: Sequence[CanonicalQuarterRecord], sep: str = ",") -> str:
    frame = canonical_frame(records)
    if frame.empty:
        return ""
    return frame.to_csv(sep=sep, index=False).rstrip("\n")


def evaluation_frame(evaluated: Sequence[EvaluatedQuarter]) -> pd.DataFrame:
    """Flatten evaluated quarters into one summary row each."""
    rows: List[Dict[str, Any]] = []
    for item in evaluated:
        row = item.record.to_dict()
        performance = item.performance
        row["expectedYoyGrowth"] = performance.yoy.expected_growth if performance.yoy else None
        final = performance.final_performance_score
        row["performance_x"] = final.x if final else None
        row["performance_abs_sqrt_x"] = final.abs_sqrt_x if final else None
        row["price_x"] = performance.final_price_score.x if performance.final_price_score else None
        rows.append(row)
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


@dataclass
class ReportRenderer:
    """Render Markdown reports from evaluated quarters."""

    template_dir: Path = TEMPLATE_DIR
    template_name: str = "performance_report.md.j2"
    float_format: str = "{:.2f}"
    _env: Environment = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["num"] = self._format_number

    def render(self, context: Dict[str, Any]) -> str:
        """Render the configured template with supplied context."""
        template = self._env.get_template(self.template_name)
        return template.render(**context)

    def render_evaluation(self, symbol: str, evaluated: Sequence[EvaluatedQuarter], *, errors: Sequence[str] = ()) -> str:
        frame = evaluation_frame(evaluated)
        scored = frame.dropna(subset=["performance_x"])
        context = {
            "symbol": symbol,
            "rows": frame.astype(object).where(pd.notna(frame), None).to_dict(orient="records"),
            "quarters": len(frame),
            "scored": len(scored),
            "best": scored.loc[scored["performance_x"].idxmax()].to_dict() if not scored.empty else None,
            "worst": scored.loc[scored["performance_x"].idxmin()].to_dict() if not scored.empty else None,
            "errors": list(errors),
        }
        return self.render(context)

    def _format_number(self, value: Any) -> str:
        if value is None:
            return "-"
        if isinstance(value, (int, float)):
            if pd.isna(value):
                return "-"
            return self.float_format.format(value)
        return str(value)
