from __future__ import annotations

from results_eval.domain.models.quarters import QuarterLabel
from results_eval.domain.models.records import CanonicalQuarterRecord, EntityType
from results_eval.reports.renderer import ReportRenderer, canonical_frame, evaluation_frame, to_delimited
from results_eval.workflows.graph import EvaluationWorkflow


def _record(quarter: str, sales: float) -> CanonicalQuarterRecord:
    return CanonicalQuarterRecord(
        quarter=QuarterLabel.parse(quarter),
        entity_type=EntityType.NON_BANK,
        sales=sales,
        expenses=sales - 20,
        operating_profit=20.0,
        margin_pct=20.0,
        other_income=1.0,
        interest=0.0,
        depreciation=2.0,
        profit_before_tax=19.0,
        tax_pct=25.0,
        net_profit=14.0,
        eps=1.5,
    )


def test_delimited_exports_use_screener_columns():
    records = [_record("2024-Mar", 100.0), _record("2024-Jun", 110.0)]
    assert list(canonical_frame(records).columns)[:3] == ["Quarter", "Sales", "Expenses"]
    tsv = to_delimited(records, sep="\t").splitlines()
    assert tsv[0].split("\t")[-1] == "EPS in Rs"
    assert tsv[2].startswith("2024-Jun\t110.0")
    assert to_delimited([]) == ""


def test_markdown_report_lists_scored_quarters(config, price_source):
    workflow = EvaluationWorkflow(config, price_source=price_source)
    try:
        state = workflow.run("TCS")
    finally:
        workflow.close()

    frame = evaluation_frame(state["evaluated"])
    assert frame["performance_x"].notna().sum() == 1

    markdown = ReportRenderer().render_evaluation("TCS", state["evaluated"])
    assert markdown.startswith("# TCS quarterly performance")
    assert "1 of 5 quarters" in markdown
    assert "Strongest quarter: **2024-Jun**" in markdown
    assert "| 2023-Sep | - |" in markdown
