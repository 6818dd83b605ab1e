"""CLI command definitions for the quarterly results evaluator."""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from config import Config
from results_eval.domain.models.quarters import QuarterLabel
from results_eval.domain.services.scoring import estimate_growth
from results_eval.domain.services.validation import STATUS_ERR, STATUS_IGNORED, STATUS_OK, validate_rows
from results_eval.infrastructure.db.sqlite import SQLiteRepository
from results_eval.reports.renderer import ReportRenderer, canonical_frame, to_delimited
from results_eval.settings.loader import load_settings
from results_eval.utils.logging import configure_logging
from results_eval.workflows.blueprint import build_default_stages
from results_eval.workflows.bulk import BulkEvaluator
from results_eval.workflows.graph import EvaluationWorkflow
from results_eval.workflows.state import EvaluationState

console = Console()
app = typer.Typer(help="Score quarterly results of Indian listed companies against PE-implied growth.")


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config
    _workflow: Optional[EvaluationWorkflow] = field(default=None, repr=False)

    @property
    def workflow(self) -> EvaluationWorkflow:
        # Built on first use so plan/estimate never open the price client or database.
        if self._workflow is None:
            self._workflow = EvaluationWorkflow(config=self.config)
        return self._workflow

    def close(self) -> None:
        if self._workflow is not None:
            self._workflow.close()


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration and logging."""
    config = load_settings(debug_override)
    configure_logging(debug=config.debug)
    return AppContext(config=config)


def _parse_quarter(value: Optional[str], option: str) -> Optional[QuarterLabel]:
    if not value:
        return None
    try:
        return QuarterLabel.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{exc}; expected e.g. 2024-Mar", param_hint=option) from exc


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the application context to Typer."""
    ctx.obj = _init_context(debug_override=debug)
    ctx.call_on_close(ctx.obj.close)


@app.command()
def evaluate(
    ctx: typer.Context,
    symbol: str = typer.Argument(..., help="NSE symbol or BSE/MarketScreener code, e.g. TCS"),
    quarter_from: Optional[str] = typer.Option(None, "--from", help="First quarter to keep, e.g. 2019-Mar."),
    quarter_to: Optional[str] = typer.Option(None, "--to", help="Last quarter to keep, e.g. 2025-Sep."),
    shares: Optional[float] = typer.Option(None, "--shares", help="Override total share count for EPS smoothing."),
    no_smooth: bool = typer.Option(False, "--no-smooth", help="Use reported EPS instead of smoothed EPS."),
    output: Optional[Path] = typer.Option(None, "--output", help="Path for the evaluated quarters JSON."),
    report: Optional[Path] = typer.Option(None, "--report", help="Optional path for a Markdown report."),
) -> None:
    """Run the evaluation workflow for a single company and present the outcome."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    start = _parse_quarter(quarter_from, "--from")
    end = _parse_quarter(quarter_to, "--to")
    if no_smooth:
        context.config.smooth_eps = False

    console.rule(f"Evaluating {symbol.upper()}")
    with console.status("[bold cyan]Running workflow..."):
        result: EvaluationState = context.workflow.run(
            symbol.upper(),
            quarter_from=start,
            quarter_to=end,
            total_shares=shares,
        )

    if result.get("errors"):
        console.print("[bold red]Workflow completed with errors:[/bold red]")
        for issue in result["errors"]:
            console.print(f"- {issue}")
    else:
        console.print("[bold green]Workflow completed successfully.[/bold green]")

    if context.config.debug:
        for line in result.get("logs", []):
            console.log(line)

    _print_quarters(result)
    _print_run_summary(result)

    if not result.get("evaluated"):
        raise typer.Exit(code=1)

    target = output or context.workflow.default_output_path(result)
    context.workflow.persist_state(result, target)
    console.print(f"Evaluated quarters saved to {target}")

    if report:
        renderer = ReportRenderer()
        markdown = renderer.render_evaluation(
            result.get("price_symbol") or symbol.upper(),
            result["evaluated"],
            errors=result.get("errors") or [],
        )
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(markdown, encoding="utf-8")
        console.print(f"Markdown report available at {report}")


@app.command()
def batch(
    ctx: typer.Context,
    symbols: List[str] = typer.Argument(..., help="One or more NSE symbols, e.g. TCS INFY HDFCBANK"),
    quarter_from: Optional[str] = typer.Option(None, "--from", help="First quarter to keep."),
    quarter_to: Optional[str] = typer.Option(None, "--to", help="Last quarter to keep."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Companies evaluated in parallel."),
    summary_path: Optional[Path] = typer.Option(None, "--summary", help="Write the bulk summary JSON here."),
) -> None:
    """Evaluate many companies; failures are reported without stopping the rest."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    runner = BulkEvaluator(
        context.workflow,
        concurrency=concurrency or context.config.bulk_concurrency,
        retries=context.config.bulk_retries,
    )
    with console.status(f"[bold cyan]Evaluating {len(symbols)} companies..."):
        summary = runner.run(
            symbols,
            quarter_from=_parse_quarter(quarter_from, "--from"),
            quarter_to=_parse_quarter(quarter_to, "--to"),
        )

    table = Table(title="Batch Results", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("Status")
    table.add_column("Quarters", justify="right")
    table.add_column("Detail")
    for item in summary.ok:
        table.add_row(item["symbol"], "[green]ok[/green]", str(item["rows"]), item["output_file"])
    for item in summary.failed:
        table.add_row(item["symbol"], "[red]failed[/red]", "-", item["error"])
    console.print(table)

    if summary_path:
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(json.dumps(summary.to_dict(), indent=2), encoding="utf-8")
        console.print(f"Summary saved to {summary_path}")
    if summary.failed and not summary.ok:
        raise typer.Exit(code=1)


@app.command()
def plan(ctx: typer.Context) -> None:
    """Display the workflow stages for quick operator reference."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    table = Table(title="Workflow Stages")
    table.add_column("Step", style="cyan")
    table.add_column("Stage")
    table.add_column("Description")

    for idx, stage in enumerate(build_default_stages(), start=1):
        table.add_row(str(idx), stage.key, stage.description)

    console.print(table)


@app.command()
def estimate(pe: float = typer.Argument(..., help="Price to earnings ratio.")) -> None:
    """Print the expected YoY growth implied by a PE ratio."""
    try:
        growth = estimate_growth(pe)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
    console.print(f"PE {pe:g} -> expected YoY growth {growth:g}%")


@app.command()
def export(
    ctx: typer.Context,
    symbol: str = typer.Argument(..., help="NSE symbol or BSE code."),
    fmt: str = typer.Option("csv", "--format", help="csv, tsv or json", case_sensitive=False),
    quarter_from: Optional[str] = typer.Option(None, "--from", help="First quarter to keep."),
    quarter_to: Optional[str] = typer.Option(None, "--to", help="Last quarter to keep."),
) -> None:
    """Print canonical Screener-style rows without price lookups."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    fmt = fmt.lower()
    if fmt not in {"csv", "tsv", "json"}:
        raise typer.BadParameter("format must be csv, tsv or json", param_hint="--format")

    offline = EvaluationWorkflow(dataclasses.replace(context.config, persist_results=False), use_network=False)
    try:
        result = offline.run(
            symbol.upper(),
            quarter_from=_parse_quarter(quarter_from, "--from"),
            quarter_to=_parse_quarter(quarter_to, "--to"),
        )
    finally:
        offline.close()

    records = result.get("canonical") or []
    if not records:
        for issue in result.get("errors") or []:
            console.print(f"[red]{issue}[/red]")
        raise typer.Exit(code=1)
    if fmt == "json":
        typer.echo(canonical_frame(records).to_json(orient="records", indent=2))
    else:
        typer.echo(to_delimited(records, sep="\t" if fmt == "tsv" else ","))


@app.command()
def validate(
    paths: List[Path] = typer.Argument(..., help="Evaluated JSON files or folders containing them."),
) -> None:
    """Check that announcement dates fall inside each quarter's release window."""
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(path.rglob("*.json")))
        elif path.exists():
            files.append(path)
        else:
            console.print(f"[yellow]Skipping missing path {path}[/yellow]")

    table = Table(title="Release Date Problems", show_header=True, header_style="bold magenta")
    table.add_column("File")
    table.add_column("Quarter", style="cyan")
    table.add_column("dateTimeRaw")
    table.add_column("Reason")

    counts: Dict[str, int] = {}
    for file in files:
        rows = _read_rows(file)
        if rows is None:
            counts["unreadable"] = counts.get("unreadable", 0) + 1
            continue
        for outcome in validate_rows(rows):
            counts[outcome.status] = counts.get(outcome.status, 0) + 1
            if outcome.status == STATUS_ERR:
                table.add_row(file.name, outcome.quarter or "?", outcome.date_time_raw or "-", outcome.reason or "")

    if counts.get(STATUS_ERR):
        console.print(table)
    console.print(
        f"Checked {len(files)} files: {counts.get(STATUS_OK, 0)} ok, {counts.get(STATUS_ERR, 0)} errors, "
        f"{counts.get(STATUS_IGNORED, 0)} without a parsable date, {counts.get('unreadable', 0)} unreadable files"
    )
    if counts.get(STATUS_ERR) or counts.get("unreadable"):
        raise typer.Exit(code=1)


@app.command()
def history(
    ctx: typer.Context,
    symbol: Optional[str] = typer.Argument(None, help="Limit to one NSE symbol."),
    limit: int = typer.Option(20, "--limit", help="Number of runs to show."),
) -> None:
    """Show recent evaluation runs stored in SQLite."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    repository = SQLiteRepository(f"sqlite:///{context.config.database_path}", echo=context.config.sqlite_echo)
    try:
        runs = repository.fetch_runs(symbol.upper() if symbol else None, limit=limit)
    finally:
        repository.close()

    table = Table(title="Evaluation Runs", show_header=True, header_style="bold magenta")
    table.add_column("When")
    table.add_column("Symbol", style="cyan")
    table.add_column("Status")
    table.add_column("Quarters", justify="right")
    table.add_column("Error")
    for run in runs:
        table.add_row(
            str(run["ran_at"]),
            run["symbol"],
            run["status"],
            "-" if run["row_count"] is None else str(run["row_count"]),
            run["error"] or "",
        )
    console.print(table)


def _read_rows(path: Path) -> Optional[List[Dict[str, Any]]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read {path}: {exc}[/red]")
        return None
    if not isinstance(payload, list):
        console.print(f"[red]{path} does not hold a JSON array[/red]")
        return None
    return [row for row in payload if isinstance(row, dict)]


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.2f}"


def _print_quarters(state: EvaluationState) -> None:
    evaluated = state.get("evaluated") or []
    if not evaluated:
        return
    table = Table(title="Quarter Scores", show_header=True, header_style="bold magenta")
    table.add_column("Quarter", style="cyan")
    table.add_column("Announced")
    table.add_column("Sales YoY %", justify="right")
    table.add_column("EPS YoY %", justify="right")
    table.add_column("Close", justify="right")
    table.add_column("Expected %", justify="right")
    table.add_column("Score x", justify="right")
    table.add_column("Price x", justify="right")
    for item in evaluated:
        growth = item.record.growth
        performance = item.performance
        table.add_row(
            str(item.quarter),
            item.record.date_time_raw or "-",
            _fmt(growth.sales_yoy_pct),
            _fmt(growth.eps_yoy_pct),
            _fmt(item.record.current_close),
            _fmt(performance.yoy.expected_growth if performance.yoy else None),
            _fmt(performance.final_performance_score.x if performance.final_performance_score else None),
            _fmt(performance.final_price_score.x if performance.final_price_score else None),
        )
    console.print(table)


def _print_run_summary(state: EvaluationState) -> None:
    """Pretty-print a short run summary for operators."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value")

    evaluated = state.get("evaluated") or []
    table.add_row("Symbol", state.get("price_symbol") or state.get("symbol", "?"))
    table.add_row("BSE Code", state.get("bse_code") or "N/A")
    table.add_row("Run Date", state.get("run_date") or "N/A")
    table.add_row("Quarters", str(len(evaluated)))
    table.add_row("Scored", str(sum(1 for item in evaluated if item.performance.final_performance_score)))
    table.add_row("Price Lookups", str((state.get("extras") or {}).get("price_lookups", 0)))
    table.add_row("Persisted", str(state.get("persisted_rows", 0)))
    table.add_row("Errors", str(len(state.get("errors", []))))

    console.print(table)
