from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import Config

QUARTERS = [
    # (label, net sales, profit before tax, basic EPS) in INR million
    ("2023-Jun", 100000, 20000, 10.0),
    ("2023-Sep", 105000, 21000, 10.5),
    ("2023-Dec", 110000, 22000, 11.0),
    ("2024-Mar", 115000, 23000, 11.5),
    ("2024-Jun", 120000, 24000, 12.0),
]

CLOSES = {
    "2024-07-11": 4000.0,
    "2023-07-11": 3400.0,
    "2023-07-12": 3450.0,
    "2022-07-12": 3000.0,
}


class StubPriceSource:
    def __init__(self, closes):
        self.closes = dict(closes)
        self.calls = 0

    def get_price_at(self, date_iso, symbol):
        self.calls += 1
        close = self.closes.get(date_iso)
        return {"close": close} if close is not None else None


def _statement(label, sales, pbt, eps):
    rows = [
        {"label": "Net Sales", "valueRaw": f"{sales:,}", "valueNumber": sales},
        {"label": "Other Income", "valueNumber": 0},
        {"label": "Finance Costs", "valueNumber": 0},
        {"label": "Depreciation", "valueNumber": 0},
        {"label": "Profit before tax", "valueNumber": pbt},
        {"label": "Tax", "valueNumber": pbt * 0.25},
        {"label": "Net Profit", "valueNumber": pbt * 0.75},
        {"label": "Basic EPS", "valueNumber": eps},
    ]
    return {"quarter": label, "meta": {}, "rows": rows}


@pytest.fixture
def data_dir(tmp_path) -> Path:
    root = tmp_path / "data"
    (root / "statements").mkdir(parents=True)
    (root / "info").mkdir()
    (root / "companies_info.json").write_text(
        json.dumps({"TCS": ["TCS", "TCS-MS", "tata-consultancy-services-ltd/TCS/532540"]}),
        encoding="utf-8",
    )
    (root / "statements" / "532540.json").write_text(
        json.dumps({"companyCode": "532540", "results": [_statement(*row) for row in QUARTERS]}),
        encoding="utf-8",
    )
    events = [
        {"title": "Q1 2025 Earnings Release", "dateTimeRaw": "11/07/2024 04:30 pm"},
        {"title": "Q1 2024 Earnings Release", "dateTimeRaw": "12/07/2023 05:00 pm"},
        {"title": "Q2 2025 Earnings Release (Projected)", "dateTimeRaw": "09/10/2024"},
    ]
    (root / "info" / "TCS-MS.json").write_text(json.dumps({"pastEvents": {"events": events}}), encoding="utf-8")
    return root


@pytest.fixture
def config(tmp_path, data_dir) -> Config:
    cfg = Config(
        data_dir=data_dir,
        companies_file=data_dir / "companies_info.json",
        database_path=tmp_path / "db" / "results_eval.db",
        output_dir=tmp_path / "reports",
    )
    cfg.ensure_directories()
    return cfg


@pytest.fixture
def price_source() -> StubPriceSource:
    return StubPriceSource(CLOSES)


@pytest.fixture
def cli_env(monkeypatch, tmp_path, data_dir):
    monkeypatch.setenv("RESULTS_EVAL_DATA_DIR", str(data_dir))
    monkeypatch.setenv("RESULTS_EVAL_DB", str(tmp_path / "db" / "cli.db"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "reports"))
    return tmp_path
