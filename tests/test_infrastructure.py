from __future__ import annotations

import json
from datetime import datetime

import httpx
import pytest

from results_eval.domain.models.quarters import QuarterLabel
from results_eval.domain.models.records import (
    CanonicalQuarterRecord,
    CompositeScore,
    DatedPricedRecord,
    EntityType,
    EvaluatedQuarter,
    GrowthRecord,
    PerformanceScore,
)
from results_eval.infrastructure.data_providers.local_store import LocalDataStore
from results_eval.infrastructure.data_providers.price_history import IST, PriceHistoryClient
from results_eval.infrastructure.db.sqlite import SQLiteRepository
from results_eval.infrastructure.directory import CompanyDirectory

COMPANIES = {
    "TCS": ["TCS", "TATA-CONSULTANCY-SERV-6494965", "tata-consultancy-services-ltd/TCS/532540"],
    "HDFCBANK": ["HDFCBANK", "HDFC-BANK-LIMITED-9058", "hdfc-bank-ltd/HDFCBANK/500180/"],
    "BROKEN": "not a list",
}


def _evaluated(quarter: str, x=None) -> EvaluatedQuarter:
    record = CanonicalQuarterRecord(
        quarter=QuarterLabel.parse(quarter),
        entity_type=EntityType.NON_BANK,
        sales=100.0,
        expenses=80.0,
        operating_profit=20.0,
        margin_pct=20.0,
        other_income=1.0,
        interest=1.0,
        depreciation=1.0,
        profit_before_tax=19.0,
        tax_pct=25.0,
        net_profit=14.0,
        eps=2.0,
    )
    dated = DatedPricedRecord(growth=GrowthRecord(record=record, sales=100.0, eps=2.0), date_time_raw="14/08/2024")
    score = CompositeScore(x=x, abs_sqrt_x=abs(x) ** 0.5) if x is not None else None
    return EvaluatedQuarter(record=dated, performance=PerformanceScore(final_performance_score=score))


def test_directory_resolves_every_namespace(tmp_path):
    path = tmp_path / "companies_info.json"
    path.write_text(json.dumps(COMPANIES), encoding="utf-8")
    directory = CompanyDirectory.from_file(path)

    assert len(directory) == 2
    assert directory.by_nse("tcs").bse_code == "532540"
    assert directory.by_bse_code("500180").nse_symbol == "HDFCBANK"
    assert directory.by_market_screener("HDFC-BANK-LIMITED-9058").nse_symbol == "HDFCBANK"
    assert directory.resolve("532540").market_screener_code == "TATA-CONSULTANCY-SERV-6494965"
    assert directory.resolve("UNKNOWN") is None
    assert directory.symbols() == ["HDFCBANK", "TCS"]
    assert len(CompanyDirectory.from_file(tmp_path / "missing.json")) == 0


def test_local_store_reads_collaborator_files(tmp_path):
    (tmp_path / "statements").mkdir()
    (tmp_path / "info").mkdir()
    (tmp_path / "statements" / "532540.json").write_text(
        json.dumps(
            {
                "companyCode": "532540",
                "results": [
                    {"quarter": "2024-Jun", "rows": [{"label": "Net Sales", "valueNumber": 626130}]},
                    {"ok": False, "error": "timeout"},
                ],
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "info" / "TCS-CODE.json").write_text(
        json.dumps({"pastEvents": {"events": [{"title": "Q1 2025 Earnings Release", "dateTimeRaw": "11/07/2024"}]}}),
        encoding="utf-8",
    )
    (tmp_path / "shares.json").write_text(json.dumps({"TCS": 3618087518}), encoding="utf-8")
    store = LocalDataStore(tmp_path)

    statements = store.load_statements("532540")
    assert len(statements) == 1
    assert statements[0].rows[0].value_number == 626130
    assert store.load_events("TCS-CODE")[0].date_time_raw == "11/07/2024"
    assert store.load_events("OTHER") == []
    assert store.load_events(None) == []
    assert store.load_share_count("tcs") == 3618087518
    with pytest.raises(FileNotFoundError):
        store.load_statements("999999")


def test_price_client_matches_candle_by_ist_day():
    day_start = datetime(2024, 8, 12, tzinfo=IST)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["interval"] = request.url.params["intervalInMinutes"]
        candles = [[int(day_start.timestamp()), 100, 112, 99, 110.5, 1234]]
        return httpx.Response(200, json={"candles": candles})

    client = PriceHistoryClient("https://prices.test/chart", transport=httpx.MockTransport(handler), throttle_seconds=0)
    try:
        candle = client.get_price_at("2024-08-12", "tcs")
        assert candle["close"] == 110.5
        assert candle["volume"] == 1234
        assert seen["path"].endswith("/TCS")
        assert seen["interval"] == "1440"
        assert client.get_price_at("2024-08-11", "tcs") is None
    finally:
        client.close()


def test_price_client_retries_then_raises():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(503)

    client = PriceHistoryClient(
        "https://prices.test/chart",
        transport=httpx.MockTransport(handler),
        max_retries=2,
        throttle_seconds=0,
    )
    with pytest.raises(httpx.HTTPStatusError):
        client.get_price_at("2024-08-12", "TCS")
    assert len(attempts) == 2
    client.close()


def test_repository_upserts_and_records_runs(tmp_path):
    repository = SQLiteRepository(f"sqlite:///{tmp_path / 'eval.db'}")
    try:
        assert repository.upsert_evaluations("TCS", [_evaluated("2024-Jun", 4.0), _evaluated("2024-Mar")]) == 2
        assert repository.upsert_evaluations("TCS", [_evaluated("2024-Jun", 9.0)]) == 1
        assert repository.upsert_evaluations("TCS", []) == 0

        stored = repository.fetch_evaluations("TCS")
        assert [row["Quarter"] for row in stored] == ["2024-Mar", "2024-Jun"]
        assert stored[1]["performance"]["final_performance_score"]["x"] == 9.0

        repository.record_run("TCS", "ok", rows=2)
        repository.record_run("INFY", "empty", rows=0, error="no statements")
        runs = repository.fetch_runs("INFY")
        assert len(runs) == 1
        assert runs[0]["error"] == "no statements"
        assert len(repository.fetch_runs()) == 2
    finally:
        repository.close()
