"""SQLite persistence for evaluated quarters and run history."""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from results_eval.domain.models.records import EvaluatedQuarter


class SQLiteRepository:
    """Lightweight gateway for storing pipeline outputs."""

    def __init__(self, database_uri: str, *, echo: bool = False) -> None:
        # Bulk runs share one repository across worker threads.
        self._engine: Engine = create_engine(
            database_uri,
            echo=echo,
            future=True,
            connect_args={"check_same_thread": False},
        )
        self._ensure_schema()

    @property
    def engine(self) -> Engine:
        return self._engine

    # -----------------
    # Schema management
    # -----------------
    def _ensure_schema(self) -> None:
        """Create core tables if they do not already exist."""
        ddl = [
            """
            CREATE TABLE IF NOT EXISTS evaluated_quarters (
              symbol TEXT NOT NULL,
              quarter TEXT NOT NULL,
              quarter_index INTEGER NOT NULL,
              date_time_raw TEXT,
              current_close REAL,
              final_performance_x REAL,
              final_price_x REAL,
              payload TEXT NOT NULL,
              updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
              PRIMARY KEY (symbol, quarter)
            );
            """,
            """CREATE INDEX IF NOT EXISTS idx_evaluated_symbol ON evaluated_quarters(symbol);""",
            """
            CREATE TABLE IF NOT EXISTS evaluation_runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              symbol TEXT NOT NULL,
              status TEXT NOT NULL,
              row_count INTEGER,
              error TEXT,
              ran_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
            """,
        ]
        with self._engine.begin() as conn:
            for statement in ddl:
                conn.execute(text(statement))

    # ------------------
    # Evaluated quarters
    # ------------------
    def upsert_evaluations(self, symbol: str, quarters: Iterable[EvaluatedQuarter]) -> int:
        """Persist evaluated quarters using UPSERT on (symbol, quarter)."""
        rows = []
        for item in quarters:
            performance = item.performance
            rows.append(
                {
                    "symbol": symbol,
                    "quarter": str(item.quarter),
                    "quarter_index": item.quarter.index,
                    "date_time_raw": item.record.date_time_raw,
                    "current_close": item.record.current_close,
                    "final_performance_x": (
                        performance.final_performance_score.x if performance.final_performance_score else None
                    ),
                    "final_price_x": performance.final_price_score.x if performance.final_price_score else None,
                    "payload": json.dumps(item.to_dict(), ensure_ascii=False),
                }
            )
        if not rows:
            return 0

        stmt = text(
            """
            INSERT INTO evaluated_quarters (
              symbol, quarter, quarter_index, date_time_raw, current_close,
              final_performance_x, final_price_x, payload
            )
            VALUES (
              :symbol, :quarter, :quarter_index, :date_time_raw, :current_close,
              :final_performance_x, :final_price_x, :payload
            )
            ON CONFLICT(symbol, quarter) DO UPDATE SET
                quarter_index=excluded.quarter_index,
                date_time_raw=excluded.date_time_raw,
                current_close=excluded.current_close,
                final_performance_x=excluded.final_performance_x,
                final_price_x=excluded.final_price_x,
                payload=excluded.payload,
                updated_at=CURRENT_TIMESTAMP
            """
        )
        with self._engine.begin() as conn:
            conn.execute(stmt, rows)
        return len(rows)

    def fetch_evaluations(self, symbol: str) -> List[Dict[str, Any]]:
        """Return stored quarter payloads for a symbol in chronological order."""
        query = text(
            """
            SELECT payload
            FROM evaluated_quarters
            WHERE symbol = :symbol
            ORDER BY quarter_index ASC
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"symbol": symbol})
            return [json.loads(row["payload"]) for row in rows.mappings()]

    # -----------
    # Run history
    # -----------
    def record_run(self, symbol: str, status: str, *, rows: Optional[int] = None, error: Optional[str] = None) -> None:
        stmt = text(
            """
            INSERT INTO evaluation_runs (symbol, status, row_count, error)
            VALUES (:symbol, :status, :row_count, :error)
            """
        )
        with self._engine.begin() as conn:
            conn.execute(stmt, {"symbol": symbol, "status": status, "row_count": rows, "error": error})

    def fetch_runs(self, symbol: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        clauses = ""
        params: Dict[str, Any] = {"limit": int(limit)}
        if symbol:
            clauses = "WHERE symbol = :symbol"
            params["symbol"] = symbol
        query = text(
            f"""
            SELECT symbol, status, row_count, error, ran_at
            FROM evaluation_runs
            {clauses}
            ORDER BY id DESC
            LIMIT :limit
            """
        )
        with self._engine.connect() as conn:
            return [dict(row) for row in conn.execute(query, params).mappings()]

    def close(self) -> None:
        self._engine.dispose()
