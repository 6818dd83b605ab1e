"""Runtime settings for the results evaluator, read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

# Base directory for resolving relative paths.
BASE_DIR = Path(__file__).resolve().parent

DEFAULT_PRICE_API = "https://groww.in/v1/api/charting_service/v2/chart/delayed/exchange/NSE/segment/CASH"


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    # Normalize non-string inputs (e.g., int defaults) before parsing.
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str]) -> Optional[int]:
    """Safely parse an integer env var, returning None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    data_dir: Path = BASE_DIR / "data"
    companies_file: Path = BASE_DIR / "data" / "companies_info.json"
    database_path: Path = BASE_DIR / "data" / "results_eval.db"
    sqlite_echo: bool = False
    output_dir: Path = BASE_DIR / "reports"
    price_api_base_url: str = DEFAULT_PRICE_API
    price_timeout: float = 15.0
    price_max_attempts: int = 3
    price_throttle_seconds: float = 0.5
    proxy_url: Optional[str] = None
    smooth_eps: bool = True
    output_unit: str = "crore"
    current_lookback_days: int = 7
    past_year_lookback_days: int = 10
    bulk_concurrency: int = 3
    bulk_retries: int = 2
    persist_results: bool = True
    nbfc_codes: Set[str] = field(default_factory=set)

    @classmethod
    def from_env(cls) -> "Config":
        """Read every setting from its environment variable, keeping defaults on bad input."""
        data_dir = Path(os.getenv("RESULTS_EVAL_DATA_DIR", BASE_DIR / "data"))
        defaults = cls()
        bulk_retries = _to_int(os.getenv("BULK_RETRIES"))

        config = cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            data_dir=data_dir,
            companies_file=Path(os.getenv("COMPANIES_FILE", data_dir / "companies_info.json")),
            database_path=Path(os.getenv("RESULTS_EVAL_DB", data_dir / "results_eval.db")),
            sqlite_echo=_to_bool(os.getenv("SQLITE_ECHO")),
            output_dir=Path(os.getenv("OUTPUT_DIR", BASE_DIR / "reports")),
            price_api_base_url=os.getenv("PRICE_API_BASE_URL", DEFAULT_PRICE_API),
            price_timeout=_to_float(os.getenv("PRICE_TIMEOUT")) or defaults.price_timeout,
            price_max_attempts=_to_int(os.getenv("PRICE_MAX_ATTEMPTS")) or defaults.price_max_attempts,
            price_throttle_seconds=_to_float(os.getenv("PRICE_THROTTLE_SECONDS")) or defaults.price_throttle_seconds,
            proxy_url=os.getenv("PROXY_URL"),
            smooth_eps=_to_bool(os.getenv("SMOOTH_EPS"), default=True),
            output_unit=os.getenv("OUTPUT_UNIT", "crore").lower(),
            current_lookback_days=_to_int(os.getenv("CURRENT_LOOKBACK_DAYS")) or defaults.current_lookback_days,
            past_year_lookback_days=_to_int(os.getenv("PAST_YEAR_LOOKBACK_DAYS")) or defaults.past_year_lookback_days,
            bulk_concurrency=_to_int(os.getenv("BULK_CONCURRENCY")) or defaults.bulk_concurrency,
            bulk_retries=bulk_retries if bulk_retries is not None else defaults.bulk_retries,
            persist_results=_to_bool(os.getenv("PERSIST_RESULTS"), default=True),
            # BSE codes whose filings use the NBFC statement layout.
            nbfc_codes={code.strip() for code in os.getenv("NBFC_CODES", "").split(",") if code.strip()},
        )
        config.ensure_directories()
        return config

    def ensure_directories(self) -> None:
        """Create the data, database and output folders if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
