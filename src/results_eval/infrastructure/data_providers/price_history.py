"""Daily candle lookups against the Groww delayed chart endpoint."""
from __future__ import annotations

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

IST = timezone(timedelta(hours=5, minutes=30))
DEFAULT_BASE_URL = "https://groww.in/v1/api/charting_service/v2/chart/delayed/exchange/NSE/segment/CASH"
DAY_INTERVAL_MINUTES = 1440


class PriceHistoryClient:
    """Fetch one IST trading day's candle for an NSE symbol."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 15.0,
        max_retries: int = 3,
        throttle_seconds: float = 0.5,
        proxy_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        http_client_kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(timeout, connect=10.0),
            "headers": {"Accept": "application/json", "User-Agent": "Mozilla/5.0"},
        }
        if proxy_url:
            http_client_kwargs["proxy"] = proxy_url
        if transport is not None:
            http_client_kwargs["transport"] = transport
        self._http_client = httpx.Client(**http_client_kwargs)
        self._base_url = base_url.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._throttle_seconds = throttle_seconds

    # ------------------
    # Public API helpers
    # ------------------
    def get_price_at(self, date_iso: str, symbol: str) -> Optional[Dict[str, Any]]:
        """Return ``{date, open, high, low, close, volume}`` for the day, or ``None`` if it did not trade."""
        day = date.fromisoformat(date_iso)
        start = datetime(day.year, day.month, day.day, tzinfo=IST)
        end = start + timedelta(minutes=DAY_INTERVAL_MINUTES - 1)
        params = {
            "startTimeInMillis": int(start.timestamp() * 1000),
            "endTimeInMillis": int(end.timestamp() * 1000),
            "intervalInMinutes": DAY_INTERVAL_MINUTES,
        }
        payload = self._call_with_retry(f"{self._base_url}/{symbol.upper()}", params)
        for candle in payload.get("candles") or []:
            if len(candle) < 5:
                continue
            traded_on = datetime.fromtimestamp(candle[0], tz=IST).date()
            if traded_on == day:
                return {
                    "date": traded_on.isoformat(),
                    "open": candle[1],
                    "high": candle[2],
                    "low": candle[3],
                    "close": candle[4],
                    "volume": candle[5] if len(candle) > 5 else None,
                }
        return None

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._http_client.close()

    # -----------------
    # Internal helpers
    # -----------------
    def _call_with_retry(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._http_client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                logger.debug("Price request %s failed (attempt %s): %s", url, attempt, exc)
                if attempt >= self._max_retries:
                    break
                time.sleep(self._throttle_seconds * attempt)
        if last_exc:
            raise last_exc
        raise RuntimeError("Price history call failed without exception")
