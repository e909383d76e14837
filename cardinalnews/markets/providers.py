"""Stock data with provider fallback: Finnhub, Alpha Vantage, Twelve Data, then mock data.

Every provider function returns None when the provider has nothing usable so
the chain can move on; HTTP and parsing errors are logged and treated the
same way.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from cardinalnews.errors import InvalidRequestError
from cardinalnews.markets.indicators import round2

logger = logging.getLogger(__name__)

USER_AGENT = "CardinalNews/2.0"
FINNHUB_URL = "https://finnhub.io/api/v1"
ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
TWELVE_DATA_URL = "https://api.twelvedata.com"

REQUEST_TYPES = ("quote", "candles", "profile", "news", "search")

MOCK_BASE_PRICES = {
    "AAPL": 180, "GOOGL": 140, "MSFT": 380, "AMZN": 155, "TSLA": 250,
    "META": 350, "NVDA": 850, "AMD": 120, "NFLX": 450, "DIS": 95,
    "JPM": 180, "V": 280, "WMT": 160, "BA": 220, "INTC": 45,
}
MOCK_HEADLINES = ("Strong Q4 Earnings", "Strategic Partnership", "Product Launch", "Market Expansion")
MOCK_SOURCES = ("Bloomberg", "Reuters", "CNBC", "WSJ")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _day_epoch(day: str) -> int:
    return int(datetime.fromisoformat(day[:10]).replace(tzinfo=timezone.utc).timestamp())


def mock_quote(symbol: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    r = rng or random
    base = MOCK_BASE_PRICES.get(symbol, 100)
    swing = base * 0.02
    change = (r.random() - 0.5) * swing * 2
    price = base + change
    return {
        "symbol": symbol,
        "price": round2(price),
        "change": round2(change),
        "changePercent": round2(change / base * 100),
        "high": round2(price + r.random() * swing),
        "low": round2(price - r.random() * swing),
        "open": round2(price - change * 0.3),
        "previousClose": round2(price - change),
        "volume": r.randint(1_000_000, 10_999_999),
        "timestamp": _now_ms(),
        "source": "mock",
    }


def mock_candles(days: int = 365, rng: Optional[random.Random] = None, *, start_price: float = 150.0) -> Dict[str, Any]:
    r = rng or random
    today = datetime.now(timezone.utc).date()
    price = start_price
    out: Dict[str, Any] = {"s": "ok", "t": [], "o": [], "h": [], "l": [], "c": [], "v": []}
    for back in range(days, -1, -1):
        day = today - timedelta(days=back)
        change = (r.random() - 0.5) * price * 0.03
        price += change
        out["t"].append(_day_epoch(day.isoformat()))
        out["o"].append(max(0.01, round2(price - change * 0.7)))
        out["h"].append(max(0.01, round2(price + abs(change) * 0.5)))
        out["l"].append(max(0.01, round2(price - abs(change) * 0.5)))
        out["c"].append(max(0.01, round2(price)))
        out["v"].append(r.randint(1_000_000, 50_999_999))
    return out


def mock_profile(symbol: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    r = rng or random
    lower = symbol.lower()
    return {
        "name": symbol,
        "ticker": symbol,
        "marketCapitalization": r.randint(0, 999_999_999_999),
        "shareOutstanding": r.randint(0, 999_999_999),
        "logo": f"https://logo.clearbit.com/{lower}.com",
        "weburl": f"https://{lower}.com",
        "exchange": "NASDAQ",
        "ipo": "1990-01-01",
        "country": "US",
        "currency": "USD",
        "finnhubIndustry": "Technology",
    }


def mock_news(symbol: str, count: int = 10) -> List[Dict[str, Any]]:
    now = _now_ms()
    return [
        {
            "headline": f"{symbol} Reports {MOCK_HEADLINES[i % 4]}",
            "summary": f"Latest developments from {symbol} show positive momentum in the market.",
            "source": MOCK_SOURCES[i % 4],
            "url": f"https://example.com/news/{symbol}-{i}",
            "datetime": now - i * 86_400_000,
            "image": f"https://images.unsplash.com/photo-{150000000000 + i}?q=80&w=400",
        }
        for i in range(count)
    ]


def mock_search(query: str) -> Dict[str, Any]:
    upper = query.upper()
    return {
        "result": [
            {"symbol": upper, "description": f"{upper} Corporation", "displaySymbol": upper, "type": "Common Stock"}
        ]
    }


def split_symbols(value: Any) -> List[str]:
    """Accept "AAPL,MSFT", a single symbol or a list; returns stripped upper-case tickers."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise InvalidRequestError("symbols must be a list or a comma-separated string")
    return [str(s).strip().upper() for s in value if str(s).strip()]


def _get_json(url: str, params: Dict[str, Any], timeout: int) -> Any:
    resp = requests.get(url, params=params, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


@dataclass
class StockDataService:
    finnhub_api_key: str = ""
    alpha_vantage_api_key: str = ""
    twelve_data_api_key: str = ""
    timeout: int = 30
    rng: random.Random = field(default_factory=random.Random)

    # Finnhub

    def _finnhub(self, path: str, params: Dict[str, Any]) -> Any:
        return _get_json(f"{FINNHUB_URL}{path}", {**params, "token": self.finnhub_api_key}, self.timeout)

    def finnhub_quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        data = self._finnhub("/quote", {"symbol": symbol})
        if not data or not data.get("c"):
            return None
        return {
            "symbol": symbol,
            "price": float(data["c"]),
            "change": float(data.get("d") or 0),
            "changePercent": float(data.get("dp") or 0),
            "high": float(data.get("h") or 0),
            "low": float(data.get("l") or 0),
            "open": float(data.get("o") or 0),
            "previousClose": float(data.get("pc") or 0),
            "timestamp": int(data.get("t") or 0) * 1000 or _now_ms(),
            "source": "finnhub",
        }

    def finnhub_candles(self, symbol: str, resolution: str, start: int, end: int) -> Optional[Dict[str, Any]]:
        data = self._finnhub("/stock/candle", {"symbol": symbol, "resolution": resolution, "from": start, "to": end})
        if not data or data.get("s") != "ok":
            return None
        return {k: data.get(k) for k in ("s", "t", "o", "h", "l", "c", "v")}

    # Alpha Vantage

    @property
    def _alpha_vantage_enabled(self) -> bool:
        return bool(self.alpha_vantage_api_key) and self.alpha_vantage_api_key != "demo"

    def alpha_vantage_quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        data = _get_json(
            ALPHA_VANTAGE_URL,
            {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.alpha_vantage_api_key},
            self.timeout,
        )
        quote = (data or {}).get("Global Quote")
        if not quote:
            return None
        return {
            "symbol": symbol,
            "price": float(quote["05. price"]),
            "change": float(quote["09. change"]),
            "changePercent": float(str(quote["10. change percent"]).replace("%", "")),
            "high": float(quote["03. high"]),
            "low": float(quote["04. low"]),
            "open": float(quote["02. open"]),
            "previousClose": float(quote["08. previous close"]),
            "volume": int(quote["06. volume"]),
            "timestamp": _now_ms(),
            "source": "alpha_vantage",
        }

    def alpha_vantage_candles(self, symbol: str, *, full: bool = False) -> Optional[Dict[str, Any]]:
        data = _get_json(
            ALPHA_VANTAGE_URL,
            {
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "outputsize": "full" if full else "compact",
                "apikey": self.alpha_vantage_api_key,
            },
            self.timeout,
        )
        series = (data or {}).get("Time Series (Daily)")
        if not series:
            return None
        days = sorted(series)
        bars = [series[d] for d in days]
        return {
            "s": "ok",
            "t": [_day_epoch(d) for d in days],
            "o": [float(b["1. open"]) for b in bars],
            "h": [float(b["2. high"]) for b in bars],
            "l": [float(b["3. low"]) for b in bars],
            "c": [float(b["4. close"]) for b in bars],
            "v": [int(b["5. volume"]) for b in bars],
        }

    # Twelve Data

    def twelve_data_quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        data = _get_json(f"{TWELVE_DATA_URL}/quote", {"symbol": symbol, "apikey": self.twelve_data_api_key}, self.timeout)
        if not data or data.get("message") or data.get("close") is None:
            return None
        return {
            "symbol": symbol,
            "price": float(data["close"]),
            "change": float(data.get("change") or 0),
            "changePercent": float(data.get("percent_change") or 0),
            "high": float(data.get("high") or 0),
            "low": float(data.get("low") or 0),
            "open": float(data.get("open") or 0),
            "previousClose": float(data.get("previous_close") or 0),
            "volume": int(float(data.get("volume") or 0)),
            "timestamp": _now_ms(),
            "source": "twelve_data",
        }

    def twelve_data_candles(self, symbol: str, interval: str = "1day", outputsize: int = 365) -> Optional[Dict[str, Any]]:
        data = _get_json(
            f"{TWELVE_DATA_URL}/time_series",
            {"symbol": symbol, "interval": interval, "outputsize": outputsize, "apikey": self.twelve_data_api_key},
            self.timeout,
        )
        values = list(reversed((data or {}).get("values") or []))  # newest first upstream
        if not values:
            return None
        return {
            "s": "ok",
            "t": [_day_epoch(v["datetime"]) for v in values],
            "o": [float(v["open"]) for v in values],
            "h": [float(v["high"]) for v in values],
            "l": [float(v["low"]) for v in values],
            "c": [float(v["close"]) for v in values],
            "v": [int(float(v.get("volume") or 0)) for v in values],
        }

    # Chains

    def _first(self, label: str, attempts) -> Optional[Dict[str, Any]]:
        for name, enabled, call in attempts:
            if not enabled:
                continue
            try:
                result = call()
            except (requests.RequestException, ValueError, KeyError, TypeError) as e:
                logger.info(f"{name} {label} failed: {e}")
                continue
            if result:
                logger.info(f"{name} success for {label}")
                return result
        return None

    def quote(self, symbol: str) -> Dict[str, Any]:
        found = self._first(
            symbol,
            [
                ("Finnhub", bool(self.finnhub_api_key), lambda: self.finnhub_quote(symbol)),
                ("Alpha Vantage", self._alpha_vantage_enabled, lambda: self.alpha_vantage_quote(symbol)),
                ("Twelve Data", bool(self.twelve_data_api_key), lambda: self.twelve_data_quote(symbol)),
            ],
        )
        if found is None:
            logger.info(f"Using mock data for {symbol}")
            return mock_quote(symbol, self.rng)
        return found

    def candles(
        self,
        symbol: str,
        *,
        resolution: str = "D",
        start: Optional[int] = None,
        end: Optional[int] = None,
        outputsize: Optional[str] = None,
    ) -> Dict[str, Any]:
        full = outputsize == "full"
        end = int(end or time.time())
        start = int(start or end - 365 * 86400)
        interval = "1week" if resolution == "W" else "1day"
        found = self._first(
            f"{symbol} candles",
            [
                ("Finnhub", bool(self.finnhub_api_key), lambda: self.finnhub_candles(symbol, resolution, start, end)),
                ("Alpha Vantage", self._alpha_vantage_enabled, lambda: self.alpha_vantage_candles(symbol, full=full)),
                (
                    "Twelve Data",
                    bool(self.twelve_data_api_key),
                    lambda: self.twelve_data_candles(symbol, interval, 2500 if full else 365),
                ),
            ],
        )
        if found is None:
            logger.info(f"Using mock candle data for {symbol}")
            return mock_candles(365, self.rng)
        return found

    def profile(self, symbol: str) -> Dict[str, Any]:
        found = self._first(
            f"{symbol} profile",
            [("Finnhub", bool(self.finnhub_api_key), lambda: self._finnhub("/stock/profile2", {"symbol": symbol}) or None)],
        )
        return found or mock_profile(symbol, self.rng)

    def news(self, symbol: str, *, start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        today = date.today()
        params = {
            "symbol": symbol,
            "from": start or (today - timedelta(days=7)).isoformat(),
            "to": end or today.isoformat(),
        }
        found = self._first(
            f"{symbol} news",
            [("Finnhub", bool(self.finnhub_api_key), lambda: self._finnhub("/company-news", params) or None)],
        )
        return found or mock_news(symbol)

    def search(self, query: str) -> Dict[str, Any]:
        found = self._first(
            f"search {query}",
            [("Finnhub", bool(self.finnhub_api_key), lambda: self._finnhub("/search", {"q": query}) or None)],
        )
        return found or mock_search(query)

    def fetch(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Dispatch a fetch-stock-data request body."""
        kind = body.get("type") or "quote"
        if kind not in REQUEST_TYPES:
            raise InvalidRequestError("Invalid request type")
        symbol = body.get("symbol")
        logger.info(f"[Stock API] Fetching {kind} data for symbols: {body.get('symbols') or symbol}")

        if kind == "quote":
            symbols = split_symbols(body.get("symbols") or symbol)
            if not symbols:
                raise InvalidRequestError("symbols is required")
            return {"quotes": [self.quote(s) for s in symbols]}
        if not symbol:
            raise InvalidRequestError("symbol is required")
        if kind == "candles":
            return {
                "candles": self.candles(
                    symbol,
                    resolution=body.get("resolution") or "D",
                    start=body.get("from"),
                    end=body.get("to"),
                    outputsize=body.get("outputsize"),
                )
            }
        if kind == "profile":
            return {"profile": self.profile(symbol)}
        if kind == "news":
            return {"news": self.news(symbol, start=body.get("from"), end=body.get("to"))}
        return {"results": self.search(symbol)}
