"""Technical indicators for the markets page.

All functions take a list of closing prices, oldest first. Rounding is
half-up to 2dp so numbers match what the charts have always shown.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

from cardinalnews.errors import InvalidRequestError

MIN_HISTORY = 30
TRADING_DAYS = 252


def round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _change(current: float, previous: float) -> float:
    """Fractional change; 0.0 when the previous close is zero."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous


def _pstdev(values: Sequence[float]) -> float:
    m = _mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """Simple-average RSI over the last `period` moves; 50 when there is not enough data."""
    if len(prices) <= period:
        return 50.0
    gains = losses = 0.0
    for i in range(1, period + 1):
        diff = prices[-i] - prices[-i - 1]
        if diff > 0:
            gains += diff
        else:
            losses += abs(diff)
    if losses == 0:
        return 100.0
    rs = (gains / period) / (losses / period)
    return 100 - 100 / (1 + rs)


def ema(prices: Sequence[float], period: int) -> float:
    k = 2 / (period + 1)
    value = prices[0]
    for price in prices[1:]:
        value = (price - value) * k + value
    return value


def macd(prices: Sequence[float]) -> Dict[str, float]:
    line = ema(prices, 12) - ema(prices, 26)
    signal = ema(list(prices[-9:]), 9)
    return {"macd": round2(line), "signal": round2(signal), "histogram": round2(line - signal)}


def bollinger_bands(prices: Sequence[float], period: int = 20, width: float = 2) -> Dict[str, float]:
    window = list(prices[-period:])
    sma = sum(window) / period
    std = math.sqrt(sum((p - sma) ** 2 for p in window) / period)
    return {
        "upper": round2(sma + width * std),
        "middle": round2(sma),
        "lower": round2(sma - width * std),
        "bandwidth": round2(width * std * 2 / sma * 100) if sma else 0.0,
    }


def daily_returns(prices: Sequence[float]) -> List[float]:
    return [_change(prices[i], prices[i - 1]) for i in range(1, len(prices))]


def volatility(prices: Sequence[float], period: int = 30) -> float:
    """Annualised stdev of the last period-1 daily returns, in percent."""
    if len(prices) < period:
        return 0.0
    returns = [_change(prices[-i], prices[-i - 1]) for i in range(1, period)]
    return round2(_pstdev(returns) * math.sqrt(TRADING_DAYS) * 100)


def sharpe_ratio(prices: Sequence[float], risk_free_rate: float = 0.02) -> Optional[float]:
    returns = daily_returns(prices)
    std = _pstdev(returns)
    if std == 0:
        return None
    return round2((_mean(returns) * TRADING_DAYS - risk_free_rate) / (std * math.sqrt(TRADING_DAYS)))


def trading_signals(rsi_value: float, macd_values: Dict[str, float], bands: Dict[str, float], price: float) -> List[str]:
    signals = []
    if rsi_value < 30:
        signals.append("OVERSOLD (RSI < 30) - Potential BUY opportunity")
    if rsi_value > 70:
        signals.append("OVERBOUGHT (RSI > 70) - Consider taking profits")
    if 40 < rsi_value < 60:
        signals.append("NEUTRAL RSI - No strong directional bias")

    if macd_values["macd"] > macd_values["signal"] and macd_values["histogram"] > 0:
        signals.append("BULLISH MACD - Momentum shifting upward")
    elif macd_values["macd"] < macd_values["signal"] and macd_values["histogram"] < 0:
        signals.append("BEARISH MACD - Momentum shifting downward")

    if price <= bands["lower"]:
        signals.append("TOUCHING LOWER BAND - Potential bounce")
    elif price >= bands["upper"]:
        signals.append("TOUCHING UPPER BAND - Potential resistance")
    if bands["bandwidth"] < 10:
        signals.append("BOLLINGER SQUEEZE - Volatility breakout expected")
    return signals


def support_resistance(prices: Sequence[float], window: int = 60) -> Dict[str, float]:
    recent = sorted(prices[-window:])
    return {
        "support": round2(recent[int(len(recent) * 0.25)]),
        "resistance": round2(recent[int(len(recent) * 0.75)]),
    }


def pct_change(prices: Sequence[float], days: int) -> Optional[float]:
    if len(prices) < days:
        return None
    base = prices[-days]
    if base == 0:
        return None
    return round2(_change(prices[-1], base) * 100)


def sentiment(rsi_value: float, macd_values: Dict[str, float], bands: Dict[str, float], price: float) -> Dict[str, Any]:
    score = 0
    if rsi_value < 30:
        score += 2
    if rsi_value > 70:
        score -= 2
    if macd_values["histogram"] > 0:
        score += 1
    if macd_values["histogram"] < 0:
        score -= 1
    if price < bands["lower"]:
        score += 1
    if price > bands["upper"]:
        score -= 1

    overall = "NEUTRAL"
    if score >= 2:
        overall = "BULLISH"
    if score <= -2:
        overall = "BEARISH"
    strength = abs(score)
    confidence = "HIGH" if strength >= 3 else "MEDIUM" if strength >= 2 else "LOW"
    return {"overall": overall, "score": score, "confidence": confidence}


def analyze(symbol: Optional[str], prices: Optional[Sequence[Any]]) -> Dict[str, Any]:
    """Full analytics payload for enhanced-stock-analytics."""
    if not prices or len(prices) < MIN_HISTORY:
        raise InvalidRequestError("Insufficient historical data for analysis")
    try:
        closes = [float(p) for p in prices]
    except (TypeError, ValueError) as e:
        raise InvalidRequestError("historicalPrices must be numbers") from e

    current = closes[-1]
    rsi_value = rsi(closes)
    macd_values = macd(closes)
    bands = bollinger_bands(closes)
    levels = support_resistance(closes)

    return {
        "success": True,
        "symbol": symbol,
        "analytics": {
            "technicalIndicators": {
                "rsi": round2(rsi_value),
                "macd": macd_values,
                "bollingerBands": bands,
                "volatility": volatility(closes),
                "sharpeRatio": sharpe_ratio(closes),
            },
            "priceAction": {
                "currentPrice": current,
                "support": levels["support"],
                "resistance": levels["resistance"],
                "change30d": pct_change(closes, 30),
                "change90d": pct_change(closes, 90),
            },
            "signals": trading_signals(rsi_value, macd_values, bands, current),
            "sentiment": sentiment(rsi_value, macd_values, bands, current),
        },
    }
