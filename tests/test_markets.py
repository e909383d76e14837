import random
import unittest
from unittest import mock

import requests

from cardinalnews.errors import InvalidRequestError
from cardinalnews.markets.indicators import (
    analyze,
    bollinger_bands,
    pct_change,
    round2,
    rsi,
    sentiment,
    sharpe_ratio,
    support_resistance,
    volatility,
)
from cardinalnews.markets.providers import StockDataService, mock_candles, mock_news

RISING = [100 + i for i in range(30)]


class TestIndicators(unittest.TestCase):
    def test_round_half_up(self):
        self.assertEqual(round2(0.125), 0.13)
        self.assertEqual(round2(2.5), 2.5)

    def test_rsi_edges(self):
        self.assertEqual(rsi([1, 2, 3]), 50.0)
        self.assertEqual(rsi(RISING), 100.0)
        falling = list(reversed(RISING))
        self.assertEqual(rsi(falling), 0.0)

    def test_flat_prices(self):
        flat = [10.0] * 30
        bands = bollinger_bands(flat)
        self.assertEqual(bands, {"upper": 10.0, "middle": 10.0, "lower": 10.0, "bandwidth": 0.0})
        self.assertIsNone(sharpe_ratio(flat))
        self.assertEqual(volatility(flat), 0.0)

    def test_levels_and_changes(self):
        levels = support_resistance(list(range(1, 101)))
        self.assertEqual(levels, {"support": 56, "resistance": 86})
        self.assertIsNone(pct_change(RISING, 90))
        self.assertEqual(pct_change([50, 60, 75], 3), 50.0)

    def test_zero_previous_close(self):
        prices = [0.0] * 5 + [10.0] * 25
        self.assertIsNone(pct_change(prices, 30))
        self.assertIsNone(pct_change([0, 5], 2))
        result = analyze("HALT", prices)
        self.assertIsNone(result["analytics"]["priceAction"]["change30d"])
        flat_zero = analyze("ZERO", [0.0] * 30)["analytics"]["technicalIndicators"]
        self.assertEqual(flat_zero["bollingerBands"]["bandwidth"], 0.0)
        self.assertIsNone(flat_zero["sharpeRatio"])

    def test_sentiment_scoring(self):
        bands = {"upper": 110, "lower": 90, "bandwidth": 20}
        bullish = sentiment(25, {"histogram": 1.0}, bands, 85)
        self.assertEqual(bullish, {"overall": "BULLISH", "score": 4, "confidence": "HIGH"})
        neutral = sentiment(50, {"histogram": 0.0}, bands, 100)
        self.assertEqual(neutral, {"overall": "NEUTRAL", "score": 0, "confidence": "LOW"})

    def test_analyze_payload(self):
        result = analyze("ACME", RISING)
        analytics = result["analytics"]
        self.assertEqual(result["symbol"], "ACME")
        self.assertEqual(analytics["priceAction"]["currentPrice"], 129.0)
        self.assertIsNone(analytics["priceAction"]["change90d"])
        self.assertEqual(analytics["technicalIndicators"]["rsi"], 100.0)
        self.assertTrue(any(s.startswith("OVERBOUGHT") for s in analytics["signals"]))
        self.assertEqual(analytics["sentiment"]["overall"], "BEARISH")

    def test_analyze_needs_history(self):
        with self.assertRaises(InvalidRequestError):
            analyze("ACME", RISING[:29])
        with self.assertRaises(InvalidRequestError):
            analyze("ACME", None)
        with self.assertRaises(InvalidRequestError):
            analyze("ACME", ["x"] * 30)


class TestStockData(unittest.TestCase):
    def test_mock_fallback_without_keys(self):
        service = StockDataService(rng=random.Random(7))
        quote = service.quote("AAPL")
        self.assertEqual(quote["source"], "mock")
        self.assertTrue(176 <= quote["price"] <= 184)
        self.assertEqual(len(mock_candles(365, random.Random(1))["c"]), 366)
        self.assertEqual(len(mock_news("AAPL")), 10)

    def test_finnhub_quote(self):
        resp = mock.Mock()
        resp.json.return_value = {"c": 190.5, "d": 1.5, "dp": 0.8, "h": 191, "l": 188, "o": 189, "pc": 189, "t": 1700000000}
        with mock.patch("cardinalnews.markets.providers.requests.get", return_value=resp):
            quote = StockDataService(finnhub_api_key="fk").quote("AAPL")
        self.assertEqual(quote["source"], "finnhub")
        self.assertEqual(quote["price"], 190.5)
        self.assertEqual(quote["timestamp"], 1700000000000)

    def test_provider_errors_fall_through_to_mock(self):
        with mock.patch(
            "cardinalnews.markets.providers.requests.get", side_effect=requests.ConnectionError("down")
        ):
            service = StockDataService(finnhub_api_key="fk", twelve_data_api_key="tk")
            self.assertEqual(service.quote("MSFT")["source"], "mock")

    def test_demo_alpha_vantage_key_is_skipped(self):
        with mock.patch("cardinalnews.markets.providers.requests.get") as get:
            StockDataService(alpha_vantage_api_key="demo").quote("MSFT")
        get.assert_not_called()

    def test_fetch_dispatch(self):
        service = StockDataService()
        self.assertEqual(len(service.fetch({"type": "quote", "symbols": ["AAPL", "MSFT"]})["quotes"]), 2)
        self.assertEqual(service.fetch({"type": "profile", "symbol": "AAPL"})["profile"]["ticker"], "AAPL")
        self.assertEqual(service.fetch({"type": "search", "symbol": "tsla"})["results"]["result"][0]["symbol"], "TSLA")
        quotes = service.fetch({"type": "quote", "symbols": "aapl, MSFT,"})["quotes"]
        self.assertEqual([q["symbol"] for q in quotes], ["AAPL", "MSFT"])
        self.assertEqual(len(service.fetch({"type": "quote", "symbol": "NVDA"})["quotes"]), 1)
        with self.assertRaises(InvalidRequestError):
            service.fetch({"type": "options"})
        with self.assertRaises(InvalidRequestError):
            service.fetch({"type": "candles"})


if __name__ == "__main__":
    unittest.main()
