import unittest
from datetime import datetime, timezone
from unittest import mock

from cardinalnews.errors import ConfigurationError, InvalidRequestError
from cardinalnews.weather.openweather import GLOBAL_CITIES, OpenWeatherClient, group_forecast_days


def _ts(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def _item(ts, temp, pop=0.0):
    return {
        "dt": ts,
        "main": {"temp": temp, "humidity": 70},
        "weather": [{"main": "Clouds"}],
        "wind": {"speed": 3.5},
        "pop": pop,
    }


class TestForecastGrouping(unittest.TestCase):
    def test_groups_by_utc_day(self):
        items = [
            _item(_ts(2025, 3, 10, 0), 10.0, 0.1),
            _item(_ts(2025, 3, 10, 3), 14.0, 0.6),
            _item(_ts(2025, 3, 10, 6), 12.0),
            _item(_ts(2025, 3, 11, 12), 20.0),
        ]
        days = group_forecast_days(items)
        self.assertEqual(len(days), 2)
        first = days[0]
        self.assertEqual(first["dt"], _ts(2025, 3, 10))
        self.assertEqual(first["temp"], {"min": 10.0, "max": 14.0, "day": 12.0})
        self.assertEqual(first["pop"], 0.6)
        self.assertEqual(first["wind_speed"], 3.5)
        self.assertEqual(len(first["hourly"]), 3)

    def test_caps_days(self):
        items = [_item(_ts(2025, 3, d, 12), 5.0) for d in range(1, 11)]
        self.assertEqual(len(group_forecast_days(items)), 7)


class TestOpenWeatherClient(unittest.TestCase):
    def test_forecast_validation(self):
        client = OpenWeatherClient("key")
        with self.assertRaises(InvalidRequestError):
            client.forecast(None, 10)
        with self.assertRaises(ConfigurationError):
            OpenWeatherClient("").forecast(1, 2)

    def test_forecast_falls_back_to_five_day(self):
        onecall = mock.Mock(ok=False, status_code=401)
        fallback = mock.Mock(ok=True)
        fallback.json.return_value = {"list": [_item(_ts(2025, 3, 10, 0), 10.0)]}
        with mock.patch(
            "cardinalnews.weather.openweather.requests.get", side_effect=[onecall, fallback]
        ):
            result = OpenWeatherClient("key").forecast(0, 10)
        self.assertEqual(result["source"], "fallback")
        self.assertEqual(len(result["daily"]), 1)

    def test_forecast_uses_onecall(self):
        onecall = mock.Mock(ok=True)
        onecall.json.return_value = {"current": {"temp": 1}, "daily": list(range(10)), "hourly": list(range(48))}
        with mock.patch("cardinalnews.weather.openweather.requests.get", return_value=onecall):
            result = OpenWeatherClient("key").forecast(51.5, -0.12)
        self.assertEqual(result["source"], "onecall")
        self.assertEqual(len(result["daily"]), 7)
        self.assertEqual(len(result["hourly"]), 24)
        self.assertEqual(result["alerts"], [])

    def test_global_weather_drops_failures_and_saves(self):
        store = mock.Mock()
        client = OpenWeatherClient("key", store=store, max_workers=2)

        def snapshot(city):
            if city["name"] == "Lagos":
                return None
            return {**city, "weather": {}, "timestamp": "now"}

        with mock.patch.object(OpenWeatherClient, "city_snapshot", side_effect=snapshot):
            result = client.global_weather()
        self.assertEqual(result["totalCities"], len(GLOBAL_CITIES) - 1)
        store.save_snapshot.assert_called_once()

    def test_fetch_routes_single_city(self):
        client = OpenWeatherClient("key")
        with mock.patch.object(OpenWeatherClient, "location_weather", return_value={"success": True}) as lw:
            client.fetch(city_name="Paris")
        lw.assert_called_once_with(city_name="Paris", coordinates=None)


if __name__ == "__main__":
    unittest.main()
