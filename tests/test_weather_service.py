import datetime as dt
import unittest

import requests

from eventwx import cache_manager, event_config, weather_service
from eventwx.config import settings
from eventwx.data_sources import CallableObservationSource, imagery_client, nws_client
from eventwx.domain import CurrentWeather, EventConfig, GridpointForecast, HourlyPoint

UTC = dt.timezone.utc
NOW = dt.datetime(2026, 2, 8, 18, 5, tzinfo=UTC)

POINT_META = {
    "forecast_hourly": "https://api.weather.gov/gridpoints/MTR/98,82/forecast/hourly",
    "forecast": "https://api.weather.gov/gridpoints/MTR/98,82/forecast",
    "observation_stations": "https://api.weather.gov/gridpoints/MTR/98,82/stations",
    "grid_id": "MTR",
    "grid_x": 98,
    "grid_y": 82,
}

GRID_PROPERTIES = {
    "temperature": {"uom": "wmoUnit:degC", "values": [{"validTime": "2026-02-08T18:00:00+00:00/P2D", "value": 15}]},
    "skyCover": {"values": [{"validTime": "2026-02-08T18:00:00+00:00/P2D", "value": 60}]},
}


class ServiceTestCase(unittest.TestCase):
    def setUp(self):
        self._orig_cache = cache_manager._cache
        cache_manager.use_in_memory_cache_for_tests()
        event_config.set_event_config_for_tests(EventConfig())

        self._orig_point = nws_client.fetch_point_metadata
        self._orig_grid = nws_client.fetch_gridpoint
        self._orig_alerts = nws_client.fetch_active_alerts
        self._orig_caps = imagery_client.fetch_radar_capabilities
        self._orig_sat = imagery_client.fetch_satellite_times
        self._orig_ollama = weather_service.ollama_client
        self._orig_forecast = weather_service.get_gridpoint_forecast
        self._orig_kp_enabled = settings.key_points_enabled

        self.calls = {"point": 0, "grid": 0}

        def fake_point(lat, lon):
            self.calls["point"] += 1
            return dict(POINT_META)

        def fake_grid(grid_id, x, y):
            self.calls["grid"] += 1
            return GRID_PROPERTIES

        nws_client.fetch_point_metadata = fake_point
        nws_client.fetch_gridpoint = fake_grid

    def tearDown(self):
        cache_manager._cache = self._orig_cache
        event_config.set_event_config_for_tests(None)
        nws_client.fetch_point_metadata = self._orig_point
        nws_client.fetch_gridpoint = self._orig_grid
        nws_client.fetch_active_alerts = self._orig_alerts
        imagery_client.fetch_radar_capabilities = self._orig_caps
        imagery_client.fetch_satellite_times = self._orig_sat
        weather_service.ollama_client = self._orig_ollama
        weather_service.get_gridpoint_forecast = self._orig_forecast
        weather_service.use_observation_sources_for_tests(None)
        settings.key_points_enabled = self._orig_kp_enabled


class TestGridpointForecast(ServiceTestCase):
    def test_resamples_and_labels_source(self):
        forecast = weather_service.get_gridpoint_forecast(now=NOW)
        self.assertIsNone(forecast.error)
        self.assertEqual(len(forecast.hours), 24)
        self.assertEqual(forecast.hours[0].time, dt.datetime(2026, 2, 8, 19, tzinfo=UTC))
        self.assertEqual(forecast.hours[0].value("temperature"), 59.0)
        self.assertEqual(forecast.source, "NWS Gridpoint Forecast (MTR 98,82)")
        self.assertEqual(forecast.adverse_thresholds.max_temp, 80)

    def test_raw_gridpoint_is_cached(self):
        weather_service.get_gridpoint_forecast(now=NOW)
        weather_service.get_gridpoint_forecast(now=NOW)
        self.assertEqual(self.calls, {"point": 1, "grid": 1})

    def test_force_refetches(self):
        weather_service.get_gridpoint_forecast(now=NOW)
        weather_service.get_gridpoint_forecast(now=NOW, force=True)
        self.assertEqual(self.calls["grid"], 2)

    def test_failure_returns_error_descriptor_and_is_not_cached(self):
        def boom(grid_id, x, y):
            raise requests.ConnectionError("down")

        nws_client.fetch_gridpoint = boom
        failed = weather_service.get_gridpoint_forecast(now=NOW)
        self.assertIn("down", failed.error)
        self.assertEqual(failed.hours, [])

        nws_client.fetch_gridpoint = lambda grid_id, x, y: GRID_PROPERTIES
        recovered = weather_service.get_gridpoint_forecast(now=NOW)
        self.assertIsNone(recovered.error)
        self.assertEqual(len(recovered.hours), 24)


class TestCurrentWeather(ServiceTestCase):
    def test_falls_back_to_next_source(self):
        def failing(event):
            raise ValueError("No stations found near location")

        def working(event):
            return CurrentWeather(timestamp=NOW, source="NOAA NWS", temperature_f=61.0)

        weather_service.use_observation_sources_for_tests([
            CallableObservationSource(name="synoptic", fetch=failing),
            CallableObservationSource(name="nws", fetch=working),
        ])
        current = weather_service.get_current_weather()
        self.assertEqual(current.source, "NOAA NWS")
        self.assertEqual(current.temperature_f, 61.0)

        # served from cache now
        weather_service.use_observation_sources_for_tests([])
        self.assertEqual(weather_service.get_current_weather().temperature_f, 61.0)

    def test_all_sources_failing(self):
        def failing(event):
            raise requests.Timeout("slow")

        weather_service.use_observation_sources_for_tests([CallableObservationSource(name="nws", fetch=failing)])
        current = weather_service.get_current_weather()
        self.assertEqual(current.error, "Unable to fetch weather data")
        self.assertIsNone(current.temperature_f)


class TestAlerts(ServiceTestCase):
    def test_flags_severe_alerts(self):
        nws_client.fetch_active_alerts = lambda lat, lon: [
            {"properties": {"event": "Wind Advisory", "severity": "Moderate", "headline": "Windy"}},
            {"properties": {"event": "High Wind Warning", "severity": "Severe"}},
        ]
        summary = weather_service.get_alerts()
        self.assertEqual(summary.count, 2)
        self.assertEqual([a.severe for a in summary.alerts], [False, True])

    def test_failure(self):
        def boom(lat, lon):
            raise requests.HTTPError("503")

        nws_client.fetch_active_alerts = boom
        summary = weather_service.get_alerts()
        self.assertEqual(summary.error, "Unable to fetch alert data")
        self.assertEqual(summary.alerts, [])


class TestImagery(ServiceTestCase):
    def test_radar_times(self):
        stamps = ["2026-02-08T17:30:00Z", "2026-02-08T17:50:00Z", "2026-02-08T17:56:00Z", "2026-02-08T18:02:00Z"]
        imagery_client.fetch_radar_capabilities = lambda url: (
            f'<Layer><Dimension name="time" units="ISO8601">{",".join(stamps)}</Dimension></Layer>'
        )
        radar = weather_service.get_radar_times(now=NOW)
        self.assertIsNone(radar.error)
        self.assertEqual(radar.times, stamps[1:])
        self.assertEqual(radar.total_available, 4)
        self.assertEqual(radar.time_count, 3)
        self.assertEqual(radar.layer, settings.radar_layer)

    def test_radar_without_time_dimension(self):
        imagery_client.fetch_radar_capabilities = lambda url: "<Layer></Layer>"
        radar = weather_service.get_radar_times(now=NOW)
        self.assertEqual(radar.error, "Unable to fetch radar times")
        self.assertEqual(radar.times, [])

    def test_satellite_times(self):
        imagery_client.fetch_satellite_times = lambda url, channel: ["20260208.172000", "20260208.175000",
                                                                      "20260208.180000"]
        sat = weather_service.get_satellite_times("G18-ABI-CONUS-BAND13", now=NOW)
        self.assertEqual(sat.channel_name, "Clean IR (10.3um)")
        self.assertEqual(sat.times, ["20260208.175000", "20260208.180000"])

    def test_unknown_satellite_channel(self):
        with self.assertRaises(ValueError):
            weather_service.get_satellite_times("G16-NOPE")


class FakeOllama:
    model = "fake-model"

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.messages = None

    def chat(self, messages):
        self.messages = messages
        if self.error:
            raise self.error
        return self.content


class TestKeyPoints(ServiceTestCase):
    def setUp(self):
        super().setUp()
        settings.key_points_enabled = True
        hours = [HourlyPoint(time=NOW, values={"temperature": 60.0})]
        weather_service.get_gridpoint_forecast = lambda **kwargs: GridpointForecast(timestamp=NOW, hours=hours)

    def test_generates_bullets(self):
        fake = FakeOllama(content='["Mild", "Dry", "Light wind", "Cloudy"]')
        weather_service.ollama_client = fake
        kp = weather_service.get_key_points()
        self.assertEqual(kp.bullets, ["Mild", "Dry", "Light wind", "Cloudy"])
        self.assertEqual(kp.model, "fake-model")
        self.assertIn("Super Bowl LX", fake.messages[0]["content"])

    def test_llm_failure(self):
        weather_service.ollama_client = FakeOllama(error=RuntimeError("status 500"))
        kp = weather_service.get_key_points()
        self.assertIn("status 500", kp.error)
        self.assertEqual(kp.bullets, [])

    def test_no_forecast(self):
        weather_service.get_gridpoint_forecast = lambda **kwargs: GridpointForecast.failed("down")
        weather_service.ollama_client = FakeOllama(content="[]")
        kp = weather_service.get_key_points()
        self.assertEqual(kp.error, "No forecast data available for key points")

    def test_disabled(self):
        settings.key_points_enabled = False
        kp = weather_service.get_key_points()
        self.assertIsNotNone(kp.error)
        self.assertEqual(kp.bullets, [])


if __name__ == "__main__":
    unittest.main()
