import json
import os
import tempfile
import time
import unittest
from unittest import mock

from tstats.cache_store import CacheKind, CacheStore
from tstats.data_sources.ip_api_client import GeolocationResolver
from tstats.data_sources.open_meteo_client import OPEN_METEO_WEATHER_URL, WeatherResolver
from tstats.data_sources.public_ip import PublicIPResolver
from tstats.errors import GeolocationError, NetworkError, WeatherError
from tstats.pipeline import PipelineState, WeatherPipeline

from fakes import DummyResp, FakeSession, geo_payload, weather_payload

IP_URL = "https://api.ipify.org"
GEO_URL = "http://ip-api.com/json"


class TestWeatherPipeline(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache = CacheStore(self._tmp.name, ttl_seconds=3600)
        self.events = []

    def tearDown(self):
        self._tmp.cleanup()

    def _pipeline(self, fake):
        pipeline = WeatherPipeline(
            self.cache,
            PublicIPResolver(IP_URL, http_session=fake),
            GeolocationResolver(self.cache, GEO_URL, http_session=fake),
            WeatherResolver(self.cache, OPEN_METEO_WEATHER_URL, http_session=fake),
        )
        pipeline.subscribe(self.events.append)
        return pipeline

    def _states(self):
        return [e.state for e in self.events]

    def _fresh_session(self, geo=None):
        return FakeSession({
            IP_URL: DummyResp("203.0.113.5"),
            GEO_URL: DummyResp(geo or geo_payload()),
            OPEN_METEO_WEATHER_URL: DummyResp(weather_payload(temperature=21.3, code=2)),
        })

    def test_fresh_run_fetches_everything_and_fills_cache(self):
        fake = self._fresh_session()

        result = self._pipeline(fake).run()

        self.assertEqual(result.geolocation.city, "Testville")
        self.assertEqual(result.weather.temperature, 21.3)
        self.assertFalse(result.from_cache)
        self.assertEqual(
            self._states(),
            [
                PipelineState.CHECKING_CACHE,
                PipelineState.FETCHING_IP,
                PipelineState.FETCHING_GEO,
                PipelineState.FETCHING_WEATHER,
                PipelineState.DONE,
            ],
        )
        done = self.events[-1]
        self.assertEqual(done.city, "Testville")
        self.assertEqual(done.temperature, 21.3)
        self.assertEqual(done.temperature_unit, "°C")
        self.assertTrue(self.cache.path_for(CacheKind.GEOLOCATION).exists())
        self.assertTrue(self.cache.path_for(CacheKind.WEATHER).exists())
        self.assertEqual(fake.urls()[1], f"{GEO_URL}/203.0.113.5")
        self.assertEqual(fake.calls[2][1]["latitude"], 10.0)
        self.assertEqual(fake.calls[2][1]["longitude"], 20.0)

    def test_second_run_is_served_from_cache(self):
        self._pipeline(self._fresh_session()).run()
        self.events.clear()
        fake = FakeSession()

        result = self._pipeline(fake).run()

        self.assertTrue(result.from_cache)
        self.assertEqual(fake.calls, [])
        self.assertEqual(self._states(), [PipelineState.CHECKING_CACHE, PipelineState.DONE])

    def test_cached_geolocation_skips_ip_and_geo_lookups(self):
        self.cache.write(CacheKind.GEOLOCATION, json.dumps(geo_payload(city="Elsewhere", lat=48.1, lon=11.6)).encode())
        fake = FakeSession({OPEN_METEO_WEATHER_URL: DummyResp(weather_payload(lat=48.1, lon=11.6))})

        result = self._pipeline(fake).run()

        self.assertEqual(result.geolocation.city, "Elsewhere")
        self.assertEqual(fake.urls(), [OPEN_METEO_WEATHER_URL])
        self.assertEqual(fake.calls[0][1]["latitude"], 48.1)
        self.assertEqual(fake.calls[0][1]["longitude"], 11.6)
        self.assertEqual(
            self._states(),
            [PipelineState.CHECKING_CACHE, PipelineState.FETCHING_WEATHER, PipelineState.DONE],
        )

    def test_stale_weather_is_not_paired_with_new_geolocation(self):
        # weather left behind while the geolocation entry is gone
        self.cache.write(CacheKind.WEATHER, json.dumps(weather_payload(temperature=-5.0)).encode())
        fake = self._fresh_session()

        result = self._pipeline(fake).run()

        self.assertEqual(result.weather.temperature, 21.3)
        self.assertIn(OPEN_METEO_WEATHER_URL, fake.urls())

    def test_failed_weather_after_new_geolocation_leaves_no_mixed_cache(self):
        # old location expired, its weather still fresh
        self.cache.write(CacheKind.GEOLOCATION, json.dumps(geo_payload(city="Oldtown", lat=1.0, lon=1.0)).encode())
        stamp = time.time() - 7200
        os.utime(self.cache.path_for(CacheKind.GEOLOCATION), (stamp, stamp))
        self.cache.write(CacheKind.WEATHER, json.dumps(weather_payload(lat=1.0, lon=1.0, temperature=-40.0)).encode())

        fake = FakeSession({
            IP_URL: DummyResp("203.0.113.5"),
            GEO_URL: DummyResp(geo_payload(city="Newtown", lat=50.0, lon=50.0)),
            OPEN_METEO_WEATHER_URL: DummyResp("unavailable", status_code=503),
        })
        with self.assertRaises(WeatherError):
            self._pipeline(fake).run()

        self.assertIsNotNone(self.cache.read(CacheKind.GEOLOCATION))
        self.assertIsNone(self.cache.read(CacheKind.WEATHER))

        # next run fetches weather for the new coordinates instead of reusing -40.0
        self.events.clear()
        retry = FakeSession({OPEN_METEO_WEATHER_URL: DummyResp(weather_payload(lat=50.0, lon=50.0, temperature=12.0))})
        result = self._pipeline(retry).run()
        self.assertEqual(result.geolocation.city, "Newtown")
        self.assertEqual((result.weather.latitude, result.weather.longitude), (50.0, 50.0))
        self.assertEqual(result.weather.temperature, 12.0)
        self.assertFalse(result.from_cache)

    def test_clear_failure_emits_failed_event(self):
        fake = FakeSession()
        pipeline = self._pipeline(fake)
        with mock.patch.object(self.cache, "clear", side_effect=PermissionError("read-only")):
            with self.assertRaises(PermissionError):
                pipeline.run(force_refresh=True)

        self.assertEqual(self._states(), [PipelineState.FAILED])
        self.assertEqual(self.events[-1].error_kind, "cache")
        self.assertEqual(fake.calls, [])

    def test_force_refresh_clears_cache_before_any_lookup(self):
        self._pipeline(self._fresh_session()).run()
        self.events.clear()

        seen = []

        class CheckingSession(FakeSession):
            def get(inner, url, params=None, timeout=None):
                if url.startswith(IP_URL):
                    seen.append(
                        (
                            self.cache.path_for(CacheKind.GEOLOCATION).exists(),
                            self.cache.path_for(CacheKind.WEATHER).exists(),
                        )
                    )
                return FakeSession.get(inner, url, params=params, timeout=timeout)

        fake = CheckingSession({
            IP_URL: DummyResp("203.0.113.5"),
            GEO_URL: DummyResp(geo_payload(city="Refreshed")),
            OPEN_METEO_WEATHER_URL: DummyResp(weather_payload()),
        })

        result = self._pipeline(fake).run(force_refresh=True)

        self.assertEqual(seen, [(False, False)])
        self.assertFalse(result.from_cache)
        self.assertEqual(result.geolocation.city, "Refreshed")
        self.assertEqual(len(fake.calls), 3)

    def test_geolocation_failure_aborts_before_weather(self):
        fake = self._fresh_session(geo={"status": "fail", "message": "invalid query", "query": "203.0.113.5"})

        with self.assertRaises(GeolocationError):
            self._pipeline(fake).run()

        self.assertNotIn(OPEN_METEO_WEATHER_URL, fake.urls())
        self.assertEqual(self._states()[-1], PipelineState.FAILED)
        self.assertEqual(self.events[-1].error_kind, "geolocation")
        self.assertIsNone(self.cache.read(CacheKind.GEOLOCATION))

        # the next run must go back to the network
        self.events.clear()
        retry = self._fresh_session()
        self._pipeline(retry).run()
        self.assertEqual(retry.urls()[0], IP_URL)

    def test_ip_failure_emits_failed_and_raises(self):
        fake = FakeSession({IP_URL: DummyResp("", status_code=502)})

        with self.assertRaises(NetworkError):
            self._pipeline(fake).run()

        self.assertEqual(
            self._states(),
            [PipelineState.CHECKING_CACHE, PipelineState.FETCHING_IP, PipelineState.FAILED],
        )
        self.assertEqual(self.events[-1].error_kind, "network")

    def test_every_event_has_a_label(self):
        self._pipeline(self._fresh_session()).run()
        self.assertTrue(all(e.label for e in self.events))
        self.assertEqual(sum(1 for e in self.events if e.state.terminal), 1)


if __name__ == "__main__":
    unittest.main()
