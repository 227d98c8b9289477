import threading
import unittest

from eventwx import refresh
from eventwx.config import Settings
from eventwx.refresh import RefreshJob, default_jobs, refresh_loop, start_refresh_tasks


class TestRefresh(unittest.TestCase):
    def test_default_jobs_use_configured_intervals(self):
        jobs = default_jobs(Settings(refresh_alerts_seconds=45))
        by_name = {job.name: job.interval_seconds for job in jobs}
        self.assertEqual(set(by_name), {"weather", "forecast", "alerts", "radar", "satellite"})
        self.assertEqual(by_name["alerts"], 45)
        self.assertEqual(by_name["forecast"], 1800)

    def test_default_jobs_force_refresh(self):
        seen = []
        orig = refresh.weather_service.get_alerts
        try:
            refresh.weather_service.get_alerts = lambda force=False: seen.append(force)
            alerts_job = next(j for j in default_jobs(Settings()) if j.name == "alerts")
            alerts_job.run()
        finally:
            refresh.weather_service.get_alerts = orig
        self.assertEqual(seen, [True])

    def test_failing_job_is_logged_and_loop_continues(self):
        stop = threading.Event()
        calls = []

        def run():
            calls.append(1)
            if len(calls) >= 2:
                stop.set()
            raise RuntimeError("boom")

        with self.assertLogs("eventwx.refresh", level="ERROR"):
            refresh_loop(RefreshJob("flaky", 0, run), stop)
        self.assertEqual(len(calls), 2)

    def test_start_and_stop_threads(self):
        ran = threading.Event()
        stop, threads = start_refresh_tasks([RefreshJob("heartbeat", 60, ran.set)])
        try:
            self.assertTrue(ran.wait(timeout=5))
            self.assertEqual([t.name for t in threads], ["refresh-heartbeat"])
            self.assertTrue(all(t.daemon for t in threads))
        finally:
            stop.set()
            for t in threads:
                t.join(timeout=5)
        self.assertFalse(any(t.is_alive() for t in threads))


if __name__ == "__main__":
    unittest.main()
