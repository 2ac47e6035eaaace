"""Integration tests for the health and weather forecast routes."""

import unittest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from support import ApiTestCase


class TestHealth(ApiTestCase):
    def test_health_reports_database(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(body["version"], "0.1.0")

    def test_unreachable_store_reports_degraded(self) -> None:
        with patch(
            "sqlalchemy.orm.Session.execute",
            side_effect=OperationalError("SELECT 1", {}, Exception("down")),
        ):
            resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "degraded")
        self.assertEqual(resp.json()["database"], "disconnected")


class TestWeatherForecast(ApiTestCase):
    """GET /weatherforecast is available to any signed-in user."""

    def test_requires_session(self) -> None:
        resp = self.client.get("/weatherforecast")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"message": "Unauthorized"})

    def test_five_days_of_forecasts(self) -> None:
        self.register()
        self.login()
        resp = self.client.get("/weatherforecast")
        self.assertEqual(resp.status_code, 200)
        items = resp.json()
        self.assertEqual(len(items), 5)
        for item in items:
            self.assertEqual(set(item), {"date", "temperatureC", "temperatureF", "summary"})
            self.assertGreaterEqual(item["temperatureC"], -20)
            self.assertLess(item["temperatureC"], 55)
        dates = [item["date"] for item in items]
        self.assertEqual(dates, sorted(dates))
        self.assertGreater(dates[0], self.now.date().isoformat())


class TestApiPrefix(ApiTestCase):
    settings_overrides = {"API_PREFIX": "/api"}

    def test_routes_mount_under_prefix(self) -> None:
        self.assertEqual(self.client.get("/api/users/isauthenticated").status_code, 200)
        self.assertEqual(self.client.get("/users/isauthenticated").status_code, 404)


if __name__ == "__main__":
    unittest.main()
