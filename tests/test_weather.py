# =============================================================================
# tests/test_weather.py - Weather Endpoint Tests
# =============================================================================
# Open-Meteo and Nominatim are replaced by an httpx.MockTransport so requests
# can be inspected and responses scripted per host.
# =============================================================================

import httpx
import pytest

from app.main import app
from app.modules.weather.client import WeatherClient, get_condition_text, get_weather_icon
from app.modules.weather.routes import get_weather_client
from app.modules.weather.service import weather_summary

DAILY = {
    "time": ["2026-03-01", "2026-03-02"],
    "temperature_2m_max": [80.2, 78.0],
    "temperature_2m_min": [60.1, 58.0],
    "temperature_2m_mean": [70.4, 68.0],
    "weather_code": [2, 61],
    "precipitation_sum": [0.0, 0.35],
    "precipitation_hours": [0, 4],
    "wind_speed_10m_max": [12.3, 15.0],
    "wind_gusts_10m_max": [20.0, 25.5],
    "wind_direction_10m_dominant": [180, 200],
    "relative_humidity_2m_mean": [55, 80],
    "cloud_cover_mean": [40, 95],
}


class FakeWeatherAPI:
    def __init__(self):
        self.requests = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"error": True})
        host = request.url.host
        params = request.url.params
        if host == "nominatim.openstreetmap.org":
            return httpx.Response(200, json=[{"lat": "30.2672", "lon": "-97.7431"}])
        if "current" in params:
            return httpx.Response(200, json={"current": {
                "temperature_2m": 71.6, "relative_humidity_2m": 40, "precipitation": 0,
                "weather_code": 0, "wind_speed_10m": 5.2
            }})
        if "forecast_days" in params:
            return httpx.Response(200, json={"daily": {
                "time": ["2026-03-02"],
                "temperature_2m_max": [79.5],
                "temperature_2m_min": [58.4],
                "weather_code": [95],
                "precipitation_sum": [0.5],
                "precipitation_probability_max": [70],
                "relative_humidity_2m_mean": [66.5],
            }})
        start = params["start_date"]
        end = params["end_date"]
        days = [i for i, day in enumerate(DAILY["time"]) if start <= day <= end]
        return httpx.Response(200, json={"daily": {k: [v[i] for i in days] for k, v in DAILY.items()}})


@pytest.fixture
def weather_api(client):
    api = FakeWeatherAPI()

    def override():
        weather = WeatherClient(httpx.Client(transport=httpx.MockTransport(api)))
        try:
            yield weather
        finally:
            weather.close()

    app.dependency_overrides[get_weather_client] = override
    return api


def _url(project, suffix):
    return f"/api/projects/{project['id']}/weather{suffix}"


def test_condition_text_and_icons():
    assert get_condition_text(63) == "Moderate rain"
    assert get_condition_text(42) == "Unknown"
    assert get_weather_icon(0) == "☀️"
    assert get_weather_icon(96) == "⛈️"
    assert get_weather_icon(None) == get_weather_icon(999)


def test_summary_line():
    row = {"temperature_avg": 71.5, "weather_code": 2, "condition_text": "Partly cloudy", "precipitation_sum": 0.1}
    assert weather_summary(row) == '⛅ 72°F Partly cloudy • 0.10" rain'
    assert weather_summary(None) == "No weather data"


class TestCurrentAndForecast:
    def test_current_geocodes_project_location(self, client, project, weather_api, auth_headers):
        response = client.get(_url(project, "/current"), headers=auth_headers())
        assert response.status_code == 200
        assert response.json()["condition"] == "Clear sky"

        geocode, weather = weather_api.requests
        assert geocode.url.params["q"] == "Austin, TX"
        assert geocode.headers["User-Agent"] == "PileTrackerPro Weather Integration"
        assert weather.url.params["latitude"] == "30.2672"
        assert weather.url.params["temperature_unit"] == "fahrenheit"

    def test_stored_coordinates_skip_geocoding(self, client, fake_db, project, weather_api, auth_headers):
        fake_db.rows("projects")[0].update({"location_lat": 31.0, "location_lng": -98.0})
        client.get(_url(project, "/current"), headers=auth_headers())
        assert [r.url.host for r in weather_api.requests] == ["api.open-meteo.com"]

    def test_forecast(self, client, project, weather_api, auth_headers):
        days = client.get(_url(project, "/forecast"), headers=auth_headers()).json()
        assert days[0]["day_name"] == "Mon"
        assert days[0]["temperature_max"] == 80
        assert days[0]["humidity"] == 67
        assert days[0]["condition"] == "Thunderstorm"
        assert days[0]["snowfall_sum"] == 0

    def test_upstream_failure(self, client, project, weather_api, auth_headers):
        weather_api.fail = True
        # geocoding fails too, so the location cannot be resolved
        assert client.get(_url(project, "/current"), headers=auth_headers()).status_code == 400

    def test_upstream_failure_with_coordinates(self, client, fake_db, project, weather_api, auth_headers):
        fake_db.rows("projects")[0].update({"location_lat": 31.0, "location_lng": -98.0})
        weather_api.fail = True
        assert client.get(_url(project, "/forecast"), headers=auth_headers()).status_code == 502

    def test_missing_location(self, client, fake_db, project, weather_api, auth_headers):
        fake_db.rows("projects")[0]["project_location"] = ""
        response = client.get(_url(project, "/current"), headers=auth_headers())
        assert response.status_code == 400
        assert weather_api.requests == []


class TestDailyCache:
    def test_fetches_from_archive_then_caches(self, client, fake_db, project, weather_api, auth_headers):
        fake_db.rows("projects")[0].update({"location_lat": 30.27, "location_lng": -97.74})
        headers = auth_headers()
        first = client.get(_url(project, "/daily"), params={"date": "2026-03-02"}, headers=headers).json()
        assert first["condition_text"] == "Slight rain"
        assert first["summary"].endswith('0.35" rain')
        assert weather_api.requests[0].url.host == "archive-api.open-meteo.com"

        client.get(_url(project, "/daily"), params={"date": "2026-03-02"}, headers=headers)
        assert len(weather_api.requests) == 1
        assert len(fake_db.rows("weather_data")) == 1

    def test_invalid_date(self, client, project, weather_api, auth_headers):
        response = client.get(_url(project, "/daily"), params={"date": "03/02/2026"}, headers=auth_headers())
        assert response.status_code == 400


class TestRange:
    def test_range_upserts_each_day(self, client, fake_db, project, weather_api, auth_headers):
        fake_db.rows("projects")[0].update({"location_lat": 30.27, "location_lng": -97.74})
        params = {"start": "2026-03-01", "end": "2026-03-02"}
        headers = auth_headers()
        body = client.get(_url(project, "/range"), params=params, headers=headers).json()
        assert [d["date"] for d in body["days"]] == ["2026-03-01", "2026-03-02"]

        client.get(_url(project, "/range"), params=params, headers=headers)
        assert len(fake_db.rows("weather_data")) == 2

    @pytest.mark.parametrize("start,end", [
        ("2026-03-02", "2026-03-01"),
        ("2025-01-01", "2026-03-01"),
        ("yesterday", "2026-03-01"),
    ])
    def test_invalid_ranges(self, client, project, weather_api, auth_headers, start, end):
        response = client.get(_url(project, "/range"), params={"start": start, "end": end}, headers=auth_headers())
        assert response.status_code == 400
