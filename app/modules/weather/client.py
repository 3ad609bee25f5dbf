"""
Open-Meteo (weather) and Nominatim (geocoding) over httpx. Both are free and keyless.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

from app.config.settings import settings

logger = logging.getLogger(__name__)

WEATHER_CONDITIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

# (first code, last code, icon)
WEATHER_ICONS = [
    (0, 0, "☀️"),
    (1, 1, "\U0001f324️"),
    (2, 2, "⛅"),
    (3, 3, "☁️"),
    (45, 48, "\U0001f32b️"),
    (51, 67, "\U0001f327️"),
    (71, 77, "❄️"),
    (80, 82, "\U0001f327️"),
    (85, 86, "\U0001f328️"),
    (95, 99, "⛈️"),
]
DEFAULT_ICON = "\U0001f321️"

DAILY_FIELDS = [
    "temperature_2m_max", "temperature_2m_min", "temperature_2m_mean", "weather_code",
    "precipitation_sum", "precipitation_hours", "wind_speed_10m_max", "wind_gusts_10m_max",
    "wind_direction_10m_dominant", "relative_humidity_2m_mean", "cloud_cover_mean",
]
FORECAST_FIELDS = [
    "temperature_2m_max", "temperature_2m_min", "weather_code", "precipitation_sum",
    "precipitation_probability_max", "snowfall_sum", "wind_speed_10m_max", "wind_gusts_10m_max",
    "relative_humidity_2m_mean", "uv_index_max",
]
CURRENT_FIELDS = ["temperature_2m", "relative_humidity_2m", "precipitation", "weather_code", "wind_speed_10m"]
US_UNITS = {
    "temperature_unit": "fahrenheit",
    "wind_speed_unit": "mph",
    "precipitation_unit": "inch",
    "timezone": "auto",
}
GEOCODER_USER_AGENT = "PileTrackerPro Weather Integration"


class WeatherAPIError(Exception):
    pass


def get_condition_text(code: Optional[int]) -> str:
    return WEATHER_CONDITIONS.get(code, "Unknown")


def get_weather_icon(code: Optional[int]) -> str:
    if code is None:
        return DEFAULT_ICON
    for first, last, icon in WEATHER_ICONS:
        if first <= code <= last:
            return icon
    return DEFAULT_ICON


class WeatherClient:
    def __init__(self, http: Optional[httpx.Client] = None):
        self.http = http or httpx.Client(timeout=settings.http_timeout_seconds)

    def close(self):
        self.http.close()

    def _get_json(self, url: str, params: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = self.http.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Weather request to {url} failed: {e}")
            raise WeatherAPIError(str(e)) from e

    def fetch_current(self, lat: float, lng: float) -> Dict[str, Any]:
        data = self._get_json(settings.open_meteo_forecast_url, {
            "latitude": lat,
            "longitude": lng,
            "current": ",".join(CURRENT_FIELDS),
            **US_UNITS
        })
        if not data.get("current"):
            raise WeatherAPIError("No current weather data available")
        return data["current"]

    def fetch_forecast(self, lat: float, lng: float, days: int = 7) -> Dict[str, List[Any]]:
        data = self._get_json(settings.open_meteo_forecast_url, {
            "latitude": lat,
            "longitude": lng,
            "daily": ",".join(FORECAST_FIELDS),
            "forecast_days": days,
            **US_UNITS
        })
        daily = data.get("daily") or {}
        if not daily.get("time"):
            raise WeatherAPIError("No forecast data available")
        return daily

    def fetch_daily(self, lat: float, lng: float, start_date: str, end_date: str) -> Dict[str, List[Any]]:
        """Daily aggregates; dates before today come from the archive API"""
        historical = start_date < date.today().isoformat()
        url = settings.open_meteo_archive_url if historical else settings.open_meteo_forecast_url
        data = self._get_json(url, {
            "latitude": lat,
            "longitude": lng,
            "start_date": start_date,
            "end_date": end_date,
            "daily": ",".join(DAILY_FIELDS),
            **US_UNITS
        })
        return data.get("daily") or {}

    def geocode(self, address: str) -> Optional[Dict[str, float]]:
        """{lat, lng} for a free-text address, or None when nothing matches or the lookup fails"""
        try:
            results = self._get_json(
                settings.nominatim_url,
                {"q": address, "format": "json", "limit": 1},
                headers={"User-Agent": GEOCODER_USER_AGENT}
            )
        except WeatherAPIError:
            return None
        if not results:
            return None
        try:
            return {"lat": float(results[0]["lat"]), "lng": float(results[0]["lon"])}
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected geocoding response for '{address}': {e}")
            return None


def day_name(iso_date: str) -> str:
    return datetime.strptime(iso_date, "%Y-%m-%d").strftime("%a")
