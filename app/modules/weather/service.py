import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional, Tuple

from app.modules.analytics.calculations import parse_iso_date, round_half_up
from app.modules.piles.status import to_number
from app.modules.weather.client import (
    WeatherClient, WeatherAPIError, get_condition_text, get_weather_icon, day_name
)
from app.modules.weather.schemas import CurrentWeather, ForecastDay, DailyWeather, WeatherRangeResponse

logger = logging.getLogger(__name__)

# weather_data column -> Open-Meteo daily field
DAILY_COLUMNS = {
    "temperature_max": "temperature_2m_max",
    "temperature_min": "temperature_2m_min",
    "temperature_avg": "temperature_2m_mean",
    "weather_code": "weather_code",
    "precipitation_sum": "precipitation_sum",
    "precipitation_hours": "precipitation_hours",
    "wind_speed_max": "wind_speed_10m_max",
    "wind_gusts_max": "wind_gusts_10m_max",
    "wind_direction": "wind_direction_10m_dominant",
    "humidity_avg": "relative_humidity_2m_mean",
    "cloud_cover_avg": "cloud_cover_mean",
}
MAX_RANGE_DAYS = 366


def _at(values: Optional[List[Any]], index: int) -> Any:
    if not values or index >= len(values):
        return None
    return values[index]


def _rounded(value: Any) -> Optional[int]:
    number = to_number(value)
    return round_half_up(number) if number is not None else None


def daily_rows(project_id: str, daily: Dict[str, List[Any]]) -> List[Dict[str, Any]]:
    """weather_data rows from an Open-Meteo daily block"""
    rows = []
    for index, day in enumerate(daily.get("time") or []):
        row = {"project_id": project_id, "date": day}
        for column, field in DAILY_COLUMNS.items():
            row[column] = _at(daily.get(field), index)
        row["condition_text"] = get_condition_text(row["weather_code"])
        row["data_source"] = "open-meteo"
        rows.append(row)
    return rows


def weather_summary(row: Optional[Dict[str, Any]]) -> str:
    """One-line display text, e.g. '⛅ 72°F Partly cloudy • 0.10" rain'"""
    if not row:
        return "No weather data"
    temperature = _rounded(row.get("temperature_avg"))
    text = f"{get_weather_icon(row.get('weather_code'))} {temperature if temperature is not None else '--'}°F {row.get('condition_text') or 'Unknown'}"
    precipitation = to_number(row.get("precipitation_sum")) or 0
    if precipitation > 0:
        text += f' • {precipitation:.2f}" rain'
    return text


class WeatherService:
    def __init__(self, supabase: Client, client: WeatherClient):
        self.supabase = supabase
        self.client = client

    def _get_project(self, project_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("projects")\
                .select("id, project_location, location_lat, location_lng")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return result.data[0]

    def resolve_location(self, project_id: str) -> Tuple[float, float]:
        """Stored coordinates, else the geocoded project location"""
        project = self._get_project(project_id)
        lat = to_number(project.get("location_lat"))
        lng = to_number(project.get("location_lng"))
        if lat and lng:
            return lat, lng
        address = (project.get("project_location") or "").strip()
        if address:
            location = self.client.geocode(address)
            if location:
                return location["lat"], location["lng"]
        raise HTTPException(status_code=400, detail="Project location is not configured")

    def get_current(self, project_id: str) -> CurrentWeather:
        lat, lng = self.resolve_location(project_id)
        try:
            current = self.client.fetch_current(lat, lng)
        except WeatherAPIError:
            raise HTTPException(status_code=502, detail="Weather service unavailable")
        code = current.get("weather_code")
        return CurrentWeather(
            temperature=current.get("temperature_2m"),
            condition=get_condition_text(code),
            precipitation=current.get("precipitation"),
            wind_speed=current.get("wind_speed_10m"),
            humidity=current.get("relative_humidity_2m"),
            icon=get_weather_icon(code)
        )

    def get_forecast(self, project_id: str) -> List[ForecastDay]:
        """7-day forecast"""
        lat, lng = self.resolve_location(project_id)
        try:
            daily = self.client.fetch_forecast(lat, lng)
        except WeatherAPIError:
            raise HTTPException(status_code=502, detail="Weather service unavailable")

        days = []
        for index, day in enumerate(daily["time"]):
            code = _at(daily.get("weather_code"), index)
            days.append(ForecastDay(
                date=day,
                day_name=day_name(day),
                temperature_max=_rounded(_at(daily.get("temperature_2m_max"), index)),
                temperature_min=_rounded(_at(daily.get("temperature_2m_min"), index)),
                weather_code=code,
                condition=get_condition_text(code),
                icon=get_weather_icon(code),
                precipitation_sum=_at(daily.get("precipitation_sum"), index) or 0,
                precipitation_probability=_at(daily.get("precipitation_probability_max"), index) or 0,
                snowfall_sum=_at(daily.get("snowfall_sum"), index) or 0,
                wind_speed_max=_rounded(_at(daily.get("wind_speed_10m_max"), index)),
                wind_gusts_max=_rounded(_at(daily.get("wind_gusts_10m_max"), index)),
                humidity=_rounded(_at(daily.get("relative_humidity_2m_mean"), index)),
                uv_index_max=_at(daily.get("uv_index_max"), index) or 0
            ))
        return days

    def _cached_day(self, project_id: str, day: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("weather_data")\
                .select("*")\
                .eq("project_id", project_id)\
                .eq("date", day)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error reading weather cache for project {project_id} on {day}: {e}")
            return None

    def get_daily(self, project_id: str, day: str) -> DailyWeather:
        """Weather for one day, served from weather_data when cached"""
        if parse_iso_date(day) is None:
            raise HTTPException(status_code=400, detail="Date must be YYYY-MM-DD")

        cached = self._cached_day(project_id, day)
        if cached:
            return DailyWeather(**{**cached, "date": str(cached["date"])[:10]}, summary=weather_summary(cached))

        lat, lng = self.resolve_location(project_id)
        try:
            rows = daily_rows(project_id, self.client.fetch_daily(lat, lng, day, day))
        except WeatherAPIError:
            raise HTTPException(status_code=502, detail="Weather service unavailable")
        if not rows:
            raise HTTPException(status_code=404, detail="No weather data for this date")

        row = rows[0]
        try:
            result = self.supabase.table("weather_data").insert(row).execute()
            if result.data:
                row = result.data[0]
        except Exception as e:
            logger.error(f"Error caching weather data for project {project_id} on {day}: {e}")
        return DailyWeather(**{**row, "date": str(row["date"])[:10]}, summary=weather_summary(row))

    def get_range(self, project_id: str, start_date: str, end_date: str) -> WeatherRangeResponse:
        """Daily weather for an inclusive date range; every day is upserted into the cache"""
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        if start is None or end is None:
            raise HTTPException(status_code=400, detail="Dates must be YYYY-MM-DD")
        if end < start:
            raise HTTPException(status_code=400, detail="End date must not be before start date")
        if (end - start).days >= MAX_RANGE_DAYS:
            raise HTTPException(status_code=400, detail=f"Date range is limited to {MAX_RANGE_DAYS} days")

        lat, lng = self.resolve_location(project_id)
        try:
            rows = daily_rows(project_id, self.client.fetch_daily(lat, lng, start.isoformat(), end.isoformat()))
        except WeatherAPIError:
            raise HTTPException(status_code=502, detail="Weather service unavailable")

        if rows:
            try:
                self.supabase.table("weather_data")\
                    .upsert(rows, on_conflict="project_id,date")\
                    .execute()
            except Exception as e:
                logger.error(f"Error caching weather range for project {project_id}: {e}")
        return WeatherRangeResponse(days=[DailyWeather(**row, summary=weather_summary(row)) for row in rows])
