from pydantic import BaseModel
from typing import Optional, List


class CurrentWeather(BaseModel):
    temperature: Optional[float] = None
    condition: str
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    humidity: Optional[float] = None
    icon: str


class ForecastDay(BaseModel):
    date: str
    day_name: str
    temperature_max: Optional[int] = None
    temperature_min: Optional[int] = None
    weather_code: Optional[int] = None
    condition: str
    icon: str
    precipitation_sum: float = 0
    precipitation_probability: float = 0
    snowfall_sum: float = 0
    wind_speed_max: Optional[int] = None
    wind_gusts_max: Optional[int] = None
    humidity: Optional[int] = None
    uv_index_max: float = 0


class DailyWeather(BaseModel):
    id: Optional[str] = None
    project_id: str
    date: str
    temperature_max: Optional[float] = None
    temperature_min: Optional[float] = None
    temperature_avg: Optional[float] = None
    weather_code: Optional[int] = None
    condition_text: str
    precipitation_sum: Optional[float] = None
    precipitation_hours: Optional[float] = None
    wind_speed_max: Optional[float] = None
    wind_gusts_max: Optional[float] = None
    wind_direction: Optional[float] = None
    humidity_avg: Optional[float] = None
    cloud_cover_avg: Optional[float] = None
    data_source: str = "open-meteo"
    summary: Optional[str] = None


class WeatherRangeResponse(BaseModel):
    days: List[DailyWeather]
