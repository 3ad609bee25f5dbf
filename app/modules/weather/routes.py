from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.weather.client import WeatherClient
from app.modules.weather.schemas import CurrentWeather, ForecastDay, DailyWeather, WeatherRangeResponse
from app.modules.weather.service import WeatherService
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/projects/{project_id}/weather", tags=["weather"])


def get_weather_client():
    client = WeatherClient()
    try:
        yield client
    finally:
        client.close()


def get_weather_service(
    supabase: Client = Depends(get_supabase),
    client: WeatherClient = Depends(get_weather_client)
) -> WeatherService:
    return WeatherService(supabase, client)


@router.get("/current", response_model=CurrentWeather)
async def get_current_weather(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: WeatherService = Depends(get_weather_service)
):
    return service.get_current(project_id)


@router.get("/forecast", response_model=List[ForecastDay])
async def get_weather_forecast(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: WeatherService = Depends(get_weather_service)
):
    return service.get_forecast(project_id)


@router.get("/daily", response_model=DailyWeather)
async def get_daily_weather(
    project_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    user_data: Dict = Depends(require_project_access("member")),
    service: WeatherService = Depends(get_weather_service)
):
    return service.get_daily(project_id, date)


@router.get("/range", response_model=WeatherRangeResponse)
async def get_weather_range(
    project_id: str,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    user_data: Dict = Depends(require_project_access("member")),
    service: WeatherService = Depends(get_weather_service)
):
    return service.get_range(project_id, start, end)
