# medtrack/routers/weather.py
from fastapi import APIRouter, Depends, Request

from medtrack.db.store import MedicationStore
from medtrack.routers.dependencies import get_store
from medtrack.schemas.schema_medication import ResponseCreated
from medtrack.schemas.schema_weather import (
    PatchWeatherSettings,
    ResponseWeather,
    WeatherSettings,
    WeatherSnapshot,
)
from medtrack.services.weather import (
    check_weather_alerts,
    get_weather_icon,
    is_storage_environment_good,
    is_weather_data_stale,
)

router = APIRouter(prefix="/weather", tags=["weather"])


@router.post("", response_model=ResponseCreated, status_code=201)
def save_weather(body: WeatherSnapshot, store: MedicationStore = Depends(get_store)):
    weather_id = store.save_weather_data(body)
    store.save_weather_settings(PatchWeatherSettings(last_fetched_at=store.clock()))
    return ResponseCreated(id=weather_id)


@router.get("/latest", response_model=ResponseWeather)
def get_latest_weather(request: Request, store: MedicationStore = Depends(get_store)):
    """
    가장 최근 측정값과 판정 결과.
    측정값이 없으면 stale=true, alerts=[] 로 응답 (다시 받아와야 함).
    """
    weather = store.get_latest_weather_data()
    if weather is None:
        return ResponseWeather(weather=None, stale=True, alerts=[], storage_ok=None, icon=None)

    settings = store.get_weather_settings()
    max_age = request.app.state.settings.weather_stale_hours
    return ResponseWeather(
        weather=weather,
        stale=is_weather_data_stale(weather.measured_at, max_age, now=store.clock()),
        alerts=check_weather_alerts(weather, settings),
        storage_ok=is_storage_environment_good(weather, settings),
        icon=get_weather_icon(weather.description),
    )


@router.get("/settings", response_model=WeatherSettings)
def get_weather_settings(store: MedicationStore = Depends(get_store)):
    return store.get_weather_settings()


@router.patch("/settings", response_model=WeatherSettings)
def patch_weather_settings(
    body: PatchWeatherSettings,
    store: MedicationStore = Depends(get_store),
):
    return store.save_weather_settings(body)
