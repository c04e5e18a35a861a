# medtrack/schemas/schema_weather.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WeatherSnapshot(BaseModel):
    """외부 날씨 소스에서 받아온 측정값 한 건"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    temperature: float
    humidity: float
    description: str = ""
    measured_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class WeatherSettings(BaseModel):
    enabled: bool = False
    high_temp_threshold: float = 30
    high_humidity_threshold: float = 80
    notify_high_temp: bool = True
    notify_high_humidity: bool = True
    last_fetched_at: Optional[datetime] = None


class PatchWeatherSettings(BaseModel):
    enabled: Optional[bool] = None
    high_temp_threshold: Optional[float] = Field(default=None, gt=0)
    high_humidity_threshold: Optional[float] = Field(default=None, ge=0, le=100)
    notify_high_temp: Optional[bool] = None
    notify_high_humidity: Optional[bool] = None
    last_fetched_at: Optional[datetime] = None


class ResponseWeather(BaseModel):
    weather: Optional[WeatherSnapshot]
    stale: bool
    alerts: List[str]
    storage_ok: Optional[bool]
    icon: Optional[str]
