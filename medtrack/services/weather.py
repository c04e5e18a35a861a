# medtrack/services/weather.py
"""
날씨 측정값에 대한 판정 유틸
- 데이터 신선도(오래된 측정값인지)
- 고온/고습 경고 문구
- 약 보관 환경 양호 여부
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional, Union

from medtrack.schemas.schema_weather import WeatherSettings, WeatherSnapshot

HIGH_TEMP_THRESHOLD = 30
HIGH_HUMIDITY_THRESHOLD = 80

# 설명 문구에 포함된 키워드 -> 아이콘 (먼저 맞는 것 사용)
# 눈이 비보다 먼저: '진눈깨비'는 눈 아이콘
WEATHER_ICONS = [
    (("clear", "sun", "맑", "晴"), "☀️"),
    (("cloud", "흐림", "구름", "曇"), "☁️"),
    (("snow", "sleet", "눈", "雪"), "❄️"),
    (("rain", "drizzle", "비", "雨"), "🌧️"),
    (("thunder", "뇌우", "천둥", "雷"), "⚡"),
]
DEFAULT_ICON = "🌤️"


def is_weather_data_stale(
    timestamp: Union[dt.datetime, str],
    max_age_hours: float = 24,
    now: Optional[dt.datetime] = None,
) -> bool:
    """
    측정 시각으로부터 max_age_hours 이상 지났으면 True (경계 포함).
    now를 주지 않으면 timestamp와 같은 종류(aware/naive)의 현재 시각을 쓴다.
    """
    if isinstance(timestamp, str):
        timestamp = dt.datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if now is None:
        now = dt.datetime.now(timestamp.tzinfo) if timestamp.tzinfo else dt.datetime.now()

    age_hours = (now - timestamp).total_seconds() / 3600
    return age_hours >= max_age_hours


def _thresholds(settings: Optional[WeatherSettings]):
    if settings is None:
        return HIGH_TEMP_THRESHOLD, HIGH_HUMIDITY_THRESHOLD
    return settings.high_temp_threshold, settings.high_humidity_threshold


def check_weather_alerts(
    weather: WeatherSnapshot,
    settings: Optional[WeatherSettings] = None,
) -> List[str]:
    """기준값 이상(>=)인 항목마다 경고 문구 하나. 0~2개."""
    temp_limit, humidity_limit = _thresholds(settings)
    alerts: List[str] = []

    notify_temp = settings.notify_high_temp if settings else True
    notify_humidity = settings.notify_high_humidity if settings else True

    if notify_temp and weather.temperature >= temp_limit:
        alerts.append(
            f"고온 주의: 현재 {weather.temperature:g}도입니다. 약 보관 장소를 확인해 주세요."
        )
    if notify_humidity and weather.humidity >= humidity_limit:
        alerts.append(
            f"고습 주의: 습도 {weather.humidity:g}%입니다. 약은 밀폐 용기에 보관해 주세요."
        )
    return alerts


def is_storage_environment_good(
    weather: WeatherSnapshot,
    settings: Optional[WeatherSettings] = None,
) -> bool:
    # 경고 알림 on/off와 무관하게 두 값 모두 기준 미만이어야 양호
    temp_limit, humidity_limit = _thresholds(settings)
    return weather.temperature < temp_limit and weather.humidity < humidity_limit


def get_weather_icon(description: str) -> str:
    lowered = description.lower()
    for keywords, icon in WEATHER_ICONS:
        if any(k in lowered for k in keywords):
            return icon
    return DEFAULT_ICON
