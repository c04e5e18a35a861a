# medtrack/services/clock.py
from __future__ import annotations

import datetime as dt
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

Clock = Callable[[], dt.datetime]
DateLike = Union[dt.date, dt.datetime, str]

SCHEDULE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def make_clock(timezone: str) -> Clock:
    """
    설정된 타임존의 현재 시각을 tz 없는 datetime(초 단위)으로 돌려주는 시계.
    DB에는 tz 없는 벽시계 시각만 저장하므로 tzinfo를 제거한다.
    """
    tz = ZoneInfo(timezone)

    def now() -> dt.datetime:
        return dt.datetime.now(tz).replace(tzinfo=None, microsecond=0)

    return now


def to_local_naive(value: Union[dt.datetime, str], timezone: str) -> dt.datetime:
    """
    ISO 문자열 또는 datetime을 로컬 naive datetime으로 변환.
    - tz가 있는 값(예: '...Z')은 설정 타임존으로 바꾼 뒤 tzinfo 제거
    - tz가 없는 값은 이미 로컬 시각으로 간주
    """
    if isinstance(value, str):
        value = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
    return value


def to_calendar_date(value: DateLike, timezone: Optional[str] = None) -> dt.date:
    """
    시각 부분을 버리고 달력 날짜만 남긴다.
    tz가 있는 값은 timezone(설정 타임존)으로 바꾼 뒤의 날짜.
    """
    if isinstance(value, str):
        value = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None and timezone:
            value = value.astimezone(ZoneInfo(timezone))
        return value.date()
    return value


def format_schedule_time(value: dt.datetime) -> str:
    return value.strftime(SCHEDULE_TIME_FORMAT)
