# medtrack/services/adherence.py
from __future__ import annotations

import datetime as dt
import logging
import math
from typing import List, Protocol, Sequence, Union

from medtrack.schemas.schema_record import ResponseMedicationRecord
from medtrack.schemas.schema_schedule import AdherenceSummary

logger = logging.getLogger(__name__)

TimeLike = Union[dt.datetime, str]

# "전체 기간" 집계의 시작점
ALL_TIME_START = dt.datetime(1970, 1, 1)


class RecordSource(Protocol):
    def get_records_by_time_range(
        self, start: TimeLike, end: TimeLike
    ) -> List[ResponseMedicationRecord]: ...


def calculate_adherence_rate(records: Sequence[ResponseMedicationRecord]) -> float:
    """
    완료 기록 / 전체 기록 * 100, 소수 첫째 자리 반올림.
    기록이 하나도 없으면 0.

    분모는 '기록된' 회차만 센다. 예정만 있고 기록이 없는 회차는 포함되지 않음.
    """
    total = len(records)
    if total == 0:
        return 0.0
    completed = sum(1 for r in records if r.completed)
    # 천분율을 0.5 올림(음수가 없으므로 0에서 멀어지는 반올림과 같음)
    return math.floor(completed / total * 1000 + 0.5) / 10


def adherence_rate(store: RecordSource, start: TimeLike, end: TimeLike) -> float:
    return calculate_adherence_rate(store.get_records_by_time_range(start, end))


def adherence_summary(
    store: RecordSource,
    start: dt.datetime,
    end: dt.datetime,
    period: str = "",
) -> AdherenceSummary:
    records = store.get_records_by_time_range(start, end)
    completed = sum(1 for r in records if r.completed)
    rate = calculate_adherence_rate(records)
    logger.info(
        "[adherence] period=%s window=[%s, %s] completed=%d total=%d rate=%s",
        period, start, end, completed, len(records), rate,
    )
    return AdherenceSummary(
        period=period,
        start=start,
        end=end,
        completed=completed,
        total=len(records),
        rate=rate,
    )


# ---------------- 기간 경계 ----------------
def today_start(now: dt.datetime) -> dt.datetime:
    return dt.datetime.combine(now.date(), dt.time(0, 0, 0))


def today_end(now: dt.datetime) -> dt.datetime:
    return dt.datetime.combine(now.date(), dt.time(23, 59, 59))


def this_week_start(now: dt.datetime) -> dt.datetime:
    # 주의 시작은 월요일
    return today_start(now) - dt.timedelta(days=now.weekday())


def this_month_start(now: dt.datetime) -> dt.datetime:
    return today_start(now).replace(day=1)


def period_summaries(store: RecordSource, now: dt.datetime) -> List[AdherenceSummary]:
    """이번 주 / 이번 달 / 전체 기간 복용률"""
    end = today_end(now)
    return [
        adherence_summary(store, this_week_start(now), end, period="week"),
        adherence_summary(store, this_month_start(now), end, period="month"),
        adherence_summary(store, ALL_TIME_START, end, period="all"),
    ]
