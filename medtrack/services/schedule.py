# medtrack/services/schedule.py
from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from medtrack.schemas.schema_medication import ResponseMedication
from medtrack.schemas.schema_record import ResponseMedicationRecord
from medtrack.schemas.schema_schedule import ScheduleItem
from medtrack.services.clock import DateLike, format_schedule_time, to_calendar_date

logger = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    timezone: str

    def list_definitions(self) -> List[ResponseMedication]: ...

    def get_records_by_time_range(self, start, end) -> List[ResponseMedicationRecord]: ...


def _is_in_range(medication: ResponseMedication, target: dt.date) -> bool:
    # 시작일, 종료일 모두 포함
    if target < medication.start_date:
        return False
    return medication.end_date is None or target <= medication.end_date


def occurrence_key(medication_id: str, scheduled_time: dt.datetime) -> str:
    """예정 1회분의 자연키: '{약 id}_{YYYY-MM-DDTHH:MM:SS}'"""
    return f"{medication_id}_{format_schedule_time(scheduled_time)}"


def generate_schedule_for_date(
    medications: Iterable[ResponseMedication],
    target: DateLike,
    timezone: Optional[str] = None,
) -> List[ScheduleItem]:
    """
    해당 날짜에 복용해야 하는 예정 목록을 만든다.

    Args:
        medications: 약 정의 목록 (보통 복용 중인 약만)
        target: 날짜, datetime 또는 ISO 문자열 (시각 부분은 무시)
        timezone: tz가 있는 target을 이 타임존의 날짜로 해석

    Returns:
        예정 시각 오름차순으로 정렬된 ScheduleItem 목록.
        같은 시각이면 medications 순서를 유지한다.
    """
    target_date = to_calendar_date(target, timezone)
    items: List[ScheduleItem] = []

    for medication in medications:
        if not _is_in_range(medication, target_date):
            continue

        for time_of_day in medication.times:
            hour, minute = map(int, time_of_day.split(":"))
            scheduled = dt.datetime.combine(target_date, dt.time(hour, minute))
            items.append(
                ScheduleItem(
                    id=occurrence_key(medication.id, scheduled),
                    medication_id=medication.id,
                    medication_name=medication.name,
                    dosage=medication.dosage,
                    scheduled_time=scheduled,
                )
            )

    items.sort(key=lambda item: item.scheduled_time)
    return items


def generate_schedule_for_range(
    medications: Sequence[ResponseMedication],
    start: DateLike,
    end: DateLike,
    timezone: Optional[str] = None,
) -> Dict[str, List[ScheduleItem]]:
    """start ~ end (양 끝 포함) 하루씩 돌며 {'YYYY-MM-DD': 예정 목록} 생성"""
    current = to_calendar_date(start, timezone)
    last = to_calendar_date(end, timezone)

    schedule: Dict[str, List[ScheduleItem]] = {}
    while current <= last:
        schedule[current.isoformat()] = generate_schedule_for_date(medications, current)
        current += dt.timedelta(days=1)
    return schedule


def merge_schedule_with_records(
    items: Sequence[ScheduleItem],
    records: Iterable[ResponseMedicationRecord],
) -> List[ScheduleItem]:
    """
    예정 목록 위에 복용 기록을 덮어쓴다. 입력은 바꾸지 않고 새 목록을 반환.
    같은 키의 기록이 여러 개면 나중에 나온 기록이 이긴다.
    """
    by_key: Dict[str, ResponseMedicationRecord] = {}
    for record in records:
        by_key[occurrence_key(record.medication_id, record.scheduled_time)] = record

    merged: List[ScheduleItem] = []
    for item in items:
        record = by_key.get(occurrence_key(item.medication_id, item.scheduled_time))
        if record is None:
            merged.append(item)
            continue
        merged.append(
            item.model_copy(
                update={
                    "completed": record.completed,
                    "actual_time": record.actual_time,
                    "record_id": record.id,
                }
            )
        )
    return merged


def build_daily_schedule(store: ScheduleSource, target: DateLike) -> List[ScheduleItem]:
    """
    하루 예정을 만들고 그날의 기록과 병합.
    기간 판정은 generate_schedule_for_date가 하므로 전체 약 목록을 넘긴다
    (복용 중 목록은 종료일 당일을 빼기 때문에 마지막 날 예정이 사라짐).
    """
    target_date = to_calendar_date(target, store.timezone)
    medications = store.list_definitions()
    items = generate_schedule_for_date(medications, target_date)

    day_start = dt.datetime.combine(target_date, dt.time(0, 0, 0))
    day_end = dt.datetime.combine(target_date, dt.time(23, 59, 59))
    records = store.get_records_by_time_range(day_start, day_end)

    logger.info(
        "[schedule] date=%s medications=%d items=%d records=%d",
        target_date, len(medications), len(items), len(records),
    )
    return merge_schedule_with_records(items, records)


def build_range_schedule(
    store: ScheduleSource, start: DateLike, end: DateLike
) -> Dict[str, List[ScheduleItem]]:
    """달력용: 기간 전체 예정을 만들고 날짜별로 기록과 병합"""
    first = to_calendar_date(start, store.timezone)
    last = to_calendar_date(end, store.timezone)
    schedule = generate_schedule_for_range(store.list_definitions(), first, last)
    if not schedule:
        return schedule

    records = store.get_records_by_time_range(
        dt.datetime.combine(first, dt.time(0, 0, 0)),
        dt.datetime.combine(last, dt.time(23, 59, 59)),
    )
    records_by_day: Dict[str, List[ResponseMedicationRecord]] = {}
    for record in records:
        records_by_day.setdefault(record.scheduled_time.date().isoformat(), []).append(record)

    return {
        day: merge_schedule_with_records(items, records_by_day.get(day, []))
        for day, items in schedule.items()
    }
