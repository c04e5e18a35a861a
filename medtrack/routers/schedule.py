# medtrack/routers/schedule.py
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from medtrack.db.store import MedicationStore
from medtrack.routers.dependencies import get_store
from medtrack.schemas.schema_schedule import (
    ResponseAdherence,
    ResponseAdherenceSummary,
    ResponseDailySchedule,
    ResponseScheduleRange,
)
from medtrack.services.adherence import adherence_rate, period_summaries
from medtrack.services.schedule import build_daily_schedule, build_range_schedule

router = APIRouter(tags=["schedule"])

# 달력 한 화면(6주) + 여유
MAX_RANGE_DAYS = 62


@router.get("/schedule", response_model=ResponseDailySchedule)
def get_daily_schedule(
    requested_date: Optional[date] = Query(default=None, alias="date"),
    store: MedicationStore = Depends(get_store),
):
    """
    해당 날짜의 복용 예정 + 복용 여부. \n
    ex) /schedule?date=2024-02-09 (생략하면 오늘)
    """
    target = requested_date or store.clock().date()
    return ResponseDailySchedule(date=target, items=build_daily_schedule(store, target))


@router.get("/schedule/range", response_model=ResponseScheduleRange)
def get_schedule_range(
    start: date = Query(...),
    end: date = Query(...),
    store: MedicationStore = Depends(get_store),
):
    if end < start:
        raise HTTPException(status_code=400, detail="종료일은 시작일보다 빠를 수 없습니다.")
    if (end - start).days + 1 > MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"한 번에 {MAX_RANGE_DAYS}일까지 조회할 수 있습니다.",
        )
    return ResponseScheduleRange(result=build_range_schedule(store, start, end))


@router.get("/adherence", response_model=ResponseAdherence)
def get_adherence_rate(
    start: datetime = Query(...),
    end: datetime = Query(...),
    store: MedicationStore = Depends(get_store),
):
    return ResponseAdherence(start=start, end=end, rate=adherence_rate(store, start, end))


@router.get("/adherence/summary", response_model=ResponseAdherenceSummary)
def get_adherence_summary(store: MedicationStore = Depends(get_store)):
    """이번 주 / 이번 달 / 전체 기간 복용률"""
    return ResponseAdherenceSummary(result=period_summaries(store, store.clock()))
