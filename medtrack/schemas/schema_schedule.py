# medtrack/schemas/schema_schedule.py
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ScheduleItem(BaseModel):
    """
    특정 날짜의 복용 1회분.
    생성 직후에는 미복용 상태이고, 복용 기록과 병합될 때만 새 객체로 교체된다.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    medication_id: str
    medication_name: str
    dosage: str
    scheduled_time: datetime
    completed: bool = False
    actual_time: Optional[datetime] = None
    record_id: Optional[str] = None


class ResponseDailySchedule(BaseModel):
    date: date
    items: List[ScheduleItem]


class ResponseScheduleRange(BaseModel):
    result: Dict[str, List[ScheduleItem]]


class AdherenceSummary(BaseModel):
    period: str
    start: datetime
    end: datetime
    completed: int
    total: int
    rate: float


class ResponseAdherence(BaseModel):
    start: datetime
    end: datetime
    rate: float


class ResponseAdherenceSummary(BaseModel):
    result: List[AdherenceSummary]
