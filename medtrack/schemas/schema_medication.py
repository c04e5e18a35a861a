# medtrack/schemas/schema_medication.py
import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from medtrack.config.settings import get_settings
from medtrack.services.clock import to_calendar_date

TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_times(times: List[str]) -> List[str]:
    for t in times:
        if not TIME_OF_DAY.match(t):
            raise ValueError(f"복용 시각은 HH:MM 형식이어야 합니다: {t!r}")
    return times


def _as_date(v, info: ValidationInfo):
    # '2024-01-01T00:00:00.000Z' 같은 시각 포함 문자열도 날짜로 받는다.
    # tz가 있으면 설정 타임존 기준 날짜 (검증 context의 timezone이 우선)
    if isinstance(v, (str, datetime)):
        timezone = (info.context or {}).get("timezone") or get_settings().timezone
        return to_calendar_date(v, timezone)
    return v


class CreateMedication(BaseModel):
    name: str = Field(min_length=1)
    dosage: str
    frequency: int = Field(ge=1)
    times: List[str]
    start_date: date
    end_date: Optional[date] = None
    memo: str = ""

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, v, info: ValidationInfo):
        return _as_date(v, info)

    @field_validator("times")
    @classmethod
    def times_are_hh_mm(cls, v):
        return _check_times(v)

    @model_validator(mode="after")
    def validate_schedule(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("종료일은 시작일보다 빠를 수 없습니다.")
        if len(self.times) != self.frequency:
            raise ValueError("복용 시각 개수와 하루 복용 횟수가 일치해야 합니다.")
        return self


class PatchMedication(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    dosage: Optional[str] = None
    frequency: Optional[int] = Field(default=None, ge=1)
    times: Optional[List[str]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    memo: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, v, info: ValidationInfo):
        return _as_date(v, info)

    @field_validator("times")
    @classmethod
    def times_are_hh_mm(cls, v):
        if v is None:
            return v
        return _check_times(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("하나 이상의 필드가 필요합니다.")
        return self


class ResponseMedication(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    dosage: str
    frequency: int
    times: List[str]
    start_date: date
    end_date: Optional[date]
    memo: str
    created_at: datetime
    updated_at: datetime


class ResponseCreated(BaseModel):
    id: str


class ResponseAffected(BaseModel):
    response_message: str
    affected: int
