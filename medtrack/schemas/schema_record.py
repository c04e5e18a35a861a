# medtrack/schemas/schema_record.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _drop_microseconds(v):
    # 예정 시각은 초 단위까지만 다룸
    if isinstance(v, datetime):
        return v.replace(microsecond=0)
    return v


class CreateMedicationRecord(BaseModel):
    medication_id: str = Field(min_length=1)
    scheduled_time: datetime
    actual_time: Optional[datetime] = None
    completed: bool = False

    @field_validator("scheduled_time", "actual_time")
    @classmethod
    def drop_microseconds(cls, v):
        return _drop_microseconds(v)


class PatchMedicationRecord(BaseModel):
    scheduled_time: Optional[datetime] = None
    actual_time: Optional[datetime] = None
    completed: Optional[bool] = None

    @field_validator("scheduled_time", "actual_time")
    @classmethod
    def drop_microseconds(cls, v):
        return _drop_microseconds(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("하나 이상의 필드가 필요합니다.")
        return self


class ResponseMedicationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    medication_id: str
    scheduled_time: datetime
    actual_time: Optional[datetime]
    completed: bool
    created_at: datetime


class IntakeStatus(BaseModel):
    """체크박스 토글 요청: 해당 회차를 복용함/안 함으로 표시"""
    medication_id: str = Field(min_length=1)
    scheduled_time: datetime
    completed: bool


class ResponseIntakeStatus(BaseModel):
    response_message: str
    record_id: Optional[str]
