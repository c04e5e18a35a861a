# medtrack/models/medication_record.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medtrack.db.database import Base


class MedicationRecord(Base):
    __tablename__ = "medication_records"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)

    medication_id: Mapped[str] = mapped_column(
        String(40),
        ForeignKey("medications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # 예정 복용 시각 (tz 없음, 초 단위)
    scheduled_time: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, index=True)
    actual_time: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("0"),
    )

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    # (medication_id, scheduled_time) 조회용. 유니크 아님: 중복은 병합 단계에서 나중 것이 이김
    __table_args__ = (
        Index("idx_record_medication_scheduled", "medication_id", "scheduled_time"),
    )

    medication = relationship("Medication", back_populates="records", uselist=False)
