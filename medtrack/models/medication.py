# medtrack/models/medication.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medtrack.db.database import Base


class Medication(Base):
    __tablename__ = "medications"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    dosage: Mapped[str] = mapped_column(String(60), nullable=False)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False)

    # ["08:00", "20:00"] 형태, 순서 유지
    times: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    # 종료일 포함, None이면 기한 없음
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    memo: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    # 부모(약) -> 자식(복용 기록)
    records = relationship(
        "MedicationRecord",
        back_populates="medication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
