# medtrack/models/weather_data.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from medtrack.db.database import Base


class WeatherData(Base):
    __tablename__ = "weather_data"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)

    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    measured_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, index=True)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
