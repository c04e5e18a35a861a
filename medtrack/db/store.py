# medtrack/db/store.py
from __future__ import annotations

import datetime as dt
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medtrack.config.settings import Settings
from medtrack.db.database import Base, build_engine, build_session_factory
from medtrack.exceptions import CascadeDeleteError, StorageError
from medtrack.models.medication import Medication
from medtrack.models.medication_record import MedicationRecord
from medtrack.models.setting import Setting
from medtrack.models.weather_data import WeatherData
from medtrack.schemas.schema_medication import (
    CreateMedication,
    PatchMedication,
    ResponseMedication,
)
from medtrack.schemas.schema_record import (
    CreateMedicationRecord,
    PatchMedicationRecord,
    ResponseMedicationRecord,
)
from medtrack.schemas.schema_weather import (
    PatchWeatherSettings,
    WeatherSettings,
    WeatherSnapshot,
)
from medtrack.services.clock import Clock, make_clock, to_local_naive

logger = logging.getLogger(__name__)

WEATHER_SETTINGS_KEY = "weather_settings"

TimeLike = Union[dt.datetime, str]


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class MedicationStore:
    """
    약 정의 / 복용 기록 / 날씨 캐시 / 설정을 보관하는 로컬 저장소 핸들.

    - open()에서 테이블 생성, close()에서 엔진 정리 (with 문 사용 가능)
    - 조회 대상이 없으면 None / 0 / [] 반환 (예외 아님)
    - DB 오류는 롤백 후 StorageError로 감싸서 올림
    - 현재 시각은 주입받은 clock으로만 읽음
    """

    def __init__(
        self,
        url: str,
        timezone: str = "Asia/Tokyo",
        clock: Optional[Clock] = None,
        echo: bool = False,
    ):
        self.url = url
        self.timezone = timezone
        self.clock = clock or make_clock(timezone)
        self._echo = echo
        self.engine = None
        self._sessions = None

    # ---------------- 수명 주기 ----------------
    def open(self) -> "MedicationStore":
        if self.engine is not None:
            return self
        try:
            self.engine = build_engine(self.url, echo=self._echo)
            self._sessions = build_session_factory(self.engine)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            self.engine = None
            self._sessions = None
            logger.exception("[store] open failed url=%s", self.url)
            raise StorageError("데이터베이스를 열 수 없습니다.", "open") from e
        logger.info("[store] opened url=%s", self.url)
        return self

    def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._sessions = None
        logger.info("[store] closed url=%s", self.url)

    def __enter__(self) -> "MedicationStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _session(self, operation: str, message: str) -> Iterator[Session]:
        """
        세션 하나 = 작업 단위 하나.
        블록이 정상 종료되면 커밋, DB 오류면 롤백 후 StorageError.
        """
        if self._sessions is None:
            raise StorageError("데이터베이스가 열려 있지 않습니다.", operation)
        db = self._sessions()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("[store] %s failed err=%s", operation, e)
            raise StorageError(message, operation) from e
        finally:
            db.close()

    def _local(self, value: TimeLike) -> dt.datetime:
        return to_local_naive(value, self.timezone)

    # ---------------- 약 정의 ----------------
    def create_definition(self, data: CreateMedication) -> str:
        now = self.clock()
        row = Medication(
            id=_new_id("med"),
            name=data.name,
            dosage=data.dosage,
            frequency=data.frequency,
            times=list(data.times),
            start_date=data.start_date,
            end_date=data.end_date,
            memo=data.memo,
            created_at=now,
            updated_at=now,
        )
        with self._session("create_definition", "약 정보를 저장하지 못했습니다.") as db:
            db.add(row)
        logger.info("[store] created medication id=%s name=%s", row.id, row.name)
        return row.id

    def get_definition(self, medication_id: str) -> Optional[ResponseMedication]:
        with self._session("get_definition", "약 정보를 불러오지 못했습니다.") as db:
            row = db.get(Medication, medication_id)
            return ResponseMedication.model_validate(row) if row else None

    def list_definitions(self) -> List[ResponseMedication]:
        with self._session("list_definitions", "약 목록을 불러오지 못했습니다.") as db:
            rows = db.execute(select(Medication)).scalars().all()
            return [ResponseMedication.model_validate(r) for r in rows]

    def list_active_definitions(self) -> List[ResponseMedication]:
        """
        종료일이 없거나, 종료일(자정 기준)이 지금보다 뒤인 약만.
        종료일 당일은 자정이 이미 지났으므로 복용 중 목록에서 빠진다.
        """
        now = self.clock()
        return [
            m for m in self.list_definitions()
            if m.end_date is None
            or dt.datetime.combine(m.end_date, dt.time.min) > now
        ]

    def update_definition(self, medication_id: str, updates: PatchMedication) -> int:
        """
        지정한 필드만 덮어쓰고 updated_at은 항상 갱신.
        합쳐진 결과도 생성 때와 같은 규칙으로 다시 검증한다 (pydantic ValidationError).
        """
        changes = updates.model_dump(exclude_unset=True)
        with self._session("update_definition", "약 정보를 수정하지 못했습니다.") as db:
            row = db.get(Medication, medication_id)
            if row is None:
                return 0

            merged = {
                "name": row.name,
                "dosage": row.dosage,
                "frequency": row.frequency,
                "times": list(row.times),
                "start_date": row.start_date,
                "end_date": row.end_date,
                "memo": row.memo,
            }
            merged.update(changes)
            checked = CreateMedication.model_validate(merged, context={"timezone": self.timezone})

            for field in changes:
                setattr(row, field, getattr(checked, field))
            row.updated_at = self.clock()

        logger.info("[store] updated medication id=%s fields=%s", medication_id, sorted(changes))
        return 1

    def delete_definition(self, medication_id: str) -> int:
        """
        약과 그 약의 복용 기록을 한 트랜잭션으로 삭제.
        중간에 실패하면 둘 다 롤백되고 CascadeDeleteError.
        """
        if self._sessions is None:
            raise StorageError("데이터베이스가 열려 있지 않습니다.", "delete_definition")

        db = self._sessions()
        try:
            with db.begin():
                removed_records = self._delete_records_of(db, medication_id)
                removed = self._delete_definition_row(db, medication_id)
        except SQLAlchemyError as e:
            logger.exception(
                "[store] cascade delete rolled back medication_id=%s err=%s",
                medication_id, e,
            )
            raise CascadeDeleteError(
                "약을 삭제하지 못했습니다. 복용 기록을 포함해 아무것도 삭제되지 않았습니다.",
                "delete_definition",
            ) from e
        finally:
            db.close()

        logger.info(
            "[store] deleted medication id=%s removed=%d records=%d",
            medication_id, removed, removed_records,
        )
        return removed

    @staticmethod
    def _delete_records_of(db: Session, medication_id: str) -> int:
        result = db.execute(
            delete(MedicationRecord).where(MedicationRecord.medication_id == medication_id)
        )
        return result.rowcount or 0

    @staticmethod
    def _delete_definition_row(db: Session, medication_id: str) -> int:
        result = db.execute(delete(Medication).where(Medication.id == medication_id))
        return result.rowcount or 0

    # ---------------- 복용 기록 ----------------
    def create_intake_record(self, data: CreateMedicationRecord) -> str:
        row = MedicationRecord(
            id=_new_id("rec"),
            medication_id=data.medication_id,
            scheduled_time=self._local(data.scheduled_time),
            actual_time=self._local(data.actual_time) if data.actual_time else None,
            completed=data.completed,
            created_at=self.clock(),
        )
        with self._session("create_intake_record", "복용 기록을 저장하지 못했습니다.") as db:
            db.add(row)
        logger.info(
            "[store] created record id=%s medication_id=%s scheduled=%s",
            row.id, row.medication_id, row.scheduled_time,
        )
        return row.id

    def get_intake_record(self, record_id: str) -> Optional[ResponseMedicationRecord]:
        with self._session("get_intake_record", "복용 기록을 불러오지 못했습니다.") as db:
            row = db.get(MedicationRecord, record_id)
            return ResponseMedicationRecord.model_validate(row) if row else None

    def get_records_by_medication(self, medication_id: str) -> List[ResponseMedicationRecord]:
        stmt = (
            select(MedicationRecord)
            .where(MedicationRecord.medication_id == medication_id)
            .order_by(MedicationRecord.scheduled_time.asc(), MedicationRecord.created_at.asc())
        )
        with self._session("get_records_by_medication", "복용 기록을 불러오지 못했습니다.") as db:
            rows = db.execute(stmt).scalars().all()
            return [ResponseMedicationRecord.model_validate(r) for r in rows]

    def get_records_by_time_range(
        self, start: TimeLike, end: TimeLike
    ) -> List[ResponseMedicationRecord]:
        """예정 시각이 [start, end] 안에 있는 기록 (양 끝 포함)"""
        start_local = self._local(start)
        end_local = self._local(end)
        stmt = (
            select(MedicationRecord)
            .where(MedicationRecord.scheduled_time.between(start_local, end_local))
            .order_by(MedicationRecord.scheduled_time.asc(), MedicationRecord.created_at.asc())
        )
        with self._session("get_records_by_time_range", "복용 기록을 불러오지 못했습니다.") as db:
            rows = db.execute(stmt).scalars().all()
            return [ResponseMedicationRecord.model_validate(r) for r in rows]

    def update_intake_record(self, record_id: str, updates: PatchMedicationRecord) -> int:
        changes = updates.model_dump(exclude_unset=True)
        for field in ("scheduled_time", "completed"):
            if field in changes and changes[field] is None:
                raise ValueError(f"{field}은(는) 비울 수 없습니다.")
        for field in ("scheduled_time", "actual_time"):
            if changes.get(field) is not None:
                changes[field] = self._local(changes[field])

        with self._session("update_intake_record", "복용 기록을 수정하지 못했습니다.") as db:
            row = db.get(MedicationRecord, record_id)
            if row is None:
                return 0
            for field, value in changes.items():
                setattr(row, field, value)
        logger.info("[store] updated record id=%s fields=%s", record_id, sorted(changes))
        return 1

    def mark_complete(self, record_id: str) -> int:
        return self.update_intake_record(
            record_id,
            PatchMedicationRecord(completed=True, actual_time=self.clock()),
        )

    def set_intake_status(
        self, medication_id: str, scheduled_time: TimeLike, completed: bool
    ) -> Optional[str]:
        """
        복용 체크박스 토글.
        - 체크: 기록이 있으면 그 기록을 완료 처리, 없으면 새로 생성
        - 해제: 기록이 있으면 미완료로 되돌림, 없으면 아무것도 안 함
        같은 회차에 두 번째 기록을 만들지 않는다. 반환값은 기록 id (없으면 None).
        """
        scheduled = self._local(scheduled_time).replace(microsecond=0)
        now = self.clock()
        stmt = (
            select(MedicationRecord)
            .where(
                MedicationRecord.medication_id == medication_id,
                MedicationRecord.scheduled_time == scheduled,
            )
            .order_by(MedicationRecord.created_at.desc())
        )
        with self._session("set_intake_status", "복용 기록을 수정하지 못했습니다.") as db:
            row = db.execute(stmt).scalars().first()

            if row is None:
                if not completed:
                    return None
                row = MedicationRecord(
                    id=_new_id("rec"),
                    medication_id=medication_id,
                    scheduled_time=scheduled,
                    actual_time=now,
                    completed=True,
                    created_at=now,
                )
                db.add(row)
            elif completed:
                row.completed = True
                row.actual_time = now
            else:
                row.completed = False
                row.actual_time = None
            record_id = row.id

        logger.info(
            "[store] intake status medication_id=%s scheduled=%s completed=%s record=%s",
            medication_id, scheduled, completed, record_id,
        )
        return record_id

    # ---------------- 날씨 캐시 ----------------
    def save_weather_data(self, snapshot: WeatherSnapshot) -> str:
        row = WeatherData(
            id=snapshot.id or _new_id("weather"),
            temperature=snapshot.temperature,
            humidity=snapshot.humidity,
            description=snapshot.description,
            measured_at=self._local(snapshot.measured_at),
            latitude=snapshot.latitude,
            longitude=snapshot.longitude,
        )
        with self._session("save_weather_data", "날씨 정보를 저장하지 못했습니다.") as db:
            db.merge(row)
        return row.id

    def get_latest_weather_data(self) -> Optional[WeatherSnapshot]:
        stmt = select(WeatherData).order_by(WeatherData.measured_at.desc()).limit(1)
        with self._session("get_latest_weather_data", "날씨 정보를 불러오지 못했습니다.") as db:
            row = db.execute(stmt).scalars().first()
            return WeatherSnapshot.model_validate(row) if row else None

    def delete_old_weather_data(self, days: int = 7) -> int:
        cutoff = self.clock() - dt.timedelta(days=days)
        with self._session("delete_old_weather_data", "오래된 날씨 정보를 정리하지 못했습니다.") as db:
            result = db.execute(delete(WeatherData).where(WeatherData.measured_at < cutoff))
            deleted = result.rowcount or 0
        logger.info("[store] deleted weather rows older than %s count=%d", cutoff, deleted)
        return deleted

    # ---------------- 설정 ----------------
    def save_setting(self, key: str, value: Any) -> None:
        with self._session("save_setting", "설정을 저장하지 못했습니다.") as db:
            db.merge(Setting(key=key, value=value))

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._session("get_setting", "설정을 불러오지 못했습니다.") as db:
            row = db.get(Setting, key)
            return row.value if row else default

    def delete_setting(self, key: str) -> int:
        with self._session("delete_setting", "설정을 삭제하지 못했습니다.") as db:
            result = db.execute(delete(Setting).where(Setting.key == key))
            return result.rowcount or 0

    def get_weather_settings(self) -> WeatherSettings:
        stored = self.get_setting(WEATHER_SETTINGS_KEY)
        if stored is None:
            return WeatherSettings()
        return WeatherSettings.model_validate(stored)

    def save_weather_settings(self, updates: PatchWeatherSettings) -> WeatherSettings:
        current = self.get_weather_settings()
        merged = current.model_copy(update=updates.model_dump(exclude_unset=True))
        self.save_setting(WEATHER_SETTINGS_KEY, merged.model_dump(mode="json"))
        return merged


def create_store(settings: Settings, clock: Optional[Clock] = None) -> MedicationStore:
    return MedicationStore(
        settings.database_url,
        timezone=settings.timezone,
        clock=clock,
        echo=settings.sql_echo,
    )
