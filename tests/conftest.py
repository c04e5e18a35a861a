import datetime as dt

import pytest

from medtrack.db.store import MedicationStore
from medtrack.schemas.schema_medication import CreateMedication


class FakeClock:
    """고정된 현재 시각. advance()로만 움직인다."""

    def __init__(self, now: dt.datetime):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> dt.datetime:
        self.now = self.now + dt.timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def local_timezone(monkeypatch):
    # 스키마의 날짜 정규화가 읽는 설정 타임존
    monkeypatch.setenv("MEDTRACK_TIMEZONE", "Asia/Tokyo")


@pytest.fixture
def clock():
    # 2024-02-09 (금) 10:00, Asia/Tokyo 벽시계
    return FakeClock(dt.datetime(2024, 2, 9, 10, 0, 0))


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'medtrack.db'}"


@pytest.fixture
def store(db_url, clock):
    s = MedicationStore(db_url, timezone="Asia/Tokyo", clock=clock)
    s.open()
    yield s
    s.close()


def medication_input(**overrides) -> CreateMedication:
    data = {
        "name": "테스트 약",
        "dosage": "1정",
        "frequency": 2,
        "times": ["08:00", "20:00"],
        "start_date": "2024-01-01",
        "end_date": None,
        "memo": "",
    }
    data.update(overrides)
    return CreateMedication(**data)
