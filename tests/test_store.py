import datetime as dt

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from conftest import medication_input
from medtrack.db.store import MedicationStore
from medtrack.exceptions import CascadeDeleteError, StorageError
from medtrack.schemas.schema_medication import PatchMedication
from medtrack.schemas.schema_record import CreateMedicationRecord, PatchMedicationRecord
from medtrack.schemas.schema_weather import PatchWeatherSettings, WeatherSettings, WeatherSnapshot


def record_input(medication_id, scheduled_time="2024-02-09T08:00:00", **overrides):
    data = {"medication_id": medication_id, "scheduled_time": scheduled_time}
    data.update(overrides)
    return CreateMedicationRecord(**data)


# ===== 약 정의 =====
def test_create_definition_returns_id_and_persists(store, clock):
    med_id = store.create_definition(medication_input(name="약A"))

    assert med_id.startswith("med_")
    med = store.get_definition(med_id)
    assert med.name == "약A"
    assert med.times == ["08:00", "20:00"]
    assert med.start_date == dt.date(2024, 1, 1)
    assert med.created_at == clock.now
    assert med.updated_at == clock.now


def test_start_date_with_time_part_is_normalized(store):
    med_id = store.create_definition(medication_input(start_date="2024-01-01T00:00:00.000Z"))
    assert store.get_definition(med_id).start_date == dt.date(2024, 1, 1)


def test_aware_start_date_is_local_calendar_date(store):
    # 2023-12-31T15:00Z == 2024-01-01 00:00 Asia/Tokyo
    med_id = store.create_definition(
        medication_input(start_date="2023-12-31T15:00:00.000Z", end_date="2024-03-01T14:59:59Z")
    )
    med = store.get_definition(med_id)
    assert med.start_date == dt.date(2024, 1, 1)
    assert med.end_date == dt.date(2024, 3, 1)


def test_patch_with_aware_end_date_is_local_calendar_date(store):
    med_id = store.create_definition(medication_input())
    store.update_definition(med_id, PatchMedication(end_date="2024-02-29T15:30:00Z"))
    assert store.get_definition(med_id).end_date == dt.date(2024, 3, 1)


def test_get_definition_missing_returns_none(store):
    assert store.get_definition("not_exist") is None


def test_list_definitions(store):
    assert store.list_definitions() == []
    store.create_definition(medication_input(name="약A"))
    store.create_definition(medication_input(name="약B"))
    assert sorted(m.name for m in store.list_definitions()) == ["약A", "약B"]


def test_list_active_definitions(store):
    # now = 2024-02-09 10:00
    store.create_definition(medication_input(name="open"))
    store.create_definition(medication_input(name="tomorrow", end_date="2024-02-10"))
    store.create_definition(medication_input(name="today", end_date="2024-02-09"))
    store.create_definition(medication_input(name="past", end_date="2024-02-01"))

    names = sorted(m.name for m in store.list_active_definitions())
    assert names == ["open", "tomorrow"]


def test_update_definition_merges_fields_and_refreshes_timestamp(store, clock):
    med_id = store.create_definition(medication_input(name="약A"))
    created = store.get_definition(med_id)

    clock.advance(minutes=5)
    assert store.update_definition(med_id, PatchMedication(name="약A (변경)")) == 1

    med = store.get_definition(med_id)
    assert med.name == "약A (변경)"
    assert med.dosage == created.dosage
    assert med.created_at == created.created_at
    assert med.updated_at == clock.now


def test_update_definition_can_clear_end_date(store):
    med_id = store.create_definition(medication_input(end_date="2024-03-01"))
    store.update_definition(med_id, PatchMedication(end_date=None))
    assert store.get_definition(med_id).end_date is None


def test_update_definition_missing_returns_zero(store):
    assert store.update_definition("not_exist", PatchMedication(name="x")) == 0


def test_update_definition_rejects_invalid_merged_result(store):
    med_id = store.create_definition(medication_input(start_date="2024-02-01"))

    with pytest.raises(ValidationError):
        store.update_definition(med_id, PatchMedication(end_date="2024-01-15"))
    with pytest.raises(ValidationError):
        store.update_definition(med_id, PatchMedication(frequency=3))

    med = store.get_definition(med_id)
    assert med.end_date is None
    assert med.frequency == 2


def test_create_rejects_end_before_start():
    with pytest.raises(ValidationError):
        medication_input(start_date="2024-02-10", end_date="2024-02-09")


def test_create_rejects_times_count_mismatch():
    with pytest.raises(ValidationError):
        medication_input(frequency=3, times=["08:00", "20:00"])


def test_create_rejects_malformed_time():
    with pytest.raises(ValidationError):
        medication_input(frequency=1, times=["8:00"])
    with pytest.raises(ValidationError):
        medication_input(frequency=1, times=["24:00"])


def test_patch_requires_a_field():
    with pytest.raises(ValidationError):
        PatchMedication()


# ===== 연쇄 삭제 =====
def test_delete_definition_cascades_to_records(store):
    med_id = store.create_definition(medication_input())
    other_id = store.create_definition(medication_input(name="다른 약"))
    store.create_intake_record(record_input(med_id, "2024-02-09T08:00:00"))
    store.create_intake_record(record_input(med_id, "2024-02-09T20:00:00"))
    store.create_intake_record(record_input(other_id, "2024-02-09T08:00:00"))

    assert store.delete_definition(med_id) == 1

    assert store.get_definition(med_id) is None and store.get_records_by_medication(med_id) == []
    assert store.get_definition(other_id) is not None
    assert len(store.get_records_by_medication(other_id)) == 1


def test_delete_missing_definition_returns_zero(store):
    assert store.delete_definition("not_exist") == 0


def test_delete_definition_rolls_back_when_second_step_fails(store, monkeypatch):
    med_id = store.create_definition(medication_input())
    store.create_intake_record(record_input(med_id, "2024-02-09T08:00:00"))
    store.create_intake_record(record_input(med_id, "2024-02-09T20:00:00"))

    def boom(db, medication_id):
        raise OperationalError("DELETE FROM medications", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "_delete_definition_row", boom)

    with pytest.raises(CascadeDeleteError) as exc_info:
        store.delete_definition(med_id)

    assert isinstance(exc_info.value, StorageError)
    # 기록 삭제도 함께 롤백됨
    assert store.get_definition(med_id) is not None
    assert len(store.get_records_by_medication(med_id)) == 2


# ===== 복용 기록 =====
def test_create_intake_record_defaults(store, clock):
    med_id = store.create_definition(medication_input())
    rec_id = store.create_intake_record(record_input(med_id))

    assert rec_id.startswith("rec_")
    rec = store.get_intake_record(rec_id)
    assert rec.medication_id == med_id
    assert rec.scheduled_time == dt.datetime(2024, 2, 9, 8, 0, 0)
    assert rec.completed is False
    assert rec.actual_time is None
    assert rec.created_at == clock.now


def test_create_record_for_unknown_medication_is_storage_error(store):
    with pytest.raises(StorageError):
        store.create_intake_record(record_input("not_exist"))


def test_get_records_by_medication_empty(store):
    assert store.get_records_by_medication("not_exist") == []


def test_get_records_by_time_range_is_inclusive(store):
    med_id = store.create_definition(medication_input())
    for ts in ("2024-02-09T08:00:00", "2024-02-09T20:00:00", "2024-02-10T08:00:00"):
        store.create_intake_record(record_input(med_id, ts))

    records = store.get_records_by_time_range("2024-02-09T08:00:00", "2024-02-09T20:00:00")
    assert [r.scheduled_time.hour for r in records] == [8, 20]

    assert store.get_records_by_time_range("2024-02-11T00:00:00", "2024-02-11T23:59:59") == []


def test_get_records_by_time_range_converts_utc_bounds(store):
    med_id = store.create_definition(medication_input())
    store.create_intake_record(record_input(med_id, "2024-02-09T08:00:00"))
    store.create_intake_record(record_input(med_id, "2024-02-09T20:00:00"))

    # 2024-02-08T23:00Z == 2024-02-09 08:00 Asia/Tokyo
    records = store.get_records_by_time_range("2024-02-08T23:00:00Z", "2024-02-09T11:00:00Z")
    assert len(records) == 2


def test_update_intake_record(store):
    med_id = store.create_definition(medication_input())
    rec_id = store.create_intake_record(record_input(med_id, completed=True))

    assert store.update_intake_record(rec_id, PatchMedicationRecord(completed=False)) == 1
    assert store.get_intake_record(rec_id).completed is False
    assert store.update_intake_record("not_exist", PatchMedicationRecord(completed=True)) == 0


def test_update_intake_record_rejects_null_scheduled_time(store):
    med_id = store.create_definition(medication_input())
    rec_id = store.create_intake_record(record_input(med_id))
    with pytest.raises(ValueError):
        store.update_intake_record(rec_id, PatchMedicationRecord(scheduled_time=None))


def test_mark_complete_sets_flag_and_actual_time(store, clock):
    med_id = store.create_definition(medication_input())
    rec_id = store.create_intake_record(record_input(med_id))

    clock.advance(minutes=3)
    assert store.mark_complete(rec_id) == 1

    rec = store.get_intake_record(rec_id)
    assert rec.completed is True
    assert rec.actual_time == clock.now


def test_mark_complete_missing_returns_zero(store):
    assert store.mark_complete("not_exist") == 0


def test_set_intake_status_never_duplicates(store, clock):
    med_id = store.create_definition(medication_input())
    scheduled = "2024-02-09T08:00:00"

    first = store.set_intake_status(med_id, scheduled, True)
    second = store.set_intake_status(med_id, scheduled, True)
    assert first == second
    assert len(store.get_records_by_medication(med_id)) == 1

    rec = store.get_intake_record(first)
    assert rec.completed is True
    assert rec.actual_time == clock.now

    assert store.set_intake_status(med_id, scheduled, False) == first
    rec = store.get_intake_record(first)
    assert rec.completed is False
    assert rec.actual_time is None
    assert len(store.get_records_by_medication(med_id)) == 1


def test_set_intake_status_uncheck_without_record_is_noop(store):
    med_id = store.create_definition(medication_input())
    assert store.set_intake_status(med_id, "2024-02-09T08:00:00", False) is None
    assert store.get_records_by_medication(med_id) == []


# ===== 저장소 수명 주기 =====
def test_closed_store_raises_storage_error(db_url, clock):
    store = MedicationStore(db_url, clock=clock)
    with pytest.raises(StorageError):
        store.list_definitions()

    with store:
        assert store.list_definitions() == []
    with pytest.raises(StorageError):
        store.get_definition("x")


def test_data_survives_reopen(db_url, clock):
    with MedicationStore(db_url, clock=clock) as store:
        med_id = store.create_definition(medication_input(name="약A"))
    with MedicationStore(db_url, clock=clock) as store:
        assert store.get_definition(med_id).name == "약A"


# ===== 날씨 캐시 / 설정 =====
def weather_input(**overrides):
    data = {
        "temperature": 25,
        "humidity": 60,
        "description": "clear sky",
        "measured_at": dt.datetime(2024, 2, 9, 9, 0, 0),
    }
    data.update(overrides)
    return WeatherSnapshot(**data)


def test_latest_weather_data(store):
    assert store.get_latest_weather_data() is None

    store.save_weather_data(weather_input(id="weather_old", measured_at=dt.datetime(2024, 2, 8, 9, 0)))
    store.save_weather_data(weather_input(id="weather_new", temperature=31))

    latest = store.get_latest_weather_data()
    assert latest.id == "weather_new"
    assert latest.temperature == 31


def test_delete_old_weather_data(store):
    store.save_weather_data(weather_input(id="old", measured_at=dt.datetime(2024, 1, 30, 9, 0)))
    store.save_weather_data(weather_input(id="recent", measured_at=dt.datetime(2024, 2, 8, 9, 0)))

    assert store.delete_old_weather_data(7) == 1
    assert store.get_latest_weather_data().id == "recent"


def test_settings_round_trip(store):
    assert store.get_setting("missing") is None
    assert store.get_setting("missing", default="x") == "x"

    store.save_setting("test_key", {"value": 42})
    assert store.get_setting("test_key") == {"value": 42}

    store.save_setting("test_key", "after")
    assert store.get_setting("test_key") == "after"

    assert store.delete_setting("test_key") == 1
    assert store.get_setting("test_key") is None


def test_weather_settings_defaults_and_update(store):
    assert store.get_weather_settings() == WeatherSettings()

    saved = store.save_weather_settings(PatchWeatherSettings(enabled=True, high_temp_threshold=28))
    assert saved.enabled is True
    assert saved.high_temp_threshold == 28
    assert saved.high_humidity_threshold == 80

    assert store.get_weather_settings() == saved
