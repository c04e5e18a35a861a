# medtrack/routers/record.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from medtrack.db.store import MedicationStore
from medtrack.routers.dependencies import get_store
from medtrack.schemas.schema_medication import ResponseAffected, ResponseCreated
from medtrack.schemas.schema_record import (
    CreateMedicationRecord,
    IntakeStatus,
    PatchMedicationRecord,
    ResponseIntakeStatus,
    ResponseMedicationRecord,
)

router = APIRouter(prefix="/records", tags=["records"])


@router.post("", response_model=ResponseCreated, status_code=201)
def create_record(
    body: CreateMedicationRecord,
    store: MedicationStore = Depends(get_store),
):
    if store.get_definition(body.medication_id) is None:
        raise HTTPException(status_code=404, detail="등록되지 않은 약입니다.")
    return ResponseCreated(id=store.create_intake_record(body))


@router.get("", response_model=List[ResponseMedicationRecord])
def list_records_in_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    store: MedicationStore = Depends(get_store),
):
    """
    예정 시각이 start ~ end(양 끝 포함)인 기록. \n
    ex) /records?start=2024-02-09T00:00:00&end=2024-02-09T23:59:59
    """
    return store.get_records_by_time_range(start, end)


@router.put("/status", response_model=ResponseIntakeStatus)
def set_intake_status(
    body: IntakeStatus,
    store: MedicationStore = Depends(get_store),
):
    """
    복용 체크박스 토글.
    1. 체크 + 기록 없음: 새 기록 생성
    2. 체크 + 기록 있음: 기존 기록을 완료 처리
    3. 해제 + 기록 있음: 미완료로 되돌림
    4. 해제 + 기록 없음: 변경 없음 (record_id=null)
    """
    if body.completed and store.get_definition(body.medication_id) is None:
        raise HTTPException(status_code=404, detail="등록되지 않은 약입니다.")

    record_id = store.set_intake_status(body.medication_id, body.scheduled_time, body.completed)
    if record_id is None:
        message = "변경된 복용 기록이 없습니다."
    elif body.completed:
        message = "복용 완료로 기록되었습니다."
    else:
        message = "복용 기록을 미완료로 되돌렸습니다."
    return ResponseIntakeStatus(response_message=message, record_id=record_id)


@router.get("/{record_id}", response_model=ResponseMedicationRecord)
def get_record(record_id: str, store: MedicationStore = Depends(get_store)):
    record = store.get_intake_record(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="복용 기록이 없습니다.")
    return record


@router.patch("/{record_id}", response_model=ResponseAffected)
def patch_record(
    record_id: str,
    body: PatchMedicationRecord,
    store: MedicationStore = Depends(get_store),
):
    try:
        affected = store.update_intake_record(record_id, body)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not affected:
        raise HTTPException(status_code=404, detail="복용 기록이 없습니다.")
    return ResponseAffected(response_message="복용 기록이 수정되었습니다.", affected=affected)


@router.post("/{record_id}/complete", response_model=ResponseAffected)
def complete_record(record_id: str, store: MedicationStore = Depends(get_store)):
    affected = store.mark_complete(record_id)
    if not affected:
        raise HTTPException(status_code=404, detail="복용 기록이 없습니다.")
    return ResponseAffected(response_message="복용 완료로 기록되었습니다.", affected=affected)
