# medtrack/routers/medication.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from medtrack.db.store import MedicationStore
from medtrack.routers.dependencies import get_store
from medtrack.schemas.schema_medication import (
    CreateMedication,
    PatchMedication,
    ResponseAffected,
    ResponseCreated,
    ResponseMedication,
)
from medtrack.schemas.schema_record import ResponseMedicationRecord

router = APIRouter(prefix="/medications", tags=["medications"])


@router.post("", response_model=ResponseCreated, status_code=201)
def create_medication(
    body: CreateMedication,
    store: MedicationStore = Depends(get_store),
):
    return ResponseCreated(id=store.create_definition(body))


@router.get("", response_model=List[ResponseMedication])
def list_medications(store: MedicationStore = Depends(get_store)):
    return store.list_definitions()


@router.get("/active", response_model=List[ResponseMedication])
def list_active_medications(store: MedicationStore = Depends(get_store)):
    """종료일이 없거나 아직 지나지 않은 약"""
    return store.list_active_definitions()


@router.get("/{medication_id}", response_model=ResponseMedication)
def get_medication(medication_id: str, store: MedicationStore = Depends(get_store)):
    medication = store.get_definition(medication_id)
    if medication is None:
        raise HTTPException(status_code=404, detail="등록되지 않은 약입니다.")
    return medication


@router.patch("/{medication_id}", response_model=ResponseAffected)
def patch_medication(
    medication_id: str,
    body: PatchMedication,
    store: MedicationStore = Depends(get_store),
):
    """
    보낸 필드만 수정. 수정 후의 약 정보가 등록 규칙(종료일 >= 시작일,
    복용 시각 개수 == 하루 복용 횟수)을 어기면 422.
    """
    try:
        affected = store.update_definition(medication_id, body)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[err["msg"] for err in e.errors()],
        )
    if not affected:
        raise HTTPException(status_code=404, detail="등록되지 않은 약입니다.")
    return ResponseAffected(response_message="약 정보가 수정되었습니다.", affected=affected)


@router.delete("/{medication_id}", response_model=ResponseAffected)
def delete_medication(medication_id: str, store: MedicationStore = Depends(get_store)):
    """
    약과 복용 기록을 함께 삭제.
    이미 없는 약이면 affected=0 (오류 아님).
    """
    affected = store.delete_definition(medication_id)
    message = "약과 복용 기록이 삭제되었습니다." if affected else "이미 삭제된 약입니다."
    return ResponseAffected(response_message=message, affected=affected)


@router.get("/{medication_id}/records", response_model=List[ResponseMedicationRecord])
def list_medication_records(medication_id: str, store: MedicationStore = Depends(get_store)):
    return store.get_records_by_medication(medication_id)
