# medtrack/routers/dependencies.py
from fastapi import Request

from medtrack.db.store import MedicationStore


# 의존성 주입: lifespan에서 연 저장소 핸들을 그대로 넘겨줌
def get_store(request: Request) -> MedicationStore:
    return request.app.state.store
