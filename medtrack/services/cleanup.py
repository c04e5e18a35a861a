# medtrack/services/cleanup.py
import logging

from medtrack.db.store import MedicationStore
from medtrack.exceptions import StorageError

logger = logging.getLogger(__name__)


def delete_expired_weather_data(store: MedicationStore, retention_days: int) -> int:
    """
    매일 00:00 스케줄러에서 실행: retention_days보다 오래된 날씨 측정값 삭제.
    실패해도 다음 날 다시 시도하므로 로그만 남기고 0 반환.
    """
    try:
        deleted = store.delete_old_weather_data(days=retention_days)
    except StorageError as e:
        logger.error("[cleanup] weather cleanup failed: %s", e)
        return 0
    logger.info("[cleanup] expired weather rows deleted=%d", deleted)
    return deleted
