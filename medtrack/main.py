# medtrack/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medtrack.config.settings import Settings, get_settings
from medtrack.db.store import create_store
from medtrack.exceptions import StorageError
from medtrack.routers import medication, record, schedule, weather
from medtrack.services.cleanup import delete_expired_weather_data
from medtrack.services.clock import Clock

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        - 앱 시작 시 저장소 열기 (테이블 생성)
        - 매일 00:00 (설정 타임존) 오래된 날씨 측정값 삭제
        - 앱 종료 시 스케줄러 종료 후 저장소 닫기
        """
        store = create_store(settings, clock=clock).open()
        app.state.store = store
        app.state.settings = settings

        scheduler = None
        if settings.cleanup_enabled:
            scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.timezone))
            scheduler.add_job(
                delete_expired_weather_data,
                CronTrigger(hour=0, minute=0),
                args=[store, settings.weather_retention_days],
            )
            scheduler.start()
            logger.info("[scheduler] weather cleanup job registered")

        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
                logger.info("[scheduler] stopped")
            store.close()

    app = FastAPI(title="medtrack", lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # 저장 실패는 사용자에게 그대로 보여줄 메시지로 응답
    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "operation": exc.operation},
        )

    app.include_router(medication.router)
    app.include_router(record.router)
    app.include_router(schedule.router)
    app.include_router(weather.router)

    @app.get("/")
    async def root():
        return {"message": "medtrack API가 정상 작동 중입니다", "version": "1.0.0"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("medtrack.main:app", host="127.0.0.1", port=8000)
