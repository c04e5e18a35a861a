# medtrack/db/database.py
# 로컬 SQLite 연결 설정
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite는 연결마다 FK 제약을 켜줘야 ON DELETE CASCADE가 동작함
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # FastAPI 스레드풀에서 같은 엔진 공유

    engine = create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,     # 끊긴 커넥션 자동 감지
        connect_args=connect_args,
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: 커밋 후에도 세션 밖에서 필드를 읽어 스키마로 변환함
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
