"""
데이터베이스 연결 및 세션 관리

SQLAlchemy 비동기 엔진과 세션 관리를 담당합니다.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from core.domain.ports import ConfigPort
from .models import Base


class DatabaseAdapter:
    """데이터베이스 어댑터"""

    def __init__(self, config: ConfigPort):
        self.config = config
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[sessionmaker] = None

    async def initialize(self) -> None:
        """데이터베이스 연결을 초기화합니다."""
        database_url = self.config.get_database_url()

        engine_options = {"echo": False}
        if not database_url.startswith("sqlite"):
            # SQLite는 커넥션 풀 옵션을 지원하지 않음
            engine_options.update(
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

        self.engine = create_async_engine(database_url, **engine_options)

        # 세션 팩토리 생성
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """데이터베이스 테이블을 생성합니다."""
        if self.engine is None:
            raise RuntimeError("데이터베이스가 초기화되지 않았습니다")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """데이터베이스 테이블을 삭제합니다."""
        if self.engine is None:
            raise RuntimeError("데이터베이스가 초기화되지 않았습니다")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def reset(self) -> None:
        """테이블을 삭제한 뒤 다시 생성합니다."""
        await self.drop_tables()
        await self.create_tables()

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """데이터베이스 세션을 생성합니다."""
        if self.session_factory is None:
            raise RuntimeError("데이터베이스가 초기화되지 않았습니다")

        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """데이터베이스 연결을 종료합니다."""
        if self.engine:
            await self.engine.dispose()


# 전역 데이터베이스 어댑터 인스턴스
_database_adapter: Optional[DatabaseAdapter] = None


def get_database_adapter() -> DatabaseAdapter:
    """전역 데이터베이스 어댑터를 반환합니다."""
    if _database_adapter is None:
        raise RuntimeError("데이터베이스 어댑터가 초기화되지 않았습니다")
    return _database_adapter


def initialize_database(config: ConfigPort) -> DatabaseAdapter:
    """데이터베이스 어댑터를 초기화합니다."""
    global _database_adapter
    _database_adapter = DatabaseAdapter(config)
    return _database_adapter
