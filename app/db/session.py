"""
数据库会话管理
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.pool import StaticPool

from app.config import settings


def create_database_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    """创建数据库引擎"""
    database_url = database_url or settings.database_url
    engine_kwargs = {
        "echo": settings.database_echo if echo is None else echo,
    }

    # 根据数据库类型配置连接池
    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,  # 1小时回收连接
        })
    elif database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool

    return create_async_engine(database_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """创建会话工厂"""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False
    )


# 创建数据库引擎和会话工厂
engine = create_database_engine()
AsyncSessionLocal = create_session_factory(engine)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """获取异步数据库会话"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
