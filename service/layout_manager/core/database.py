import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from layout_manager.core.config import settings
import redis.asyncio as redis
from typing import Optional

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# sqlite（测试）不支持连接池参数
_engine_kwargs = {}
if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs = dict(
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=5,
        pool_recycle=3600,  # 1 小时回收连接
        pool_timeout=30,
    )

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **_engine_kwargs,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


# Redis 连接池
redis_pool: Optional[redis.ConnectionPool] = None
redis_client: Optional[redis.Redis] = None


async def init_db():
    """初始化数据库连接并建表"""
    global redis_pool, redis_client

    # 导入所有模型以确保表被创建
    from layout_manager.models import Layout  # noqa: F401

    if settings.REDIS_ENABLED:
        redis_pool = redis.ConnectionPool(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
            db=settings.REDIS_DB,
            decode_responses=True,
            max_connections=20,
        )
        redis_client = redis.Redis(connection_pool=redis_pool)

        try:
            await redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            # 缓存可选，连接失败不影响布局工具
            logger.warning("Redis connection failed, cache disabled: %s", e)
            await redis_client.close()
            redis_client = None

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database connected and tables ensured")


async def get_db() -> AsyncSession:
    """获取数据库会话"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_redis_optional() -> Optional[redis.Redis]:
    """获取 Redis 客户端（未初始化时返回 None，用于可选缓存）"""
    return redis_client


async def close_db():
    """关闭数据库连接"""
    global redis_client, redis_pool

    if redis_client:
        await redis_client.close()
        redis_client = None
    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None
    await engine.dispose()
