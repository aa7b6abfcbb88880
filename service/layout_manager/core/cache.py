# -*- coding: utf-8 -*-
"""缓存工具：统一管理 Redis 缓存 key、TTL 和序列化"""
import logging
from typing import Optional

from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from layout_manager.core.config import settings
from layout_manager.core.database import get_redis_optional

logger = logging.getLogger(__name__)

# 缓存 key 前缀
CACHE_KEY_PREFIXES = {
    "active_layout": "layout:active:v1",
}

# 缓存 TTL（秒）
CACHE_TTL = {
    "active_layout": settings.ACTIVE_LAYOUT_CACHE_TTL,
}


async def get_cache(key: str) -> Optional[str]:
    """
    获取缓存值

    Args:
        key: 缓存 key

    Returns:
        缓存值（字符串），如果不存在、Redis 未启用或出错则返回 None
    """
    client = await get_redis_optional()
    if not client:
        return None
    try:
        return await client.get(key)
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.warning("Redis 连接错误: %s", e)
        return None
    except Exception as e:
        logger.warning("Redis get 失败，key=%s: %s", key, e)
        return None


async def set_cache(key: str, value: str, ttl: int) -> None:
    """设置缓存值（ttl 单位为秒）"""
    client = await get_redis_optional()
    if not client:
        return
    try:
        await client.setex(key, ttl, value)
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.warning("Redis 连接错误: %s", e)
    except Exception as e:
        logger.warning("Redis set 失败，key=%s: %s", key, e)


async def delete_cache(key: str) -> None:
    """删除缓存"""
    client = await get_redis_optional()
    if not client:
        return
    try:
        await client.delete(key)
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.warning("Redis 连接错误: %s", e)
    except Exception as e:
        logger.warning("Redis delete 失败，key=%s: %s", key, e)
