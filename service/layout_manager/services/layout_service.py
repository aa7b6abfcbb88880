"""
布局持久化服务

布局 schema 作为整体文档读写；全局最多一个活动布局，由本服务在事务内保证。
"""
import logging
import re
from datetime import datetime
from types import SimpleNamespace
from typing import List, Optional

from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from layout_manager.core.cache import get_cache, set_cache, delete_cache, CACHE_KEY_PREFIXES, CACHE_TTL
from layout_manager.core.exceptions import NotFoundError, PersistenceError
from layout_manager.models.layout import Layout
from layout_manager.schemas.layout_schema import LayoutSchema
from layout_manager.utils.json_utils import dumps as json_dumps, loads as json_loads

logger = logging.getLogger(__name__)

_INVALID_ID_CHARS = re.compile(r"[^a-z0-9-]")


def _active_cache_key() -> str:
    return CACHE_KEY_PREFIXES["active_layout"]


class LayoutService:
    """布局服务类"""

    @staticmethod
    def generate_layout_id(name: str) -> str:
        """由名称生成布局标识：小写、空格/下划线转连字符、去掉其他字符，加时间戳后缀"""
        layout_id = name.lower().replace(" ", "-").replace("_", "-")
        layout_id = _INVALID_ID_CHARS.sub("", layout_id)
        return f"{layout_id}-{datetime.now().strftime('%Y%m%d-%H%M%S')}"

    @staticmethod
    async def get_active(db: AsyncSession) -> Layout:
        """获取活动布局"""
        try:
            result = await db.execute(select(Layout).where(Layout.is_active == True))  # noqa: E712
            layout = result.scalars().first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to load active layout: {e}") from e
        if layout is None:
            raise NotFoundError("No active dashboard found")
        return layout

    @staticmethod
    async def get_active_snapshot(db: AsyncSession) -> SimpleNamespace:
        """
        活动布局只读快照（带 Redis 缓存，返回带 layout_id/name/description/layout_schema 的对象）

        仅供只读工具使用；写操作必须通过 get_active 读取数据库行。
        """
        cache_key = _active_cache_key()
        cached = await get_cache(cache_key)
        if cached:
            try:
                data = json_loads(cached)
                return SimpleNamespace(**data)
            except (ValueError, TypeError) as e:
                logger.warning("活动布局缓存无法解析，改为读取数据库: %s", e)

        layout = await LayoutService.get_active(db)
        data = {
            "id": layout.id,
            "layout_id": layout.layout_id,
            "name": layout.name,
            "description": layout.description,
            "layout_schema": layout.layout_schema,
        }
        await set_cache(cache_key, json_dumps(data), CACHE_TTL["active_layout"])
        return SimpleNamespace(**data)

    @staticmethod
    async def get_by_layout_id(db: AsyncSession, layout_id: str) -> Layout:
        """根据布局标识获取布局"""
        try:
            result = await db.execute(select(Layout).where(Layout.layout_id == layout_id))
            layout = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to load layout {layout_id}: {e}") from e
        if layout is None:
            raise NotFoundError(f"Layout {layout_id} not found")
        return layout

    @staticmethod
    async def update_schema(db: AsyncSession, layout: Layout, schema: LayoutSchema) -> Layout:
        """整体覆盖写入布局 schema"""
        layout.layout_schema = schema.to_document()
        try:
            await db.commit()
            await db.refresh(layout)
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"failed to update layout {layout.layout_id}: {e}") from e

        # 缓存失效：下次读取时重新加载
        await delete_cache(_active_cache_key())
        logger.info("布局 %s 已保存", layout.layout_id)
        return layout

    @staticmethod
    async def create_with_activation(db: AsyncSession, layout: Layout) -> Layout:
        """创建布局并设为活动（同一事务内取消其他布局的活动状态）"""
        try:
            await db.execute(update(Layout).where(Layout.is_active == True).values(is_active=False))  # noqa: E712
            layout.is_active = True
            db.add(layout)
            await db.commit()
            await db.refresh(layout)
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"failed to create layout {layout.layout_id}: {e}") from e

        await delete_cache(_active_cache_key())
        logger.info("布局 %s 已创建并激活", layout.layout_id)
        return layout

    @staticmethod
    async def set_active(db: AsyncSession, layout_id: str) -> Layout:
        """切换活动布局"""
        layout = await LayoutService.get_by_layout_id(db, layout_id)
        try:
            await db.execute(update(Layout).where(Layout.id != layout.id).values(is_active=False))
            layout.is_active = True
            await db.commit()
            await db.refresh(layout)
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"failed to activate layout {layout_id}: {e}") from e

        await delete_cache(_active_cache_key())
        logger.info("布局 %s 已激活", layout_id)
        return layout

    @staticmethod
    async def delete(db: AsyncSession, layout_id: str) -> None:
        """删除布局"""
        layout = await LayoutService.get_by_layout_id(db, layout_id)
        try:
            await db.delete(layout)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"failed to delete layout {layout_id}: {e}") from e

        await delete_cache(_active_cache_key())
        logger.info("布局 %s 已删除", layout_id)

    @staticmethod
    async def list_layouts(db: AsyncSession, limit: int = 50, offset: int = 0) -> List[Layout]:
        """布局列表：活动布局在前，其余按创建时间倒序"""
        try:
            result = await db.execute(
                select(Layout)
                .order_by(Layout.is_active.desc(), Layout.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to list layouts: {e}") from e

    @staticmethod
    async def count(db: AsyncSession) -> int:
        try:
            result = await db.execute(select(func.count()).select_from(Layout))
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to count layouts: {e}") from e

    @staticmethod
    async def find_layout(db: AsyncSession, layout_id: str) -> Optional[Layout]:
        """按布局标识查询，不存在时返回 None"""
        try:
            result = await db.execute(select(Layout).where(Layout.layout_id == layout_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to look up layout {layout_id}: {e}") from e
