"""
测试公共夹具：内存 sqlite 数据库、示例布局与工具服务
"""
import os

# 必须在导入 layout_manager 之前设置
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from layout_manager.core.database import Base
from layout_manager.models import Layout
from layout_manager.schemas.layout_schema import LayoutItem, LayoutSchema, default_empty_schema
from layout_manager.services.layout_tools import LayoutToolService


def make_item(i: str, x: int, y: int, w: int, h: int, component_type: str = "chart", **props) -> LayoutItem:
    return LayoutItem(i=i, x=x, y=y, w=w, h=h, componentType=component_type, props=props)


def make_schema(items: Optional[List[LayoutItem]] = None, breakpoint: str = "lg") -> LayoutSchema:
    schema = default_empty_schema()
    schema.layouts[breakpoint] = list(items or [])
    return schema


def sample_items() -> List[LayoutItem]:
    """
    lg 断点示例布局（12 列）：
    sales-chart     (0,0,4,3)  top-left
    revenue-metric  (4,0,2,2)  top-left
    customer-table  (6,0,6,4)  top-right
    notes           (0,3,3,2)  bottom-left
    """
    return [
        make_item("sales-chart", 0, 0, 4, 3, "chart", title="Sales Overview", chartType="line"),
        make_item("revenue-metric", 4, 0, 2, 2, "metric", title="Revenue", unit="USD"),
        make_item("customer-table", 6, 0, 6, 4, "table", title="Customer Orders"),
        make_item("notes", 0, 3, 3, 2, "text", title="Team Notes", content="Weekly notes"),
    ]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def store_layout(db: AsyncSession, layout_id: str, schema: LayoutSchema, active: bool = True,
                       name: str = "Sample Dashboard") -> Layout:
    layout = Layout(
        layout_id=layout_id,
        name=name,
        description="fixture layout",
        layout_schema=schema.to_document(),
        is_active=active,
    )
    db.add(layout)
    await db.commit()
    await db.refresh(layout)
    return layout


@pytest.fixture
async def active_layout(db) -> Layout:
    return await store_layout(db, "sample-dashboard", make_schema(sample_items()))


@pytest.fixture
def tools() -> LayoutToolService:
    return LayoutToolService(enforce_constraints=True, default_breakpoint="lg")


async def reload_schema(db: AsyncSession, layout_id: str = "sample-dashboard") -> LayoutSchema:
    """丢弃会话缓存后从数据库重新读取 schema"""
    from sqlalchemy import select

    db.expire_all()
    result = await db.execute(select(Layout).where(Layout.layout_id == layout_id))
    return LayoutSchema.from_document(result.scalar_one().layout_schema)
