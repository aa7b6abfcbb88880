"""
布局模型：每个布局一行，schema 以 JSON 文档整体存储
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from layout_manager.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Layout(Base):
    """布局表（全局最多一个 is_active=True）"""

    __tablename__ = "layouts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    layout_id = Column(String(255), nullable=False, unique=True, index=True, comment="可读布局标识")
    name = Column(String(255), nullable=False, default="", comment="显示名称")
    description = Column(String(1000), nullable=False, default="", comment="布局描述")
    # 属性名避开 schema，列名保持 schema
    layout_schema = Column(
        "schema",
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        comment="响应式断点布局文档（整体覆盖写入）",
    )
    is_active = Column(Boolean, nullable=False, default=False, index=True, comment="是否为活动布局")
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow)

    def __repr__(self):
        return f"<Layout(layout_id={self.layout_id}, name={self.name}, active={self.is_active})>"
