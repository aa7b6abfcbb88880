"""
REST 接口统一响应包装

MCP 工具返回 OperationResult，不经过这里。
"""
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar('T')


class ResponseModel(BaseModel, Generic[T]):
    """{success, code, message, data} 信封"""
    success: bool
    code: int
    message: str
    data: Optional[T] = None

    @classmethod
    def success_response(cls, data: T = None, message: str = "操作成功", code: int = 200):
        return cls(success=True, code=code, message=message, data=data)

    @classmethod
    def error_response(cls, message: str = "操作失败", code: int = 400, data: T = None):
        return cls(success=False, code=code, message=message, data=data)

    @classmethod
    def page_response(cls, items: List[Any], total: int, limit: int, offset: int, message: str = "获取成功"):
        """分页列表，data 为 {items, total, limit, offset}"""
        return cls.success_response(
            data={"items": items, "total": total, "limit": limit, "offset": offset},
            message=message,
        )
