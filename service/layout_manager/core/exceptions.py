# -*- coding: utf-8 -*-
"""
布局引擎异常定义

所有异常在工具边界（LayoutToolService）被转换为失败响应，不会向调用方抛出。
"""
from typing import List, Optional


class LayoutError(Exception):
    """布局引擎异常基类"""

    code: int = 400
    kind: str = "error"

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class ValidationError(LayoutError):
    """参数缺失、数值/JSON 文本格式错误、不支持的操作"""

    code = 400
    kind = "validation_error"


class NotFoundError(LayoutError):
    """无活动布局、断点不存在、组件 ID 不存在、参照组件无法解析"""

    code = 404
    kind = "not_found"


class ConstraintError(LayoutError):
    """结果违反网格边界或组件注册表约束"""

    code = 422
    kind = "constraint_error"


class PersistenceError(LayoutError):
    """存储读写失败"""

    code = 500
    kind = "persistence_error"
