# -*- coding: utf-8 -*-
"""
JSON 工具模块：使用 orjson 序列化工具响应与缓存快照
"""
from typing import Union, Any

import orjson


def dumps(obj: Any) -> str:
    """序列化对象为 JSON 字符串（datetime 自动转为 ISO 8601）"""
    # orjson 返回 bytes，需要解码为字符串
    return orjson.dumps(obj, option=orjson.OPT_NON_STR_KEYS).decode('utf-8')


def loads(s: Union[str, bytes]) -> Any:
    """反序列化 JSON 字符串"""
    if isinstance(s, str):
        s = s.encode('utf-8')
    return orjson.loads(s)
