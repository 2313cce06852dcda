"""
定义大小写不敏感映射使用的异常体系.

异常层级结构如下:
    - CaseInsensitiveMapError: 所有异常的统一基类, 支持链式追踪.
        - UnsupportedViewOperationError: 在键视图/条目视图上调用 add 等不支持的写操作.
        - EntryTypeError: 向条目视图传入了非条目对象.

说明:
    - 两个子类同时继承 TypeError, 便于按标准库习惯捕获;
    - 缺失键仍然使用标准的 KeyError;
    - 后端存储自身的限制(如有序存储拒绝 None 键)直接向上抛出, 不做包装.
"""

from __future__ import annotations

from typing import Any


class CaseInsensitiveMapError(Exception):
    """
    所有 CaseInsensitiveMap 异常的基类, 具备错误链追踪能力.

    参数:
    - `*args`: 异常消息内容;
    - `cause`: 可选的原始异常, 用于记录异常链(自动赋值给 `__cause__`).
    """

    def __init__(self, *args: Any, cause: Exception | None = None) -> None:
        super().__init__(*args)
        self.cause: Exception | None = cause
        self.__cause__ = cause


class UnsupportedViewOperationError(CaseInsensitiveMapError, TypeError):
    """
    视图不支持的写操作.

    键视图和条目视图无法凭空构造一个映射条目(键缺少值), 因此 add/add_all 总是抛出.
    抛出前不会修改底层映射.
    """


class EntryTypeError(CaseInsensitiveMapError, TypeError):
    """
    条目类型不匹配.

    向条目视图的 remove 传入既不是 CaseInsensitiveEntry 也不是 (key, value) 二元组的对象.
    """
