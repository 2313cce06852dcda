"""
CaseInsensitiveMap 的构造选项.

选项由 Pydantic 模型校验:
- kind: 后端存储种类, 可传 BackingKind 或其名称/取值字符串(大小写不敏感)
- initial_capacity: 容量提示, 不能为负数
- load_factor: 负载因子提示, 必须为正的有限数

示例:
    >>> MapOptions(kind="sorted").kind
    <BackingKind.SORTED: 'sorted'>
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import ConfigDict, Field

from pwt.casemap.backing import BackingKind
from pwt.casemap.pydantic_utils import BaseModelEx, check, convert

LOAD_FACTOR_DEFAULT = 0.75


def _to_backing_kind(value: Any) -> Any:
    if isinstance(value, str):
        name = value.strip().upper().replace("-", "_")
        if name in BackingKind.__members__:
            return BackingKind[name]
        return BackingKind(value.strip().lower())
    return value


class MapOptions(BaseModelEx):
    model_config = ConfigDict(frozen=True)

    kind: Annotated[
        BackingKind,
        convert(_to_backing_kind),
    ] = BackingKind.INSERTION_ORDERED
    initial_capacity: Annotated[int | None, Field(ge=0)] = None
    load_factor: Annotated[
        float,
        Field(gt=0),
        check(math.isfinite, check_result=True, description="load_factor must be finite"),
    ] = LOAD_FACTOR_DEFAULT
