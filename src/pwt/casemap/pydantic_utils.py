"""
基于 Pydantic v2 验证机制的通用工具集.

提供:
- 格式化 ValidationError 为结构化列表
- 构建通用字段转换器 / 检查器(单值 / 列表)
- 扩展 BaseModel, 支持空值回退到字段默认值

转换器和检查器均以 BeforeValidator / AfterValidator 封装, 可直接用于 Annotated 字段.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic_core import PydanticCustomError, PydanticUndefined


def format_validation_error(exc: ValidationError) -> list[dict[str, Any]]:
    """
    将 Pydantic 的 ValidationError 转换为结构化错误列表.

    Args:
        exc: Pydantic 抛出的验证异常对象.

    Returns:
        每个错误包含字段路径/提示信息/错误类型和原始输入值.
    """
    return [
        {
            "field": ".".join(map(str, error.get("loc", ()))),
            "message": error.get("msg", None),
            "type": error.get("type", None),
            "input": error.get("input", None),
        }
        for error in exc.errors()
    ]


def convert(
    func: Callable[..., Any],
    data_shape: Literal["obj", "list"] = "obj",
    ignore_none: bool = True,
    description: str | None = None,
    **func_kwds: Any,
) -> BeforeValidator:
    """
    构造一个在 Pydantic 验证前执行的值转换器.

    Args:
        func: 转换函数, obj 模式接收单值, list 模式逐个接收元素.
        data_shape: 输入数据结构类型.
        ignore_none: 值为 None 时是否跳过转换.
        description: 自定义错误信息.
        **func_kwds: 传给 `func` 的额外关键字参数.

    Returns:
        可用于 Pydantic 字段的转换器.
    """
    partial_func = partial(func, **func_kwds)

    def validator(data: Any) -> Any:
        if ignore_none and data is None:
            return data

        try:
            if data_shape == "list":
                return [partial_func(value) for value in data]
            return partial_func(data)
        except Exception as ex:
            raise PydanticCustomError(
                "Convert failed",
                "{reason}",
                {"reason": description or str(ex)},
            )

    return BeforeValidator(validator)


def check(
    func: Callable[..., Any],
    data_shape: Literal["obj", "list"] = "obj",
    ignore_none: bool = True,
    check_result: bool = False,
    description: str | None = None,
    **func_kwds: Any,
) -> AfterValidator:
    """
    构造一个在 Pydantic 验证后执行的检查器.

    Args:
        func: 检查函数, obj 模式接收单值, list 模式逐个接收元素.
        data_shape: 输入数据结构类型.
        ignore_none: 值为 None 时是否跳过检查.
        check_result: 是否要求函数返回值为真.
        description: 自定义错误信息.
        **func_kwds: 传给 `func` 的额外关键字参数.

    Returns:
        可用于 Pydantic 字段的检查器.
    """
    partial_func = partial(func, **func_kwds)

    def validator(data: Any) -> Any:
        if ignore_none and data is None:
            return data

        values = data if data_shape == "list" else [data]
        try:
            for value in values:
                result = partial_func(value)
                if check_result and not result:
                    raise ValueError("Return value check failed")
        except Exception as ex:
            raise PydanticCustomError(
                "Check failed",
                "{reason}",
                {"reason": description or str(ex)},
            )
        return data

    return AfterValidator(validator)


class BaseModelEx(BaseModel):
    """
    扩展版 BaseModel.

    当字段值为空(空序列/空集合/空字符串/None)时, 自动回退到字段默认值(若有).
    """

    @field_validator("*", mode="wrap")
    @classmethod
    def use_default_value(
        cls: type[BaseModelEx],
        value: Any,
        validator: ValidatorFunctionWrapHandler,
        info: ValidationInfo,
        /,
    ) -> Any:
        if value in ([], {}, (), set(), "", None):
            if info and info.field_name:
                field_info = cls.model_fields.get(info.field_name)
                if field_info:
                    default = field_info.get_default(call_default_factory=True)
                    if default is not PydanticUndefined:
                        if info.config and info.config.get("validate_default"):
                            return validator(default)
                        return default
        return validator(value)
