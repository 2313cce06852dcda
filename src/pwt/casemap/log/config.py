from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime
from types import EllipsisType
from typing import Annotated, Literal

from pwt.casemap.log.console import StyledStandardHandler
from pwt.casemap.log.helpers import LOGGER_NAME, EnhancedFormatter, StandardHandler
from pwt.casemap.pydantic_utils import BaseModelEx, check, convert

OUTPUT_DEFAULT = "std"
OUTPUT_OPTIONS = ("std", "stdout", "stderr", "rich")
OUTPUT_TYPE = Literal["std", "stdout", "stderr", "rich"]

OUTPUT_FORMAT_DEFAULT = "text"
OUTPUT_FORMAT_TYPE = Literal["text", "json"]

TEXT_FORMAT_DEFAULT = "{asctime} {levelname} {name}: {message}"
DATE_FORMAT_DEFAULT = "%Y-%m-%d %H:%M:%S"

LEVEL_DEFAULT = "WARNING"
LEVEL_TYPE = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Handler(BaseModelEx):
    output: Annotated[
        str | OUTPUT_TYPE,
        convert(lambda v: vl if (vl := v.lower()) in OUTPUT_OPTIONS else v),
    ] = OUTPUT_DEFAULT
    output_format: Annotated[
        OUTPUT_FORMAT_TYPE,
        convert(str.lower),
    ] = OUTPUT_FORMAT_DEFAULT
    text_format: Annotated[
        str,
        check(lambda value: logging.StrFormatStyle(value).validate()),
    ] = TEXT_FORMAT_DEFAULT
    date_format: Annotated[
        str | None,
        check(datetime.now().strftime),
    ] = DATE_FORMAT_DEFAULT
    level: Annotated[
        LEVEL_TYPE,
        convert(str.upper),
    ] = LEVEL_DEFAULT


class Log(BaseModelEx):
    name: str = LOGGER_NAME
    level: Annotated[
        LEVEL_TYPE,
        convert(str.upper),
    ] = LEVEL_DEFAULT
    propagate: bool = True
    handlers: list[Handler] | None = None


def get_handler(log: Handler) -> logging.Handler:
    """
    根据处理器配置创建日志处理器.

    参数:
        log (Handler): 处理器配置的实例.

    返回:
        logging.Handler: 根据配置创建的日志处理器.

    异常:
        FileNotFoundError, PermissionError: 读写文件错误
    """
    if log.output == "std":
        handler: logging.Handler = StandardHandler()
    elif log.output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    elif log.output == "stderr":
        handler = logging.StreamHandler(sys.stderr)
    elif log.output == "rich":
        handler = StyledStandardHandler()
    else:
        handler = logging.handlers.WatchedFileHandler(log.output)

    if log.output == "rich":
        formatter = EnhancedFormatter("{message}", style="{")
    else:
        formatter = EnhancedFormatter(
            log.text_format,
            log.date_format,
            style="{",
            output_format=log.output_format,
        )
    handler.setFormatter(formatter)
    handler.setLevel(log.level)
    return handler


def get_logger(
    log: Log, *, logger: logging.Logger | str | None | EllipsisType = ...
) -> logging.Logger:
    """
    按配置重建日志记录器的级别/传播/处理器.

    参数:
        log (Log): 日志配置.
        logger: 目标记录器或其名称; 省略时使用 `log.name`.

    返回:
        logging.Logger: 配置完成的日志记录器.
    """
    if logger is ...:
        logger = logging.getLogger(log.name)
    elif not isinstance(logger, logging.Logger):
        logger = logging.getLogger(logger)

    logger.setLevel(log.level)
    logger.propagate = log.propagate

    for h in logger.handlers[:]:
        logger.removeHandler(h)
    if log.handlers is not None:
        for handler in log.handlers:
            logger.addHandler(get_handler(handler))

    return logger
