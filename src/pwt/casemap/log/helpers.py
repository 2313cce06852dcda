from __future__ import annotations

import json
import logging
import sys
import traceback
from typing import Any, Literal

LOGGER_NAME = "pwt.casemap"


def get_logger_adapter(name: str | None = None) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name))


class StandardHandler(logging.Handler):
    """
    标准日志处理器, WARNING 以下写入标准输出, 其余写入标准错误.
    """

    def __init__(self) -> None:
        super().__init__()
        self.stdout = sys.stdout
        self.stderr = sys.stderr

    def flush(self) -> None:
        with self.lock:  # type: ignore
            self.stdout.flush()
            self.stderr.flush()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            stream = self.stdout if record.levelno < logging.WARNING else self.stderr
            stream.write(msg + "\n")
            stream.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def __repr__(self) -> str:
        level = logging.getLevelName(self.level)
        return f"<{type(self).__name__} <stdout> <stderr> ({level})>"


class EnhancedFormatter(logging.Formatter):
    """
    扩展的日志格式化器

    - 支持记录级别的 `_style` 字段, 按 `%` 或 `{` 风格渲染消息;
    - output_format 为 json 时输出结构化日志, 额外字段原样附加.
    """

    # fmt: off
    RESERVED_FIELDS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
        'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName', 'created', 'msecs',
        'relativeCreated', 'thread', 'threadName', 'processName', 'process', 'taskName',
        'message', 'asctime', 'stacklevel', 'logger'
    }
    # fmt: on

    def __init__(
        self,
        textfmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{"] = "{",
        validate: bool = True,
        *,
        output_format: Literal["text", "json"] = "text",
    ) -> None:
        super().__init__(textfmt, datefmt, style, validate)
        self.output_format = output_format

    def format(self, record: logging.LogRecord) -> str:
        record.message = self.getMessage(record)
        record.asctime = self.formatTime(record, self.datefmt)

        if self.output_format == "text":
            return self.formatMessage(record)
        return self.formatJson(record)

    def getMessage(self, record: logging.LogRecord) -> str:
        msg = str(record.msg)
        args = record.args or ()
        style = getattr(record, "_style", "%")

        try:
            if style == "%":
                return record.getMessage()
            elif style == "{":
                return msg.format(*args, **vars(record))
            return msg
        except Exception:
            return msg

    def formatJson(self, record: logging.LogRecord) -> str:
        json_dict: dict[str, Any] = {
            "timestamp": record.asctime,
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "location": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        }
        if record.exc_info:
            typ, value, tb = record.exc_info
            json_dict["exception"] = {
                "$type": f"{typ.__module__}.{typ.__name__}" if typ else None,
                "message": str(value) if value else None,
                "traceback": traceback.format_exception(typ, value, tb),
            }
        for key, value in vars(record).items():
            if key not in self.RESERVED_FIELDS and not key.startswith("_"):
                json_dict[key] = value

        return json.dumps(json_dict, ensure_ascii=False, default=str)


class LoggerAdapter:
    """
    日志适配器, 封装标准库 `logging.Logger`

    - `log`: `%` 占位符格式(默认 logging 行为)
    - `logf`: `{}` 格式化(`str.format` 风格), 关键字参数作为格式化字段

    通过构造函数传入的 `extra` 字段会自动合并到每条日志记录中.
    """

    def __init__(self, logger: logging.Logger, **extra: Any) -> None:
        self.logger = logger
        self.extra = extra

    def process(
        self,
        msg: str,
        style: Literal["%", "{"],
        kwargs: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        if style != "%":
            extra = kwargs.pop("extra", {})
            kwargs = {**extra, "extra": kwargs}
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {}), "_style": style}
        return msg, kwargs

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        msg, kwargs = self.process(msg, "%", kwargs)
        self.logger.log(level, msg, *args, **kwargs)

    def debugf(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logf(logging.DEBUG, msg, *args, **kwargs)

    def logf(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        msg, kwargs = self.process(msg, "{", kwargs)
        self.logger.log(level, msg, *args, **kwargs)
