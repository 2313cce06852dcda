from __future__ import annotations

import logging
import sys

from rich.console import ConsoleRenderable
from rich.logging import RichHandler
from rich.text import Text


class StyledStandardHandler(RichHandler):
    """
    基于 rich 的控制台日志处理器.

    WARNING 以下写入标准输出, 其余写入标准错误; 未显示级别列时按级别给消息着色.
    """

    def __init__(
        self,
        show_time: bool = False,
        show_level: bool = False,
    ) -> None:
        super().__init__(
            show_time=show_time,
            show_level=show_level,
            show_path=False,
            markup=False,
            rich_tracebacks=False,
            log_time_format="%Y-%m-%d %H:%M:%S",
        )
        self.show_level = show_level

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < logging.WARNING:
            self.console.file = sys.stdout
        else:
            self.console.file = sys.stderr
        super().emit(record)

    def render_message(
        self, record: logging.LogRecord, message: str
    ) -> ConsoleRenderable:
        text = super().render_message(record, message)

        if not self.show_level and isinstance(text, Text):
            if record.levelno == logging.DEBUG:
                text.stylize("dim")
            elif record.levelno == logging.WARNING:
                text.stylize("yellow")
            elif record.levelno == logging.ERROR:
                text.stylize("red")
            elif record.levelno == logging.CRITICAL:
                text.stylize("bold white on red")

        return text
