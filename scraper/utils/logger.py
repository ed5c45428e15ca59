"""
日志工具

提供彩色日志输出和可选的文件日志。库内各模块统一使用
logging.getLogger(__name__)，本模块只负责在需要时给 "scraper" 日志器挂载 handler。

使用示例:
    from scraper.utils.logger import get_logger

    log = get_logger("scraper", level=logging.DEBUG)
    log.debug("调试信息")
"""

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union


class ColoredFormatter(logging.Formatter):
    """
    彩色日志格式化器

    根据日志级别为日志消息添加 ANSI 颜色代码，非终端输出时自动关闭。
    """

    COLORS = {
        "DEBUG": "\033[36m",  # 青色
        "INFO": "\033[32m",  # 绿色
        "WARNING": "\033[33m",  # 黄色
        "ERROR": "\033[31m",  # 红色
        "CRITICAL": "\033[35m",  # 紫色
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"
    NAME_COLOR = "\033[94m"  # 蓝色

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        colored: bool = True,
        stream=None,
    ):
        """
        初始化彩色格式化器

        Args:
            fmt: 日志格式字符串
            datefmt: 时间格式字符串
            colored: 是否启用颜色
            stream: 输出流，用于检测是否为终端
        """
        super().__init__(fmt, datefmt)
        self.colored = colored and self._supports_color(stream or sys.stderr)

    @staticmethod
    def _supports_color(stream) -> bool:
        """检测终端是否支持颜色"""
        if not hasattr(stream, "isatty") or not stream.isatty():
            return False
        if os.environ.get("NO_COLOR"):
            return False
        return True

    def format(self, record: logging.LogRecord) -> str:
        if not self.colored:
            return super().format(record)

        level_color = self.COLORS.get(record.levelname, "")
        original_levelname = record.levelname
        original_name = record.name

        record.levelname = f"{level_color}{self.BOLD}{record.levelname:8}{self.RESET}"
        record.name = f"{self.NAME_COLOR}{record.name}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # 恢复原始值（避免影响其他 handler）
            record.levelname = original_levelname
            record.name = original_name


class SecureFileHandler(RotatingFileHandler):
    """
    文件日志处理器

    自动创建日志目录，UTF-8 编码，写入前掩盖 Cookie 值和凭据。
    """

    SENSITIVE_PATTERNS = [
        (re.compile(r"(Cookie|Set-Cookie)(\s*[:=]\s*)[^\r\n|]+", re.IGNORECASE), r"\1\2***"),
        (
            re.compile(
                r"(password|passwd|secret|token|session|sid|csrf)(\s*[=:]\s*)[\"']?[^\"'\s;,&]+",
                re.IGNORECASE,
            ),
            r"\1\2***",
        ),
        (re.compile(r"(value=)[\"']?[^\"'\s,)]+", re.IGNORECASE), r"\1***"),
        (re.compile(r"Bearer\s+[A-Za-z0-9\-_\.]+"), "Bearer ***"),
        (re.compile(r"Basic\s+[A-Za-z0-9+/=]+"), "Basic ***"),
    ]

    def __init__(
        self,
        filename: Union[str, Path],
        maxBytes: int = 10 * 1024 * 1024,  # 10MB
        backupCount: int = 5,
        filter_sensitive: bool = True,
    ):
        log_path = Path(filename)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path), maxBytes=maxBytes, backupCount=backupCount, encoding="utf-8"
        )
        self.filter_sensitive = filter_sensitive

    def emit(self, record: logging.LogRecord) -> None:
        if self.filter_sensitive:
            record.msg = self.mask_sensitive(record.getMessage())
            record.args = None
        super().emit(record)

    @classmethod
    def mask_sensitive(cls, msg: str) -> str:
        """掩盖敏感信息"""
        for pattern, replacement in cls.SENSITIVE_PATTERNS:
            msg = pattern.sub(replacement, msg)
        return msg


CONSOLE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(
    name: str = "scraper",
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    colored: bool = True,
    log_to_console: bool = True,
    filter_sensitive: bool = True,
    stream=None,
) -> logging.Logger:
    """
    获取配置好的日志器

    Args:
        name: 日志器名称
        level: 日志级别（默认 INFO）
        log_file: 日志文件路径，为 None 时不写文件
        colored: 是否启用彩色输出
        log_to_console: 是否输出到控制台
        filter_sensitive: 文件日志是否掩盖敏感信息
        stream: 控制台输出流（默认 stderr）

    Returns:
        配置好的 Logger 实例

    使用示例:
        >>> log = get_logger("scraper", level=logging.DEBUG)
        >>> log.debug("Redirecting to: http://example.com/next")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 已配置过则只调整级别
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.propagate = False

    if log_to_console:
        stream = stream or sys.stderr
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            ColoredFormatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT, colored=colored, stream=stream)
        )
        logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = SecureFileHandler(filename=log_file, filter_sensitive=filter_sensitive)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def set_log_level(logger_name: str, level: Union[int, str]) -> None:
    """
    动态设置日志级别

    Args:
        logger_name: 日志器名称
        level: 日志级别（可以是 int 或字符串如 'DEBUG'）
    """
    logger = logging.getLogger(logger_name)

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


__all__ = [
    "ColoredFormatter",
    "SecureFileHandler",
    "get_logger",
    "set_log_level",
]
