"""
Scraper 工具函数层
"""

from scraper.utils.logger import ColoredFormatter, SecureFileHandler, get_logger, set_log_level

__all__ = [
    "ColoredFormatter",
    "SecureFileHandler",
    "get_logger",
    "set_log_level",
]
