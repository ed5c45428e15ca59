"""
Scraper 配置

配置对象在发出请求前一次性构建，之后不可变。
需要调整 User-Agent、基础 URL 等参数时，通过 with_* / replace 生成新的配置，
再交给 Scraper.reconfigure() 整体替换。
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .exceptions import ConfigError
from .redirect import DEFAULT_MAX_REDIRECTS

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "scraper/1.0"


@dataclass(frozen=True)
class ScraperConfig:
    """Scraper 统一配置"""

    # 相对路径会基于此 URL 解析
    base_url: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT

    # 透传给传输层的超时 (秒)，None 表示不限
    timeout: Optional[float] = 30.0

    # 单个请求允许跟随的最大重定向跳数
    max_redirects: int = DEFAULT_MAX_REDIRECTS

    verify_ssl: bool = True
    debug: bool = False

    default_headers: Dict[str, str] = field(
        default_factory=lambda: {
            "Accept": "*/*",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
    )

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        校验配置

        Raises:
            ConfigError: 参数无效
        """
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(
                "timeout 必须为正数", details={"key": "timeout", "value": self.timeout}
            )
        if self.max_redirects < 0:
            raise ConfigError(
                "max_redirects 不能为负数",
                details={"key": "max_redirects", "value": self.max_redirects},
            )
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(
                "base_url 必须是 http(s) 绝对地址",
                details={"key": "base_url", "value": self.base_url},
            )

    def replace(self, **changes: Any) -> "ScraperConfig":
        """返回修改后的配置副本"""
        return dataclasses.replace(self, **changes)

    def with_base_url(self, base_url: Optional[str]) -> "ScraperConfig":
        return self.replace(base_url=base_url)

    def with_user_agent(self, user_agent: str) -> "ScraperConfig":
        return self.replace(user_agent=user_agent)

    def merge_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        合并默认请求头、User-Agent 和自定义请求头

        Args:
            headers: 自定义请求头

        Returns:
            合并后的请求头
        """
        merged = dict(self.default_headers)
        merged["User-Agent"] = self.user_agent
        if headers:
            merged.update(headers)
        return merged

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScraperConfig":
        """
        从字典加载配置，未知键忽略

        Args:
            data: 配置字典

        Returns:
            ScraperConfig 实例
        """
        changes: Dict[str, Any] = {}

        if "base_url" in data:
            changes["base_url"] = data["base_url"]
        if "user_agent" in data:
            changes["user_agent"] = str(data["user_agent"])
        if "timeout" in data:
            timeout = data["timeout"]
            changes["timeout"] = float(timeout) if timeout is not None else None
        if "max_redirects" in data:
            changes["max_redirects"] = int(data["max_redirects"])
        if "verify_ssl" in data:
            changes["verify_ssl"] = bool(data["verify_ssl"])
        if "debug" in data:
            changes["debug"] = bool(data["debug"])
        if "headers" in data:
            headers = cls().default_headers
            headers.update(data["headers"])
            changes["default_headers"] = headers

        return cls(**changes)

    def to_dict(self) -> Dict[str, Any]:
        """导出为字典"""
        return {
            "base_url": self.base_url,
            "user_agent": self.user_agent,
            "timeout": self.timeout,
            "max_redirects": self.max_redirects,
            "verify_ssl": self.verify_ssl,
            "debug": self.debug,
            "headers": dict(self.default_headers),
        }


# 预定义配置模板
class ConfigPresets:
    """预定义配置模板"""

    @staticmethod
    def browser() -> ScraperConfig:
        """模拟真实浏览器"""
        return ScraperConfig(
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Safari/537.36"
            ),
            default_headers={
                "Accept": (
                    "text/html,application/xhtml+xml,application/xml;"
                    "q=0.9,image/avif,image/webp,*/*;q=0.8"
                ),
                "Accept-Language": "en-US,en;q=0.5",
                "Accept-Encoding": "gzip, deflate",
                "Connection": "keep-alive",
                "Upgrade-Insecure-Requests": "1",
            },
        )

    @staticmethod
    def debug() -> ScraperConfig:
        """调试配置"""
        return ScraperConfig(debug=True)


__all__ = [
    "ScraperConfig",
    "ConfigPresets",
    "DEFAULT_USER_AGENT",
]
