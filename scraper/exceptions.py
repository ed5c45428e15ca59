"""
Scraper 异常定义

会话引擎统一的异常类型。网络层错误 (DNS、连接拒绝、超时) 不在此定义,
由 requests 原样抛出 (requests.RequestException 及其子类)。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ScraperError(Exception):
    """
    Scraper 基础异常类

    details 保存 URL、状态码、跳数等上下文，写日志或序列化时一并输出;
    cause 挂到 __cause__ 上，和 raise ... from 效果相同。

    示例:
        >>> raise ScraperError("会话文档无法解码", details={"origin": "http://example.com"})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        """错误代码，即异常类名"""
        return type(self).__name__

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        text = self.message
        if self.details:
            context = ", ".join(f"{key}={value}" for key, value in self.details.items())
            text = f"{text} ({context})"
        if self.__cause__ is not None:
            text = f"{text} | Caused by: {type(self.__cause__).__name__}: {self.__cause__}"
        return text

    def __repr__(self) -> str:
        return f"{self.code}(message={self.message!r}, details={self.details!r})"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式，便于 JSON 序列化"""
        result: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.__cause__ is not None:
            result["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return result


class ConfigError(ScraperError):
    """
    配置错误

    当配置参数无效时抛出 (如负数超时、负数重定向上限)。

    示例:
        >>> raise ConfigError("无效的配置项", details={"key": "timeout", "value": -1})
    """

    pass


class HTTPError(ScraperError):
    """
    HTTP 请求错误基类

    属性:
        status_code: HTTP 状态码（可选）
        url: 请求的 URL（可选）
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.url = url

        if status_code is not None:
            self.details["status_code"] = status_code
        if url:
            self.details["url"] = url


class NonSuccessStatusError(HTTPError):
    """
    非 2xx 响应

    与网络错误不同，此时已经拿到了响应，page 属性保留完整页面，
    调用方可以继续读取错误响应体。
    """

    def __init__(
        self,
        message: Optional[str] = None,
        page: Optional[Any] = None,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ):
        if page is not None:
            status_code = status_code if status_code is not None else page.status_code
            url = url or page.url
        if message is None:
            reason = getattr(page, "reason", "") or ""
            message = f"non 2xx response code: {status_code} {reason}".rstrip()
        super().__init__(message, status_code=status_code, url=url, **kwargs)
        self.page = page

    @property
    def response(self):
        """与 requests.HTTPError 保持一致的别名"""
        return self.page


class TooManyRedirectsError(HTTPError):
    """重定向链超过上限，整个请求被中止，不返回任何页面"""

    def __init__(
        self,
        message: str = "too many redirects",
        url: Optional[str] = None,
        redirect_count: Optional[int] = None,
        limit: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, url=url, **kwargs)
        self.redirect_count = redirect_count
        self.limit = limit

        if redirect_count is not None:
            self.details["redirect_count"] = redirect_count
        if limit is not None:
            self.details["limit"] = limit


class MalformedURLError(ScraperError):
    """URL 无法解析为 Origin (缺少 scheme/host 或端口非法)"""

    def __init__(self, message: str = "malformed URL", url: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.url = url
        if url is not None:
            self.details["url"] = url


class SessionDocumentError(ScraperError):
    """会话文档无法解码 (非 JSON，或 Data 字段不是对象)"""

    pass


__all__ = [
    "ScraperError",
    "ConfigError",
    "HTTPError",
    "NonSuccessStatusError",
    "TooManyRedirectsError",
    "MalformedURLError",
    "SessionDocumentError",
]
