"""
有状态的抓取会话

Scraper 把浏览历史、Cookie 容器、重定向控制和传输层组合在一起，
用于编写需要保持 Cookie、跟随重定向链的网站交互脚本 (登录流程、多步表单等)。

非线程安全：一个 Scraper 同一时间只应由一个线程驱动，并发使用需由调用方加锁。
"""

import copy
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urljoin, urlsplit

import requests
from requests.adapters import BaseAdapter

from .codec import SessionDocument, export_session, import_session
from .config import ScraperConfig
from .cookies import Cookie, CookieStore, Origin
from .exceptions import MalformedURLError, NonSuccessStatusError
from .history import History
from .redirect import RedirectGovernor
from .transport import TRANSPORT_MAX_REDIRECTS, RedirectAwareSession, create_transport
from .utils.logger import get_logger, set_log_level

logger = logging.getLogger(__name__)


class Page:
    """请求结果页面，包装 requests.Response"""

    def __init__(self, response: requests.Response):
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def reason(self) -> str:
        return self.response.reason or ""

    @property
    def url(self) -> str:
        """最终 URL (跟随重定向之后)"""
        return self.response.url

    @property
    def headers(self) -> Mapping[str, str]:
        return self.response.headers

    @property
    def content(self) -> bytes:
        return self.response.content

    @property
    def text(self) -> str:
        return self.response.text

    @property
    def history(self) -> List[requests.Response]:
        """本次请求途经的重定向响应"""
        return list(self.response.history)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    def json(self, **kwargs) -> Any:
        return self.response.json(**kwargs)

    def __repr__(self) -> str:
        return f"Page(status_code={self.status_code}, url={self.url!r})"


class Scraper:
    """有状态的 HTTP 客户端 - 保持 Cookie 和浏览历史"""

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        transport: Optional[RedirectAwareSession] = None,
    ):
        """
        初始化会话

        Args:
            config: 配置，默认 ScraperConfig()
            transport: 复用调用方构建的传输层 (保留其 adapter、请求头和 Cookie)
        """
        self._config = config or ScraperConfig()
        self._history = History()
        self._governor = RedirectGovernor(self._history, limit=self._config.max_redirects)

        if transport is None:
            transport = create_transport(verify_ssl=self._config.verify_ssl)
        self._transport = transport
        self._transport.redirect_hook = self._governor.on_redirect
        self._cookies = CookieStore(self._transport.cookies)

        self._created_at = time.time()
        self._request_count = 0
        self._applied_headers: Dict[str, str] = {}
        self._debug_enabled = False

        self._apply_config()

    # ==================== 配置 ====================

    @property
    def config(self) -> ScraperConfig:
        return self._config

    def reconfigure(self, **changes: Any) -> "Scraper":
        """
        用新配置整体替换当前配置，只应在两次请求之间调用

        Examples:
            scraper.reconfigure(user_agent="bot/2.0").reconfigure(base_url="http://example.com")
        """
        self._config = self._config.replace(**changes)
        self._apply_config()
        return self

    def _apply_config(self) -> None:
        config = self._config
        headers = config.merge_headers()

        # 上一份配置设置过、新配置不再包含的请求头要移除，调用方自己加的保留
        for name in self._applied_headers:
            if name not in headers:
                self._transport.headers.pop(name, None)
        self._transport.headers.update(headers)
        self._applied_headers = headers

        self._transport.verify = config.verify_ssl
        self._transport.max_redirects = max(TRANSPORT_MAX_REDIRECTS, config.max_redirects + 1)
        self._governor.limit = config.max_redirects

        if config.debug:
            get_logger("scraper", level=logging.DEBUG)
            self._debug_enabled = True
        elif self._debug_enabled:
            set_log_level("scraper", logging.INFO)
            self._debug_enabled = False

    def mount(self, prefix: str, adapter: BaseAdapter) -> "Scraper":
        """为指定前缀挂载传输 adapter"""
        self._transport.mount(prefix, adapter)
        return self

    # ==================== 状态 ====================

    @property
    def history(self) -> History:
        return self._history

    @property
    def cookies(self) -> CookieStore:
        return self._cookies

    @property
    def transport(self) -> RedirectAwareSession:
        return self._transport

    @property
    def redirects(self) -> RedirectGovernor:
        return self._governor

    def resolve_url(self, url: str) -> str:
        """
        基于 base_url 解析目标地址

        Args:
            url: 路径或完整 URL

        Returns:
            完整 URL；没有 base_url 时相对路径原样返回
        """
        if urlsplit(url).scheme:
            return url
        base_url = self._config.base_url
        if base_url:
            return urljoin(base_url.rstrip("/") + "/", url.lstrip("/"))
        return url

    # ==================== 请求 ====================

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Page:
        """
        发送 GET 请求

        网络错误时 requests 的异常原样抛出；非 2xx 响应抛出 NonSuccessStatusError，
        其 page 属性保留响应，便于解析错误页面。
        """
        return self._dispatch("GET", url, params=params, **kwargs)

    def post(self, url: str, form: Optional[Dict[str, Any]] = None, **kwargs) -> Page:
        """以表单作为请求体发送 POST 请求"""
        return self._dispatch("POST", url, data=form, **kwargs)

    def do(self, request: requests.Request) -> Page:
        """
        发送调用方构建的请求

        Args:
            request: requests.Request，url 可以是相对路径

        Returns:
            Page 对象
        """
        resolved = copy.copy(request)
        resolved.url = self.resolve_url(request.url)
        prepared = self._transport.prepare_request(resolved)
        return self._execute(
            resolved.url,
            lambda: self._transport.send(
                prepared,
                allow_redirects=True,
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
            ),
        )

    def _dispatch(self, method: str, url: str, **kwargs) -> Page:
        target = self.resolve_url(url)
        kwargs.setdefault("timeout", self._config.timeout)
        kwargs.setdefault("allow_redirects", True)
        return self._execute(target, lambda: self._transport.request(method, target, **kwargs))

    def _execute(self, target: str, send) -> Page:
        self._history.add(target)
        self._governor.start(target)
        try:
            response = send()
        finally:
            self._governor.finish()
        self._request_count += 1

        page = Page(response)
        logger.debug("%s %s -> %d", response.request.method, target, page.status_code)
        if not page.ok:
            raise NonSuccessStatusError(page=page)
        return page

    # ==================== Cookie ====================

    def cookies_for(self, url: str) -> List[Cookie]:
        """获取适用于指定 URL 的 Cookie"""
        return self._cookies.cookies_for(url)

    def set_cookies(self, url: str, cookies: List[Cookie]) -> int:
        """为 URL 所属 Origin 写入 Cookie"""
        return self._cookies.set_cookies(url, cookies)

    def set_cookie(self, cookie: Cookie) -> bool:
        """
        直接注入单个 Cookie (如从浏览器复制的 Cookie)，无需真实请求

        按 Domain 合成 http://<host> 地址写入，并记录到浏览历史。
        合成地址总是使用 http，与 Cookie 的 secure 标记无关。

        Args:
            cookie: 带 Domain 的 Cookie

        Returns:
            是否写入成功
        """
        host = (cookie.domain or "").lstrip(".")
        try:
            origin = Origin.from_url(f"http://{host}")
        except MalformedURLError as e:
            logger.warning("Cookie %s 的 Domain 非法，跳过: %s", cookie.name, e)
            return False

        logger.debug("Setting cookie: u=%s ; name=%s", origin, cookie.name)
        stored = self._cookies.set_cookies(origin.url, [cookie])
        self._history.add(origin.url)
        return stored > 0

    # ==================== 会话文档 ====================

    def export_session(self) -> SessionDocument:
        """导出浏览过的 Origin 的 Cookie"""
        return export_session(self._cookies, self._history)

    def import_session(self, document: SessionDocument) -> int:
        """导入会话文档，返回恢复的 Origin 数量"""
        return import_session(document, self._cookies, self._history)

    def export_cookies(self) -> bytes:
        """导出为 2 空格缩进的 JSON 字节串，写到哪里由调用方决定"""
        return self.export_session().to_json(indent=2).encode("utf-8")

    def import_cookies(self, data: Union[str, bytes]) -> int:
        """
        从 JSON 导入 Cookie

        Raises:
            SessionDocumentError: 文档不是合法 JSON
        """
        return self.import_session(SessionDocument.from_json(data))

    # ==================== 生命周期 ====================

    def close(self) -> None:
        """关闭传输层连接池"""
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def get_stats(self) -> Dict[str, Any]:
        """获取会话统计信息"""
        return {
            "base_url": self._config.base_url,
            "created_at": self._created_at,
            "request_count": self._request_count,
            "cookie_count": len(self._cookies),
            "history_size": len(self._history),
            "uptime": time.time() - self._created_at,
        }

    def __repr__(self) -> str:
        return (
            f"Scraper(base_url={self._config.base_url!r}, "
            f"requests={self._request_count}, "
            f"cookies={len(self._cookies)})"
        )


__all__ = [
    "Page",
    "Scraper",
]
