"""
有状态的 HTTP 抓取会话

按 Origin 保存 Cookie、记录浏览历史、限制重定向跳数，
并支持把会话状态导出为 JSON 文档、在下次运行时恢复。

使用示例:
    from scraper import Scraper, ScraperConfig, Cookie

    scraper = Scraper(ScraperConfig(base_url="https://example.com"))
    scraper.post("/login", form={"user": "alice", "password": "secret"})
    page = scraper.get("/account")
    print(page.status_code, page.text)

    # 保存会话
    data = scraper.export_cookies()

    # 下次运行时恢复
    scraper = Scraper()
    scraper.import_cookies(data)

    # 注入从浏览器复制的 Cookie
    scraper.set_cookie(Cookie(name="sid", value="x", domain=".example.com"))
"""

from .codec import SessionDocument, export_session, import_session
from .config import ConfigPresets, ScraperConfig
from .cookies import Cookie, CookieStore, Origin
from .exceptions import (
    ConfigError,
    HTTPError,
    MalformedURLError,
    NonSuccessStatusError,
    ScraperError,
    SessionDocumentError,
    TooManyRedirectsError,
)
from .history import History
from .redirect import DEFAULT_MAX_REDIRECTS, ChainState, RedirectGovernor
from .session import Page, Scraper
from .transport import RedirectAwareSession, create_transport

__all__ = [
    # 会话
    "Scraper",
    "Page",
    # 配置
    "ScraperConfig",
    "ConfigPresets",
    # 状态
    "History",
    "Origin",
    "Cookie",
    "CookieStore",
    "SessionDocument",
    "export_session",
    "import_session",
    # 重定向 / 传输
    "RedirectGovernor",
    "ChainState",
    "DEFAULT_MAX_REDIRECTS",
    "RedirectAwareSession",
    "create_transport",
    # 异常
    "ScraperError",
    "ConfigError",
    "HTTPError",
    "NonSuccessStatusError",
    "TooManyRedirectsError",
    "MalformedURLError",
    "SessionDocumentError",
]


__version__ = "1.0.0"
