"""
Pytest 配置文件

为测试设置 Python 路径，并提供离线的传输层桩 (不访问网络)
"""

import io
import logging
import sys
from http.client import HTTPMessage
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

# 添加项目根目录到 Python 路径
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

# headers 可以是 dict，也可以是 (name, value) 列表 (多个 Set-Cookie)
Headers = Union[Dict[str, str], List[Tuple[str, str]]]
RouteResult = Tuple[int, Headers, bytes]
Route = Union[RouteResult, Callable[[requests.PreparedRequest], RouteResult]]

REASONS = {200: "OK", 204: "No Content", 302: "Found", 404: "Not Found", 500: "Internal Server Error"}


class StubRaw(io.BytesIO):
    """
    响应原始流

    requests 从 raw._original_response.msg 读取 Set-Cookie 写入 Cookie jar，
    这里用 HTTPMessage 模拟 urllib3 响应上的这一属性。
    """

    def __init__(self, body: bytes, headers: List[Tuple[str, str]]):
        super().__init__(body)
        message = HTTPMessage()
        for name, value in headers:
            message[name] = value
        self._original_response = SimpleNamespace(msg=message)


class StubAdapter(BaseAdapter):
    """按 URL 返回预设响应的 requests adapter，未登记的 URL 返回 404"""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        super().__init__()
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests = []

    def add(self, url: str, status: int = 200, headers: Optional[Headers] = None, body: bytes = b""):
        self.routes[url] = (status, headers or {}, body)
        return self

    def redirect(self, url: str, location: str, status: int = 302, set_cookies: Iterable[str] = ()):
        headers = [("Location", location)] + [("Set-Cookie", value) for value in set_cookies]
        return self.add(url, status=status, headers=headers)

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        route = self.routes.get(request.url)
        if route is None:
            status, headers, body = 404, {}, b"not found"
        elif callable(route):
            status, headers, body = route(request)
        else:
            status, headers, body = route
        return self.build_response(request, status, headers, body)

    @staticmethod
    def build_response(request, status: int, headers: Headers, body: bytes) -> requests.Response:
        pairs = list(headers.items()) if isinstance(headers, dict) else list(headers)
        response = requests.Response()
        response.status_code = status
        response.reason = REASONS.get(status, "")
        response.headers = CaseInsensitiveDict(pairs)
        response._content = body
        response.raw = StubRaw(body, pairs)
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        return response

    def close(self):
        pass


def build_chain(adapter: StubAdapter, host: str, redirects: int) -> str:
    """
    登记一条重定向链: /r/0 -> /r/1 -> ... -> /final (200)

    Returns:
        起始 URL
    """
    urls = [f"http://{host}/r/{i}" for i in range(redirects)] + [f"http://{host}/final"]
    for current, nxt in zip(urls, urls[1:]):
        adapter.redirect(current, nxt)
    adapter.add(urls[-1], body=b"done")
    return urls[0]


# ==================== Fixtures ====================


@pytest.fixture
def stub_adapter() -> StubAdapter:
    """空路由表的 StubAdapter"""
    return StubAdapter()


@pytest.fixture
def scraper(stub_adapter):
    """挂载了 StubAdapter 的 Scraper"""
    from scraper import Scraper

    instance = Scraper()
    instance.mount("http://", stub_adapter)
    instance.mount("https://", stub_adapter)
    yield instance
    instance.close()


@pytest.fixture
def chain_builder(stub_adapter):
    """在 stub_adapter 上登记重定向链"""

    def _build(redirects: int, host: str = "chain.test") -> str:
        return build_chain(stub_adapter, host, redirects)

    return _build


@pytest.fixture(autouse=True)
def reset_scraper_logger():
    """debug 配置会给 scraper 日志器挂 handler，测试之间恢复原状"""
    yield
    log = logging.getLogger("scraper")
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    log.setLevel(logging.NOTSET)
    log.propagate = True


# ==================== 标记注册 ====================


def pytest_configure(config):
    """注册自定义标记"""
    config.addinivalue_line("markers", "unit: 单元测试")
    config.addinivalue_line("markers", "integration: 经过传输层的集成测试")
