"""
传输层

基于 requests.Session，仅增加一个重定向回调: requests 在跟随每一跳前
都会调用 rebuild_method(prepared_request, response)，此时下一跳的 URL
已经确定，在这里调用 redirect_hook(next_request, via)。
回调正常返回则继续跟随，抛出异常则整条链中止，异常原样传给调用方。

Session.send 每发出一跳，还会以 yield_requests=True 预先计算下一跳
(Response.next)，这条预读路径同样经过 rebuild_method，不能触发回调。
"""

import logging
from typing import Any, Callable, Iterator, List, Optional

import requests

logger = logging.getLogger(__name__)

RedirectHook = Callable[[requests.PreparedRequest, List[requests.Response]], None]

# requests 自身的上限只作为兜底，真正的上限由 RedirectGovernor 控制
TRANSPORT_MAX_REDIRECTS = 30


class RedirectAwareSession(requests.Session):
    """带重定向回调的 requests.Session"""

    def __init__(self, redirect_hook: Optional[RedirectHook] = None):
        super().__init__()
        self.redirect_hook = redirect_hook
        self.max_redirects = TRANSPORT_MAX_REDIRECTS
        self._following = False

    def resolve_redirects(self, resp, req, yield_requests: bool = False, **kwargs) -> Iterator[Any]:
        steps = super().resolve_redirects(resp, req, yield_requests=yield_requests, **kwargs)
        while True:
            # 预读生成器嵌套在真实跟随的 send() 内执行，退出时恢复外层状态
            outer = self._following
            self._following = not yield_requests
            try:
                step = next(steps)
            except StopIteration:
                return
            finally:
                self._following = outer
            yield step

    def rebuild_method(self, prepared_request: requests.PreparedRequest, response: Any) -> None:
        super().rebuild_method(prepared_request, response)
        if self._following and self.redirect_hook is not None:
            via = list(response.history) + [response]
            self.redirect_hook(prepared_request, via)


def create_transport(
    user_agent: Optional[str] = None,
    headers: Optional[dict] = None,
    verify_ssl: bool = True,
    redirect_hook: Optional[RedirectHook] = None,
) -> RedirectAwareSession:
    """
    创建传输层 Session

    Args:
        user_agent: User-Agent
        headers: 默认请求头
        verify_ssl: 是否验证 SSL
        redirect_hook: 重定向回调

    Returns:
        RedirectAwareSession 实例
    """
    session = RedirectAwareSession(redirect_hook=redirect_hook)
    session.verify = verify_ssl
    if headers:
        session.headers.update(headers)
    if user_agent:
        session.headers["User-Agent"] = user_agent
    return session


__all__ = [
    "RedirectAwareSession",
    "RedirectHook",
    "create_transport",
    "TRANSPORT_MAX_REDIRECTS",
]
