"""
重定向链控制

每个顶层请求对应一条重定向链:

    start() -> FOLLOWING --on_redirect()--> FOLLOWING ... --finish()--> TERMINATED
                                  \\--超过上限--> TERMINATED (TooManyRedirectsError)

传输层每跟随一跳就调用一次 on_redirect，唯一对外可见的副作用是把目标 URL 写入浏览历史。
"""

import logging
from enum import Enum
from typing import Any, Optional, Sequence

from .exceptions import TooManyRedirectsError
from .history import History

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 10


class ChainState(Enum):
    """重定向链状态"""

    FOLLOWING = "following"
    TERMINATED = "terminated"


class RedirectGovernor:
    """记录每一跳并在超过上限时中止整条链"""

    def __init__(self, history: History, limit: int = DEFAULT_MAX_REDIRECTS):
        self._history = history
        self._limit = limit
        self._hops = 0
        self._state = ChainState.TERMINATED
        self._url: Optional[str] = None

    @property
    def hops(self) -> int:
        return self._hops

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        self._limit = value

    def start(self, url: Optional[str] = None) -> None:
        """开始新的顶层请求，计数器清零"""
        self._hops = 0
        self._url = url
        self._state = ChainState.FOLLOWING

    def on_redirect(self, next_request: Any, via: Sequence[Any] = ()) -> None:
        """
        传输层回调，每跟随一跳调用一次

        Args:
            next_request: 即将发送的请求 (需要 url 属性)
            via: 此前的响应链

        Raises:
            TooManyRedirectsError: 跳数超过上限
        """
        url = next_request.url
        if self._state is ChainState.TERMINATED:
            raise TooManyRedirectsError(
                "redirect chain already terminated",
                url=url,
                redirect_count=self._hops,
                limit=self._limit,
            )

        logger.debug("Redirecting to: %s (via %d)", url, len(via))
        self._history.add(url)
        self._hops += 1

        if self._hops > self._limit:
            self._state = ChainState.TERMINATED
            logger.warning("重定向次数超过上限 %d: %s", self._limit, self._url)
            raise TooManyRedirectsError(url=url, redirect_count=self._hops, limit=self._limit)

    def finish(self) -> None:
        """到达最终响应"""
        self._state = ChainState.TERMINATED

    def __repr__(self) -> str:
        return (
            f"RedirectGovernor(state={self._state.value}, "
            f"hops={self._hops}, limit={self._limit})"
        )


__all__ = [
    "ChainState",
    "RedirectGovernor",
    "DEFAULT_MAX_REDIRECTS",
]
