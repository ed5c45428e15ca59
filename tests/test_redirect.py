"""
scraper.redirect / scraper.transport 单元测试
"""

from types import SimpleNamespace

import pytest

from scraper.exceptions import TooManyRedirectsError
from scraper.history import History
from scraper.redirect import DEFAULT_MAX_REDIRECTS, ChainState, RedirectGovernor
from scraper.transport import TRANSPORT_MAX_REDIRECTS, RedirectAwareSession, create_transport


def hop(url):
    return SimpleNamespace(url=url)


class TestRedirectGovernor:
    """测试重定向状态机"""

    def test_initial_state(self):
        governor = RedirectGovernor(History())

        assert governor.limit == DEFAULT_MAX_REDIRECTS == 10
        assert governor.hops == 0
        assert governor.state is ChainState.TERMINATED

    def test_hops_recorded_and_counted(self):
        """每一跳写入浏览历史并计数"""
        history = History()
        governor = RedirectGovernor(history)
        governor.start("http://a.test/0")

        governor.on_redirect(hop("http://a.test/1"))
        governor.on_redirect(hop("http://a.test/2"))

        assert governor.hops == 2
        assert governor.state is ChainState.FOLLOWING
        assert history.entries() == ("http://a.test/1", "http://a.test/2")

    def test_limit_allows_exactly_ten(self):
        governor = RedirectGovernor(History())
        governor.start()

        for i in range(10):
            governor.on_redirect(hop(f"http://a.test/{i}"))

        assert governor.hops == 10
        assert governor.state is ChainState.FOLLOWING

    def test_eleventh_hop_fails(self):
        """第 11 跳中止整条链"""
        history = History()
        governor = RedirectGovernor(history)
        governor.start()
        for i in range(10):
            governor.on_redirect(hop(f"http://a.test/{i}"))

        with pytest.raises(TooManyRedirectsError) as exc_info:
            governor.on_redirect(hop("http://a.test/10"))

        assert exc_info.value.redirect_count == 11
        assert exc_info.value.limit == 10
        assert governor.state is ChainState.TERMINATED
        assert "http://a.test/10" in history

    def test_hop_after_termination_rejected(self):
        governor = RedirectGovernor(History())
        governor.start()
        governor.finish()

        with pytest.raises(TooManyRedirectsError):
            governor.on_redirect(hop("http://a.test/late"))

    def test_start_resets_counter(self):
        """每个顶层请求重新计数"""
        governor = RedirectGovernor(History(), limit=2)
        governor.start()
        governor.on_redirect(hop("http://a.test/1"))
        governor.on_redirect(hop("http://a.test/2"))
        governor.finish()

        governor.start()
        assert governor.hops == 0
        governor.on_redirect(hop("http://a.test/3"))
        governor.on_redirect(hop("http://a.test/4"))
        assert governor.hops == 2

    def test_duplicate_hops_deduplicated_but_counted(self):
        history = History()
        governor = RedirectGovernor(history)
        governor.start()

        governor.on_redirect(hop("http://a.test/x"))
        governor.on_redirect(hop("http://a.test/x"))

        assert governor.hops == 2
        assert len(history) == 1

    def test_custom_limit(self):
        governor = RedirectGovernor(History(), limit=0)
        governor.start()

        with pytest.raises(TooManyRedirectsError):
            governor.on_redirect(hop("http://a.test/1"))


class TestTransport:
    """测试带重定向回调的传输层"""

    def test_create_transport(self):
        transport = create_transport(user_agent="ua/1", headers={"Accept": "text/html"}, verify_ssl=False)

        assert isinstance(transport, RedirectAwareSession)
        assert transport.headers["User-Agent"] == "ua/1"
        assert transport.headers["Accept"] == "text/html"
        assert transport.verify is False
        assert transport.max_redirects == TRANSPORT_MAX_REDIRECTS

    def test_hook_called_per_hop(self, stub_adapter, chain_builder):
        """每跟随一跳回调一次，参数为下一跳请求和此前的响应"""
        calls = []
        transport = RedirectAwareSession(redirect_hook=lambda req, via: calls.append((req.url, len(via))))
        transport.mount("http://", stub_adapter)
        start = chain_builder(3)

        response = transport.get(start)

        assert response.status_code == 200
        assert [url for url, _ in calls] == [
            "http://chain.test/r/1",
            "http://chain.test/r/2",
            "http://chain.test/final",
        ]
        assert all(count >= 1 for _, count in calls)

    def test_hook_error_aborts_chain(self, stub_adapter, chain_builder):
        """回调抛出的异常原样传给调用方"""

        def refuse(request, via):
            raise RuntimeError("stop")

        transport = RedirectAwareSession(redirect_hook=refuse)
        transport.mount("http://", stub_adapter)

        with pytest.raises(RuntimeError, match="stop"):
            transport.get(chain_builder(1))

    def test_lookahead_does_not_call_hook(self, stub_adapter, chain_builder):
        """不跟随重定向时 requests 仍会预先计算下一跳 (Response.next)，这不算一跳"""
        calls = []
        transport = RedirectAwareSession(redirect_hook=lambda req, via: calls.append(req.url))
        transport.mount("http://", stub_adapter)

        response = transport.get(chain_builder(2), allow_redirects=False)

        assert response.status_code == 302
        assert response.next.url == "http://chain.test/r/1"
        assert calls == []

    @pytest.mark.parametrize("redirects", [1, 5, 10])
    def test_hook_called_once_per_hop(self, stub_adapter, chain_builder, redirects):
        calls = []
        transport = RedirectAwareSession(redirect_hook=lambda req, via: calls.append(req.url))
        transport.mount("http://", stub_adapter)

        response = transport.get(chain_builder(redirects))

        assert response.url == "http://chain.test/final"
        assert len(calls) == redirects
        assert calls[-1] == "http://chain.test/final"
