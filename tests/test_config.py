"""
scraper.config / scraper.exceptions 单元测试
"""

import dataclasses

import pytest

from scraper.config import DEFAULT_USER_AGENT, ConfigPresets, ScraperConfig
from scraper.exceptions import (
    ConfigError,
    HTTPError,
    MalformedURLError,
    NonSuccessStatusError,
    ScraperError,
    SessionDocumentError,
    TooManyRedirectsError,
)


class TestScraperConfig:
    """测试 ScraperConfig 配置类"""

    def test_default_config(self):
        config = ScraperConfig()

        assert config.base_url is None
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.timeout == 30.0
        assert config.max_redirects == 10
        assert config.verify_ssl is True
        assert config.debug is False

    def test_frozen(self):
        """配置不可变"""
        config = ScraperConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.user_agent = "changed"

    def test_with_methods_return_copies(self):
        config = ScraperConfig()

        updated = config.with_user_agent("bot/2.0").with_base_url("https://example.com")

        assert updated.user_agent == "bot/2.0"
        assert updated.base_url == "https://example.com"
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.base_url is None

    @pytest.mark.parametrize(
        "changes",
        [{"timeout": 0}, {"timeout": -1.0}, {"max_redirects": -1}, {"base_url": "example.com"}],
    )
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigError) as exc_info:
            ScraperConfig(**changes)

        assert exc_info.value.details["key"] in changes

    def test_timeout_none_allowed(self):
        assert ScraperConfig(timeout=None).timeout is None

    def test_merge_headers(self):
        config = ScraperConfig(user_agent="ua/1")

        merged = config.merge_headers({"Accept": "text/html"})

        assert merged["User-Agent"] == "ua/1"
        assert merged["Accept"] == "text/html"
        assert config.default_headers["Accept"] == "*/*"

    def test_dict_round_trip(self):
        config = ScraperConfig(base_url="http://site.test", user_agent="ua/1", max_redirects=5)

        restored = ScraperConfig.from_dict(config.to_dict())

        assert restored == config

    def test_from_dict_partial(self):
        config = ScraperConfig.from_dict({"timeout": "5", "headers": {"X-Test": "1"}, "unknown": 1})

        assert config.timeout == 5.0
        assert config.default_headers["X-Test"] == "1"
        assert config.default_headers["Accept"] == "*/*"

    def test_presets(self):
        assert "Mozilla" in ConfigPresets.browser().user_agent
        assert ConfigPresets.debug().debug is True


class TestExceptions:
    """测试异常层次"""

    def test_hierarchy(self):
        assert issubclass(HTTPError, ScraperError)
        assert issubclass(NonSuccessStatusError, HTTPError)
        assert issubclass(TooManyRedirectsError, HTTPError)
        assert issubclass(MalformedURLError, ScraperError)
        assert issubclass(ConfigError, ScraperError)

    def test_to_dict(self):
        error = TooManyRedirectsError(url="http://a.test/x", redirect_count=11, limit=10)

        data = error.to_dict()

        assert data["error"] == "TooManyRedirectsError"
        assert data["message"] == "too many redirects"
        assert data["details"] == {"url": "http://a.test/x", "redirect_count": 11, "limit": 10}

    def test_str_with_cause(self):
        cause = ValueError("bad port")
        error = MalformedURLError("无法解析 URL", url="http://a:b", cause=cause)

        assert error.__cause__ is cause
        assert error.cause is cause
        assert str(error).startswith("无法解析 URL (url=http://a:b)")
        assert "Caused by: ValueError: bad port" in str(error)
        assert error.to_dict()["cause"] == "ValueError: bad port"

    def test_code_is_class_name(self):
        error = SessionDocumentError("会话文档不是合法 JSON")

        assert error.code == "SessionDocumentError"
        assert repr(error) == "SessionDocumentError(message='会话文档不是合法 JSON', details={})"

    def test_non_success_without_page(self):
        error = NonSuccessStatusError(status_code=503, url="http://a.test/")

        assert error.page is None
        assert error.status_code == 503
        assert "503" in error.message
