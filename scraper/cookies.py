"""
Cookie 管理

按 Origin 划分 Cookie，底层复用 requests 的 RequestsCookieJar
(标准库 http.cookiejar.CookieJar 的子类)，与传输层共享同一个 jar，
服务端 Set-Cookie 写入的 Cookie 和手动注入的 Cookie 在同一处维护。

域名匹配遵循 RFC 6265:
- 未指定 Domain 的 Cookie 只属于设置它的主机 (host-only)
- Domain=.example.com 适用于 example.com 及其所有子域名，但不适用于 otherexample.com
"""

import ipaddress
import logging
import math
import re
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from http.cookiejar import Cookie as JarCookie
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urlsplit

from requests.cookies import RequestsCookieJar, create_cookie

from .exceptions import MalformedURLError

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}

# Go net/http 的 SameSite 枚举值，兼容旧版本导出的文档
_SAME_SITE_CODES = {2: "Lax", 3: "Strict", 4: "None"}

_GO_ZERO_TIME = "0001-01-01T00:00:00Z"
# datetime 能表示的最大时间，超出范围的过期时间按此导出
_MAX_EXPIRES = "9999-12-31T23:59:59Z"
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


@dataclass(frozen=True)
class Origin:
    """scheme + host (+ 非默认端口)，Cookie 的分区键"""

    scheme: str
    host: str
    port: Optional[int] = None

    @classmethod
    def from_url(cls, url: str) -> "Origin":
        """
        从 URL 提取 Origin

        Args:
            url: 绝对 URL

        Returns:
            Origin 对象

        Raises:
            MalformedURLError: 缺少 scheme/host 或端口非法
        """
        try:
            parsed = urlsplit(url)
            port = parsed.port
        except ValueError as e:
            raise MalformedURLError(f"无法解析 URL: {e}", url=url, cause=e)

        scheme = parsed.scheme.lower()
        host = parsed.hostname or ""
        if not scheme or not host:
            raise MalformedURLError("URL 缺少 scheme 或 host", url=url)

        if port == DEFAULT_PORTS.get(scheme):
            port = None
        return cls(scheme=scheme, host=host, port=port)

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            return f"{host}:{self.port}"
        return host

    @property
    def url(self) -> str:
        """规范化的裸 URL，如 http://example.com"""
        return str(self)

    def __str__(self) -> str:
        return f"{self.scheme}://{self.netloc}"


@dataclass
class Cookie:
    """Cookie 对象"""

    name: str
    value: str
    domain: str = ""
    path: str = ""
    expires: Optional[float] = None  # Unix 时间戳
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None
    host_only: bool = False

    def is_expired(self, now: Optional[float] = None) -> bool:
        """检查 Cookie 是否已过期"""
        if self.max_age is not None and self.max_age < 0:
            return True
        if self.expires is None:
            return False
        return (now if now is not None else time.time()) >= self.expires

    def to_header_value(self) -> str:
        """转换为请求头格式"""
        return f"{self.name}={self.value}"

    def to_jar_cookie(self) -> JarCookie:
        """转换为 http.cookiejar.Cookie，调用前 domain/path 应已规范化"""
        rest: Dict[str, Any] = {}
        if self.http_only:
            rest["HttpOnly"] = None
        if self.same_site:
            rest["SameSite"] = self.same_site

        jar_cookie = create_cookie(
            self.name,
            self.value,
            domain=self.domain,
            path=self.path or "/",
            expires=int(self.expires) if self.expires is not None else None,
            secure=self.secure,
            discard=self.expires is None,
            rest=rest,
        )
        if self.host_only:
            jar_cookie.domain_specified = False
        return jar_cookie

    @classmethod
    def from_jar_cookie(cls, jar_cookie: JarCookie) -> "Cookie":
        """从 http.cookiejar.Cookie 构造"""
        domain = jar_cookie.domain or ""
        host_only = not (domain.startswith(".") or jar_cookie.domain_specified)
        same_site = jar_cookie.get_nonstandard_attr("SameSite") or jar_cookie.get_nonstandard_attr(
            "samesite"
        )
        return cls(
            name=jar_cookie.name,
            value=jar_cookie.value or "",
            domain=domain,
            path=jar_cookie.path or "/",
            expires=float(jar_cookie.expires) if jar_cookie.expires is not None else None,
            secure=bool(jar_cookie.secure),
            http_only=jar_cookie.has_nonstandard_attr("HttpOnly")
            or jar_cookie.has_nonstandard_attr("httponly"),
            same_site=same_site,
            host_only=host_only,
        )

    def to_dict(self) -> Dict[str, Any]:
        """导出为会话文档中的 Cookie 记录"""
        expires = None
        if self.expires is not None:
            try:
                expires = datetime.fromtimestamp(self.expires, tz=timezone.utc).strftime(
                    "%Y-%m-%dT%H:%M:%SZ"
                )
            except (OverflowError, ValueError, OSError):
                expires = _MAX_EXPIRES
        return {
            "Name": self.name,
            "Value": self.value,
            "Path": self.path,
            "Domain": "" if self.host_only else self.domain,
            "Expires": expires,
            "MaxAge": self.max_age or 0,
            "Secure": self.secure,
            "HttpOnly": self.http_only,
            "SameSite": self.same_site,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cookie":
        """
        从会话文档中的 Cookie 记录解析，未知字段忽略

        Raises:
            ValueError: 记录不是对象、缺少 Name 或 Expires 无法识别
        """
        if not isinstance(data, dict):
            raise ValueError(f"Cookie 记录必须是对象: {data!r}")

        name = data.get("Name")
        if not name or not isinstance(name, str):
            raise ValueError("Cookie 记录缺少 Name")

        domain = data.get("Domain") or ""
        path = data.get("Path") or ""
        if not isinstance(domain, str) or not isinstance(path, str):
            raise ValueError(f"Cookie {name} 的 Domain/Path 必须是字符串")

        max_age = data.get("MaxAge")
        try:
            max_age = int(max_age) if max_age else None
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"Cookie {name} 的 MaxAge 无法识别: {max_age!r}") from e

        same_site = data.get("SameSite")
        if isinstance(same_site, int):
            same_site = _SAME_SITE_CODES.get(same_site)
        elif not isinstance(same_site, str):
            same_site = None

        return cls(
            name=name,
            value=str(data.get("Value") or ""),
            domain=domain,
            path=path,
            expires=_parse_expires(data.get("Expires")),
            max_age=max_age,
            secure=bool(data.get("Secure", False)),
            http_only=bool(data.get("HttpOnly", False)),
            same_site=same_site or None,
            host_only=not domain,
        )


def _parse_expires(value: Any) -> Optional[float]:
    """解析 Expires: RFC 3339 字符串、Unix 时间戳或 null"""
    if value is None or value == "" or value == _GO_ZERO_TIME:
        return None
    if isinstance(value, bool):
        raise ValueError(f"无法识别的 Expires: {value!r}")
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError as e:
            raise ValueError(f"无法识别的 Expires: {value!r}") from e
        if not math.isfinite(number):
            raise ValueError(f"无法识别的 Expires: {value!r}")
        return number if number > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("0001-01-01"):
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION_RE.sub(r".\1", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"无法识别的 Expires: {value!r}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
    raise ValueError(f"无法识别的 Expires: {value!r}")


def default_path(url_path: str) -> str:
    """RFC 6265 5.1.4 default-path"""
    if not url_path or not url_path.startswith("/"):
        return "/"
    index = url_path.rfind("/")
    if index == 0:
        return "/"
    return url_path[:index]


def path_match(request_path: str, cookie_path: str) -> bool:
    """RFC 6265 5.1.4 path-match"""
    if request_path == cookie_path:
        return True
    if request_path.startswith(cookie_path):
        return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"
    return False


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _jar_domain(domain: str, host_only: bool) -> str:
    """转换为 http.cookiejar 内部使用的 domain 键"""
    if not host_only:
        return "." + domain
    # http.cookiejar 为无点主机名追加 .local (eff_request_host)，否则请求时不会带上
    if "." not in domain and not _is_ip(domain):
        return domain + ".local"
    return domain


def _domain_match(host: str, jar_cookie: JarCookie) -> bool:
    domain = (jar_cookie.domain or "").lower()
    if domain.startswith(".") or jar_cookie.domain_specified:
        bare = domain.lstrip(".")
        return host == bare or host.endswith("." + bare)
    # http.cookiejar 为无点主机名追加 .local
    return host == domain or host + ".local" == domain


class CookieStore:
    """按 Origin 匹配的 Cookie 容器"""

    def __init__(self, jar: Optional[RequestsCookieJar] = None):
        self._jar = jar if jar is not None else RequestsCookieJar()

    @property
    def jar(self) -> RequestsCookieJar:
        return self._jar

    def cookies_for(self, url: str, match_path: bool = True) -> List[Cookie]:
        """
        获取适用于指定 URL 的所有 Cookie

        Args:
            url: 请求的 URL
            match_path: 是否按路径过滤，False 时返回整个 Origin 可见的 Cookie

        Returns:
            Cookie 列表，路径更长的排在前面

        Raises:
            MalformedURLError: URL 无法解析
        """
        origin = Origin.from_url(url)
        request_path = urlsplit(url).path or "/"
        is_secure = origin.scheme == "https"
        now = time.time()

        self._jar.clear_expired_cookies()

        result: List[JarCookie] = []
        for jar_cookie in self._jar:
            if jar_cookie.is_expired(now):
                continue
            if not _domain_match(origin.host, jar_cookie):
                continue
            if match_path and not path_match(request_path, jar_cookie.path or "/"):
                continue
            if jar_cookie.secure and not is_secure:
                continue
            result.append(jar_cookie)

        result.sort(key=lambda c: len(c.path or "/"), reverse=True)
        return [Cookie.from_jar_cookie(c) for c in result]

    def set_cookies(self, url: str, cookies: Iterable[Cookie]) -> int:
        """
        合并 URL 所属 Origin 的 Cookie

        同名同域同路径的 Cookie 会被替换；已过期的 Cookie 会删除已有的同名 Cookie。
        Domain 与 URL 主机不匹配的 Cookie 记录警告后跳过。

        Args:
            url: Cookie 来源 URL
            cookies: Cookie 列表

        Returns:
            实际写入的 Cookie 数量

        Raises:
            MalformedURLError: URL 无法解析
        """
        origin = Origin.from_url(url)
        url_path = urlsplit(url).path
        now = time.time()
        stored = 0

        for cookie in cookies:
            if cookie.host_only:
                domain, host_only = origin.host, True
            else:
                try:
                    domain, host_only = self._cookie_domain(origin.host, cookie.domain)
                except ValueError as e:
                    logger.warning("跳过 Cookie %s (%s): %s", cookie.name, origin, e)
                    continue

            path = cookie.path if cookie.path.startswith("/") else default_path(url_path)
            expires = cookie.expires
            expired = False
            if cookie.max_age is not None and cookie.max_age < 0:
                expired = True
            elif cookie.max_age:
                expires = now + cookie.max_age
            elif expires is not None and expires <= now:
                expired = True

            jar_domain = _jar_domain(domain, host_only)
            if expired:
                self._remove(jar_domain, path, cookie.name)
                continue

            normalized = replace(
                cookie,
                domain=jar_domain,
                path=path,
                expires=expires,
                max_age=None,
                host_only=host_only,
            )
            self._jar.set_cookie(normalized.to_jar_cookie())
            stored += 1

        return stored

    @staticmethod
    def _cookie_domain(host: str, domain: str) -> Tuple[str, bool]:
        """返回 (规范化域名, 是否 host-only)"""
        if not domain:
            return host, True

        domain = domain.lower()
        if domain.startswith("."):
            domain = domain[1:]
        if not domain or domain.startswith(".") or domain.endswith("."):
            raise ValueError(f"非法的 Domain 属性: {domain!r}")

        if _is_ip(host):
            if domain != host:
                raise ValueError(f"IP 主机不接受域 Cookie: {domain!r}")
            return host, True

        if "." not in domain and domain == host:
            return host, True

        if host != domain and not host.endswith("." + domain):
            raise ValueError(f"Domain {domain!r} 与主机 {host!r} 不匹配")
        return domain, False

    def _remove(self, domain: str, path: str, name: str) -> None:
        try:
            self._jar.clear(domain, path, name)
        except KeyError:
            pass

    def clear(self) -> None:
        """清空 Cookie"""
        self._jar.clear()

    def __iter__(self) -> Iterator[Cookie]:
        return iter([Cookie.from_jar_cookie(c) for c in self._jar])

    def __len__(self) -> int:
        return len(list(self._jar))

    def __repr__(self) -> str:
        return f"CookieStore({len(self)} cookies)"


__all__ = [
    "Origin",
    "Cookie",
    "CookieStore",
    "default_path",
    "path_match",
]
