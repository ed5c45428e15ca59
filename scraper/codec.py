"""
会话文档编解码

会话文档是 Cookie 的可移植快照，按 Origin 分组:

    {
      "Data": {
        "http://example.com": [
          {"Name": "sid", "Value": "x", "Path": "/", "Domain": ".example.com", ...}
        ]
      }
    }

导出只包含浏览历史中出现过的 Origin；导入时每个恢复的 Origin 会写回浏览历史。
单条非法 URL 或 Cookie 记录只记录警告并跳过，不影响其余条目。
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .cookies import Cookie, CookieStore, Origin
from .exceptions import MalformedURLError, SessionDocumentError
from .history import History

logger = logging.getLogger(__name__)


@dataclass
class SessionDocument:
    """Origin 字符串 -> Cookie 列表"""

    data: Dict[str, List[Cookie]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Data": {
                origin: [cookie.to_dict() for cookie in cookies]
                for origin, cookies in self.data.items()
            }
        }

    def to_json(self, indent: int = 2) -> str:
        """导出为便于人工查看的 JSON"""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SessionDocument":
        """
        从字典加载，忽略未知字段

        Raises:
            SessionDocumentError: Data 字段不是对象
        """
        if not isinstance(payload, dict):
            raise SessionDocumentError("会话文档必须是 JSON 对象")

        raw = payload.get("Data") or {}
        if not isinstance(raw, dict):
            raise SessionDocumentError("会话文档的 Data 字段必须是对象")

        document = cls()
        for origin, records in raw.items():
            if not isinstance(records, list):
                logger.warning("Origin %s 的 Cookie 不是数组，跳过", origin)
                continue
            cookies: List[Cookie] = []
            for record in records:
                try:
                    cookies.append(Cookie.from_dict(record))
                except ValueError as e:
                    logger.warning("跳过无法解析的 Cookie 记录 (%s): %s", origin, e)
            document.data[origin] = cookies
        return document

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "SessionDocument":
        """
        从 JSON 文本加载

        Raises:
            SessionDocumentError: 不是合法 JSON
        """
        try:
            payload = json.loads(text)
        except (TypeError, ValueError) as e:
            raise SessionDocumentError(f"会话文档不是合法 JSON: {e}", cause=e)
        return cls.from_dict(payload)

    def origins(self) -> List[str]:
        return list(self.data)

    def __len__(self) -> int:
        return len(self.data)


def export_session(store: CookieStore, history: History) -> SessionDocument:
    """
    导出浏览历史中每个 Origin 的 Cookie

    Args:
        store: Cookie 容器
        history: 浏览历史

    Returns:
        SessionDocument
    """
    document = SessionDocument()
    for url in history.entries():
        try:
            origin = Origin.from_url(url)
        except MalformedURLError:
            logger.warning("浏览历史中的 URL 非法，跳过其 Cookie: %s", url)
            continue
        key = str(origin)
        if key in document.data:
            continue
        document.data[key] = store.cookies_for(origin.url, match_path=False)
    return document


def import_session(document: SessionDocument, store: CookieStore, history: History) -> int:
    """
    把会话文档中的 Cookie 写回 Cookie 容器，并把 Origin 追加到浏览历史

    Args:
        document: 会话文档
        store: Cookie 容器
        history: 浏览历史

    Returns:
        成功恢复的 Origin 数量
    """
    restored = 0
    for key, cookies in document.data.items():
        try:
            origin = Origin.from_url(key)
        except MalformedURLError:
            logger.warning("会话文档中的 Origin 非法，跳过: %s", key)
            continue
        store.set_cookies(origin.url, cookies)
        history.add(origin.url)
        restored += 1
    logger.debug("从会话文档恢复了 %d/%d 个 Origin", restored, len(document))
    return restored


__all__ = [
    "SessionDocument",
    "export_session",
    "import_session",
]
