"""
浏览历史

按访问顺序记录 URL，重复的 URL 不会再次追加。没有删除操作。
非线程安全：同一个会话被多个线程共享时需由调用方加锁。
"""

from typing import Iterator, List, Set, Tuple


class History:
    """去重、保序的 URL 访问记录"""

    def __init__(self):
        self._entries: List[str] = []
        self._seen: Set[str] = set()

    def add(self, url: str) -> bool:
        """
        追加 URL

        Args:
            url: 访问过的 URL

        Returns:
            True 表示追加成功，False 表示已存在
        """
        if url in self._seen:
            return False
        self._seen.add(url)
        self._entries.append(url)
        return True

    def entries(self) -> Tuple[str, ...]:
        """只读的有序视图"""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries())

    def __contains__(self, url: object) -> bool:
        return url in self._seen

    def __repr__(self) -> str:
        return f"History({len(self)} entries)"


__all__ = ["History"]
