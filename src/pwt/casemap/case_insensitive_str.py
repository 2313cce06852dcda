"""
大小写折叠键包装器.

对字符串键使用 casefold 归一化后计算哈希并比较, 同时保留原始字符串,
用于 CaseInsensitiveMap 的内部键表示.

主要组件:
- CaseInsensitiveStr: 不可变的字符串键包装类型
- wrap_key / unwrap_key: 内部键与展示键之间的转换

示例:
    >>> a = CaseInsensitiveStr("Content-Type")
    >>> a == CaseInsensitiveStr("CONTENT-TYPE")
    True
    >>> a == "content-type"
    True
    >>> str(a)
    'Content-Type'
    >>> a < 42  # 字符串键总是排在其他类型的键之前
    True
"""

from __future__ import annotations

from typing import Any


class CaseInsensitiveStr:
    """
    大小写不敏感的字符串键.

    Attributes:
        text (str): 原始字符串(大小写与内容完全保留).
        folded (str): casefold 之后的字符串.

    相等性:
    - 与另一个 CaseInsensitiveStr: 哈希相同且折叠后相同.
    - 与原始 str: 折叠后相同(双向成立, str.__eq__ 会回退到本类).
    - 与其他类型: 不相等.

    排序:
    - 与 CaseInsensitiveStr / str 按折叠后的字典序比较.
    - 与其他任意类型比较时总是"小于", 即有序存储中字符串键排在前面.
    """

    __slots__ = ("_text", "_folded", "_hash", "__weakref__")

    def __init__(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError(f"expecting str, not {type(text).__name__}")
        self._text = text
        self._folded = text.casefold()
        self._hash = hash(self._folded)

    @property
    def text(self) -> str:
        return self._text

    @property
    def folded(self) -> str:
        return self._folded

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._text!r})"

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: Any) -> bool:
        if other is self:
            return True
        if isinstance(other, CaseInsensitiveStr):
            return self._hash == other._hash and self._folded == other._folded
        if isinstance(other, str):
            return self._folded == other.casefold()
        return NotImplemented

    def compare_to(self, other: Any) -> int:
        """
        三路比较.

        Args:
            other (Any): 另一个包装键/字符串或任意对象.

        Returns:
            int: 小于返回 -1, 相等返回 0, 大于返回 1.
                 other 不是文本类型时固定返回 -1.
        """
        if isinstance(other, CaseInsensitiveStr):
            other_folded = other._folded
        elif isinstance(other, str):
            other_folded = other.casefold()
        else:
            return -1

        if self._folded < other_folded:
            return -1
        if self._folded > other_folded:
            return 1
        return 0

    def __lt__(self, other: Any) -> bool:
        return self.compare_to(other) < 0

    def __le__(self, other: Any) -> bool:
        return self.compare_to(other) <= 0

    def __gt__(self, other: Any) -> bool:
        return self.compare_to(other) > 0

    def __ge__(self, other: Any) -> bool:
        return self.compare_to(other) >= 0

    def __reduce__(self) -> tuple[Any, ...]:
        return (self.__class__, (self._text,))


def is_wrapped(key: Any) -> bool:
    return isinstance(key, CaseInsensitiveStr)


def wrap_key(key: Any) -> Any:
    """
    将调用方的键转换为内部键.

    str 键每次都构造新的 CaseInsensitiveStr(不复用已存储的包装对象),
    其他键原样返回.
    """
    if isinstance(key, str):
        return CaseInsensitiveStr(key)
    return key


def unwrap_key(key: Any) -> Any:
    """将内部键转换为展示键: 包装键还原为原始 str, 其他键原样返回."""
    if isinstance(key, CaseInsensitiveStr):
        return key.text
    return key
