"""
CaseInsensitiveMap 的实时视图.

视图只持有所属映射的引用, 不保存任何独立状态:
读取直接反映后端存储, 删除直接作用于后端存储, 新增一律拒绝.

主要组件:
- CaseInsensitiveEntry: 导出的条目, key 为展示键, original_key 为内部键
- CaseInsensitiveKeysView: 键视图, 遍历时把包装键还原为原始字符串
- CaseInsensitiveItemsView: 条目视图, 条目的 set_value 直接写回后端存储
- ViewIterator: 支持 remove() 的视图迭代器
"""

from __future__ import annotations

from collections.abc import (
    ItemsView,
    Iterable,
    Iterator,
    KeysView,
    Mapping,
    MutableSet,
    Set,
)
from typing import TYPE_CHECKING, Any, Callable, Generic, Hashable, TypeVar

from pwt.casemap.case_insensitive_str import unwrap_key, wrap_key
from pwt.casemap.errors import EntryTypeError, UnsupportedViewOperationError
from pwt.casemap.log.helpers import get_logger_adapter

if TYPE_CHECKING:
    from pwt.casemap.case_insensitive_map import CaseInsensitiveMap

logger = get_logger_adapter(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
T = TypeVar("T")

_MISSING: Any = object()


def values_equal(left: Any, right: Any) -> bool:
    """值比较: None 只与 None 相等."""
    if left is None or right is None:
        return left is right
    return left == right


def value_hash(value: Any) -> int:
    """
    计算值的哈希, None 计为 0.

    不可哈希的容器按内容计算, 保证相等的值哈希相同:
    - 映射: 各条目 (键哈希 ^ 值哈希) 之和, str 键按 casefold 计算;
    - 集合: 与同元素 frozenset 的哈希一致;
    - 其他可迭代对象(如 list): 按顺序组成元组后哈希.

    Raises:
        TypeError: 值既不可哈希也不是容器.
    """
    if value is None:
        return 0
    try:
        return hash(value)
    except TypeError:
        pass
    if isinstance(value, Mapping):
        return sum(
            value_hash(wrap_key(key)) ^ value_hash(item)
            for key, item in value.items()
        )
    if isinstance(value, Set):
        return hash(frozenset(value))
    if isinstance(value, Iterable):
        return hash(tuple(value_hash(item) for item in value))
    raise TypeError(f"unhashable value: {type(value).__name__}")


class CaseInsensitiveEntry(Generic[K, V]):
    """
    条目视图导出的条目.

    Attributes:
        key: 展示键, 字符串键总是原始 str.
        original_key: 内部键(可能是 CaseInsensitiveStr), 仅供批量复制时避免重复包装.
        value: 当前值, 从后端存储实时读取; 条目被删除后返回最后一次已知的值.

    条目可按 `(key, value)` 解包, 与其他条目或二元组按 (展示键, 值) 比较.
    """

    __slots__ = ("_store", "_original_key", "_value")

    def __init__(self, store: Any, original_key: Any, value: V) -> None:
        self._store = store
        self._original_key = original_key
        self._value = value

    @property
    def key(self) -> K:
        return unwrap_key(self._original_key)

    @property
    def original_key(self) -> Any:
        return self._original_key

    @property
    def value(self) -> V:
        try:
            self._value = self._store[self._original_key]
        except KeyError:
            pass
        return self._value

    def set_value(self, value: V) -> V | None:
        """
        写回后端存储.

        始终使用 original_key 写入, 保证落在读取该条目时的同一个存储槽位.

        Returns:
            V | None: 写入前的值, 槽位已不存在时为 None.
        """
        previous = self._store.get(self._original_key)
        self._store[self._original_key] = value
        self._value = value
        return previous

    def __iter__(self) -> Iterator[Any]:
        yield self.key
        yield self.value

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, CaseInsensitiveEntry):
            other = (other.key, other.value)
        if not isinstance(other, tuple) or len(other) != 2:
            return NotImplemented
        return self.key == other[0] and values_equal(self.value, other[1])

    def __hash__(self) -> int:
        value = self.value
        try:
            return hash((self.key, value))
        except TypeError:
            return hash((self.key, value_hash(value)))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.key!r}, {self.value!r})"


def _as_pair(item: Any) -> tuple[Any, Any] | None:
    if isinstance(item, CaseInsensitiveEntry):
        return item.original_key, item.value
    if isinstance(item, tuple) and len(item) == 2:
        return item
    return None


class ViewIterator(Iterator[T]):
    """
    支持 remove() 的视图迭代器.

    遍历创建时获取的内部键快照, 跳过期间已被删除的键;
    remove() 从所属映射中删除最近一次 next() 返回的条目.
    """

    def __init__(
        self, mapping: CaseInsensitiveMap[Any, Any], project: Callable[[Any], T]
    ) -> None:
        self._mapping = mapping
        self._project = project
        self._keys = iter(list(mapping.wrapped_map))
        self._last: Any = _MISSING

    def __next__(self) -> T:
        store = self._mapping.wrapped_map
        for key in self._keys:
            if key in store:
                self._last = key
                return self._project(key)
        self._last = _MISSING
        raise StopIteration

    def remove(self) -> None:
        if self._last is _MISSING:
            raise RuntimeError("remove() called before next() or called twice")
        self._mapping.wrapped_map.pop(self._last, None)
        self._last = _MISSING


class _LiveView(MutableSet[T]):
    """键视图与条目视图共享的实现: 大小/清空/批量删除/禁止新增."""

    _mapping: CaseInsensitiveMap[Any, Any]

    def __len__(self) -> int:
        return len(self._mapping)

    def is_empty(self) -> bool:
        return self._mapping.is_empty()

    def clear(self) -> None:
        self._mapping.clear()

    def add(self, value: T) -> None:
        raise UnsupportedViewOperationError(
            f"Cannot add() to a view of a map: {type(self).__name__}"
        )

    def add_all(self, values: Iterable[T]) -> bool:
        raise UnsupportedViewOperationError(
            f"Cannot add_all() to a view of a map: {type(self).__name__}"
        )

    def remove_all(self, values: Iterable[Any]) -> bool:
        """
        删除所有包含在 values 中的元素.

        Returns:
            bool: 映射是否发生变化.
        """
        size = len(self._mapping)
        for value in values:
            if value in self:
                self.discard(value)
        removed = size - len(self._mapping)
        logger.debugf(
            "{view}.remove_all dropped {removed} entries",
            view=type(self).__name__,
            removed=removed,
        )
        return removed != 0

    def _drop_internal_keys(self, doomed: list[Any]) -> bool:
        store = self._mapping.wrapped_map
        for key in doomed:
            del store[key]
        logger.debugf(
            "{view}.retain_all dropped {removed} entries",
            view=type(self).__name__,
            removed=len(doomed),
        )
        return bool(doomed)

    def __eq__(self, other: Any) -> bool:
        # 以视图自身的成员判断检查 other, 大小写不敏感
        if not isinstance(other, Set):
            return NotImplemented
        return len(self) == len(other) and all(item in self for item in other)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({list(self)!r})"


class CaseInsensitiveKeysView(_LiveView[K], KeysView[K]):
    """
    键视图.

    - 遍历/to_list 输出展示键, 从不暴露内部包装键;
    - 成员判断大小写不敏感;
    - 删除操作直接作用于所属映射; add/add_all 抛出 UnsupportedViewOperationError.
    """

    _mapping: CaseInsensitiveMap[K, Any]

    def __init__(self, mapping: CaseInsensitiveMap[K, Any]) -> None:
        super().__init__(mapping)

    def __contains__(self, key: Any) -> bool:
        return self._mapping.contains_key(key)

    def __iter__(self) -> Iterator[K]:
        return iter(self._mapping)

    def discard(self, key: Any) -> None:
        self._mapping.remove(key)

    def retain_all(self, keys: Iterable[Any]) -> bool:
        """
        只保留 keys 中出现的键(大小写不敏感).

        先用 keys 构造一个临时的 CaseInsensitiveMap 以获得 O(1) 的成员判断.

        Returns:
            bool: 映射是否发生变化.
        """
        from pwt.casemap.case_insensitive_map import CaseInsensitiveMap

        other: CaseInsensitiveMap[Any, None] = CaseInsensitiveMap()
        for key in keys:
            other.put(key, None)

        doomed = [key for key in self._mapping.wrapped_map if key not in other]
        return self._drop_internal_keys(doomed)

    def iterator(self) -> ViewIterator[K]:
        return ViewIterator(self._mapping, unwrap_key)

    def to_list(self) -> list[K]:
        return [unwrap_key(key) for key in self._mapping.wrapped_map]

    def hash_code(self) -> int:
        """内部键的哈希之和; 字符串键按 casefold 后的哈希计算."""
        return sum(hash(key) for key in self._mapping.wrapped_map if key is not None)


class CaseInsensitiveItemsView(_LiveView[CaseInsensitiveEntry[K, V]], ItemsView[K, V]):
    """
    条目视图.

    - 遍历输出 CaseInsensitiveEntry, 条目 key 为展示键, set_value 写回后端存储;
    - 成员判断/删除同时比较键(大小写不敏感)与值(None 只等于 None);
    - 接受 CaseInsensitiveEntry 或 (key, value) 二元组;
    - add/add_all 抛出 UnsupportedViewOperationError.
    """

    _mapping: CaseInsensitiveMap[K, V]

    def __init__(self, mapping: CaseInsensitiveMap[K, V]) -> None:
        super().__init__(mapping)

    def _entry(self, key: Any) -> CaseInsensitiveEntry[K, V]:
        store = self._mapping.wrapped_map
        return CaseInsensitiveEntry(store, key, store[key])

    def __contains__(self, item: Any) -> bool:
        pair = _as_pair(item)
        if pair is None:
            return False
        key, value = pair
        if not self._mapping.contains_key(key):
            return False
        return values_equal(self._mapping[key], value)

    def __iter__(self) -> Iterator[CaseInsensitiveEntry[K, V]]:
        for key in self._mapping.wrapped_map:
            yield self._entry(key)

    def discard(self, item: Any) -> None:
        pair = _as_pair(item)
        if pair is None:
            raise EntryTypeError(
                f"expecting CaseInsensitiveEntry or (key, value) pair, not {type(item).__name__}"
            )
        if item in self:
            self._mapping.remove(pair[0])

    def remove(self, item: Any) -> None:
        """
        删除与 item 的键和值都匹配的条目.

        Raises:
            EntryTypeError: item 不是条目或二元组.
            KeyError: 没有匹配的条目.
        """
        if _as_pair(item) is not None and item not in self:
            raise KeyError(item)
        self.discard(item)

    def retain_all(self, items: Iterable[Any]) -> bool:
        """
        只保留 items 中键与值都匹配的条目.

        先用 items 构造一个临时的 CaseInsensitiveMap(键 -> 值), 再删除键缺失或值不同的条目.

        Returns:
            bool: 映射是否发生变化.
        """
        from pwt.casemap.case_insensitive_map import CaseInsensitiveMap

        other: CaseInsensitiveMap[Any, Any] = CaseInsensitiveMap()
        for item in items:
            pair = _as_pair(item)
            if pair is not None:
                other.put(*pair)

        store = self._mapping.wrapped_map
        doomed = [
            key
            for key in store
            if key not in other or not values_equal(other[key], store[key])
        ]
        return self._drop_internal_keys(doomed)

    def iterator(self) -> ViewIterator[CaseInsensitiveEntry[K, V]]:
        return ViewIterator(self._mapping, self._entry)

    def to_list(self) -> list[CaseInsensitiveEntry[K, V]]:
        return list(self)
