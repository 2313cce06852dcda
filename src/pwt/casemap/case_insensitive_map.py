"""
提供一个字符串键大小写不敏感的映射实现.

设计目标:
- 字符串键按 casefold 比较与哈希, 同时保留原始大小写并返回给调用方.
- 非字符串键与普通映射行为完全一致.
- 覆盖写入同一逻辑键(例如 "PATH" 与 "Path")时, 以最后一次写入的原始键形式为准.
- keys()/items() 返回实时视图, 从不暴露内部包装键; values() 直接透传后端存储.
- 后端存储种类(插入顺序/有序/并发/弱引用)通过 BackingKind 显式配置,
  复制构造时可按源映射推断.

并发:
    映射本身不加锁. 选择并发存储时单个操作是线程安全的,
    但 put 这类"先读后写"的复合操作跨越两次存储调用, 不保证原子性.

示例:
    >>> m = CaseInsensitiveMap({"Foo": 1})
    >>> m.put("FOO", 2)
    1
    >>> m["foo"], list(m.keys())
    (2, ['FOO'])
    >>> m == {"fOo": 2}
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping, ValuesView
from typing import Any, Generic, Hashable, Self, TypeVar

from pwt.casemap.backing import (
    BackingKind,
    BackingStore,
    create_backing_store,
    infer_backing_kind,
)
from pwt.casemap.case_insensitive_str import unwrap_key, wrap_key
from pwt.casemap.log.helpers import get_logger_adapter
from pwt.casemap.options import LOAD_FACTOR_DEFAULT, MapOptions
from pwt.casemap.views import (
    CaseInsensitiveEntry,
    CaseInsensitiveItemsView,
    CaseInsensitiveKeysView,
    value_hash,
    values_equal,
)

logger = get_logger_adapter(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class CaseInsensitiveMap(MutableMapping[K, V], Generic[K, V]):
    """
    对字符串键大小写不敏感的映射.

    内部结构:
    - self._store: 后端存储, {内部键: 值}
      内部键规则: str 包装为 CaseInsensitiveStr; 非 str 键保持原样.

    构造:
    - CaseInsensitiveMap(): 默认插入顺序存储.
    - CaseInsensitiveMap.with_capacity(n, load_factor): 带容量提示.
    - CaseInsensitiveMap(source, kind=..., options=..., **kwargs): 从映射或键值对复制;
      source 为映射且未指定种类时, 按源映射推断后端存储种类.

    说明:
    - `m[key]`/`del m[key]` 缺失时抛 KeyError; `get`/`put`/`remove` 缺失时返回 None.
    - `put` 总是为 str 键构造新的包装对象, 因此最近一次写入的大小写生效.
    - 映射是可变的, 因此不可哈希; 需要哈希值时使用 `hash_code()`.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(
        self,
        data: Mapping[Any, V] | Iterable[Any] | None = None,
        /,
        *,
        kind: BackingKind | str | None = None,
        options: MapOptions | None = None,
        **kwargs: V,
    ) -> None:
        if kind is not None:
            base = options.model_dump() if options is not None else {}
            options = MapOptions(**{**base, "kind": kind})
        elif options is None:
            if isinstance(data, Mapping):
                options = MapOptions(
                    kind=infer_backing_kind(data), initial_capacity=len(data)
                )
                logger.debugf(
                    "copying {source_type} into {store_kind} backing store",
                    source_type=type(data).__name__,
                    store_kind=options.kind.value,
                )
            else:
                options = MapOptions()

        self._options = options
        self._store: BackingStore[V] = create_backing_store(
            options.kind, options.initial_capacity
        )
        if data is not None:
            self._copy_from(data)
        for key, value in kwargs.items():
            self.put(key, value)  # type: ignore[arg-type]

    @classmethod
    def with_capacity(
        cls, initial_capacity: int, load_factor: float = LOAD_FACTOR_DEFAULT
    ) -> Self:
        """
        创建带容量提示的空映射.

        Raises:
            pydantic.ValidationError: initial_capacity 为负数或 load_factor 不是正的有限数.
        """
        return cls(
            options=MapOptions(initial_capacity=initial_capacity, load_factor=load_factor)
        )

    def _copy_from(self, source: Mapping[Any, V] | Iterable[Any]) -> None:
        items = source.items() if isinstance(source, Mapping) else source
        for item in items:
            # 条目视图导出的条目直接取内部键, 已包装的键保持原样
            if isinstance(item, CaseInsensitiveEntry):
                key, value = item.original_key, item.value
            else:
                key, value = item
            self._store[wrap_key(key)] = value

    # ===========================================================================

    @property
    def options(self) -> MapOptions:
        return self._options

    @property
    def kind(self) -> BackingKind:
        return self._options.kind

    @property
    def backing_kind(self) -> BackingKind:
        return self._options.kind

    @property
    def wrapped_map(self) -> BackingStore[V]:
        """后端存储本身; 其中的字符串键为 CaseInsensitiveStr."""
        return self._store

    # ===========================================================================

    def __getitem__(self, key: Any) -> V:
        try:
            return self._store[wrap_key(key)]
        except KeyError:
            raise KeyError(key) from None

    def __setitem__(self, key: K, value: V) -> None:
        self._store[wrap_key(key)] = value

    def __delitem__(self, key: Any) -> None:
        try:
            del self._store[wrap_key(key)]
        except KeyError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[K]:
        for key in self._store:
            yield unwrap_key(key)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: Any) -> bool:
        return wrap_key(key) in self._store

    def __eq__(self, other: Any) -> bool:
        """
        与任意映射做结构比较.

        大小相同, 且 other 中每个条目的键都存在于本映射(大小写不敏感), 值也相等.
        None 只与 None 相等.
        """
        if other is self:
            return True
        if not isinstance(other, Mapping):
            return NotImplemented
        if len(other) != len(self):
            return False

        for key, value in other.items():
            if key not in self:
                return False
            if not values_equal(self[key], value):
                return False
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._store!r})"

    # ===========================================================================

    def get(self, key: Any, default: Any = None) -> Any:
        try:
            return self._store[wrap_key(key)]
        except KeyError:
            return default

    def put(self, key: K, value: V) -> V | None:
        """
        写入键值对并返回写入前的值(不存在时为 None).

        str 键总是构造新的包装对象写入, 已存在的逻辑键会改用本次的大小写.
        """
        internal = wrap_key(key)
        previous = self._store.get(internal)
        self._store[internal] = value
        return previous

    def put_all(self, source: Mapping[Any, V] | None) -> None:
        """
        合并另一个映射.

        来自 CaseInsensitiveMap 条目视图的条目直接使用其内部键, 避免包装/还原的往返;
        其他条目使用展示键调用 put.
        """
        if source is None:
            return
        for item in source.items():
            if isinstance(item, CaseInsensitiveEntry):
                self.put(item.original_key, item.value)
            else:
                key, value = item
                self.put(key, value)

    def update(self, other: Any = (), /, **kwds: V) -> None:
        if isinstance(other, Mapping):
            self.put_all(other)
        elif hasattr(other, "keys"):
            for key in other.keys():
                self.put(key, other[key])
        else:
            for item in other:
                if isinstance(item, CaseInsensitiveEntry):
                    self.put(item.original_key, item.value)
                else:
                    key, value = item
                    self.put(key, value)
        for key, value in kwds.items():
            self.put(key, value)  # type: ignore[arg-type]

    def remove(self, key: Any) -> V | None:
        """删除键并返回其值; 键不存在时返回 None."""
        return self._store.pop(wrap_key(key), None)

    def contains_key(self, key: Any) -> bool:
        return key in self

    def contains_value(self, value: Any) -> bool:
        return value in self._store.values()

    def size(self) -> int:
        return len(self._store)

    def is_empty(self) -> bool:
        return len(self._store) == 0

    def clear(self) -> None:
        self._store.clear()

    def keys(self) -> CaseInsensitiveKeysView[K]:
        return CaseInsensitiveKeysView(self)

    def items(self) -> CaseInsensitiveItemsView[K, V]:
        return CaseInsensitiveItemsView(self)

    def entries(self) -> CaseInsensitiveItemsView[K, V]:
        return self.items()

    def values(self) -> ValuesView[V]:
        return self._store.values()

    def hash_code(self) -> int:
        """
        按标准映射约定计算哈希值: 各条目 (键哈希 ^ 值哈希) 之和, None 计为 0.

        字符串键使用 casefold 后的哈希, 因此相等的映射哈希值相同;
        list/dict 等不可哈希的值按内容计算(见 `value_hash`).
        """
        h = 0
        for key in self._store:
            value = self._store[key]
            h_key = 0 if key is None else hash(key)
            h_value = value_hash(value)
            h += h_key ^ h_value
        return h

    def copy(self) -> Self:
        """浅复制: 相同的存储种类与选项, 相同的条目."""
        clone = self.__class__(options=self._options)
        clone._copy_from(self)
        return clone
