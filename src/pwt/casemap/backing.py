"""
CaseInsensitiveMap 的后端存储.

后端存储是唯一的数据来源: 内部键(CaseInsensitiveStr 或原样的非字符串键) -> 值.
不同种类的存储决定遍历顺序与并发特性, 由 BackingKind 显式配置.

主要组件:
- BackingKind: 存储种类枚举
- HashBackingStore: 按插入顺序遍历的哈希存储(默认)
- SortedBackingStore: 按键升序遍历的有序存储
- LockedBackingStore: 对单个操作加锁的并发存储包装
- WeakBackingStore: 非字符串键弱引用的存储
- create_backing_store / infer_backing_kind: 工厂与种类推断

写入约定:
    对已存在的逻辑键写入时, 保留条目位置, 但用新传入的键对象替换已存储的键对象,
    从而保证"最后一次写入的大小写"生效.
"""

from __future__ import annotations

import enum
import threading
import weakref
from bisect import bisect_left, insort
from collections import OrderedDict
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Generic, Hashable, TypeVar

from pwt.casemap.case_insensitive_str import CaseInsensitiveStr, unwrap_key
from pwt.casemap.log.helpers import get_logger_adapter

logger = get_logger_adapter(__name__)

V = TypeVar("V")


class BackingKind(enum.Enum):
    """后端存储种类"""

    INSERTION_ORDERED = "insertion_ordered"
    SORTED = "sorted"
    CONCURRENT_HASH = "concurrent_hash"
    CONCURRENT_SORTED = "concurrent_sorted"
    WEAK_REFERENCE = "weak_reference"


class BackingStore(MutableMapping[Hashable, V], Generic[V]):
    """
    后端存储基类.

    Attributes:
        kind (BackingKind): 存储种类.
        initial_capacity (int | None): 构造时给出的容量提示, 仅作记录.
    """

    kind: BackingKind
    initial_capacity: int | None = None

    @property
    def backing_kind(self) -> BackingKind:
        return self.kind

    def __repr__(self) -> str:
        inner = ", ".join(f"{unwrap_key(k)!r}: {v!r}" for k, v in self.items())
        return f"{{{inner}}}"


class HashBackingStore(BackingStore[V]):
    """
    按插入顺序遍历的哈希存储.

    内部结构:
    - self._data: {内部键: (最近一次写入的键对象, 值)}
      dict 覆盖写入时保留首次插入的键对象, 因此把最新的键对象与值一起存放.
    """

    kind = BackingKind.INSERTION_ORDERED

    def __init__(self) -> None:
        self._data: dict[Hashable, tuple[Hashable, V]] = {}

    def __getitem__(self, key: Hashable) -> V:
        return self._data[key][1]

    def __setitem__(self, key: Hashable, value: V) -> None:
        self._data[key] = (key, value)

    def __delitem__(self, key: Hashable) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[Hashable]:
        for stored_key, _ in self._data.values():
            yield stored_key

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Any) -> bool:
        return key in self._data

    def clear(self) -> None:
        self._data.clear()

    def stored_key(self, key: Hashable) -> Hashable:
        """返回与 key 相等的已存储键对象; 不存在时抛 KeyError."""
        return self._data[key][0]


class SortedBackingStore(HashBackingStore[V]):
    """
    按键升序遍历的有序存储.

    在哈希存储之外维护一个用 bisect 保持有序的键列表.
    字符串键排在其他类型的键之前; 不接受 None 键.
    """

    kind = BackingKind.SORTED

    def __init__(self) -> None:
        super().__init__()
        self._keys: list[Hashable] = []

    def __setitem__(self, key: Hashable, value: V) -> None:
        if key is None:
            raise TypeError("sorted backing store does not accept None keys")
        if key in self._data:
            self._keys[self._index_of(key)] = key
        else:
            insort(self._keys, key)
        super().__setitem__(key, value)

    def __delitem__(self, key: Hashable) -> None:
        super().__delitem__(key)
        del self._keys[self._index_of(key)]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._keys)

    def clear(self) -> None:
        super().clear()
        self._keys.clear()

    def _index_of(self, key: Hashable) -> int:
        index = bisect_left(self._keys, key)
        if index < len(self._keys) and self._keys[index] == key:
            return index
        raise KeyError(key)


class LockedBackingStore(BackingStore[V]):
    """
    并发存储包装.

    每个单独的操作都在同一把可重入锁内执行; 遍历基于加锁时获取的键快照.
    跨越多次调用的复合操作不保证原子性.
    """

    def __init__(self, store: HashBackingStore[V], kind: BackingKind) -> None:
        self._store = store
        self._lock = threading.RLock()
        self.kind = kind

    def __getitem__(self, key: Hashable) -> V:
        with self._lock:
            return self._store[key]

    def __setitem__(self, key: Hashable, value: V) -> None:
        with self._lock:
            self._store[key] = value

    def __delitem__(self, key: Hashable) -> None:
        with self._lock:
            del self._store[key]

    def __iter__(self) -> Iterator[Hashable]:
        with self._lock:
            keys = list(self._store)
        return iter(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._store

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def pop(self, key: Hashable, *args: Any) -> Any:
        with self._lock:
            return self._store.pop(key, *args)


class WeakBackingStore(BackingStore[V]):
    """
    弱引用存储.

    - 非字符串键存入 WeakKeyDictionary, 键对象被回收后条目自动消失;
      不支持弱引用的键(如 int)直接抛出 TypeError.
    - 字符串包装键每次写入都是新对象, 且 str 本身不能被弱引用, 因此强引用保存.
    遍历顺序不作保证.
    """

    kind = BackingKind.WEAK_REFERENCE

    def __init__(self) -> None:
        self._text: HashBackingStore[V] = HashBackingStore()
        self._weak: weakref.WeakKeyDictionary[Any, V] = weakref.WeakKeyDictionary()

    def _select(self, key: Any) -> MutableMapping[Any, V]:
        if isinstance(key, CaseInsensitiveStr):
            return self._text
        return self._weak

    def __getitem__(self, key: Hashable) -> V:
        store = self._select(key)
        # WeakKeyDictionary 对不可弱引用的键抛出 TypeError; 读取时按缺失处理
        if key not in store:
            raise KeyError(key)
        return store[key]

    def __setitem__(self, key: Hashable, value: V) -> None:
        self._select(key)[key] = value

    def __delitem__(self, key: Hashable) -> None:
        store = self._select(key)
        if key not in store:
            raise KeyError(key)
        del store[key]

    def __iter__(self) -> Iterator[Hashable]:
        yield from self._text
        yield from self._weak.keys()

    def __len__(self) -> int:
        return len(self._text) + len(self._weak)

    def __contains__(self, key: Any) -> bool:
        return key in self._select(key)

    def clear(self) -> None:
        self._text.clear()
        self._weak.clear()


def create_backing_store(
    kind: BackingKind = BackingKind.INSERTION_ORDERED,
    initial_capacity: int | None = None,
) -> BackingStore[Any]:
    """
    按种类创建后端存储.

    Args:
        kind (BackingKind): 存储种类.
        initial_capacity (int | None): 容量提示; dict 不支持预分配, 仅作记录.

    Returns:
        BackingStore[Any]: 新建的空存储.
    """
    store: BackingStore[Any]
    if kind is BackingKind.INSERTION_ORDERED:
        store = HashBackingStore()
    elif kind is BackingKind.SORTED:
        store = SortedBackingStore()
    elif kind is BackingKind.CONCURRENT_HASH:
        store = LockedBackingStore(HashBackingStore(), kind)
    elif kind is BackingKind.CONCURRENT_SORTED:
        store = LockedBackingStore(SortedBackingStore(), kind)
    elif kind is BackingKind.WEAK_REFERENCE:
        store = WeakBackingStore()
    else:
        raise ValueError(f"Unknown backing kind: {kind!r}")
    store.initial_capacity = initial_capacity
    logger.debugf(
        "created backing store {store_kind} (capacity hint {capacity})",
        store_kind=kind.value,
        capacity=initial_capacity,
    )
    return store


# 按源映射的确切类型推断存储种类; 未列出的类型使用插入顺序存储.
# WeakValueDictionary 的键通常是 int/str, 不能放进弱键存储, 因此不在表中
KIND_BY_TYPE: Mapping[type, BackingKind] = {
    dict: BackingKind.INSERTION_ORDERED,
    OrderedDict: BackingKind.INSERTION_ORDERED,
    weakref.WeakKeyDictionary: BackingKind.WEAK_REFERENCE,
}


def infer_backing_kind(source: Any) -> BackingKind:
    """
    根据源映射推断复制构造时使用的存储种类.

    优先读取源对象的 `backing_kind` 属性(本模块的存储与 CaseInsensitiveMap 均提供),
    其次按 KIND_BY_TYPE 查表, 都不匹配时返回 INSERTION_ORDERED.
    """
    kind = getattr(source, "backing_kind", None)
    if isinstance(kind, BackingKind):
        return kind
    return KIND_BY_TYPE.get(type(source), BackingKind.INSERTION_ORDERED)
