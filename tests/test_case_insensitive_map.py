"""
大小写不敏感映射(CaseInsensitiveMap)测试套件

覆盖基本读写/最近一次大小写生效/复制构造/合并/相等性与哈希值.
"""

import weakref

import pytest
from pydantic import ValidationError

from pwt.casemap.backing import BackingKind
from pwt.casemap.case_insensitive_map import CaseInsensitiveMap
from pwt.casemap.case_insensitive_str import CaseInsensitiveStr
from pwt.casemap.options import MapOptions


class Token:
    """可被弱引用的值对象"""


@pytest.fixture
def empty_map():
    return CaseInsensitiveMap()


@pytest.fixture
def filled_map():
    return CaseInsensitiveMap({"One": 1, "Two": 2, "Three": 3, 4: "four"})


class TestConstruction:
    """测试各种构造方式"""

    def test_default(self, empty_map):
        assert len(empty_map) == 0
        assert empty_map.is_empty()
        assert empty_map.kind is BackingKind.INSERTION_ORDERED

    def test_with_capacity(self):
        m = CaseInsensitiveMap.with_capacity(32)
        assert m.options.initial_capacity == 32
        assert m.options.load_factor == 0.75
        m = CaseInsensitiveMap.with_capacity(16, 0.5)
        assert m.options.load_factor == 0.5
        assert m.wrapped_map.initial_capacity == 16

    @pytest.mark.parametrize(
        "capacity, load_factor",
        [(-1, 0.75), (16, 0), (16, -0.5), (16, float("nan")), (16, float("inf"))],
    )
    def test_with_capacity_invalid(self, capacity, load_factor):
        with pytest.raises(ValidationError):
            CaseInsensitiveMap.with_capacity(capacity, load_factor)

    def test_from_mapping(self, filled_map):
        assert len(filled_map) == 4
        assert filled_map["one"] == 1
        assert filled_map[4] == "four"
        assert list(filled_map) == ["One", "Two", "Three", 4]

    def test_from_pairs_and_kwargs(self):
        m = CaseInsensitiveMap([("A", 1), ("b", 2)], C=3)
        assert m == {"a": 1, "B": 2, "c": 3}

    def test_from_mapping_keeps_last_duplicate(self):
        m = CaseInsensitiveMap({"foo": 1, "FOO": 2})
        assert len(m) == 1
        assert list(m.keys()) == ["FOO"]
        assert m["Foo"] == 2

    def test_explicit_kind(self):
        m = CaseInsensitiveMap({"b": 2, "A": 1}, kind=BackingKind.SORTED)
        assert m.kind is BackingKind.SORTED
        assert list(m) == ["A", "b"]

    def test_kind_by_name(self):
        assert CaseInsensitiveMap(kind="Concurrent-Hash").kind is BackingKind.CONCURRENT_HASH

    def test_options(self):
        options = MapOptions(kind="sorted", initial_capacity=4)
        m = CaseInsensitiveMap({"x": 1}, options=options)
        assert m.options is options
        assert m.kind is BackingKind.SORTED

    def test_kind_overrides_options(self):
        options = MapOptions(kind="sorted", initial_capacity=4)
        m = CaseInsensitiveMap(options=options, kind="concurrent_hash")
        assert m.kind is BackingKind.CONCURRENT_HASH
        assert m.options.initial_capacity == 4

    def test_copy_infers_kind_from_source(self):
        source = CaseInsensitiveMap({"b": 1, "a": 2}, kind="sorted")
        copied = CaseInsensitiveMap(source)
        assert copied.kind is BackingKind.SORTED
        assert list(copied) == ["a", "b"]

    def test_copy_reuses_wrapped_keys(self):
        source = CaseInsensitiveMap({"Foo": 1})
        copied = CaseInsensitiveMap(source)
        [source_key] = list(source.wrapped_map)
        [copied_key] = list(copied.wrapped_map)
        assert copied_key is source_key
        assert isinstance(copied_key, CaseInsensitiveStr)
        assert list(copied.keys()) == ["Foo"]

    def test_copy_method(self, filled_map):
        clone = filled_map.copy()
        assert clone == filled_map
        assert clone is not filled_map
        assert clone.options is filled_map.options
        clone["one"] = 100
        assert filled_map["one"] == 1


class TestReadWrite:
    """测试读写操作"""

    @pytest.mark.parametrize("written, looked_up", [("Foo", "fOO"), ("ß", "SS"), ("Ä", "ä")])
    def test_lookup_ignores_case(self, empty_map, written, looked_up):
        empty_map.put(written, "v")
        assert empty_map.get(looked_up) == "v"
        assert empty_map[looked_up] == "v"
        assert empty_map.contains_key(looked_up)
        assert looked_up in empty_map

    def test_most_recent_casing_wins(self, empty_map):
        assert empty_map.put("Foo", 1) is None
        assert empty_map.put("FOO", 2) == 1
        assert empty_map.size() == 1
        assert empty_map.get("foo") == 2
        assert list(empty_map.keys()) == ["FOO"]
        assert [entry.key for entry in empty_map.items()] == ["FOO"]

    def test_setitem_recases(self, empty_map):
        empty_map["path"] = "a"
        empty_map["other"] = "b"
        empty_map["PATH"] = "c"
        assert list(empty_map) == ["PATH", "other"]

    def test_get_missing(self, filled_map):
        assert filled_map.get("missing") is None
        assert filled_map.get("missing", 0) == 0
        with pytest.raises(KeyError) as info:
            filled_map["missing"]
        assert info.value.args == ("missing",)

    def test_non_string_keys_are_case_sensitive_types(self, empty_map):
        empty_map[1] = "int"
        empty_map[("A",)] = "tuple"
        assert empty_map[1] == "int"
        assert ("a",) not in empty_map
        assert "1" not in empty_map

    def test_none_key_and_value(self, empty_map):
        empty_map[None] = None
        assert None in empty_map
        assert empty_map[None] is None
        assert empty_map.contains_value(None)

    def test_remove(self, filled_map):
        assert filled_map.remove("ONE") == 1
        assert filled_map.remove("ONE") is None
        assert "one" not in filled_map
        del filled_map["two"]
        with pytest.raises(KeyError):
            del filled_map["two"]
        assert len(filled_map) == 2

    def test_mixin_methods(self, filled_map):
        assert filled_map.pop("THREE") == 3
        assert filled_map.setdefault("one", 100) == 1
        assert filled_map.setdefault("Five", 5) == 5
        key, value = filled_map.popitem()
        assert (key, value) == ("One", 1)

    def test_contains_value(self, filled_map):
        assert filled_map.contains_value(2)
        assert not filled_map.contains_value("two")

    def test_values_passthrough(self, filled_map):
        values = filled_map.values()
        assert list(values) == [1, 2, 3, "four"]
        filled_map["five"] = 5
        assert 5 in values

    def test_clear(self, filled_map):
        filled_map.clear()
        assert filled_map.is_empty()
        assert list(filled_map.keys()) == []

    def test_repr(self):
        m = CaseInsensitiveMap({"Foo": 1, 2: "two"})
        assert repr(m) == "CaseInsensitiveMap({'Foo': 1, 2: 'two'})"
        assert str(m) == repr(m)

    def test_unhashable(self, empty_map):
        with pytest.raises(TypeError):
            hash(empty_map)


class TestPutAll:
    """测试合并操作"""

    def test_put_all_plain_mapping(self, empty_map):
        empty_map.put("KEY", 0)
        empty_map.put_all({"key": 1, "Other": 2})
        assert list(empty_map.keys()) == ["key", "Other"]
        assert empty_map["KEY"] == 1

    def test_put_all_uses_original_keys(self, empty_map):
        source = CaseInsensitiveMap({"Foo": 1, 7: "seven"})
        empty_map.put_all(source)
        assert empty_map == {"foo": 1, 7: "seven"}
        [source_key, _] = list(source.wrapped_map)
        stored_key = next(iter(empty_map.wrapped_map))
        assert stored_key is source_key
        assert list(empty_map.keys()) == ["Foo", 7]

    def test_put_all_none(self, filled_map):
        filled_map.put_all(None)
        assert len(filled_map) == 4

    def test_update(self, empty_map):
        empty_map.update({"A": 1})
        empty_map.update([("a", 2)], b=3)
        empty_map.update(CaseInsensitiveMap({"B": 4}).items())
        assert empty_map == {"A": 2, "B": 4}
        assert list(empty_map.keys()) == ["a", "B"]


class TestEquality:
    """测试相等性与哈希值"""

    def test_round_trip_equals_source(self):
        source = {"Alpha": 1, "beta": None, 3: [1, 2]}
        assert CaseInsensitiveMap(source) == source
        assert source == CaseInsensitiveMap(source)

    def test_equal_ignoring_case(self):
        left = CaseInsensitiveMap({"X": 1})
        right = CaseInsensitiveMap({"x": 1})
        assert left == right
        assert left.hash_code() == right.hash_code()

    def test_not_equal(self, filled_map):
        assert filled_map != {"one": 1}
        assert filled_map != {"one": 1, "two": 2, "three": 3, 5: "four"}
        assert filled_map != {"one": 1, "two": 2, "three": 3, 4: "FOUR"}
        assert filled_map != [("one", 1)]

    def test_none_values(self):
        m = CaseInsensitiveMap({"a": None})
        assert m == {"A": None}
        assert m != {"A": 0}
        assert CaseInsensitiveMap({"a": 0}) != {"A": None}

    def test_equal_across_kinds(self):
        left = CaseInsensitiveMap({"b": 1, "a": 2}, kind="sorted")
        right = CaseInsensitiveMap({"A": 2, "B": 1}, kind="concurrent_hash")
        assert left == right
        assert left.hash_code() == right.hash_code()

    def test_hash_code_formula(self):
        m = CaseInsensitiveMap({"Key": 5, None: None})
        expected = hash("key") ^ hash(5)
        assert m.hash_code() == expected

    def test_hash_code_unhashable_values(self):
        left = CaseInsensitiveMap({"Items": [1, 2], "Meta": {"K": {3}}})
        right = CaseInsensitiveMap({"items": [1, 2], "meta": {"K": {3}}})
        assert left == right
        assert left.hash_code() == right.hash_code()
        assert left.hash_code() != CaseInsensitiveMap({"items": [2, 1], "meta": {}}).hash_code()

    def test_entry_hash_unhashable_value(self):
        m = CaseInsensitiveMap({"a": [1], "b": [1]})
        first, second = list(m.items())
        assert hash(first) != hash(second)
        assert hash(first) == hash(next(iter(CaseInsensitiveMap({"a": [1]}).items())))

    def test_empty_hash_code(self, empty_map):
        assert empty_map.hash_code() == 0


class TestBackingKinds:
    """测试不同后端存储下的映射行为"""

    @pytest.mark.parametrize("kind", ["insertion_ordered", "sorted", "concurrent_hash", "concurrent_sorted"])
    def test_basic_contract(self, kind):
        m = CaseInsensitiveMap(kind=kind)
        m.put("Foo", 1)
        m.put("FOO", 2)
        m.put("bar", 3)
        assert len(m) == 2
        assert m["foo"] == 2
        assert set(m.keys()) == {"FOO", "bar"}
        m.keys().remove("BAR")
        assert m == {"foo": 2}

    def test_sorted_rejects_none_key(self):
        m = CaseInsensitiveMap(kind="sorted")
        with pytest.raises(TypeError):
            m[None] = 1

    def test_weak_reference_kind(self):
        m = CaseInsensitiveMap(kind="weak_reference")
        m["Foo"] = 1
        assert m["FOO"] == 1
        assert list(m.keys()) == ["Foo"]

    def test_weak_reference_missing_keys(self):
        m = CaseInsensitiveMap(kind="weak_reference")
        m["Foo"] = 1
        assert m.get(42) is None
        assert m.get(42, "default") == "default"
        assert m.remove(42) is None
        assert m.pop(42, None) is None
        assert 42 not in m
        assert len(m) == 1

    def test_copy_from_weak_value_dictionary(self):
        token = Token()
        source = weakref.WeakValueDictionary({1: token, "Key": token})
        m = CaseInsensitiveMap(source)
        assert m.kind is BackingKind.INSERTION_ORDERED
        assert m[1] is token
        assert m["KEY"] is token
