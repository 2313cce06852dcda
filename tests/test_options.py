import pytest
from pydantic import ValidationError

from pwt.casemap.backing import BackingKind
from pwt.casemap.options import MapOptions
from pwt.casemap.pydantic_utils import format_validation_error


def test_defaults():
    options = MapOptions()
    assert options.kind is BackingKind.INSERTION_ORDERED
    assert options.initial_capacity is None
    assert options.load_factor == 0.75


@pytest.mark.parametrize(
    "value, expected",
    [
        ("sorted", BackingKind.SORTED),
        ("SORTED", BackingKind.SORTED),
        (" weak_reference ", BackingKind.WEAK_REFERENCE),
        ("concurrent-sorted", BackingKind.CONCURRENT_SORTED),
        (BackingKind.CONCURRENT_HASH, BackingKind.CONCURRENT_HASH),
    ],
)
def test_kind_conversion(value, expected):
    assert MapOptions(kind=value).kind is expected


def test_empty_values_fall_back_to_defaults():
    options = MapOptions(kind="", load_factor=None)
    assert options.kind is BackingKind.INSERTION_ORDERED
    assert options.load_factor == 0.75


def test_unknown_kind():
    with pytest.raises(ValidationError) as info:
        MapOptions(kind="linked")
    errors = format_validation_error(info.value)
    assert errors[0]["field"] == "kind"
    assert errors[0]["input"] == "linked"


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"initial_capacity": -1}, "initial_capacity"),
        ({"load_factor": 0}, "load_factor"),
        ({"load_factor": float("inf")}, "load_factor"),
    ],
)
def test_invalid_hints(kwargs, field):
    with pytest.raises(ValidationError) as info:
        MapOptions(**kwargs)
    assert [error["field"] for error in format_validation_error(info.value)] == [field]


def test_frozen():
    options = MapOptions()
    with pytest.raises(ValidationError):
        options.load_factor = 1.0  # type: ignore[misc]
