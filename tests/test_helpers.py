import pytest
from typing import Optional, Tuple

from viewrender.config.settings import DuplicatePolicy
from viewrender.core.templating.helpers import (
    BindingConvention,
    HelperRegistry,
    helper_methods,
    result_shape,
)
from viewrender.exceptions import HelperCallError, ValidationError


class Greeter:
    def hello(self) -> str:
        return "hello"

    def Shout(self, name: str) -> str:
        return name.upper()

    def lookup(self, key: str) -> Tuple[str, Optional[Exception]]:
        if key == "missing":
            return "", KeyError(key)
        return f"value-{key}", None

    def _private(self) -> str:
        return "hidden"


class TwoValues:
    def ok(self) -> str:
        return "fine"

    def pair(self) -> Tuple[str, int]:
        return "a", 1


class ReturnsNothing:
    def nothing(self) -> None:
        pass


class ThreeValues:
    def triple(self) -> Tuple[str, str, str]:
        return "a", "b", "c"


class Empty:
    pass


@pytest.fixture
def registry() -> HelperRegistry:
    return HelperRegistry()


def test_public_methods_are_discovered_sorted_and_bound():
    names = [name for name, _ in helper_methods(Greeter())]
    assert names == ["Shout", "hello", "lookup"]


def test_register_struct_exposes_instance_under_type_name(registry: HelperRegistry):
    greeter = Greeter()
    registry.register_struct(greeter)
    assert registry.has("Greeter")
    assert not registry.has("hello")
    struct = registry.snapshot()["Greeter"]()
    assert struct.instance is greeter
    assert struct.hello() == "hello"


def test_struct_methods_unpack_error_pairs(registry: HelperRegistry):
    registry.register_struct(Greeter())
    struct = registry.snapshot()["Greeter"]()
    assert struct.lookup("a") == "value-a"
    with pytest.raises(HelperCallError, match="error calling Greeter.lookup"):
        struct.lookup("missing")


def test_register_methods_uses_exact_names(registry: HelperRegistry):
    registry.register_methods(Greeter())
    helpers = registry.snapshot()
    assert set(helpers) == {"hello", "Shout", "lookup"}
    assert helpers["Shout"]("abc") == "ABC"


def test_register_methods_lowercased(registry: HelperRegistry):
    registry.register(Greeter(), BindingConvention.LOWERCASE)
    assert registry.has("shout")
    assert not registry.has("Shout")
    assert registry.snapshot()["shout"]("x") == "X"


def test_pair_helper_is_unpacked_and_raises_on_error(registry: HelperRegistry):
    registry.register_methods(Greeter())
    lookup = registry.snapshot()["lookup"]
    assert lookup("a") == "value-a"
    with pytest.raises(HelperCallError) as exc_info:
        lookup("missing")
    assert str(exc_info.value).startswith("error calling lookup: ")


def test_helper_exception_is_wrapped(registry: HelperRegistry):
    def fail():
        raise ValueError("boom")

    registry.register_raw({"fail": fail})
    with pytest.raises(HelperCallError, match="error calling fail: boom"):
        registry.snapshot()["fail"]()


def test_object_without_methods_is_a_noop(registry: HelperRegistry):
    registry.register_struct(Empty())
    assert len(registry) == 0


@pytest.mark.parametrize("bad", [TwoValues(), ReturnsNothing(), ThreeValues()])
def test_contract_violations_commit_nothing(registry: HelperRegistry, bad):
    with pytest.raises(ValidationError, match="can't install method/function"):
        registry.register_methods(bad)
    assert len(registry) == 0


def test_contract_message_names_owner_method_and_count(registry: HelperRegistry):
    with pytest.raises(ValidationError) as exc_info:
        registry.register_struct(TwoValues())
    assert exc_info.value.message == 'TwoValues: can\'t install method/function "pair" with 2 results'
    assert not registry.has("TwoValues")


def test_result_shape_reads_annotations():
    assert result_shape(Greeter().hello) == (1, False)
    assert result_shape(Greeter().lookup) == (2, True)
    assert result_shape(ReturnsNothing().nothing) == (0, False)
    assert result_shape(lambda: 1) == (1, False)


@pytest.mark.parametrize(
    "value, message",
    [
        (None, "helper argument is nil"),
        (42, "int: helper argument is not struct type"),
        (Greeter, "Greeter: helper argument is not struct type"),
        ({"a": 1}, "dict: helper argument is not struct type"),
    ],
)
def test_non_struct_arguments_are_rejected(registry: HelperRegistry, value, message):
    with pytest.raises(ValidationError) as exc_info:
        registry.register_methods(value)
    assert exc_info.value.message == message


def test_raw_helpers_validate_values(registry: HelperRegistry):
    with pytest.raises(ValidationError, match="x is not function"):
        registry.register_raw({"ok": lambda: 1, "x": 1})
    assert not registry.has("ok")
    with pytest.raises(ValidationError, match="y is nil"):
        registry.register_raw({"y": None})


@pytest.mark.parametrize(
    "name, message",
    [
        ("bad-name", "function name bad-name is not a valid identifier"),
        ("1abc", "function name 1abc is not a valid identifier"),
        ("import", "'import' function already exists"),
        ("hastemplate", "'hastemplate' function already exists"),
    ],
)
def test_invalid_or_reserved_names(registry: HelperRegistry, name, message):
    with pytest.raises(ValidationError) as exc_info:
        registry.register_raw({name: lambda: "x"})
    assert exc_info.value.message == message


def test_duplicates_overwrite_by_default(registry: HelperRegistry):
    registry.register_raw({"greet": lambda: "first"})
    registry.register_raw({"greet": lambda: "second"})
    assert registry.snapshot()["greet"]() == "second"


def test_duplicates_rejected_under_reject_policy():
    registry = HelperRegistry(DuplicatePolicy.REJECT)
    registry.register_raw({"greet": lambda: "first"})
    with pytest.raises(ValidationError, match="'greet' - duplicate function"):
        registry.register_raw({"greet": lambda: "second", "other": lambda: "x"})
    assert registry.snapshot()["greet"]() == "first"
    assert not registry.has("other")


def test_copy_is_independent(registry: HelperRegistry):
    registry.register_raw({"base": lambda: "b"})
    copied = registry.copy()
    copied.register_raw({"extra": lambda: "e"})
    assert copied.has("base") and copied.has("extra")
    assert not registry.has("extra")
