# viewrender/core/templating/helpers.py
"""
Helper registration for view templates.

Helpers come from plain objects under one of three binding conventions, or
from raw name/callable mappings. Every callable must return one value, or a
``(value, error)`` pair whose second member is an exception type.
"""
import functools
import inspect
import re
import threading
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import structlog

from viewrender.config.settings import DuplicatePolicy
from viewrender.exceptions import HelperCallError, ValidationError

log = structlog.get_logger(__name__)

HELPER_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
RESERVED_HELPER_NAMES = frozenset({"import", "hastemplate"})

_NON_STRUCT_TYPES = (
    str, bytes, bytearray, int, float, complex, bool,
    list, tuple, dict, set, frozenset,
)


class BindingConvention(Enum):
    # how an object's methods become template callables.
    STRUCT = "struct"        # Greeter() -> {{ Greeter().hello() }}
    METHODS = "methods"      # {{ hello() }} keyed by method name
    LOWERCASE = "lowercase"  # {{ hello() }} keyed by lowercased method name


@dataclass(frozen=True)
class HelperEntry:
    name: str
    func: Callable[..., Any]


def _type_name(value: Any) -> str:
    return type(value).__name__


def _validate_instance(instance: Any) -> None:
    if instance is None:
        raise ValidationError("helper argument is nil", type_name="", kind="nil")
    if (
        isinstance(instance, type)
        or inspect.isroutine(instance)
        or inspect.ismodule(instance)
        or isinstance(instance, _NON_STRUCT_TYPES)
    ):
        name = instance.__name__ if isinstance(instance, type) else _type_name(instance)
        raise ValidationError(
            f"{name}: helper argument is not struct type",
            type_name=name,
            kind=type(instance).__name__,
        )


def helper_methods(instance: Any) -> List[Tuple[str, Callable[..., Any]]]:
    """Public methods of ``instance``'s type, bound to the instance, sorted by name."""
    methods = []
    for name, attr in inspect.getmembers(type(instance)):
        if name.startswith("_"):
            continue
        if inspect.isfunction(attr) or inspect.ismethod(attr):
            methods.append((name, getattr(instance, name)))
    return methods


def _return_annotation(func: Callable[..., Any]) -> Any:
    try:
        return inspect.signature(func, eval_str=True).return_annotation
    except (NameError, AttributeError, SyntaxError, TypeError):
        # unresolvable string annotations fall back to their raw form
        pass
    except ValueError:
        return inspect.Signature.empty
    try:
        return inspect.signature(func).return_annotation
    except (TypeError, ValueError):
        return inspect.Signature.empty


def _is_error_shaped(annotation: Any) -> bool:
    if isinstance(annotation, type):
        return issubclass(annotation, BaseException)
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        members = [m for m in typing.get_args(annotation) if m is not type(None)]
        return bool(members) and all(
            isinstance(m, type) and issubclass(m, BaseException) for m in members
        )
    return False


def result_shape(func: Callable[..., Any]) -> Tuple[int, bool]:
    """Returns (declared result count, second result is error-shaped)."""
    annotation = _return_annotation(func)
    if annotation is inspect.Signature.empty:
        return 1, False
    if annotation is None or annotation is type(None) or annotation is typing.NoReturn:
        return 0, False
    if typing.get_origin(annotation) is tuple:
        args = typing.get_args(annotation)
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            return 1, False
        if len(args) == 2:
            return 2, _is_error_shaped(args[1])
        return len(args), False
    return 1, False


def check_contract(owner: str, name: str, func: Callable[..., Any]) -> bool:
    """Validates the result contract; returns True for ``(value, error)`` helpers."""
    count, error_shaped = result_shape(func)
    if count == 0 or count > 2 or (count == 2 and not error_shaped):
        raise ValidationError(
            f'{owner}: can\'t install method/function "{name}" with {count} results',
            type_name=owner,
            kind="func",
        )
    return count == 2


def _guard(name: str, func: Callable[..., Any], pair: bool) -> Callable[..., Any]:
    # surfaces helper failures as HelperCallError, unpacking (value, error) pairs.
    @functools.wraps(func)
    def call(*args: Any, **kwargs: Any) -> Any:
        try:
            result = func(*args, **kwargs)
            if not pair:
                return result
            value, error = result
        except HelperCallError:
            raise
        except Exception as e:
            raise HelperCallError(name, e) from e
        if error is not None:
            raise HelperCallError(name, error)
        return value
    return call


class StructHelper:
    """What a struct-convention helper returns to templates.

    Public methods are looked up through the same guard as method helpers, so
    ``{{ Greeter().lookup("a") }}`` unpacks ``(value, error)`` results; other
    attributes are read from the wrapped instance.
    """

    def __init__(self, owner: str, instance: Any, methods: Mapping[str, Callable[..., Any]]):
        self._owner = owner
        self._instance = instance
        self._methods = dict(methods)

    @property
    def instance(self) -> Any:
        return self._instance

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        method = self._methods.get(name)
        if method is not None:
            return method
        return getattr(self._instance, name)

    def __repr__(self) -> str:
        return f"<{self._owner} helper>"


class HelperRegistry:
    """Name to callable mapping owned by one renderer.

    A lock guards every mutation and snapshot. Registration calls are
    all-or-nothing: entries are staged and validated before any is committed.
    """

    def __init__(
        self,
        policy: DuplicatePolicy = DuplicatePolicy.OVERWRITE,
        entries: Optional[Mapping[str, HelperEntry]] = None,
    ):
        self.policy = policy
        self._lock = threading.Lock()
        self._entries: Dict[str, HelperEntry] = dict(entries or {})

    def register(self, instance: Any, convention: BindingConvention) -> None:
        _validate_instance(instance)
        owner = _type_name(instance)
        methods = helper_methods(instance)
        if not methods:
            log.debug("helper_has_no_methods_skipped", owner=owner)
            return

        pairs = {name: check_contract(owner, name, method) for name, method in methods}

        staged: Dict[str, HelperEntry] = {}
        if convention is BindingConvention.STRUCT:
            struct = StructHelper(
                owner,
                instance,
                {name: _guard(f"{owner}.{name}", method, pairs[name]) for name, method in methods},
            )
            staged[owner] = HelperEntry(owner, lambda: struct)
        else:
            for name, method in methods:
                key = name.lower() if convention is BindingConvention.LOWERCASE else name
                if key in staged and self.policy is DuplicatePolicy.REJECT:
                    raise ValidationError(f"'{key}' - duplicate function", type_name=owner, kind="func")
                staged[key] = HelperEntry(key, _guard(key, method, pairs[name]))
        self._commit(staged, owner)

    def register_struct(self, instance: Any) -> None:
        self.register(instance, BindingConvention.STRUCT)

    def register_methods(self, instance: Any) -> None:
        self.register(instance, BindingConvention.METHODS)

    def register_methods_lowercased(self, instance: Any) -> None:
        self.register(instance, BindingConvention.LOWERCASE)

    def register_raw(self, helpers: Mapping[str, Callable[..., Any]]) -> None:
        if helpers is None:
            raise ValidationError("helper argument is nil", type_name="", kind="nil")
        if not isinstance(helpers, Mapping):
            raise ValidationError(
                f"{_type_name(helpers)}: helper argument is not a mapping",
                type_name=_type_name(helpers), kind=_type_name(helpers),
            )
        staged: Dict[str, HelperEntry] = {}
        for name, func in helpers.items():
            if func is None:
                raise ValidationError(f"{name} is nil", type_name="nil", kind="nil")
            if not callable(func):
                raise ValidationError(
                    f"{name} is not function", type_name=_type_name(func), kind=_type_name(func)
                )
            pair = check_contract(name, name, func)
            staged[name] = HelperEntry(name, _guard(name, func, pair))
        self._commit(staged, "raw")

    def _commit(self, staged: Dict[str, HelperEntry], owner: str) -> None:
        for name in staged:
            if not isinstance(name, str) or not HELPER_NAME_PATTERN.match(name):
                raise ValidationError(
                    f"function name {name} is not a valid identifier", type_name=owner, kind="name"
                )
            if name in RESERVED_HELPER_NAMES:
                raise ValidationError(f"'{name}' function already exists", type_name=owner, kind="name")
        with self._lock:
            if self.policy is DuplicatePolicy.REJECT:
                for name in staged:
                    if name in self._entries:
                        raise ValidationError(f"'{name}' - duplicate function", type_name=owner, kind="func")
            self._entries.update(staged)
        log.debug("helpers_registered", owner=owner, names=sorted(staged))

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def snapshot(self) -> Dict[str, Callable[..., Any]]:
        with self._lock:
            return {name: entry.func for name, entry in self._entries.items()}

    def copy(self) -> "HelperRegistry":
        with self._lock:
            return HelperRegistry(self.policy, dict(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
