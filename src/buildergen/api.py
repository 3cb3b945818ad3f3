"""Runtime surface shared by buildable classes and generated builders.

Source code marks classes with :func:`buildable`, mandatory constructor
parameters with ``Annotated[T, Mandatory]`` and declared failures with
:func:`throws`. The markers are inert at runtime; discovery reads them from
source. Generated builders subclass :class:`Builder` or
:class:`UncheckedBuilder`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Generic, Tuple, TypeVar, overload

T = TypeVar("T")
ClassT = TypeVar("ClassT", bound=type)
FuncT = TypeVar("FuncT", bound=Callable[..., object])


class Mandatory:
    """Marks a constructor parameter as required at builder construction."""


class _Unset:
    _instance: ClassVar["_Unset | None"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class IncompleteBuilderError(RuntimeError):
    """build() was called before every required field was set."""

    def __init__(self, builder: str, missing: Tuple[str, ...]):
        super().__init__(f"{builder} is missing values for: {', '.join(missing)}")
        self.builder = builder
        self.missing = missing


class Builder(ABC, Generic[T]):
    """Builder whose build() may raise failures callers have to handle."""

    declared_failures: ClassVar[Tuple[str, ...]] = ()

    @abstractmethod
    def build(self) -> T:
        raise NotImplementedError

    def _ensure_complete(self, *attributes: str) -> None:
        missing = tuple(
            attribute.lstrip("_")
            for attribute in attributes
            if getattr(self, attribute, UNSET) is UNSET
        )
        if missing:
            raise IncompleteBuilderError(type(self).__name__, missing)

    @staticmethod
    def _supplied(**values: Any) -> dict[str, Any]:
        """Keyword arguments that were set, so the target's own defaults apply."""
        return {name: value for name, value in values.items() if value is not UNSET}


class UncheckedBuilder(Builder[T]):
    """Builder whose build() declares no failures callers have to handle."""


@overload
def buildable(cls: ClassT, /) -> ClassT: ...


@overload
def buildable(
    cls_or_suffix: str | None = ...,
    /,
    *,
    suffix: str | None = ...,
    factory_method: str = ...,
) -> Callable[[ClassT], ClassT]: ...


def buildable(
    cls_or_suffix: Any = None,
    /,
    *,
    suffix: str | None = None,
    factory_method: str = "create",
) -> Any:
    """Mark a class for builder generation.

    Usable bare (``@buildable``) or called with a builder name suffix and a
    factory method name (``@buildable("Factory", factory_method="custom")``).
    """
    if isinstance(cls_or_suffix, type):
        return _mark(cls_or_suffix, suffix or "Builder", factory_method)
    chosen = suffix if suffix is not None else cls_or_suffix
    chosen = "Builder" if chosen is None else str(chosen)

    def decorator(cls: ClassT) -> ClassT:
        return _mark(cls, chosen, factory_method)

    return decorator


def _mark(cls: ClassT, suffix: str, factory_method: str) -> ClassT:
    setattr(cls, "__buildable__", {"suffix": suffix, "factory_method": factory_method})
    return cls


def throws(*failures: type[BaseException]) -> Callable[[FuncT], FuncT]:
    """Declare the failure types a buildable constructor may raise."""

    def decorator(func: FuncT) -> FuncT:
        setattr(func, "__throws__", tuple(failures))
        return func

    return decorator
