from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

DEFAULT_BUILDER_SUFFIX = "Builder"
DEFAULT_FACTORY_METHOD = "create"


@dataclass(frozen=True)
class TargetTypeDescriptor:
    qualified_name: str
    builder_suffix: str = DEFAULT_BUILDER_SUFFIX
    factory_method_name: str = DEFAULT_FACTORY_METHOD

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rpartition(".")[2]

    @property
    def module(self) -> str:
        return self.qualified_name.rpartition(".")[0]


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    type_ref: str = "object"
    mandatory: bool = False
    keyword_only: bool = False
    default: str | None = None
    has_default: bool = False

    @property
    def omittable(self) -> bool:
        """The target supplies a default the builder cannot spell as a literal."""
        return self.has_default and self.default is None


@dataclass(frozen=True)
class FailureType:
    name: str
    lineage: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConstructorDescriptor:
    parameters: Tuple[ParameterDescriptor, ...] = ()
    failures: Tuple[FailureType, ...] = ()


class CapabilityContract(str, Enum):
    DECLARES_FAILURES = "declares-failures"
    NO_DECLARED_FAILURES = "no-declared-failures"

    @property
    def base_class(self) -> str:
        if self is CapabilityContract.DECLARES_FAILURES:
            return "Builder"
        return "UncheckedBuilder"


@dataclass(frozen=True)
class Documentation:
    summary: str
    details: Tuple[str, ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()
    returns: str = ""
    raises: Tuple[Tuple[str, str], ...] = ()

    def render(self) -> str:
        lines = [self.summary]
        for paragraph in self.details:
            lines.extend(["", paragraph])
        if self.params:
            lines.extend(["", "Args:"])
            lines.extend(f"    {name}: {text}" for name, text in self.params)
        if self.returns:
            lines.extend(["", "Returns:", f"    {self.returns}"])
        if self.raises:
            lines.extend(["", "Raises:"])
            lines.extend(f"    {name}: {text}" for name, text in self.raises)
        return "\n".join(lines)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    attribute: str
    type_ref: str
    mandatory: bool = False
    initial: str = "None"
    omittable: bool = False


@dataclass(frozen=True)
class SetterSpec:
    name: str
    field: FieldSpec
    returns: str
    documentation: Documentation


@dataclass(frozen=True)
class ConstructorSpec:
    params: Tuple[FieldSpec, ...]
    documentation: Documentation


@dataclass(frozen=True)
class BuildArgument:
    field: FieldSpec
    keyword: bool = False


@dataclass(frozen=True)
class BuildMethodSpec:
    returns: str
    arguments: Tuple[BuildArgument, ...]
    failures: Tuple[FailureType, ...]
    required_fields: Tuple[FieldSpec, ...]
    documentation: Documentation
    name: str = "build"


@dataclass(frozen=True)
class FactoryMethodSpec:
    name: str
    params: Tuple[FieldSpec, ...]
    returns: str
    documentation: Documentation


@dataclass(frozen=True)
class BuilderBlueprint:
    name: str
    target: TargetTypeDescriptor
    fields: Tuple[FieldSpec, ...]
    setters: Tuple[SetterSpec, ...]
    constructor_params: Tuple[FieldSpec, ...]
    constructor: ConstructorSpec | None
    build_method: BuildMethodSpec
    implemented_contract: CapabilityContract
    factory_method: FactoryMethodSpec
    documentation: Documentation

    @property
    def simple_name(self) -> str:
        return self.name.rpartition(".")[2]


@dataclass(frozen=True)
class SynthesisConfig:
    unchecked_roots: Tuple[str, ...] = ("RuntimeError",)
    require_complete: bool = False


@dataclass(frozen=True)
class SynthesisPlan:
    blueprints: List[BuilderBlueprint] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
