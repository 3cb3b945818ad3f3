from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from buildergen.exceptions import InputContractError
from buildergen.synthesis import docs
from buildergen.synthesis.failures import FailureClassifier
from buildergen.synthesis.model import (
    BuildArgument,
    BuilderBlueprint,
    BuildMethodSpec,
    ConstructorDescriptor,
    ConstructorSpec,
    FactoryMethodSpec,
    FieldSpec,
    SetterSpec,
    SynthesisConfig,
    SynthesisPlan,
    TargetTypeDescriptor,
)
from buildergen.synthesis.naming import (
    derive_builder_name,
    derive_factory_name,
    field_attribute,
    is_identifier,
)

UNSET_INITIAL = "UNSET"
_RESERVED_MEMBERS = frozenset({"build", "declared_failures"})


@dataclass
class Synthesizer:
    config: SynthesisConfig = field(default_factory=SynthesisConfig)

    @property
    def classifier(self) -> FailureClassifier:
        return FailureClassifier(unchecked_roots=tuple(self.config.unchecked_roots))

    def synthesize(
        self,
        target: TargetTypeDescriptor,
        constructor: ConstructorDescriptor,
    ) -> BuilderBlueprint:
        """Derive the builder blueprint for one target type.

        Raises:
            InputContractError: if the descriptors cannot yield a valid builder.
        """
        self._validate(target, constructor)
        target_name = target.qualified_name
        builder_name = derive_builder_name(target_name, target.builder_suffix)
        factory_name = derive_factory_name(target)

        fields: List[FieldSpec] = []
        setters: List[SetterSpec] = []
        arguments: List[BuildArgument] = []
        by_keyword = False
        for param in constructor.parameters:
            omittable = param.omittable and not param.mandatory
            field_spec = FieldSpec(
                name=param.name,
                attribute=field_attribute(param.name),
                type_ref=param.type_ref,
                mandatory=param.mandatory,
                initial=self._initial_value(param.mandatory, param.default, omittable),
                omittable=omittable,
            )
            fields.append(field_spec)
            setters.append(
                SetterSpec(
                    name=param.name,
                    field=field_spec,
                    returns=builder_name,
                    documentation=docs.setter_documentation(
                        target_name, builder_name, field_spec
                    ),
                )
            )
            # once an argument may be left out, later ones can no longer be positional
            by_keyword = by_keyword or omittable
            arguments.append(
                BuildArgument(field=field_spec, keyword=param.keyword_only or by_keyword)
            )

        mandatory = tuple(spec for spec in fields if spec.mandatory)
        constructor_spec = None
        if mandatory:
            constructor_spec = ConstructorSpec(
                params=mandatory,
                documentation=docs.constructor_documentation(target_name, mandatory),
            )

        failures = tuple(constructor.failures)
        required: Tuple[FieldSpec, ...] = ()
        if self.config.require_complete:
            required = tuple(
                spec
                for spec in fields
                if spec.initial == UNSET_INITIAL and not spec.omittable
            )
        build_method = BuildMethodSpec(
            returns=target_name,
            arguments=tuple(arguments),
            failures=failures,
            required_fields=required,
            documentation=docs.build_documentation(target_name, failures),
        )

        factory_method = FactoryMethodSpec(
            name=factory_name,
            params=mandatory,
            returns=builder_name,
            documentation=docs.factory_documentation(
                target_name, builder_name, mandatory
            ),
        )

        return BuilderBlueprint(
            name=builder_name,
            target=target,
            fields=tuple(fields),
            setters=tuple(setters),
            constructor_params=mandatory,
            constructor=constructor_spec,
            build_method=build_method,
            implemented_contract=self.classifier.contract_for(failures),
            factory_method=factory_method,
            documentation=docs.class_documentation(
                target_name, builder_name, factory_name
            ),
        )

    def plan(
        self,
        items: Iterable[Tuple[TargetTypeDescriptor, ConstructorDescriptor]],
    ) -> SynthesisPlan:
        blueprints: List[BuilderBlueprint] = []
        warnings: List[str] = []
        errors: List[str] = []
        seen: set[str] = set()
        for target, constructor in items:
            if target.qualified_name in seen:
                errors.append(
                    str(
                        InputContractError(
                            target.qualified_name, "target type was already processed"
                        )
                    )
                )
                continue
            seen.add(target.qualified_name)
            try:
                blueprints.append(self.synthesize(target, constructor))
            except InputContractError as exc:
                errors.append(str(exc))
        if not blueprints and not errors:
            warnings.append("No buildable types found.")
        return SynthesisPlan(blueprints=blueprints, warnings=warnings, errors=errors)

    def _initial_value(
        self, mandatory: bool, default: str | None, omittable: bool
    ) -> str:
        if default is not None:
            return default
        if omittable:
            return UNSET_INITIAL
        if self.config.require_complete and not mandatory:
            return UNSET_INITIAL
        return "None"

    def _validate(
        self, target: TargetTypeDescriptor, constructor: ConstructorDescriptor
    ) -> None:
        name = target.qualified_name
        parts = name.split(".")
        if not all(is_identifier(part) for part in parts):
            raise InputContractError(name, "target name is not a dotted identifier")
        builder_simple = derive_builder_name(target.simple_name, target.builder_suffix)
        if not is_identifier(builder_simple) or builder_simple == target.simple_name:
            raise InputContractError(
                name, f"builder suffix {target.builder_suffix!r} does not yield a new class name"
            )
        factory = derive_factory_name(target)
        if not is_identifier(factory) or factory in _RESERVED_MEMBERS:
            raise InputContractError(name, f"invalid factory method name {factory!r}")
        seen: set[str] = set()
        for param in constructor.parameters:
            if not is_identifier(param.name):
                raise InputContractError(name, f"invalid parameter name {param.name!r}")
            if param.name in seen:
                raise InputContractError(name, f"duplicate parameter {param.name!r}")
            if param.name.startswith("_"):
                raise InputContractError(
                    name, f"parameter {param.name!r} clashes with builder attributes"
                )
            if param.name in _RESERVED_MEMBERS or param.name == factory:
                raise InputContractError(
                    name, f"parameter {param.name!r} clashes with a generated method"
                )
            seen.add(param.name)
