from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel

from buildergen.synthesis.model import (
    DEFAULT_BUILDER_SUFFIX,
    DEFAULT_FACTORY_METHOD,
    BuilderBlueprint,
    ConstructorDescriptor,
    FailureType,
    FieldSpec,
    ParameterDescriptor,
    TargetTypeDescriptor,
)


class ParameterDTO(BaseModel):
    name: str
    type_ref: str = "object"
    mandatory: bool = False
    keyword_only: bool = False
    default: Optional[str] = None
    has_default: bool = False


class FailureTypeDTO(BaseModel):
    name: str
    lineage: List[str] = []


class TargetDTO(BaseModel):
    qualified_name: str
    builder_suffix: str = DEFAULT_BUILDER_SUFFIX
    factory_method_name: str = DEFAULT_FACTORY_METHOD
    parameters: List[ParameterDTO] = []
    failures: List[FailureTypeDTO] = []

    def descriptors(self) -> Tuple[TargetTypeDescriptor, ConstructorDescriptor]:
        target = TargetTypeDescriptor(
            qualified_name=self.qualified_name,
            builder_suffix=self.builder_suffix,
            factory_method_name=self.factory_method_name,
        )
        constructor = ConstructorDescriptor(
            parameters=tuple(
                ParameterDescriptor(
                    name=param.name,
                    type_ref=param.type_ref,
                    mandatory=param.mandatory,
                    keyword_only=param.keyword_only,
                    default=param.default,
                    has_default=param.has_default or param.default is not None,
                )
                for param in self.parameters
            ),
            failures=tuple(
                FailureType(name=failure.name, lineage=tuple(failure.lineage))
                for failure in self.failures
            ),
        )
        return target, constructor


class SynthesisRequest(BaseModel):
    targets: List[TargetDTO]
    unchecked_roots: List[str] = ["RuntimeError"]
    require_complete: bool = False


class FieldDTO(BaseModel):
    name: str
    type_ref: str
    mandatory: bool
    initial: str
    omittable: bool = False


class MethodDTO(BaseModel):
    name: str
    params: List[FieldDTO] = []
    returns: str
    static: bool = False
    raises: List[str] = []


class BlueprintDTO(BaseModel):
    name: str
    target: str
    implemented_contract: str
    fields: List[FieldDTO]
    setters: List[MethodDTO]
    constructor_params: List[FieldDTO]
    build_method: MethodDTO
    factory_method: MethodDTO
    required_fields: List[str] = []
    documentation: str = ""


class SynthesisResponse(BaseModel):
    blueprints: List[BlueprintDTO]
    warnings: List[str] = []
    errors: List[str] = []


def _field_dto(spec: FieldSpec) -> FieldDTO:
    return FieldDTO(
        name=spec.name,
        type_ref=spec.type_ref,
        mandatory=spec.mandatory,
        initial=spec.initial,
        omittable=spec.omittable,
    )


def blueprint_dto(blueprint: BuilderBlueprint) -> BlueprintDTO:
    build = blueprint.build_method
    factory = blueprint.factory_method
    return BlueprintDTO(
        name=blueprint.name,
        target=blueprint.target.qualified_name,
        implemented_contract=blueprint.implemented_contract.value,
        fields=[_field_dto(spec) for spec in blueprint.fields],
        setters=[
            MethodDTO(name=setter.name, params=[_field_dto(setter.field)], returns=setter.returns)
            for setter in blueprint.setters
        ],
        constructor_params=[_field_dto(spec) for spec in blueprint.constructor_params],
        build_method=MethodDTO(
            name=build.name,
            returns=build.returns,
            raises=[failure.name for failure in build.failures],
        ),
        factory_method=MethodDTO(
            name=factory.name,
            params=[_field_dto(spec) for spec in factory.params],
            returns=factory.returns,
            static=True,
        ),
        required_fields=[spec.name for spec in build.required_fields],
        documentation=blueprint.documentation.render(),
    )
