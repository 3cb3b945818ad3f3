"""Synthesis subpackage for buildergen."""

from buildergen.synthesis.blueprint import Synthesizer
from buildergen.synthesis.failures import FailureClassifier
from buildergen.synthesis.model import (
    BuildArgument,
    BuilderBlueprint,
    BuildMethodSpec,
    CapabilityContract,
    ConstructorDescriptor,
    ConstructorSpec,
    Documentation,
    FactoryMethodSpec,
    FailureType,
    FieldSpec,
    ParameterDescriptor,
    SetterSpec,
    SynthesisConfig,
    SynthesisPlan,
    TargetTypeDescriptor,
)
from buildergen.synthesis.naming import derive_builder_name, derive_factory_name

__all__ = [
    "BuildArgument",
    "BuilderBlueprint",
    "BuildMethodSpec",
    "CapabilityContract",
    "ConstructorDescriptor",
    "ConstructorSpec",
    "Documentation",
    "FactoryMethodSpec",
    "FailureClassifier",
    "FailureType",
    "FieldSpec",
    "ParameterDescriptor",
    "SetterSpec",
    "SynthesisConfig",
    "SynthesisPlan",
    "Synthesizer",
    "derive_builder_name",
    "derive_factory_name",
]
