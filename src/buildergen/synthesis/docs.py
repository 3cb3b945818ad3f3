"""Docstring text for generated builders.

Nothing here affects behaviour; the emitter attaches these strings as
docstrings of the generated class and its members.
"""

from __future__ import annotations

from typing import Sequence

from buildergen.synthesis.model import Documentation, FailureType, FieldSpec


def class_documentation(
    target: str, builder: str, factory_method: str
) -> Documentation:
    return Documentation(
        summary=f"Builder for the {target} class.",
        details=(
            f"Lets you create {target} instances without dealing with long "
            "constructor parameter lists. Setters return the builder, so calls "
            "can be chained.",
            f"Create a {builder} with the {factory_method}() static method or "
            f"its constructor, set fields, then call build() to get a new "
            f"{target} instance. Each call to build() returns a new instance.",
            "Setters can be called several times; the builder keeps its state "
            "and can be used as an object template.",
        ),
    )


def setter_documentation(target: str, builder: str, field: FieldSpec) -> Documentation:
    return Documentation(
        summary=f"Setter for the {field.name} parameter.",
        params=(
            (
                field.name,
                f"the value for the {field.name} constructor parameter of the "
                f"{target} class.",
            ),
        ),
        returns=f"this {builder} instance, to enable chained calls.",
    )


def _mandatory_params(
    target: str, params: Sequence[FieldSpec]
) -> tuple[tuple[str, str], ...]:
    return tuple(
        (
            field.name,
            f"the value for the {field.name} mandatory constructor parameter "
            f"of the {target} class.",
        )
        for field in params
    )


def constructor_documentation(
    target: str, params: Sequence[FieldSpec]
) -> Documentation:
    return Documentation(
        summary="Constructor with mandatory parameters.",
        params=_mandatory_params(target, params),
    )


def factory_documentation(
    target: str, builder: str, params: Sequence[FieldSpec]
) -> Documentation:
    return Documentation(
        summary=f"Static factory method for {builder} instances.",
        params=_mandatory_params(target, params),
        returns=f"a new {builder} instance.",
    )


def build_documentation(
    target: str, failures: Sequence[FailureType]
) -> Documentation:
    return Documentation(
        summary=f"Creates {target} instances based on this builder's fields.",
        details=("The builder keeps its state after this method has been called.",),
        returns=f"a new {target} instance.",
        raises=tuple(
            (
                failure.name,
                f"when {target}'s constructor raises this exception.",
            )
            for failure in failures
        ),
    )
