"""Emission of builder blueprints as Python source through libcst."""

from buildergen.emission.source_model import (
    GENERATED_HEADER,
    SourceModel,
    render_blueprints,
    render_builder_class,
)

__all__ = [
    "GENERATED_HEADER",
    "SourceModel",
    "render_blueprints",
    "render_builder_class",
]
