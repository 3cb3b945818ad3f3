"""buildergen package root."""

from buildergen.api import (
    UNSET,
    Builder,
    IncompleteBuilderError,
    Mandatory,
    UncheckedBuilder,
    buildable,
    throws,
)

__all__ = [
    "__version__",
    "UNSET",
    "Builder",
    "IncompleteBuilderError",
    "Mandatory",
    "UncheckedBuilder",
    "buildable",
    "throws",
]

__version__ = "0.1.0"
