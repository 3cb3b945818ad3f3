from __future__ import annotations

import keyword
from pathlib import Path

from buildergen.synthesis.model import TargetTypeDescriptor


def derive_builder_name(target_name: str, suffix: str) -> str:
    return f"{target_name}{suffix}"


def derive_factory_name(target: TargetTypeDescriptor) -> str:
    return target.factory_method_name


def simple_name(qualified_name: str) -> str:
    return qualified_name.rpartition(".")[2]


def is_identifier(value: str) -> bool:
    return bool(value) and value.isidentifier() and not keyword.iskeyword(value)


def field_attribute(name: str) -> str:
    return f"_{name}"


def module_name(path: Path, project_root: Path | None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.relative_to(project_root)
        except ValueError:
            pass
    parts = list(rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def generated_module_name(
    source_module: str, module_suffix: str, *, package: bool = False
) -> str:
    """Name of the module holding builders for ``source_module``.

    Builders for classes defined in a package's ``__init__`` live in a
    submodule of that package, so they import the package itself.
    """
    if package:
        return f"{source_module}.{module_suffix}"
    return f"{source_module}{module_suffix}"
