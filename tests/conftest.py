from __future__ import annotations

import sys
import textwrap
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for _entry in (ROOT, ROOT / "src"):
    if str(_entry) not in sys.path:
        sys.path.insert(0, str(_entry))


import pytest

from buildergen.synthesis import (
    ConstructorDescriptor,
    FailureType,
    ParameterDescriptor,
    TargetTypeDescriptor,
)
from tests.import_helpers import sys_path_scope


@pytest.fixture
def make_target():
    def _make(
        name: str = "pkg.beans.Bean",
        *,
        suffix: str = "Builder",
        factory: str = "create",
    ) -> TargetTypeDescriptor:
        return TargetTypeDescriptor(
            qualified_name=name,
            builder_suffix=suffix,
            factory_method_name=factory,
        )

    return _make


@pytest.fixture
def make_constructor():
    def _make(
        *params: tuple[str, str] | tuple[str, str, bool],
        failures: tuple[FailureType, ...] = (),
    ) -> ConstructorDescriptor:
        parameters = []
        for entry in params:
            name, type_ref = entry[0], entry[1]
            mandatory = bool(entry[2]) if len(entry) > 2 else False
            parameters.append(
                ParameterDescriptor(name=name, type_ref=type_ref, mandatory=mandatory)
            )
        return ConstructorDescriptor(parameters=tuple(parameters), failures=failures)

    return _make


@pytest.fixture
def write_package(tmp_path: Path):
    """Write a package of python modules under ``tmp_path``."""

    def _write(package: str, modules: dict[str, str]) -> Path:
        package_dir = tmp_path.joinpath(*package.split("."))
        package_dir.mkdir(parents=True, exist_ok=True)
        init = package_dir / "__init__.py"
        if not init.exists():
            init.write_text("", encoding="utf-8")
        for name, source in modules.items():
            (package_dir / f"{name}.py").write_text(
                textwrap.dedent(source).lstrip(), encoding="utf-8"
            )
        return package_dir

    return _write


@pytest.fixture
def importable(tmp_path: Path):
    def _scope(*packages: str):
        return sys_path_scope(tmp_path, *packages)

    return _scope
