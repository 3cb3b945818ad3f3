"""Discovery, synthesis and emission wired into one generation run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

import libcst as cst

from buildergen.config import GenerationConfig
from buildergen.discovery import (
    DiscoveredTarget,
    ProjectIndex,
    discover_module,
    iter_python_paths,
    read_module,
)
from buildergen.emission import SourceModel
from buildergen.exceptions import BuilderNameCollision, DiscoveryError
from buildergen.synthesis import BuilderBlueprint, Synthesizer
from buildergen.synthesis.naming import module_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedModule:
    module: str
    path: Path
    source: str
    builders: List[str]


@dataclass
class GenerationResult:
    modules: List[GeneratedModule] = field(default_factory=list)
    blueprints: List[BuilderBlueprint] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _output_path(module: str, *, source: Path, config: GenerationConfig) -> Path:
    leaf = module.rpartition(".")[2]
    if config.output_root is None:
        return source.with_name(f"{leaf}.py")
    return config.output_root.joinpath(*module.split(".")).with_suffix(".py")


@dataclass
class DiscoveredTree:
    targets: List[DiscoveredTarget] = field(default_factory=list)
    existing_names: set[str] = field(default_factory=set)
    packages: set[str] = field(default_factory=set)


def discover(
    paths: Iterable[Path | str],
    *,
    project_root: Path,
    config: GenerationConfig,
    result: GenerationResult,
) -> DiscoveredTree:
    """Parse every file first so failure lineage resolves across modules."""
    tree = DiscoveredTree()
    index = ProjectIndex()
    parsed: list[tuple[Path, str, cst.Module]] = []
    for path in iter_python_paths(paths, config=config):
        name = module_name(path.resolve(), project_root.resolve())
        try:
            module = read_module(path)
        except DiscoveryError as exc:
            logger.error("Discovery failed for %s: %s", path, exc.reason)
            result.errors.append(str(exc))
            continue
        is_package = path.name == "__init__.py"
        if is_package:
            tree.packages.add(name)
        index.add(name, module, is_package=is_package)
        parsed.append((path, name, module))

    for path, name, module in parsed:
        found = discover_module(
            module, path=path, module_name=name, config=config, index=index
        )
        logger.debug("Discovered %d buildable classes in %s", len(found.targets), path)
        tree.existing_names.update(
            f"{name}.{class_name}" if name else class_name
            for class_name in found.class_names
        )
        tree.targets.extend(found.targets)
        result.errors.extend(found.errors)
    return tree


def generate(
    paths: Iterable[Path | str],
    *,
    project_root: Path,
    config: GenerationConfig | None = None,
    write: bool = True,
) -> GenerationResult:
    """Generate builder modules for every buildable class under ``paths``.

    Failures are scoped: a broken file or target is reported in
    ``GenerationResult.errors`` and the remaining targets are still emitted.
    """
    config = config or GenerationConfig()
    result = GenerationResult()
    tree = discover(paths, project_root=project_root, config=config, result=result)
    targets = tree.targets

    plan = Synthesizer(config=config.synthesis).plan(
        (item.target, item.constructor) for item in targets
    )
    result.warnings.extend(plan.warnings)
    result.errors.extend(plan.errors)

    source_paths = {item.target.qualified_name: item.path for item in targets}
    model = SourceModel(
        module_suffix=config.module_suffix,
        existing_names=tree.existing_names,
        packages=tree.packages,
    )
    module_sources: dict[str, Path] = {}
    module_builders: dict[str, list[str]] = {}
    for blueprint in plan.blueprints:
        try:
            module = model.declare(blueprint)
        except BuilderNameCollision as exc:
            logger.error("%s", exc)
            result.errors.append(str(exc))
            continue
        result.blueprints.append(blueprint)
        module_sources.setdefault(module, source_paths[blueprint.target.qualified_name])
        module_builders.setdefault(module, []).append(blueprint.name)
    result.warnings.extend(model.warnings)

    for module, code in model.render().items():
        out_path = _output_path(module, source=module_sources[module], config=config)
        generated = GeneratedModule(
            module=module,
            path=out_path,
            source=code,
            builders=module_builders[module],
        )
        result.modules.append(generated)
        if write:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(code, encoding="utf-8")
            logger.info("Wrote %s (%d builders)", out_path, len(generated.builders))
    return result
