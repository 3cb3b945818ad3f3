from __future__ import annotations

import builtins
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence, Tuple

import libcst as cst

from buildergen.config import GenerationConfig
from buildergen.exceptions import DiscoveryError, InputContractError
from buildergen.synthesis.model import (
    ConstructorDescriptor,
    FailureType,
    ParameterDescriptor,
    TargetTypeDescriptor,
)

MARKER_MODULES = frozenset({"buildergen.api", "buildergen"})
MARKERS = frozenset({"buildable", "Mandatory", "throws"})

_EMPTY_MODULE = cst.Module(body=[])


@dataclass(frozen=True)
class DiscoveredTarget:
    path: Path
    target: TargetTypeDescriptor
    constructor: ConstructorDescriptor


@dataclass
class DiscoveryResult:
    targets: List[DiscoveredTarget] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    class_names: List[str] = field(default_factory=list)


def iter_python_paths(paths: Iterable[Path | str], *, config: GenerationConfig) -> list[Path]:
    """Expand input paths to python files, pruning excluded directories early."""
    out: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                dirnames[:] = sorted(d for d in dirnames if d not in config.exclude_dirs)
                for filename in sorted(filenames):
                    if not filename.endswith(".py"):
                        continue
                    candidate = Path(root) / filename
                    if config.is_generated_path(candidate):
                        continue
                    out.append(candidate)
        elif path.suffix == ".py" and not config.is_generated_path(path):
            out.append(path)
    return out


def _dotted(expr: cst.BaseExpression | None) -> str | None:
    if expr is None:
        return None
    if isinstance(expr, cst.Name):
        return expr.value
    if isinstance(expr, cst.Attribute):
        parts = []
        current: cst.BaseExpression | None = expr
        while isinstance(current, cst.Attribute):
            parts.append(current.attr.value)
            current = current.value
        if isinstance(current, cst.Name):
            parts.append(current.value)
            return ".".join(reversed(parts))
    return None


def _code(node: cst.CSTNode) -> str:
    return _EMPTY_MODULE.code_for_node(node).strip()


def _string_literal(expr: cst.BaseExpression) -> str | None:
    if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        value = expr.evaluated_value
        if isinstance(value, str):
            return value
    return None


def _is_literal(expr: cst.BaseExpression) -> bool:
    if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        return True
    if isinstance(expr, (cst.Integer, cst.Float, cst.Imaginary)):
        return True
    if isinstance(expr, cst.Name):
        return expr.value in {"None", "True", "False"}
    if isinstance(expr, cst.UnaryOperation) and isinstance(expr.operator, cst.Minus):
        return isinstance(expr.expression, (cst.Integer, cst.Float, cst.Imaginary))
    if isinstance(expr, cst.Tuple):
        return all(
            isinstance(element, cst.Element) and _is_literal(element.value)
            for element in expr.elements
        )
    return False


class _MarkerNames:
    """Local spellings of the buildergen markers in one module."""

    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.module_aliases: set[str] = set()

    @classmethod
    def collect(cls, module: cst.Module) -> "_MarkerNames":
        found = cls()
        for stmt in module.body:
            if not isinstance(stmt, cst.SimpleStatementLine):
                continue
            for item in stmt.body:
                if isinstance(item, cst.ImportFrom):
                    found._collect_from(item)
                elif isinstance(item, cst.Import):
                    found._collect_import(item)
        return found

    def _collect_from(self, item: cst.ImportFrom) -> None:
        module_name = _dotted(item.module) if item.module is not None else None
        if not item.relative and module_name in MARKER_MODULES:
            if isinstance(item.names, cst.ImportStar):
                self.names.update({name: name for name in MARKERS})
                return
            for alias in item.names:
                name = _dotted(alias.name)
                if name in MARKERS:
                    local = alias.asname.name.value if alias.asname else name
                    self.names[local] = name
                elif module_name == "buildergen" and name == "api":
                    local = alias.asname.name.value if alias.asname else name
                    self.module_aliases.add(local)

    def _collect_import(self, item: cst.Import) -> None:
        for alias in item.names:
            name = _dotted(alias.name)
            if name not in MARKER_MODULES:
                continue
            if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                self.module_aliases.add(alias.asname.name.value)
            else:
                self.module_aliases.add(name)

    def kind(self, expr: cst.BaseExpression) -> str | None:
        if isinstance(expr, cst.Call):
            expr = expr.func
        dotted = _dotted(expr)
        if dotted is None:
            return None
        if dotted in self.names:
            return self.names[dotted]
        prefix, _, last = dotted.rpartition(".")
        if last not in MARKERS or not prefix:
            return None
        if prefix in self.module_aliases:
            return last
        if prefix.endswith(".api") and prefix[: -len(".api")] in self.module_aliases:
            return last
        return None


def _last_segment(expr: cst.BaseExpression) -> str:
    if isinstance(expr, cst.Call):
        expr = expr.func
    if isinstance(expr, cst.Subscript):
        expr = expr.value
    dotted = _dotted(expr) or ""
    return dotted.rpartition(".")[2]


def _parse_annotation(
    annotation: cst.Annotation | None, markers: _MarkerNames
) -> Tuple[str, bool]:
    if annotation is None:
        return "object", False
    expr = annotation.annotation
    if not (isinstance(expr, cst.Subscript) and _last_segment(expr) == "Annotated"):
        return _code(expr), False
    elements = [
        element.slice.value
        for element in expr.slice
        if isinstance(element.slice, cst.Index)
    ]
    if not elements:
        return _code(expr), False
    base, metadata = elements[0], elements[1:]
    kept = [item for item in metadata if markers.kind(item) != "Mandatory"]
    mandatory = len(kept) != len(metadata)
    if not mandatory:
        return _code(expr), False
    if not kept:
        return _code(base), True
    wrapper = _code(expr.value)
    inner = ", ".join(_code(item) for item in [base, *kept])
    return f"{wrapper}[{inner}]", True


def _base_names(classdef: cst.ClassDef) -> Tuple[str, ...]:
    names = []
    for base in classdef.bases:
        if base.keyword is not None:
            continue
        name = _dotted(base.value)
        if name is not None:
            names.append(name)
    return tuple(names)


def _package_of(module_name: str, *, is_package: bool, level: int) -> str:
    parts = module_name.split(".") if module_name else []
    if not is_package:
        parts = parts[:-1]
    if level > 1:
        parts = parts[: max(0, len(parts) - (level - 1))]
    return ".".join(parts)


@dataclass(frozen=True)
class _ModuleSymbols:
    classes: Mapping[str, Tuple[str, ...]]
    imports: Mapping[str, str]


class ProjectIndex:
    """Top-level classes and import bindings of parsed modules.

    Failure lineage is resolved through this index, so a failure imported from
    another module of the project is classified by its real bases.
    """

    def __init__(self) -> None:
        self._modules: dict[str, _ModuleSymbols] = {}

    def add(self, module_name: str, module: cst.Module, *, is_package: bool = False) -> None:
        classes: dict[str, Tuple[str, ...]] = {}
        imports: dict[str, str] = {}
        for stmt in module.body:
            if isinstance(stmt, cst.ClassDef):
                classes[stmt.name.value] = _base_names(stmt)
                continue
            if not isinstance(stmt, cst.SimpleStatementLine):
                continue
            for item in stmt.body:
                if isinstance(item, cst.ImportFrom):
                    self._bind_from(imports, item, module_name, is_package)
                elif isinstance(item, cst.Import):
                    self._bind_import(imports, item)
        self._modules[module_name] = _ModuleSymbols(classes=classes, imports=imports)

    @staticmethod
    def _bind_from(
        imports: dict[str, str],
        item: cst.ImportFrom,
        module_name: str,
        is_package: bool,
    ) -> None:
        if isinstance(item.names, cst.ImportStar):
            return
        source = _dotted(item.module) if item.module is not None else ""
        if source is None:
            return
        if item.relative:
            package = _package_of(
                module_name, is_package=is_package, level=len(item.relative)
            )
            source = ".".join(part for part in (package, source) if part)
        for alias in item.names:
            name = _dotted(alias.name)
            if name is None:
                continue
            local = name
            if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                local = alias.asname.name.value
            imports[local] = f"{source}.{name}" if source else name

    @staticmethod
    def _bind_import(imports: dict[str, str], item: cst.Import) -> None:
        for alias in item.names:
            name = _dotted(alias.name)
            if name is None:
                continue
            if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                imports[alias.asname.name.value] = name
            else:
                head = name.partition(".")[0]
                imports[head] = head

    def qualify(self, module_name: str, name: str) -> str:
        """Spell ``name`` as written in ``module_name`` by its defining module."""
        symbols = self._modules.get(module_name)
        if symbols is None:
            return name
        head, _, rest = name.partition(".")
        if not rest and head in symbols.classes:
            return f"{module_name}.{head}" if module_name else head
        if head in symbols.imports:
            bound = symbols.imports[head]
            return f"{bound}.{rest}" if rest else bound
        return name

    def _lookup(
        self, qualified: str, seen: set[str]
    ) -> Tuple[str, Tuple[str, ...]] | None:
        if qualified in seen:
            return None
        seen.add(qualified)
        owner, _, name = qualified.rpartition(".")
        symbols = self._modules.get(owner)
        if symbols is None:
            return None
        if name in symbols.classes:
            return owner, symbols.classes[name]
        # re-exported through the owner's imports
        if name in symbols.imports:
            return self._lookup(symbols.imports[name], seen)
        return None

    def lineage(self, module_name: str, name: str) -> Tuple[str, ...]:
        out: list[str] = []
        self._walk(self.qualify(module_name, name), out, set())
        return tuple(dict.fromkeys(out))

    def _walk(self, qualified: str, out: list[str], seen: set[str]) -> None:
        if qualified in seen:
            return
        seen.add(qualified)
        found = self._lookup(qualified, set())
        if found is not None:
            owner, bases = found
            for base in bases:
                base_name = self.qualify(owner, base)
                out.append(base_name)
                self._walk(base_name, out, seen)
            return
        prefix, _, last = qualified.rpartition(".")
        if prefix not in {"", "builtins"}:
            return
        candidate = getattr(builtins, last, None)
        if isinstance(candidate, type) and issubclass(candidate, BaseException):
            out.extend(cls.__name__ for cls in candidate.__mro__[1:] if cls is not object)


class _ClassDiscovery:
    def __init__(
        self,
        *,
        path: Path,
        module_name: str,
        markers: _MarkerNames,
        index: ProjectIndex,
        config: GenerationConfig,
    ):
        self.path = path
        self.module_name = module_name
        self.markers = markers
        self.index = index
        self.config = config

    def qualified(self, classdef: cst.ClassDef) -> str:
        name = classdef.name.value
        return f"{self.module_name}.{name}" if self.module_name else name

    def target(self, classdef: cst.ClassDef) -> TargetTypeDescriptor | None:
        qualified = self.qualified(classdef)
        for decorator in classdef.decorators:
            expr = decorator.decorator
            if self.markers.kind(expr) != "buildable":
                continue
            suffix = self.config.builder_suffix
            factory = self.config.factory_method
            if isinstance(expr, cst.Call):
                for arg in expr.args:
                    keyword = arg.keyword.value if arg.keyword is not None else None
                    if keyword not in {None, "suffix", "factory_method"}:
                        raise InputContractError(
                            qualified, f"unknown @buildable argument {keyword!r}"
                        )
                    value = _string_literal(arg.value)
                    if value is None:
                        raise InputContractError(
                            qualified, "@buildable arguments must be string literals"
                        )
                    if keyword == "factory_method":
                        factory = value
                    else:
                        suffix = value
            return TargetTypeDescriptor(
                qualified_name=qualified,
                builder_suffix=suffix,
                factory_method_name=factory,
            )
        return None

    def constructor(self, classdef: cst.ClassDef) -> ConstructorDescriptor:
        body = classdef.body.body if isinstance(classdef.body, cst.IndentedBlock) else ()
        for stmt in body:
            if isinstance(stmt, cst.FunctionDef) and stmt.name.value == "__init__":
                return self._from_init(classdef, stmt)
        dataclass_kw_only = self._dataclass_kw_only(classdef)
        if dataclass_kw_only is not None:
            return self._from_dataclass(classdef, body, dataclass_kw_only)
        return ConstructorDescriptor()

    def _parameter(
        self,
        qualified: str,
        name: str,
        annotation: cst.Annotation | None,
        default: cst.BaseExpression | None,
        *,
        keyword_only: bool,
        positional_only: bool = False,
    ) -> ParameterDescriptor:
        type_ref, mandatory = _parse_annotation(annotation, self.markers)
        default_text: str | None = None
        if default is not None and _is_literal(default):
            default_text = _code(default)
        elif default is not None and positional_only:
            raise InputContractError(
                qualified,
                f"positional-only parameter {name!r} needs a literal default",
            )
        return ParameterDescriptor(
            name=name,
            type_ref=type_ref,
            mandatory=mandatory,
            keyword_only=keyword_only,
            default=default_text,
            has_default=default is not None,
        )

    def _from_init(
        self, classdef: cst.ClassDef, init: cst.FunctionDef
    ) -> ConstructorDescriptor:
        qualified = self.qualified(classdef)
        params = init.params
        if isinstance(params.star_arg, cst.Param) or params.star_kwarg is not None:
            raise InputContractError(
                qualified, "__init__ with *args or **kwargs cannot get a builder"
            )
        positional: Sequence[cst.Param] = [*params.posonly_params, *params.params]
        if not positional:
            raise InputContractError(qualified, "__init__ has no self parameter")
        posonly_count = len(params.posonly_params)
        parameters = [
            self._parameter(
                qualified,
                param.name.value,
                param.annotation,
                param.default,
                keyword_only=False,
                positional_only=index < posonly_count,
            )
            for index, param in enumerate(positional[1:], start=1)
        ]
        parameters.extend(
            self._parameter(
                qualified,
                param.name.value,
                param.annotation,
                param.default,
                keyword_only=True,
            )
            for param in params.kwonly_params
        )
        return ConstructorDescriptor(
            parameters=tuple(parameters),
            failures=self._failures(qualified, init),
        )

    def _failures(
        self, qualified: str, init: cst.FunctionDef
    ) -> Tuple[FailureType, ...]:
        failures: list[FailureType] = []
        for decorator in init.decorators:
            expr = decorator.decorator
            if self.markers.kind(expr) != "throws" or not isinstance(expr, cst.Call):
                continue
            for arg in expr.args:
                if arg.keyword is not None:
                    continue
                name = _dotted(arg.value)
                if name is None:
                    raise InputContractError(
                        qualified, "@throws arguments must be exception class names"
                    )
                lineage = self.index.lineage(self.module_name, name)
                failures.append(FailureType(name=name, lineage=lineage))
        return tuple(failures)

    def _dataclass_kw_only(self, classdef: cst.ClassDef) -> bool | None:
        for decorator in classdef.decorators:
            expr = decorator.decorator
            if _last_segment(expr) != "dataclass":
                continue
            if isinstance(expr, cst.Call):
                for arg in expr.args:
                    if (
                        arg.keyword is not None
                        and arg.keyword.value == "kw_only"
                        and isinstance(arg.value, cst.Name)
                    ):
                        return arg.value.value == "True"
            return False
        return None

    def _from_dataclass(
        self,
        classdef: cst.ClassDef,
        body: Sequence[cst.BaseStatement],
        kw_only: bool,
    ) -> ConstructorDescriptor:
        qualified = self.qualified(classdef)
        parameters: list[ParameterDescriptor] = []
        for stmt in body:
            if not isinstance(stmt, cst.SimpleStatementLine):
                continue
            for item in stmt.body:
                if not isinstance(item, cst.AnnAssign) or not isinstance(item.target, cst.Name):
                    continue
                marker = _last_segment(item.annotation.annotation)
                if marker == "ClassVar":
                    continue
                if marker == "KW_ONLY":
                    kw_only = True
                    continue
                default = item.value
                if isinstance(default, cst.Call) and _last_segment(default.func) == "field":
                    if _field_init_disabled(default):
                        continue
                    default = _field_default(default)
                parameters.append(
                    self._parameter(
                        qualified,
                        item.target.value,
                        item.annotation,
                        default,
                        keyword_only=kw_only,
                    )
                )
        return ConstructorDescriptor(parameters=tuple(parameters))


def _field_init_disabled(call: cst.Call) -> bool:
    for arg in call.args:
        if arg.keyword is not None and arg.keyword.value == "init":
            return isinstance(arg.value, cst.Name) and arg.value.value == "False"
    return False


def _field_default(call: cst.Call) -> cst.BaseExpression | None:
    for arg in call.args:
        if arg.keyword is None:
            continue
        if arg.keyword.value == "default":
            return arg.value
        if arg.keyword.value == "default_factory":
            return call
    return None


def parse_source(source: str, *, path: Path) -> cst.Module:
    try:
        return cst.parse_module(source)
    except cst.ParserSyntaxError as exc:
        raise DiscoveryError(path, f"LibCST parse failed: {exc}") from exc


def read_module(path: Path) -> cst.Module:
    """Read and parse one source file.

    Raises:
        DiscoveryError: if the file cannot be read or does not parse.
    """
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise DiscoveryError(path, f"Failed to read: {exc}") from exc
    return parse_source(source, path=path)


def discover_module(
    module: cst.Module,
    *,
    path: Path,
    module_name: str,
    config: GenerationConfig,
    index: ProjectIndex,
) -> DiscoveryResult:
    """Find buildable classes in a parsed module.

    ``index`` must already hold every module whose classes may appear in a
    failure's lineage, ``module_name`` included.
    """
    result = DiscoveryResult()
    classes = [stmt for stmt in module.body if isinstance(stmt, cst.ClassDef)]
    result.class_names.extend(classdef.name.value for classdef in classes)
    discovery = _ClassDiscovery(
        path=path,
        module_name=module_name,
        markers=_MarkerNames.collect(module),
        index=index,
        config=config,
    )
    for classdef in classes:
        try:
            target = discovery.target(classdef)
            if target is None:
                continue
            constructor = discovery.constructor(classdef)
        except InputContractError as exc:
            result.errors.append(f"{path}: {exc}")
            continue
        result.targets.append(
            DiscoveredTarget(path=path, target=target, constructor=constructor)
        )
    return result


def discover_source(
    source: str,
    *,
    path: Path,
    module_name: str,
    config: GenerationConfig,
) -> DiscoveryResult:
    """Find buildable classes in one module's source text on its own.

    Raises:
        DiscoveryError: if the source does not parse.
    """
    module = parse_source(source, path=path)
    index = ProjectIndex()
    index.add(module_name, module, is_package=path.name == "__init__.py")
    return discover_module(
        module, path=path, module_name=module_name, config=config, index=index
    )


def discover_path(
    path: Path, *, module_name: str, config: GenerationConfig
) -> DiscoveryResult:
    module = read_module(path)
    index = ProjectIndex()
    index.add(module_name, module, is_package=path.name == "__init__.py")
    return discover_module(
        module, path=path, module_name=module_name, config=config, index=index
    )
