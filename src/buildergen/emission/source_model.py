from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

import libcst as cst

from buildergen.config import DEFAULT_MODULE_SUFFIX
from buildergen.exceptions import BuilderNameCollision
from buildergen.synthesis.blueprint import UNSET_INITIAL
from buildergen.synthesis.model import (
    BuilderBlueprint,
    BuildMethodSpec,
    ConstructorSpec,
    Documentation,
    FactoryMethodSpec,
    FieldSpec,
    SetterSpec,
)
from buildergen.synthesis.naming import generated_module_name, simple_name

GENERATED_HEADER = "# Generated by buildergen. Do not edit."
API_MODULE = "buildergen.api"
DEFAULT_GENERATED_MODULE = "builders"

_CLASS_INDENT = "    "
_METHOD_INDENT = "        "
_NO_SPACE = cst.SimpleWhitespace("")


def _module_expr(module: str) -> cst.Attribute | cst.Name:
    parts = module.split(".")
    expr: cst.Attribute | cst.Name = cst.Name(parts[0])
    for part in parts[1:]:
        expr = cst.Attribute(value=expr, attr=cst.Name(part))
    return expr


def _import_from(module: str, names: Sequence[str]) -> cst.SimpleStatementLine:
    return cst.SimpleStatementLine(
        [
            cst.ImportFrom(
                module=_module_expr(module),
                names=[cst.ImportAlias(name=cst.Name(name)) for name in names],
            )
        ]
    )


def _docstring(doc: Documentation, indent: str) -> cst.SimpleStatementLine:
    text = doc.render().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    lines = text.split("\n")
    if len(lines) == 1:
        value = f'"""{lines[0]}"""'
    else:
        rest = "\n".join(f"{indent}{line}" if line else "" for line in lines[1:])
        value = f'"""{lines[0]}\n{rest}\n{indent}"""'
    return cst.SimpleStatementLine([cst.Expr(cst.SimpleString(value))])


def _annotation_for(type_ref: str, warnings: List[str]) -> cst.BaseExpression:
    if not type_ref:
        return cst.Name("object")
    try:
        return cst.parse_expression(type_ref)
    except cst.ParserSyntaxError as exc:
        warnings.append(f"Failed to parse type hint '{type_ref}': {exc}")
        return cst.Name("object")


def _self_attr(attribute: str) -> cst.Attribute:
    return cst.Attribute(value=cst.Name("self"), attr=cst.Name(attribute))


def _assign_field(spec: FieldSpec) -> cst.SimpleStatementLine:
    return cst.SimpleStatementLine(
        [
            cst.Assign(
                targets=[cst.AssignTarget(_self_attr(spec.attribute))],
                value=cst.Name(spec.name),
            )
        ]
    )


def _return(value: cst.BaseExpression) -> cst.SimpleStatementLine:
    return cst.SimpleStatementLine([cst.Return(value)])


def _params(
    specs: Iterable[FieldSpec], warnings: List[str], *, with_self: bool
) -> cst.Parameters:
    params = [cst.Param(cst.Name("self"))] if with_self else []
    params.extend(
        cst.Param(
            name=cst.Name(spec.name),
            annotation=cst.Annotation(_annotation_for(spec.type_ref, warnings)),
        )
        for spec in specs
    )
    return cst.Parameters(params=params)


def _method(
    name: str,
    params: cst.Parameters,
    returns: cst.BaseExpression,
    doc: Documentation,
    body: Sequence[cst.BaseStatement],
    *,
    decorators: Sequence[cst.Decorator] = (),
) -> cst.FunctionDef:
    return cst.FunctionDef(
        name=cst.Name(name),
        params=params,
        returns=cst.Annotation(returns),
        body=cst.IndentedBlock(body=[_docstring(doc, _METHOD_INDENT), *body]),
        decorators=list(decorators),
        leading_lines=[cst.EmptyLine()],
    )


def _field_line(spec: FieldSpec, warnings: List[str]) -> cst.SimpleStatementLine:
    annotation = _annotation_for(spec.type_ref, warnings)
    if spec.initial == "None":
        annotation = cst.BinaryOperation(
            left=annotation, operator=cst.BitOr(), right=cst.Name("None")
        )
    return cst.SimpleStatementLine(
        [
            cst.AnnAssign(
                target=cst.Name(spec.attribute),
                annotation=cst.Annotation(annotation),
                value=cst.parse_expression(spec.initial),
            )
        ]
    )


def _constructor(spec: ConstructorSpec, warnings: List[str]) -> cst.FunctionDef:
    return _method(
        "__init__",
        _params(spec.params, warnings, with_self=True),
        cst.Name("None"),
        spec.documentation,
        [_assign_field(field_spec) for field_spec in spec.params],
    )


def _setter(spec: SetterSpec, warnings: List[str]) -> cst.FunctionDef:
    return _method(
        spec.name,
        _params([spec.field], warnings, with_self=True),
        cst.Name(simple_name(spec.returns)),
        spec.documentation,
        [_assign_field(spec.field), _return(cst.Name("self"))],
    )


def _keyword_arg(name: str, value: cst.BaseExpression) -> cst.Arg:
    return cst.Arg(
        value=value,
        keyword=cst.Name(name),
        equal=cst.AssignEqual(whitespace_before=_NO_SPACE, whitespace_after=_NO_SPACE),
    )


def _build(spec: BuildMethodSpec) -> cst.FunctionDef:
    body: list[cst.BaseStatement] = []
    if spec.required_fields:
        check = cst.Call(
            func=_self_attr("_ensure_complete"),
            args=[
                cst.Arg(cst.SimpleString(f'"{field_spec.attribute}"'))
                for field_spec in spec.required_fields
            ],
        )
        body.append(cst.SimpleStatementLine([cst.Expr(check)]))
    args = []
    supplied = []
    for argument in spec.arguments:
        value = _self_attr(argument.field.attribute)
        if argument.field.omittable:
            supplied.append(_keyword_arg(argument.field.name, value))
        elif argument.keyword:
            args.append(_keyword_arg(argument.field.name, value))
        else:
            args.append(cst.Arg(value=value))
    if supplied:
        args.append(
            cst.Arg(
                value=cst.Call(func=_self_attr("_supplied"), args=supplied),
                star="**",
            )
        )
    body.append(_return(cst.Call(func=cst.Name(simple_name(spec.returns)), args=args)))
    return _method(
        spec.name,
        cst.Parameters(params=[cst.Param(cst.Name("self"))]),
        cst.Name(simple_name(spec.returns)),
        spec.documentation,
        body,
    )


def _factory(spec: FactoryMethodSpec, warnings: List[str]) -> cst.FunctionDef:
    builder = simple_name(spec.returns)
    construct = cst.Call(
        func=cst.Name(builder),
        args=[cst.Arg(cst.Name(field_spec.name)) for field_spec in spec.params],
    )
    return _method(
        spec.name,
        _params(spec.params, warnings, with_self=False),
        cst.Name(builder),
        spec.documentation,
        [_return(construct)],
        decorators=[cst.Decorator(decorator=cst.Name("staticmethod"))],
    )


def render_builder_class(
    blueprint: BuilderBlueprint, warnings: List[str] | None = None
) -> cst.ClassDef:
    """Render one blueprint as a libcst class definition."""
    warnings = warnings if warnings is not None else []
    target = blueprint.target.simple_name
    base = cst.Subscript(
        value=cst.Name(blueprint.implemented_contract.base_class),
        slice=[cst.SubscriptElement(cst.Index(cst.Name(target)))],
    )
    failures = tuple(failure.name for failure in blueprint.build_method.failures)
    body: list[cst.BaseStatement] = [
        _docstring(blueprint.documentation, _CLASS_INDENT),
        cst.parse_statement(
            f"declared_failures: ClassVar[tuple[str, ...]] = {failures!r}"
        ).with_changes(leading_lines=[cst.EmptyLine()]),
    ]
    body.extend(_field_line(spec, warnings) for spec in blueprint.fields)
    if blueprint.constructor is not None:
        body.append(_constructor(blueprint.constructor, warnings))
    body.extend(_setter(spec, warnings) for spec in blueprint.setters)
    body.append(_build(blueprint.build_method))
    body.append(_factory(blueprint.factory_method, warnings))
    return cst.ClassDef(
        name=cst.Name(blueprint.simple_name),
        bases=[cst.Arg(base)],
        body=cst.IndentedBlock(body=body),
        leading_lines=[cst.EmptyLine(), cst.EmptyLine()],
    )


@dataclass
class _ModuleDraft:
    source_module: str
    targets: List[str] = field(default_factory=list)
    bases: set[str] = field(default_factory=set)
    needs_unset: bool = False
    classes: List[cst.ClassDef] = field(default_factory=list)

    def render(self) -> cst.Module:
        api_names = sorted(self.bases | ({UNSET_INITIAL} if self.needs_unset else set()))
        body: list[cst.BaseStatement] = [
            cst.parse_statement("from __future__ import annotations"),
            _import_from("typing", ["TYPE_CHECKING", "ClassVar"]).with_changes(
                leading_lines=[cst.EmptyLine()]
            ),
            _import_from(API_MODULE, api_names).with_changes(
                leading_lines=[cst.EmptyLine()]
            ),
        ]
        if self.source_module:
            body.append(_import_from(self.source_module, self.targets))
            star = cst.SimpleStatementLine(
                [
                    cst.ImportFrom(
                        module=_module_expr(self.source_module), names=cst.ImportStar()
                    )
                ]
            )
            body.append(
                cst.If(
                    test=cst.Name("TYPE_CHECKING"),
                    body=cst.IndentedBlock(body=[star]),
                    leading_lines=[cst.EmptyLine()],
                )
            )
        body.extend(self.classes)
        return cst.Module(
            body=body,
            header=[cst.EmptyLine(comment=cst.Comment(GENERATED_HEADER))],
        )


class SourceModel:
    """Namespace of declared builder classes, grouped into generated modules."""

    def __init__(
        self,
        *,
        module_suffix: str = DEFAULT_MODULE_SUFFIX,
        existing_names: Iterable[str] = (),
        packages: Iterable[str] = (),
    ) -> None:
        self.module_suffix = module_suffix
        self.packages = frozenset(packages)
        self.warnings: List[str] = []
        self._declared: set[str] = set(existing_names)
        self._drafts: Dict[str, _ModuleDraft] = {}

    def module_for(self, blueprint: BuilderBlueprint) -> str:
        source = blueprint.target.module
        if not source:
            return DEFAULT_GENERATED_MODULE
        return generated_module_name(
            source, self.module_suffix, package=source in self.packages
        )

    def is_declared(self, name: str) -> bool:
        return name in self._declared

    def declare(self, blueprint: BuilderBlueprint) -> str:
        """Add a blueprint's class to its generated module.

        Raises:
            BuilderNameCollision: if a class with the builder's name exists.
        """
        if blueprint.name in self._declared:
            raise BuilderNameCollision(blueprint.name)
        class_def = render_builder_class(blueprint, self.warnings)
        self._declared.add(blueprint.name)
        module = self.module_for(blueprint)
        draft = self._drafts.setdefault(
            module, _ModuleDraft(source_module=blueprint.target.module)
        )
        draft.targets.append(blueprint.target.simple_name)
        draft.bases.add(blueprint.implemented_contract.base_class)
        if any(spec.initial == UNSET_INITIAL for spec in blueprint.fields):
            draft.needs_unset = True
        draft.classes.append(class_def)
        return module

    def modules(self) -> List[str]:
        return list(self._drafts)

    def render(self) -> Dict[str, str]:
        return {module: draft.render().code for module, draft in self._drafts.items()}


def render_blueprints(
    blueprints: Iterable[BuilderBlueprint],
    *,
    module_suffix: str = DEFAULT_MODULE_SUFFIX,
) -> Dict[str, str]:
    model = SourceModel(module_suffix=module_suffix)
    for blueprint in blueprints:
        model.declare(blueprint)
    return model.render()

