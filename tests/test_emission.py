from __future__ import annotations

import libcst as cst
import pytest

from buildergen.emission import GENERATED_HEADER, SourceModel, render_blueprints, render_builder_class
from buildergen.exceptions import BuilderNameCollision
from buildergen.synthesis import (
    ConstructorDescriptor,
    FailureType,
    ParameterDescriptor,
    SynthesisConfig,
    Synthesizer,
)


def _class_code(blueprint) -> str:
    return cst.Module(body=[render_builder_class(blueprint)]).code


def test_optional_field_builder_renders_fluent_class(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target("pkg.beans.CustomFactoryMethodBean", factory="custom"),
        make_constructor(("testString", "str")),
    )
    code = _class_code(blueprint)

    assert (
        "class CustomFactoryMethodBeanBuilder(UncheckedBuilder[CustomFactoryMethodBean]):"
        in code
    )
    assert "declared_failures: ClassVar[tuple[str, ...]] = ()" in code
    assert "_testString: str | None = None" in code
    assert "def testString(self, testString: str) -> CustomFactoryMethodBeanBuilder:" in code
    assert "self._testString = testString" in code
    assert "return self" in code
    assert "def build(self) -> CustomFactoryMethodBean:" in code
    assert "return CustomFactoryMethodBean(self._testString)" in code
    assert "@staticmethod\n    def custom() -> CustomFactoryMethodBeanBuilder:" in code
    assert "return CustomFactoryMethodBeanBuilder()" in code
    assert "def __init__" not in code


def test_mandatory_parameters_render_constructor(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target("pkg.beans.Target"),
        make_constructor(("id", "int", True), ("name", "str")),
    )
    code = _class_code(blueprint)

    assert "def __init__(self, id: int) -> None:" in code
    assert "self._id = id" in code
    assert "def create(id: int) -> TargetBuilder:" in code
    assert "return TargetBuilder(id)" in code
    assert "return Target(self._id, self._name)" in code


def test_declared_failures_select_checked_base(make_target, make_constructor) -> None:
    failure = FailureType(name="ParseFailure", lineage=("ValueError", "Exception"))
    blueprint = Synthesizer().synthesize(
        make_target("pkg.beans.Document"),
        make_constructor(("text", "str"), failures=(failure,)),
    )
    code = _class_code(blueprint)

    assert "class DocumentBuilder(Builder[Document]):" in code
    assert "declared_failures: ClassVar[tuple[str, ...]] = ('ParseFailure',)" in code
    assert "Raises:\n            ParseFailure:" in code


def test_keyword_only_arguments_and_completeness_check(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="host", type_ref="str"),
            ParameterDescriptor(name="port", type_ref="int", keyword_only=True, default="80"),
        )
    )
    blueprint = Synthesizer(config=SynthesisConfig(require_complete=True)).synthesize(
        make_target("pkg.net.Server"), constructor
    )
    code = _class_code(blueprint)

    assert "_host: str = UNSET" in code
    assert "_port: int = 80" in code
    assert 'self._ensure_complete("_host")' in code
    assert "return Server(self._host, port=self._port)" in code


def test_unparseable_type_hint_falls_back_to_object(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target(), make_constructor(("value", "list[int"))
    )
    warnings: list[str] = []
    code = cst.Module(body=[render_builder_class(blueprint, warnings)]).code

    assert "_value: object | None = None" in code
    assert warnings
    assert all("list[int" in warning for warning in warnings)


def test_module_imports_targets_and_api(make_target, make_constructor) -> None:
    synthesizer = Synthesizer(config=SynthesisConfig(require_complete=True))
    plain = synthesizer.synthesize(make_target("pkg.beans.Plain"), make_constructor(("a", "int")))
    risky = synthesizer.synthesize(
        make_target("pkg.beans.Risky"),
        make_constructor(failures=(FailureType(name="OSError", lineage=("Exception",)),)),
    )

    modules = render_blueprints([plain, risky])

    assert list(modules) == ["pkg.beans_builders"]
    code = modules["pkg.beans_builders"]
    assert code.startswith(GENERATED_HEADER + "\n")
    assert "from __future__ import annotations" in code
    assert "from typing import TYPE_CHECKING, ClassVar" in code
    assert "from buildergen.api import Builder, UNSET, UncheckedBuilder" in code
    assert "from pkg.beans import Plain, Risky" in code
    assert "if TYPE_CHECKING:\n    from pkg.beans import *" in code
    assert code.index("class PlainBuilder") < code.index("class RiskyBuilder")


def test_source_model_groups_builders_per_source_module(make_target, make_constructor) -> None:
    model = SourceModel(module_suffix="_gen")
    first = model.declare(Synthesizer().synthesize(make_target("a.One"), make_constructor()))
    second = model.declare(Synthesizer().synthesize(make_target("b.c.Two"), make_constructor()))
    top_level = model.declare(Synthesizer().synthesize(make_target("Three"), make_constructor()))

    assert (first, second, top_level) == ("a_gen", "b.c_gen", "builders")
    assert model.modules() == ["a_gen", "b.c_gen", "builders"]
    assert model.is_declared("b.c.TwoBuilder")
    assert "from b.c import Two" in model.render()["b.c_gen"]


def test_existing_names_collide(make_target, make_constructor) -> None:
    model = SourceModel(existing_names={"pkg.beans.BeanBuilder"})
    with pytest.raises(BuilderNameCollision) as excinfo:
        model.declare(Synthesizer().synthesize(make_target(), make_constructor()))
    assert excinfo.value.name == "pkg.beans.BeanBuilder"
    assert model.modules() == []


def test_redeclaring_a_builder_collides(make_target, make_constructor) -> None:
    model = SourceModel()
    blueprint = Synthesizer().synthesize(make_target(), make_constructor())
    model.declare(blueprint)
    with pytest.raises(BuilderNameCollision):
        model.declare(blueprint)
    assert model.render()["pkg.beans_builders"].count("class BeanBuilder") == 1


def test_rendered_module_parses(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target(),
        make_constructor(("a", "int", True), ("b", "dict[str, list[int]]")),
    )
    code = render_blueprints([blueprint])["pkg.beans_builders"]
    assert cst.parse_module(code).code == code


def test_target_default_is_not_overridden(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="label", type_ref="str"),
            ParameterDescriptor(name="tags", type_ref="list[str]", has_default=True),
            ParameterDescriptor(name="size", type_ref="int", default="0"),
        )
    )
    blueprint = Synthesizer().synthesize(make_target("pkg.beans.Bag"), constructor)
    code = _class_code(blueprint)

    assert "_tags: list[str] = UNSET" in code
    assert "return Bag(self._label, size=self._size, **self._supplied(tags=self._tags))" in code
    assert "_ensure_complete" not in code
    assert "from buildergen.api import UNSET, UncheckedBuilder" in render_blueprints(
        [blueprint]
    )["pkg.beans_builders"]


def test_package_targets_get_a_builder_submodule(make_target, make_constructor) -> None:
    model = SourceModel(packages={"pkg"})
    module = model.declare(
        Synthesizer().synthesize(make_target("pkg.Point"), make_constructor(("x", "int")))
    )
    assert module == "pkg._builders"
    assert "from pkg import Point" in model.render()["pkg._builders"]
