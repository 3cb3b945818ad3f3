from __future__ import annotations

import pytest

from buildergen.exceptions import InputContractError
from buildergen.synthesis import (
    CapabilityContract,
    ConstructorDescriptor,
    FailureType,
    ParameterDescriptor,
    SynthesisConfig,
    Synthesizer,
)

PARSE_FAILURE = FailureType(name="pkg.errors.ParseFailure", lineage=("Exception", "BaseException"))
LOOKUP_FAILURE = FailureType(name="NotImplementedError", lineage=("RuntimeError", "Exception", "BaseException"))


def test_single_optional_parameter_with_custom_factory(make_target, make_constructor) -> None:
    target = make_target("pkg.beans.CustomFactoryMethodBean", factory="custom")
    blueprint = Synthesizer().synthesize(target, make_constructor(("testString", "str")))

    assert blueprint.name == "pkg.beans.CustomFactoryMethodBeanBuilder"
    assert [spec.name for spec in blueprint.fields] == ["testString"]
    assert blueprint.fields[0].type_ref == "str"
    assert blueprint.fields[0].attribute == "_testString"
    setter = blueprint.setters[0]
    assert setter.name == "testString"
    assert setter.field.type_ref == "str"
    assert setter.returns == blueprint.name
    assert blueprint.constructor_params == ()
    assert blueprint.constructor is None
    assert blueprint.build_method.failures == ()
    assert blueprint.implemented_contract is CapabilityContract.NO_DECLARED_FAILURES
    assert blueprint.factory_method.name == "custom"
    assert blueprint.factory_method.params == ()
    assert blueprint.factory_method.returns == blueprint.name


def test_mandatory_parameter_forms_constructor_and_factory(make_target, make_constructor) -> None:
    target = make_target("pkg.Target")
    blueprint = Synthesizer().synthesize(
        target, make_constructor(("id", "int", True), ("name", "str"))
    )

    assert [spec.name for spec in blueprint.constructor_params] == ["id"]
    assert blueprint.constructor is not None
    assert [spec.name for spec in blueprint.constructor.params] == ["id"]
    assert blueprint.factory_method.name == "create"
    assert [spec.name for spec in blueprint.factory_method.params] == ["id"]
    assert [setter.name for setter in blueprint.setters] == ["id", "name"]
    assert [arg.field.name for arg in blueprint.build_method.arguments] == ["id", "name"]
    assert blueprint.build_method.returns == "pkg.Target"


def test_checked_failure_selects_declaring_contract(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target(), make_constructor(("text", "str"), failures=(PARSE_FAILURE,))
    )
    assert blueprint.build_method.failures == (PARSE_FAILURE,)
    assert blueprint.implemented_contract is CapabilityContract.DECLARES_FAILURES
    assert blueprint.implemented_contract.value == "declares-failures"


def test_unchecked_failure_is_still_declared(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target(), make_constructor(("text", "str"), failures=(LOOKUP_FAILURE,))
    )
    assert blueprint.build_method.failures == (LOOKUP_FAILURE,)
    assert blueprint.implemented_contract is CapabilityContract.NO_DECLARED_FAILURES


def test_zero_parameter_constructor(make_target) -> None:
    blueprint = Synthesizer().synthesize(make_target(), ConstructorDescriptor())
    assert blueprint.fields == ()
    assert blueprint.setters == ()
    assert blueprint.constructor is None
    assert blueprint.factory_method.params == ()
    assert blueprint.build_method.arguments == ()


def test_synthesis_is_deterministic(make_target, make_constructor) -> None:
    target = make_target()
    constructor = make_constructor(
        ("a", "int", True), ("b", "str"), ("c", "float", True), failures=(PARSE_FAILURE,)
    )
    synthesizer = Synthesizer()
    assert synthesizer.synthesize(target, constructor) == synthesizer.synthesize(
        target, constructor
    )


def test_order_is_preserved_for_fields_and_mandatory_params(make_target, make_constructor) -> None:
    constructor = make_constructor(
        ("zeta", "int", True),
        ("alpha", "str"),
        ("mid", "bytes", True),
        ("beta", "bool"),
    )
    blueprint = Synthesizer().synthesize(make_target(), constructor)
    assert [spec.name for spec in blueprint.fields] == ["zeta", "alpha", "mid", "beta"]
    assert [setter.name for setter in blueprint.setters] == ["zeta", "alpha", "mid", "beta"]
    assert [spec.name for spec in blueprint.constructor_params] == ["zeta", "mid"]
    assert [spec.name for spec in blueprint.factory_method.params] == ["zeta", "mid"]


def test_every_failure_is_propagated_in_order(make_target, make_constructor) -> None:
    failures = (LOOKUP_FAILURE, PARSE_FAILURE, FailureType(name="OSError"))
    blueprint = Synthesizer().synthesize(
        make_target(), make_constructor(("x", "int"), failures=failures)
    )
    assert blueprint.build_method.failures == failures
    assert blueprint.implemented_contract is CapabilityContract.DECLARES_FAILURES


def test_every_setter_returns_the_builder(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(
        make_target(suffix="Factory"), make_constructor(("a", "int"), ("b", "int", True))
    )
    assert blueprint.name == "pkg.beans.BeanFactory"
    assert {setter.returns for setter in blueprint.setters} == {"pkg.beans.BeanFactory"}


def test_keyword_only_and_literal_default_flow_into_build(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="host", type_ref="str", mandatory=True),
            ParameterDescriptor(name="port", type_ref="int", keyword_only=True, default="8080"),
        )
    )
    blueprint = Synthesizer().synthesize(make_target(), constructor)
    port = blueprint.fields[1]
    assert port.initial == "8080"
    assert [(arg.field.name, arg.keyword) for arg in blueprint.build_method.arguments] == [
        ("host", False),
        ("port", True),
    ]


def test_require_complete_marks_unset_optional_fields(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="id", type_ref="int", mandatory=True),
            ParameterDescriptor(name="name", type_ref="str"),
            ParameterDescriptor(name="tag", type_ref="str", default="'x'"),
        )
    )
    blueprint = Synthesizer(config=SynthesisConfig(require_complete=True)).synthesize(
        make_target(), constructor
    )
    assert [spec.initial for spec in blueprint.fields] == ["None", "UNSET", "'x'"]
    assert [spec.name for spec in blueprint.build_method.required_fields] == ["name"]


def test_template_semantics_by_default(make_target, make_constructor) -> None:
    blueprint = Synthesizer().synthesize(make_target(), make_constructor(("name", "str")))
    assert blueprint.fields[0].initial == "None"
    assert blueprint.build_method.required_fields == ()


@pytest.mark.parametrize(
    ("params", "message"),
    [
        ((("a", "int"), ("a", "str")), "duplicate parameter"),
        ((("build", "int"),), "clashes with a generated method"),
        ((("create", "int"),), "clashes with a generated method"),
        ((("_hidden", "int"),), "clashes with builder attributes"),
        ((("not valid", "int"),), "invalid parameter name"),
    ],
)
def test_input_contract_violations_fail_fast(make_target, make_constructor, params, message) -> None:
    with pytest.raises(InputContractError) as excinfo:
        Synthesizer().synthesize(make_target(), make_constructor(*params))
    assert message in str(excinfo.value)
    assert excinfo.value.target == "pkg.beans.Bean"


def test_invalid_naming_directives_are_rejected(make_target) -> None:
    with pytest.raises(InputContractError):
        Synthesizer().synthesize(make_target(suffix=""), ConstructorDescriptor())
    with pytest.raises(InputContractError):
        Synthesizer().synthesize(make_target(factory="build"), ConstructorDescriptor())
    with pytest.raises(InputContractError):
        Synthesizer().synthesize(make_target(suffix="-x"), ConstructorDescriptor())


def test_plan_isolates_failing_targets(make_target, make_constructor) -> None:
    good = (make_target("pkg.Good"), make_constructor(("a", "int")))
    bad = (make_target("pkg.Bad"), make_constructor(("a", "int"), ("a", "int")))
    duplicate = (make_target("pkg.Good"), make_constructor())
    other = (make_target("pkg.Other"), make_constructor())

    plan = Synthesizer().plan([good, bad, duplicate, other])

    assert [blueprint.name for blueprint in plan.blueprints] == ["pkg.GoodBuilder", "pkg.OtherBuilder"]
    assert len(plan.errors) == 2
    assert any("pkg.Bad" in error for error in plan.errors)
    assert any("already processed" in error for error in plan.errors)


def test_plan_warns_when_nothing_is_buildable() -> None:
    plan = Synthesizer().plan([])
    assert plan.blueprints == []
    assert plan.warnings


def test_target_defaults_are_left_to_the_target(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="name", type_ref="str"),
            ParameterDescriptor(name="tags", type_ref="list[str]", has_default=True),
            ParameterDescriptor(name="size", type_ref="int", default="0"),
        )
    )
    for config in (SynthesisConfig(), SynthesisConfig(require_complete=True)):
        blueprint = Synthesizer(config=config).synthesize(make_target(), constructor)
        name, tags, size = blueprint.fields
        assert tags.omittable and tags.initial == "UNSET"
        assert not size.omittable and size.initial == "0"
        assert tags not in blueprint.build_method.required_fields
        assert [(arg.field.name, arg.keyword) for arg in blueprint.build_method.arguments] == [
            ("name", False),
            ("tags", True),
            ("size", True),
        ]
    assert [spec.name for spec in blueprint.build_method.required_fields] == ["name"]


def test_mandatory_parameter_with_target_default_is_always_passed(make_target) -> None:
    constructor = ConstructorDescriptor(
        parameters=(
            ParameterDescriptor(name="items", type_ref="list", mandatory=True, has_default=True),
        )
    )
    blueprint = Synthesizer().synthesize(make_target(), constructor)
    assert not blueprint.fields[0].omittable
    assert blueprint.build_method.arguments[0].keyword is False
