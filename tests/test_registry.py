import re
from pathlib import Path

import pytest
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry

from stepdiag.data_classes.diagnostic import Position
from stepdiag.data_classes.diagnostics_exception import EvaluationError, RegistryError
from stepdiag.registry.registry import (
    Registry,
    StepDefinition,
    compare_position,
    compare_step_definition,
    get_registry,
    with_registry,
)
from stepdiag.steps import define_parameter_type, given, when


def noop(*args):
    pass


@pytest.fixture
def registry():
    yield Registry(ParameterTypeRegistry())


class TestRegistry:
    @pytest.mark.registry
    def test_matching_returns_every_match_in_registration_order(self, registry):
        first = registry.define_step("I visit {string}", noop, Position("steps.py", 1))
        registry.define_step("I click {string}", noop, Position("steps.py", 3))
        second = registry.define_step(re.compile(r'^I visit "home"$'), noop, Position("steps.py", 5))
        registry.finalize()

        assert registry.get_matching_step_definitions('I visit "home"') == [first, second]
        assert registry.get_matching_step_definitions("I do nothing") == []

    @pytest.mark.registry
    def test_register_does_not_deduplicate(self, registry):
        registry.define_step("I click {string}", noop, Position("steps.py", 3))
        registry.define_step("I click {string}", noop, Position("steps.py", 3))
        registry.finalize()

        assert len(registry.step_definitions) == 2

    @pytest.mark.registry
    def test_query_before_finalize_fails(self, registry):
        registry.define_step("I click {string}", noop, Position("steps.py", 3))
        with pytest.raises(RegistryError):
            registry.get_matching_step_definitions('I click "ok"')
        with pytest.raises(RegistryError):
            _ = registry.step_definitions

    @pytest.mark.registry
    def test_register_after_finalize_fails(self, registry):
        registry.finalize()
        with pytest.raises(RegistryError):
            registry.define_step("I click {string}", noop, Position("steps.py", 3))

    @pytest.mark.registry
    def test_finalize_twice_fails(self, registry):
        registry.finalize()
        with pytest.raises(RegistryError):
            registry.finalize()

    @pytest.mark.registry
    def test_undefined_parameter_type_fails_finalize(self, registry):
        registry.define_step("I pick {colour}", noop, Position("steps.py", 4))
        with pytest.raises(EvaluationError) as exc_info:
            registry.finalize()

        assert exc_info.value.source == "steps.py"
        assert "line 4" in exc_info.value.reason
        assert "colour" in exc_info.value.reason

    @pytest.mark.registry
    def test_invalid_expression_syntax_fails_finalize(self, registry):
        registry.define_step("I pick {", noop, Position("steps.py", 2))
        with pytest.raises(EvaluationError) as exc_info:
            registry.finalize()

        assert exc_info.value.source == "steps.py"
        assert not registry.finalized

    @pytest.mark.registry
    def test_parameter_type_defined_after_step_applies(self, registry):
        registry.define_step("my balance is {money}", noop, Position("steps.py", 1))
        registry.define_parameter_type("money", r"\d+ EUR")
        registry.finalize()

        assert len(registry.get_matching_step_definitions("my balance is 10 EUR")) == 1

    @pytest.mark.registry
    def test_parameter_type_is_shared_and_not_redefined(self):
        parameter_type_registry = ParameterTypeRegistry()
        for _ in range(2):
            registry = Registry(parameter_type_registry)
            registry.define_parameter_type("color", r"red|blue")
            registry.define_step("I pick {color}", noop, Position("steps.py", 1))
            registry.finalize()
            assert len(registry.get_matching_step_definitions("I pick red")) == 1

        later = Registry(parameter_type_registry)
        later.define_step("I paint it {color}", noop, Position("other.py", 1))
        later.finalize()
        assert len(later.get_matching_step_definitions("I paint it blue")) == 1


class TestStepDefinitionEquality:
    @pytest.mark.registry
    def test_equal_by_expression_and_position(self):
        a = StepDefinition("I click {string}", noop, Position("steps.py", 3, 2))
        b = StepDefinition("I click {string}", lambda context: None, Position("steps.py", 3, 2))
        assert compare_step_definition(a, b)
        assert a == b
        assert hash(a) == hash(b)

    @pytest.mark.registry
    @pytest.mark.parametrize(
        "other",
        [
            StepDefinition("I tap {string}", noop, Position("steps.py", 3, 2)),
            StepDefinition("I click {string}", noop, Position("other.py", 3, 2)),
            StepDefinition("I click {string}", noop, Position("steps.py", 4, 2)),
            StepDefinition("I click {string}", noop, Position("steps.py", 3, 5)),
        ],
        ids=["expression", "source", "line", "column"],
    )
    def test_not_equal(self, other):
        definition = StepDefinition("I click {string}", noop, Position("steps.py", 3, 2))
        assert not compare_step_definition(definition, other)

    @pytest.mark.registry
    def test_compare_position(self):
        assert compare_position(Position("a.py", 1, 1), Position("a.py", 1, 1))
        assert not compare_position(Position("a.py", 1, 1), Position("b.py", 1, 1))

    @pytest.mark.registry
    def test_to_dict(self):
        definition = StepDefinition(re.compile("^I click$"), noop, Position("steps.py", 3, 2))
        assert definition.to_dict() == {
            "expression": "^I click$",
            "type": "regular-expression",
            "position": {"source": "steps.py", "line": 3, "column": 2},
        }


class TestActiveRegistry:
    @pytest.mark.registry
    def test_no_active_registry(self):
        with pytest.raises(RegistryError):
            get_registry()

    @pytest.mark.registry
    def test_with_registry_is_scoped(self, registry):
        with with_registry(registry) as active:
            assert get_registry() is active is registry
        with pytest.raises(RegistryError):
            get_registry()

    @pytest.mark.registry
    def test_with_registry_restores_previous(self, registry):
        inner = Registry(registry.parameter_type_registry)
        with with_registry(registry):
            with with_registry(inner):
                assert get_registry() is inner
            assert get_registry() is registry

    @pytest.mark.registry
    def test_with_registry_restores_after_error(self, registry):
        with pytest.raises(RuntimeError):
            with with_registry(registry):
                raise RuntimeError("boom")
        with pytest.raises(RegistryError):
            get_registry()

    @pytest.mark.registry
    def test_decorators_route_to_active_registry(self, registry):
        with with_registry(registry):
            define_parameter_type("flavour", r"sweet|sour")

            @given("I taste something {flavour}")
            def taste(context, flavour):
                pass

            @when(re.compile(r"^I eat it$"))
            def eat(context):
                pass

        registry.finalize()
        definitions = registry.step_definitions
        assert [definition.handler for definition in definitions] == [taste, eat]
        assert Path(definitions[0].position.source).name == "test_registry.py"
        assert len(registry.get_matching_step_definitions("I taste something sour")) == 1

    @pytest.mark.registry
    def test_decorator_returns_function_unchanged(self, registry):
        def handler(context):
            return "done"

        with with_registry(registry):
            decorated = given("I am ready")(handler)
        assert decorated is handler

    @pytest.mark.registry
    def test_decorator_without_active_registry_fails(self):
        with pytest.raises(RegistryError):

            @given("I am nowhere")
            def nowhere(context):
                pass
