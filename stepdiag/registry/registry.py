from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from beartype.typing import Any, Callable, Dict, Iterator, List, Optional, Pattern, Union
from cucumber_expressions.errors import CucumberExpressionError
from cucumber_expressions.parameter_type import ParameterType
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry
from serde import to_dict

from stepdiag.data_classes.diagnostic import Position
from stepdiag.data_classes.diagnostics_exception import EvaluationError, RegistryError
from stepdiag.registry.expression import StepExpression, create_expression


@dataclass(eq=False)
class StepDefinition:
    """Registered step pattern, the function implementing it and where it was defined.

    The handler is never called during diagnosis, only the pattern matters.
    """

    description: Union[str, Pattern]
    handler: Callable
    position: Position
    expression: Optional[StepExpression] = None

    def __eq__(self, other):
        if not isinstance(other, StepDefinition):
            return NotImplemented
        return compare_step_definition(self, other)

    def __hash__(self):
        return hash((self.canonical_string(), self.position))

    def canonical_string(self) -> str:
        if self.expression is not None:
            return expression_to_string(self.expression)
        return self.description if isinstance(self.description, str) else self.description.pattern

    @property
    def is_regular_expression(self) -> bool:
        return not isinstance(self.description, str)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expression": self.canonical_string(),
            "type": "regular-expression" if self.is_regular_expression else "cucumber-expression",
            "position": to_dict(self.position),
        }


def expression_to_string(expression: StepExpression) -> str:
    return expression.canonical_string()


def compare_position(a: Position, b: Position) -> bool:
    return a.source == b.source and a.column == b.column and a.line == b.line


def compare_step_definition(a: StepDefinition, b: StepDefinition) -> bool:
    return a.canonical_string() == b.canonical_string() and compare_position(a.position, b.position)


class Registry:
    """
    Collects the step definitions of one feature file.

    Definitions are appended while user code runs, then finalize() compiles their
    expressions against the shared parameter type registry and freezes the list.
    """

    def __init__(self, parameter_type_registry: ParameterTypeRegistry = None):
        self.parameter_type_registry = parameter_type_registry or ParameterTypeRegistry()
        self._step_definitions: List[StepDefinition] = []
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def register(self, definition: StepDefinition):
        if self._finalized:
            raise RegistryError(
                f"Tried to register step definition '{definition.canonical_string()}' after the registry was finalized"
            )
        self._step_definitions.append(definition)

    def define_step(self, description: Union[str, Pattern], handler: Callable, position: Position) -> StepDefinition:
        definition = StepDefinition(description=description, handler=handler, position=position)
        self.register(definition)
        return definition

    def define_parameter_type(
        self,
        name: str,
        regexp,
        type=str,
        transformer: Callable = None,
        use_for_snippets: bool = True,
        prefer_for_regexp_match: bool = False,
    ):
        if self._finalized:
            raise RegistryError(f"Tried to define parameter type '{name}' after the registry was finalized")
        # Parameter types outlive a single feature file, re-running the same user code must not redefine them
        if self.parameter_type_registry.lookup_by_type_name(name) is not None:
            return
        self.parameter_type_registry.define_parameter_type(
            ParameterType(
                name,
                regexp,
                type,
                transformer,
                use_for_snippets,
                prefer_for_regexp_match,
            )
        )

    def finalize(self):
        if self._finalized:
            raise RegistryError("Registry has already been finalized")
        for definition in self._step_definitions:
            try:
                definition.expression = create_expression(definition.description, self.parameter_type_registry)
            except (CucumberExpressionError, TypeError) as e:
                raise EvaluationError(
                    definition.position.source, f"Step definition at line {definition.position.line}: {e}"
                ) from e
        self._finalized = True

    @property
    def step_definitions(self) -> List[StepDefinition]:
        self._ensure_finalized()
        return list(self._step_definitions)

    def get_matching_step_definitions(self, text: str) -> List[StepDefinition]:
        self._ensure_finalized()
        return [definition for definition in self._step_definitions if definition.expression.matches(text)]

    def _ensure_finalized(self):
        if not self._finalized:
            raise RegistryError("Registry must be finalized before it can be queried")


_active_registry: ContextVar[Optional[Registry]] = ContextVar("stepdiag_active_registry", default=None)


@contextmanager
def with_registry(registry: Registry) -> Iterator[Registry]:
    """Makes `registry` the target of step registrations for the duration of the block"""
    token = _active_registry.set(registry)
    try:
        yield registry
    finally:
        _active_registry.reset(token)


def get_registry() -> Registry:
    registry = _active_registry.get()
    if registry is None:
        raise RegistryError(
            "Expected to find an active registry. Step definitions can only be defined "
            "while step definition files are being loaded."
        )
    return registry
