import re
from abc import abstractmethod

from beartype.typing import Pattern, Union
from cucumber_expressions.expression import CucumberExpression
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry
from cucumber_expressions.regular_expression import RegularExpression


class StepExpression:
    """
    Pattern of a single step definition. Both expression kinds answer the same two
    questions: does a step text match, and what is the canonical form of the pattern.
    """

    @abstractmethod
    def matches(self, text: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def canonical_string(self) -> str:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.canonical_string()!r})"


class ParameterizedStepExpression(StepExpression):
    """Cucumber expression such as `I have {int} cucumbers`"""

    def __init__(self, source: str, parameter_type_registry: ParameterTypeRegistry):
        self.source = source
        self.expression = CucumberExpression(source, parameter_type_registry)

    def matches(self, text: str) -> bool:
        return self.expression.match(text) is not None

    def canonical_string(self) -> str:
        return self.source


class RegularStepExpression(StepExpression):
    """Plain regular expression, found anywhere in the step text unless anchored"""

    def __init__(self, pattern: Pattern, parameter_type_registry: ParameterTypeRegistry):
        self.pattern = pattern
        self.expression = RegularExpression(pattern, parameter_type_registry)

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def canonical_string(self) -> str:
        return self.pattern.pattern


def create_expression(
    description: Union[str, Pattern], parameter_type_registry: ParameterTypeRegistry
) -> StepExpression:
    if isinstance(description, str):
        return ParameterizedStepExpression(description, parameter_type_registry)
    if isinstance(description, re.Pattern):
        return RegularStepExpression(description, parameter_type_registry)
    raise TypeError(f"Step description must be a string or a compiled regular expression, got {description!r}")
