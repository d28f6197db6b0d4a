from stepdiag.registry.expression import (
    StepExpression,
    ParameterizedStepExpression,
    RegularStepExpression,
    create_expression,
)
from stepdiag.registry.registry import (
    Registry,
    StepDefinition,
    compare_position,
    compare_step_definition,
    expression_to_string,
    get_registry,
    with_registry,
)

__all__ = [
    "StepExpression",
    "ParameterizedStepExpression",
    "RegularStepExpression",
    "create_expression",
    "Registry",
    "StepDefinition",
    "compare_position",
    "compare_step_definition",
    "expression_to_string",
    "get_registry",
    "with_registry",
]
