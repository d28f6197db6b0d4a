from dataclasses import dataclass
from typing import TYPE_CHECKING

from beartype.typing import Any, Dict, List, Optional
from serde import serialize, deserialize, field, to_dict

if TYPE_CHECKING:
    from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry
    from stepdiag.registry.registry import StepDefinition


@serialize
@deserialize
@dataclass(frozen=True)
class Position:
    """Source location of a step definition"""

    source: str
    line: int
    column: int = field(default=0)


@serialize
@deserialize
@dataclass
class DiagnosticStep:
    """Scenario step as it is shown in a report"""

    source: str
    line: int
    text: str


@serialize
@deserialize
@dataclass
class StepDefinitionHints:
    """Where step definitions were looked for when a step could not be matched"""

    step_definitions: List[str] = field(default_factory=list)
    step_definition_patterns: List[str] = field(default_factory=list)
    step_definition_paths: List[str] = field(default_factory=list)


@dataclass
class DefinitionUsage:
    definition: "StepDefinition"
    steps: List[DiagnosticStep] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "definition": self.definition.to_dict(),
            "steps": [to_dict(step) for step in self.steps],
        }


@dataclass
class UnmatchedStep:
    step: DiagnosticStep
    argument: Optional[str]
    parameter_type_registry: "ParameterTypeRegistry"
    step_definition_hints: StepDefinitionHints

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": to_dict(self.step),
            "argument": self.argument,
            "step_definition_hints": to_dict(self.step_definition_hints),
        }


@dataclass
class AmbiguousStep:
    step: DiagnosticStep
    definitions: List["StepDefinition"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": to_dict(self.step),
            "definitions": [definition.to_dict() for definition in self.definitions],
        }


@dataclass
class DiagnosticResult:
    """Aggregated outcome of a diagnose run over every feature file"""

    definitions_usage: List[DefinitionUsage] = field(default_factory=list)
    unmatched_steps: List[UnmatchedStep] = field(default_factory=list)
    ambiguous_steps: List[AmbiguousStep] = field(default_factory=list)

    @property
    def unused_definitions(self) -> List["StepDefinition"]:
        return [usage.definition for usage in self.definitions_usage if not usage.steps]

    @property
    def has_problems(self) -> bool:
        return bool(self.unmatched_steps or self.ambiguous_steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "definitions_usage": [usage.to_dict() for usage in self.definitions_usage],
            "unmatched_steps": [unmatched.to_dict() for unmatched in self.unmatched_steps],
            "ambiguous_steps": [ambiguous.to_dict() for ambiguous in self.ambiguous_steps],
            "summary": {
                "definitions": len(self.definitions_usage),
                "unused_definitions": len(self.unused_definitions),
                "unmatched_steps": len(self.unmatched_steps),
                "ambiguous_steps": len(self.ambiguous_steps),
            },
        }
