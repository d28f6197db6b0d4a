import json
import os

from beartype.typing import List

from stepdiag.data_classes.diagnostic import DiagnosticResult, DiagnosticStep, UnmatchedStep
from stepdiag.registry.registry import StepDefinition

SNIPPET_ARGUMENTS = {"dataTable": "table", "docString": "doc_string"}
CUCUMBER_EXPRESSION_SPECIAL_CHARACTERS = "\\({/"


def _relative(path: str, project_root: str = None) -> str:
    if not project_root:
        return path
    relative = os.path.relpath(path, project_root)
    return path if relative.startswith("..") else relative


def describe_definition(definition: StepDefinition, project_root: str = None) -> str:
    expression = definition.canonical_string()
    expression = f"/{expression}/" if definition.is_regular_expression else json.dumps(expression, ensure_ascii=False)
    position = definition.position
    return f"{expression} ({_relative(position.source, project_root)}:{position.line})"


def describe_step(step: DiagnosticStep, project_root: str = None) -> str:
    return f"{step.text} ({_relative(step.source, project_root)}:{step.line})"


def escape_cucumber_expression(text: str) -> str:
    return "".join(f"\\{char}" if char in CUCUMBER_EXPRESSION_SPECIAL_CHARACTERS else char for char in text)


def generate_snippet(unmatched_step: UnmatchedStep) -> str:
    """Step definition stub that would match the unmatched step"""
    expression = json.dumps(escape_cucumber_expression(unmatched_step.step.text), ensure_ascii=False)
    arguments = ["context"]
    if unmatched_step.argument:
        arguments.append(SNIPPET_ARGUMENTS[unmatched_step.argument])
    return "\n".join(
        [
            f"@step({expression})",
            f"def step_impl({', '.join(arguments)}):",
            "    raise NotImplementedError",
        ]
    )


def _indent(text: str, prefix: str) -> List[str]:
    return [prefix + line for line in text.splitlines()]


def format_text_report(result: DiagnosticResult, project_root: str = None) -> str:
    lines = []
    unused = result.unused_definitions
    lines.append(
        f"Found {len(result.definitions_usage)} step definition(s), {len(unused)} unused, "
        f"{len(result.ambiguous_steps)} ambiguous step(s), {len(result.unmatched_steps)} unmatched step(s)."
    )

    if unused:
        lines.append("")
        lines.append("Unused step definitions:")
        for definition in unused:
            lines.append(f"  - {describe_definition(definition, project_root)}")

    if result.ambiguous_steps:
        lines.append("")
        lines.append("Ambiguous steps:")
        for ambiguous_step in result.ambiguous_steps:
            lines.append(f"  - {describe_step(ambiguous_step.step, project_root)}")
            lines.append("    Matches:")
            for definition in ambiguous_step.definitions:
                lines.append(f"      {describe_definition(definition, project_root)}")

    if result.unmatched_steps:
        lines.append("")
        lines.append("Unmatched steps:")
        for unmatched_step in result.unmatched_steps:
            hints = unmatched_step.step_definition_hints
            lines.append(f"  - {describe_step(unmatched_step.step, project_root)}")
            lines.append(f"    Configured step definitions: {', '.join(hints.step_definitions) or '-'}")
            lines.append("    Searched patterns:")
            lines.extend(f"      {_relative(pattern, project_root)}" for pattern in hints.step_definition_patterns)
            lines.append("    Resolved files:")
            if hints.step_definition_paths:
                lines.extend(f"      {_relative(path, project_root)}" for path in hints.step_definition_paths)
            else:
                lines.append("      (none)")
            lines.append("    Suggested step definition:")
            lines.extend(_indent(generate_snippet(unmatched_step), "      "))

    return "\n".join(lines)


def format_json_report(result: DiagnosticResult, pretty: bool = False) -> str:
    return json.dumps(result.to_dict(), indent=2 if pretty else None, ensure_ascii=False)
