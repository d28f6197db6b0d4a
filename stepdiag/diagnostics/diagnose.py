import os

from beartype.typing import Any, Dict, List, Optional
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry

from stepdiag.data_classes.diagnostic import (
    AmbiguousStep,
    DefinitionUsage,
    DiagnosticResult,
    DiagnosticStep,
    StepDefinitionHints,
    UnmatchedStep,
)
from stepdiag.data_classes.diagnostics_exception import DiagnosticsError
from stepdiag.data_classes.project_configuration import ProjectConfiguration
from stepdiag.loader import load_registry
from stepdiag.logging import get_logger
from stepdiag.readers.gherkin_parser import GherkinOptions, create_ast_id_map, generate_messages, lookup_ast_node
from stepdiag.readers.project_files import (
    get_step_definition_patterns,
    get_step_definition_paths,
    get_test_files,
)
from stepdiag.registry.registry import StepDefinition, compare_step_definition
from stepdiag.settings import FEATURE_EXTENSION, GHERKIN_MEDIA_TYPE

logger = get_logger("stepdiag.diagnostics")


def find_usage(result: DiagnosticResult, definition: StepDefinition) -> Optional[DefinitionUsage]:
    for usage in result.definitions_usage:
        if compare_step_definition(usage.definition, definition):
            return usage
    return None


def _require_usage(result: DiagnosticResult, definition: StepDefinition) -> DefinitionUsage:
    usage = find_usage(result, definition)
    if usage is None:
        raise DiagnosticsError(f"Expected to find usage of step definition '{definition.canonical_string()}'")
    return usage


def step_argument_kind(pickle_step: Dict[str, Any]) -> Optional[str]:
    argument = pickle_step.get("argument") or {}
    if argument.get("dataTable"):
        return "dataTable"
    if argument.get("docString"):
        return "docString"
    return None


def _parse_feature(test_file: str, project_root: str) -> List[Dict[str, Any]]:
    with open(test_file, "r", encoding="utf-8") as f:
        text = f.read()
    relative_uri = os.path.relpath(test_file, project_root)
    return generate_messages(text, relative_uri, GHERKIN_MEDIA_TYPE, GherkinOptions())


def diagnose(configuration: ProjectConfiguration, environment=None) -> DiagnosticResult:
    """
    Correlate every scenario step of the project with the step definitions that apply to it.

    Feature files are handled one after another, each with its own registry. Definitions are
    merged across files by expression and position, so a definition shared by several
    feature files is listed once.
    """
    result = DiagnosticResult()
    parameter_type_registry = ParameterTypeRegistry()
    project_root = str(configuration.root)

    test_files = [test_file for test_file in get_test_files(configuration) if test_file.endswith(FEATURE_EXTENSION)]
    logger.info("Diagnose started", project_root=project_root, feature_files=len(test_files))

    progress_bar = environment.get_progress_bar(len(test_files), "Diagnosing feature files") if environment else None
    try:
        for test_file in test_files:
            _diagnose_feature(configuration, test_file, parameter_type_registry, result)
            if progress_bar:
                progress_bar.update(1)
    finally:
        if progress_bar:
            progress_bar.close()

    logger.info(
        "Diagnose finished",
        definitions=len(result.definitions_usage),
        unused_definitions=len(result.unused_definitions),
        unmatched_steps=len(result.unmatched_steps),
        ambiguous_steps=len(result.ambiguous_steps),
    )
    return result


def _diagnose_feature(
    configuration: ProjectConfiguration,
    test_file: str,
    parameter_type_registry: ParameterTypeRegistry,
    result: DiagnosticResult,
):
    feature_logger = logger.with_context(feature_file=test_file)

    step_definition_patterns = get_step_definition_patterns(configuration, test_file)
    step_definition_paths = get_step_definition_paths(step_definition_patterns)
    feature_logger.debug("Resolved step definitions", patterns=step_definition_patterns, paths=step_definition_paths)

    registry = load_registry(
        step_definition_paths,
        parameter_type_registry,
        stub_modules=configuration.stub_modules,
        feature_file=test_file,
    )

    envelopes = _parse_feature(test_file, str(configuration.root))
    gherkin_document = next(
        (envelope["gherkinDocument"] for envelope in envelopes if envelope.get("gherkinDocument")), None
    )
    if gherkin_document is None:
        errors = [envelope["parseError"]["message"] for envelope in envelopes if "parseError" in envelope]
        raise DiagnosticsError(f"Expected to find a gherkin document in {test_file}. {' '.join(errors)}".strip())

    for definition in registry.step_definitions:
        if find_usage(result, definition) is None:
            result.definitions_usage.append(DefinitionUsage(definition=definition))

    ast_id_map = create_ast_id_map(gherkin_document)
    pickles = [envelope["pickle"] for envelope in envelopes if envelope.get("pickle")]

    for pickle in pickles:
        for pickle_step in pickle.get("steps", []):
            text = pickle_step.get("text")
            if text is None:
                raise DiagnosticsError("Expected pickle step to have a text")

            ast_node_ids = pickle_step.get("astNodeIds") or []
            if not ast_node_ids:
                raise DiagnosticsError("Expected to find at least one astNodeId")
            ast_node = lookup_ast_node(ast_id_map, ast_node_ids[0])
            if "location" not in ast_node:
                raise DiagnosticsError("Expected ast node to have a location")

            diagnostic_step = DiagnosticStep(source=test_file, line=ast_node["location"]["line"], text=text)
            matching_step_definitions = registry.get_matching_step_definitions(text)

            if not matching_step_definitions:
                result.unmatched_steps.append(
                    UnmatchedStep(
                        step=diagnostic_step,
                        argument=step_argument_kind(pickle_step),
                        parameter_type_registry=parameter_type_registry,
                        step_definition_hints=StepDefinitionHints(
                            step_definitions=list(configuration.step_definitions),
                            step_definition_patterns=step_definition_patterns,
                            step_definition_paths=step_definition_paths,
                        ),
                    )
                )
            elif len(matching_step_definitions) == 1:
                _require_usage(result, matching_step_definitions[0]).steps.append(diagnostic_step)
            else:
                for matching_step_definition in matching_step_definitions:
                    _require_usage(result, matching_step_definition).steps.append(diagnostic_step)
                result.ambiguous_steps.append(
                    AmbiguousStep(step=diagnostic_step, definitions=matching_step_definitions)
                )

    feature_logger.debug("Feature file diagnosed", pickles=len(pickles))
