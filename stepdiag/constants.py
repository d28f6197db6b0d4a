import stepdiag

FAULT_MAPPING = dict(
    missing_project_root="Please provide an existing project root using the --project-root argument.",
    yaml_file_parse_issue="Error occurred while parsing yaml file ({file_path}). "
    "Make sure that structure of a file is correct.\nWe expect only `key: value`, `---` and `...`.",
    file_open_issue="Error occurred while opening the file ({file_path}). "
    "Make sure that the file exists or the path is correct.",
    invalid_configuration="Invalid project configuration: {error}",
    compilation_error="Failed to compile step definitions of {feature_file}, with errors shown above...",
    evaluation_error="Failed to evaluate step definitions in {source}, with errors shown above...",
    diagnostics_error="Diagnostics aborted: {error}",
    no_feature_files="No feature files found under {project_root}.",
    problems_found="Found {unmatched} unmatched and {ambiguous} ambiguous step(s).",
)

TOOL_VERSION = f"""stepdiag v{stepdiag.__version__}
Copyright 2026 stepdiag contributors"""

TOOL_USAGE = f"""Diagnoses the relationship between Gherkin scenarios and Python step definitions.
    - diagnose: Reports used, unused, unmatched and ambiguous steps

Run 'stepdiag --help' for more information."""

MISSING_COMMAND_SLOGAN = """Usage: stepdiag [OPTIONS] COMMAND [ARGS]...\nTry 'stepdiag --help' for help.
\nError: Missing command."""
