import click
from serde import SerdeError

from stepdiag.cli import pass_environment, Environment, CONTEXT_SETTINGS
from stepdiag.constants import FAULT_MAPPING
from stepdiag.data_classes.diagnostics_exception import CompilationError, DiagnosticsError, EvaluationError
from stepdiag.data_classes.project_configuration import ProjectConfiguration
from stepdiag.diagnostics import diagnose
from stepdiag.diagnostics.report import format_json_report, format_text_report


def build_configuration(environment: Environment, **options) -> ProjectConfiguration:
    """Config file values, overridden by every option given on the command line"""
    values = dict(environment.params_from_config)
    for key, value in options.items():
        if value is None or value == ():
            continue
        values[key] = list(value) if isinstance(value, tuple) else value
    return ProjectConfiguration.from_dict(values)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--project-root",
    type=click.Path(exists=True, file_okay=False),
    metavar="",
    help="Root directory of the project (defaults to the current directory).",
)
@click.option("--features", multiple=True, metavar="", help="Glob pattern of feature files, relative to the root.")
@click.option(
    "--exclude-features", multiple=True, metavar="", help="Glob pattern of feature files to leave out."
)
@click.option(
    "--step-definitions",
    multiple=True,
    metavar="",
    help="Glob pattern of step definition files. Supports [filepath] and [filepart].",
)
@click.option(
    "--stub-module",
    "stub_modules",
    multiple=True,
    metavar="",
    help="Module to replace with a stand-in while step definitions are loaded.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
    help="Report format.",
)
@click.option("--pretty", is_flag=True, help="Pretty print JSON output with indentation.")
@click.option("--output", type=click.Path(), metavar="", help="Optional output file path to save the report.")
@click.option("--no-fail", is_flag=True, help="Exit with 0 even if unmatched or ambiguous steps were found.")
@click.pass_context
@pass_environment
def cli(
    environment: Environment,
    context: click.Context,
    output_format: str,
    pretty: bool,
    output: str,
    no_fail: bool,
    **kwargs,
):
    """Diagnose step definitions

    Reports which step definitions are used and by which scenario steps, which are
    unused, and which scenario steps are unmatched or ambiguous.
    """
    environment.cmd = "diagnose"

    try:
        configuration = build_configuration(environment, **kwargs)
    except (SerdeError, TypeError, ValueError) as e:
        environment.elog(FAULT_MAPPING["invalid_configuration"].format(error=e))
        exit(1)

    if not configuration.root.is_dir():
        environment.elog(FAULT_MAPPING["missing_project_root"])
        exit(1)

    environment.vlog(f"Diagnosing feature files under {configuration.root}")

    try:
        result = diagnose(configuration, environment)
    except CompilationError as e:
        for message in e.messages:
            environment.elog(str(message))
        environment.elog(FAULT_MAPPING["compilation_error"].format(feature_file=e.feature_file))
        exit(1)
    except EvaluationError as e:
        environment.elog(f"{e.source}: {e.reason}")
        environment.elog(FAULT_MAPPING["evaluation_error"].format(source=e.source))
        exit(1)
    except DiagnosticsError as e:
        environment.elog(FAULT_MAPPING["diagnostics_error"].format(error=e))
        exit(1)

    if not result.definitions_usage and not result.unmatched_steps:
        environment.vlog(FAULT_MAPPING["no_feature_files"].format(project_root=configuration.root))

    if output_format.lower() == "json":
        report = format_json_report(result, pretty=pretty)
    else:
        report = format_text_report(result, project_root=str(configuration.root))

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(report)
        environment.log(f"Report saved to: {output}")
    else:
        click.echo(report)

    if result.has_problems:
        environment.elog(
            FAULT_MAPPING["problems_found"].format(
                unmatched=len(result.unmatched_steps), ambiguous=len(result.ambiguous_steps)
            )
        )
        if not no_fail:
            exit(1)
