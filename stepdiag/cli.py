import os
import sys

import click
import yaml
from pathlib import Path
from tqdm import tqdm

from stepdiag.constants import FAULT_MAPPING, MISSING_COMMAND_SLOGAN, TOOL_USAGE, TOOL_VERSION
from stepdiag.logging.config import LoggingConfig
from stepdiag.settings import DEFAULT_CONFIG_FILES

CONTEXT_SETTINGS = dict(auto_envvar_prefix="STEPDIAG")

stepdiag_folder = Path(__file__).parent
cmd_folder = stepdiag_folder / "commands/"


class Environment:
    def __init__(self, cmd: str = None):
        self.cmd = cmd
        self.home = os.getcwd()
        self.default_config_file = True
        self.params_from_config = dict()
        self.config = None
        self.verbose = None
        self.silent = None

    def log(self, msg: str, new_line=True, *args):
        """Logs a message to stdout only is silent mode is disabled."""
        if not self.silent:
            if args:
                msg %= args
            click.echo(msg, file=sys.stdout, nl=new_line)

    def vlog(self, msg: str, *args):
        """Logs a message to stdout only if the verbose option is enabled."""
        if self.verbose:
            self.log(msg, *args)

    @staticmethod
    def elog(msg: str, new_line=True, *args):
        """Logs a message to stderr."""
        if args:
            msg %= args
        click.echo(msg, file=sys.stderr, nl=new_line)

    def get_progress_bar(self, total: int, prefix: str):
        return tqdm(
            total=total,
            bar_format=prefix + ": {n_fmt}/{total_fmt}{postfix}",
            disable=not self.verbose or bool(self.silent),
            file=sys.stderr,
        )

    def set_parameters(self, context: click.Context):
        """Sets global parameters from context, explicitly passed values win over config file values"""
        for param, value in context.params.items():
            if param == "config":
                continue
            param_config_value = self.params_from_config.get(param, None)
            if not value and param_config_value is not None:
                setattr(self, param, param_config_value)
            else:
                setattr(self, param, value)

    def parse_config_file(self, context: click.Context):
        """Sets config file path from context and information if default or custom config file should be used."""
        if context.params.get("config"):
            self.config = context.params["config"]
            self.default_config_file = False
        else:
            self.config = None
            for name in DEFAULT_CONFIG_FILES:
                if Path(self.home, name).is_file():
                    self.config = Path(self.home, name)
                    break
        if self.config:
            self.parse_params_from_config_file(self.config)

    def parse_params_from_config_file(self, file_path: Path):
        self.params_from_config = {}
        try:
            with open(file_path, "r") as f:
                for page_content in yaml.safe_load_all(f):
                    if not page_content:
                        continue
                    if not isinstance(page_content, dict):
                        raise ValueError(f"Expected `key: value` pairs, got {type(page_content).__name__}")
                    self.params_from_config.update(page_content)
        except (yaml.YAMLError, ValueError, TypeError) as e:
            self.elog(FAULT_MAPPING["yaml_file_parse_issue"].format(file_path=file_path))
            self.elog(f"Error details:\n{e}")
            if not self.default_config_file:
                exit(1)
            self.params_from_config = {}
        except IOError:
            self.elog(FAULT_MAPPING["file_open_issue"].format(file_path=file_path))
            if not self.default_config_file:
                exit(1)
            self.params_from_config = {}


pass_environment = click.make_pass_decorator(Environment, ensure=True)


class StepDiagCLI(click.Group):
    def __init__(self, *args, **kwargs):
        # invoke_without_command=True so that running without a command prints the tool description
        super().__init__(*args, invoke_without_command=True, **kwargs)

    def list_commands(self, context: click.Context):
        commands = []
        for filename in cmd_folder.iterdir():
            if filename.name.endswith(".py") and filename.name.startswith("cmd_"):
                commands.append(filename.name[4:-3])
        commands.sort()
        return commands

    def get_command(self, context: click.Context, name: str):
        try:
            mod = __import__(f"stepdiag.commands.cmd_{name}", None, None, ["cli"])
        except ImportError:
            return None
        return mod.cli


@click.command(cls=StepDiagCLI, context_settings=CONTEXT_SETTINGS)
@click.pass_context
@pass_environment
@click.option(
    "-c",
    "--config",
    type=click.Path(),
    metavar="",
    help="Optional path to a stepdiag YAML configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show progress and details while diagnosing.")
@click.option(
    "-s",
    "--silent",
    flag_value=True,
    is_flag=True,
    help="Silence stdout",
    default=False,
)
def cli(environment: Environment, context: click.Context, *args, **kwargs):
    """stepdiag - Gherkin step definition diagnostics"""
    if not context.invoked_subcommand:
        if not sys.argv[1:]:
            click.echo(TOOL_VERSION)
            click.echo(TOOL_USAGE)
            exit(0)
        click.echo(MISSING_COMMAND_SLOGAN)
        exit(2)

    environment.parse_config_file(context)
    environment.set_parameters(context)
    LoggingConfig.setup_logging(config_path=str(environment.config) if environment.config else None)
