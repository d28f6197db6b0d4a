"""
Loads the step definitions that apply to one feature file.

Step definition files are compiled into a single bundle first, so that every syntax
error is reported at once, and then executed inside a Sandbox while a fresh registry
is active. The registry is finalized once all of them ran.
"""

import os
import sys
import traceback
import types
from dataclasses import dataclass, field
from importlib.abc import MetaPathFinder
from importlib.machinery import PathFinder, SourceFileLoader
from importlib.util import spec_from_file_location
from pathlib import Path
from unittest.mock import MagicMock

from beartype.typing import Iterable, List, Optional
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry

from stepdiag.data_classes.diagnostics_exception import CompilationError, DiagnosticsError, EvaluationError
from stepdiag.logging import get_logger
from stepdiag.registry.decorators import step_globals
from stepdiag.registry.registry import Registry, with_registry

logger = get_logger("stepdiag.loader")


@dataclass
class CompilerMessage:
    """Structured compile failure of one step definition file"""

    source: str
    line: Optional[int]
    column: Optional[int]
    message: str

    def __str__(self):
        location = self.source
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return f"{location}: {self.message}"


@dataclass
class CompiledUnit:
    path: str
    module_name: str
    code: types.CodeType


@dataclass
class StepDefinitionBundle:
    units: List[CompiledUnit] = field(default_factory=list)

    @property
    def search_paths(self) -> List[str]:
        """Directories of the bundled files, so step files can import their neighbours"""
        paths = []
        for unit in self.units:
            directory = str(Path(unit.path).parent)
            if directory not in paths:
                paths.append(directory)
        return paths


def _module_name(path: str) -> str:
    """Name a sibling step file imports this one by, its directory is on sys.path while loading"""
    return Path(path).stem


def compile_step_definitions(paths: Iterable[str], feature_file: str = None) -> StepDefinitionBundle:
    bundle = StepDefinitionBundle()
    messages: List[CompilerMessage] = []
    for path in paths:
        try:
            with open(path, "r", encoding="utf-8") as f:
                source = f.read()
            code = compile(source, path, "exec")
        except SyntaxError as e:
            messages.append(CompilerMessage(source=path, line=e.lineno, column=e.offset, message=e.msg))
            continue
        except (OSError, UnicodeDecodeError, ValueError) as e:
            messages.append(CompilerMessage(source=path, line=None, column=None, message=str(e)))
            continue
        bundle.units.append(CompiledUnit(path=path, module_name=_module_name(path), code=code))
    if messages:
        for message in messages:
            logger.error("Step definition compile error", source=message.source, line=message.line, error=message.message)
        raise CompilationError(messages, feature_file=feature_file)
    return bundle


def _same_file(a: Optional[str], b: str) -> bool:
    return bool(a) and os.path.abspath(a) == os.path.abspath(b)


def _is_under(filename: str, directories: Iterable[str]) -> bool:
    filename = os.path.abspath(filename)
    return any(filename.startswith(os.path.join(directory, "")) for directory in directories)


class _StepModuleLoader(SourceFileLoader):
    def exec_module(self, module):
        module.__dict__.update(step_globals())
        super().exec_module(module)


class _StepModuleFinder(MetaPathFinder):
    """Gives project modules imported from the step definition directories the step decorators"""

    def __init__(self, directories: List[str]):
        self.directories = directories

    def find_spec(self, fullname, path=None, target=None):
        spec = PathFinder.find_spec(fullname, path, target)
        if spec is None or not isinstance(spec.loader, SourceFileLoader) or not _is_under(spec.origin, self.directories):
            return None
        return spec_from_file_location(
            fullname,
            spec.origin,
            loader=_StepModuleLoader(fullname, spec.origin),
            submodule_search_locations=spec.submodule_search_locations,
        )


class Sandbox:
    """
    Disposable execution context for user step definition code.

    While entered, the bundle's directories are importable and the configured stub
    modules stand in for libraries the steps import but diagnosis does not need.
    On exit sys.path and sys.modules are put back as they were.
    """

    def __init__(self, bundle: StepDefinitionBundle, stub_modules: Iterable[str] = ()):
        self.bundle = bundle
        self.stub_modules = list(stub_modules)
        self._saved_path: Optional[List[str]] = None
        self._saved_modules: Optional[set] = None
        self._finder: Optional[_StepModuleFinder] = None
        self._used = False

    def __enter__(self):
        if self._used:
            raise DiagnosticsError("A sandbox can only be used once")
        self._used = True
        self._saved_path = list(sys.path)
        self._saved_modules = set(sys.modules)
        sys.path[:0] = [path for path in self.bundle.search_paths if path not in sys.path]
        self._finder = _StepModuleFinder(self.bundle.search_paths)
        sys.meta_path.insert(0, self._finder)
        for name in self.stub_modules:
            self._install_stub(name)
        return self

    def __exit__(self, exc_type, exc_value, tb):
        if self._finder in sys.meta_path:
            sys.meta_path.remove(self._finder)
        self._finder = None
        sys.path[:] = self._saved_path
        for name in list(sys.modules):
            if name not in self._saved_modules and self._is_disposable(sys.modules[name]):
                del sys.modules[name]
        self._saved_path = None
        self._saved_modules = None
        return False

    def _is_disposable(self, module) -> bool:
        """Step modules, stubs and project modules imported by steps. Third-party libraries stay loaded."""
        if module is None or isinstance(module, MagicMock):
            return True
        filename = getattr(module, "__file__", None)
        return bool(filename) and _is_under(filename, self.bundle.search_paths)

    @staticmethod
    def _install_stub(name: str):
        parts = name.split(".")
        for depth in range(1, len(parts) + 1):
            module_name = ".".join(parts[:depth])
            if module_name not in sys.modules:
                stub = MagicMock(name=module_name)
                stub.__path__ = []
                sys.modules[module_name] = stub

    def run(self):
        if self._saved_modules is None:
            raise DiagnosticsError("Sandbox.run() must be called inside the sandbox context")
        for index, unit in enumerate(self.bundle.units):
            module_name = unit.module_name
            existing = sys.modules.get(module_name)
            if existing is not None:
                if _same_file(getattr(existing, "__file__", None), unit.path):
                    # Imported by a step file that ran earlier
                    continue
                module_name = f"stepdiag_steps_{index}_{module_name}"
            module = types.ModuleType(module_name)
            module.__file__ = unit.path
            module.__dict__.update(step_globals())
            sys.modules[module_name] = module
            try:
                exec(unit.code, module.__dict__)
            except Exception as e:
                reason = "".join(traceback.format_exception_only(type(e), e)).strip()
                logger.error("Step definition evaluation failed", exc_info=True, source=unit.path)
                raise EvaluationError(unit.path, reason) from e


def load_registry(
    paths: Iterable[str],
    parameter_type_registry: ParameterTypeRegistry,
    stub_modules: Iterable[str] = (),
    feature_file: str = None,
) -> Registry:
    """Compiles, executes and finalizes the step definitions in `paths`"""
    paths = [os.fspath(path) for path in paths]
    bundle = compile_step_definitions(paths, feature_file=feature_file)
    registry = Registry(parameter_type_registry)
    with with_registry(registry), Sandbox(bundle, stub_modules) as sandbox:
        sandbox.run()
    try:
        registry.finalize()
    except EvaluationError as e:
        logger.error("Step definition expression is invalid", source=e.source, error=e.reason)
        raise
    logger.debug(
        "Step definitions loaded",
        feature_file=feature_file,
        files=len(paths),
        definitions=len(registry.step_definitions),
    )
    return registry
