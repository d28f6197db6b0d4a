import glob
import os
from fnmatch import fnmatch
from pathlib import Path

from beartype.typing import Iterable, List

from stepdiag.data_classes.diagnostics_exception import DiagnosticsError
from stepdiag.data_classes.project_configuration import ProjectConfiguration
from stepdiag.settings import FEATURE_EXTENSION


def _glob_files(pattern: str) -> List[str]:
    return sorted(path for path in glob.glob(pattern, recursive=True) if os.path.isfile(path))


def get_test_files(configuration: ProjectConfiguration) -> List[str]:
    """Absolute paths of all files selected by the `features` patterns, minus the excluded ones"""
    root = configuration.root
    excluded = [str(root / pattern) for pattern in configuration.exclude_features]
    test_files = []
    for pattern in configuration.features:
        for path in _glob_files(str(root / pattern)):
            path = os.path.abspath(path)
            if any(fnmatch(path, exclude) for exclude in excluded):
                continue
            if path not in test_files:
                test_files.append(path)
    return sorted(test_files)


def trim_feature_extension(path: str) -> str:
    return path[: -len(FEATURE_EXTENSION)] if path.endswith(FEATURE_EXTENSION) else path


def path_parts(relative_path: str) -> List[str]:
    """`a/b/c` -> [`a/b/c`, `a/b`, `a`, ``]"""
    parts = Path(relative_path).parts
    return ["/".join(parts[:depth]) for depth in range(len(parts), -1, -1)]


def get_step_definition_patterns(configuration: ProjectConfiguration, feature_path: str) -> List[str]:
    """
    Glob patterns of the step definitions applying to `feature_path`.

    `[filepath]` is the feature path relative to the project root without its
    extension, `[filepart]` yields one pattern per ancestor of that path.
    """
    root = configuration.root
    feature = Path(feature_path).resolve()
    try:
        relative = feature.relative_to(root)
    except ValueError:
        raise DiagnosticsError(f"{feature_path} is not a subpath of {root}") from None

    replacement = glob.escape(trim_feature_extension(relative.as_posix()))

    patterns = []
    for pattern in configuration.step_definitions:
        if "[filepart]" in pattern:
            expanded = [pattern.replace("[filepart]", part) for part in path_parts(replacement)]
        elif "[filepath]" in pattern:
            expanded = [pattern.replace("[filepath]", replacement)]
        else:
            expanded = [pattern]
        patterns.extend(os.path.normpath(os.path.join(str(root), candidate.lstrip("/"))) for candidate in expanded)
    return patterns


def get_step_definition_paths(patterns: Iterable[str]) -> List[str]:
    paths = []
    for pattern in patterns:
        for path in _glob_files(pattern):
            path = os.path.abspath(path)
            if path not in paths:
                paths.append(path)
    return paths
