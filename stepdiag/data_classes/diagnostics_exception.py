from beartype.typing import List


class DiagnosticsError(Exception):
    """Raised when collaborators hand the diagnostics engine something it cannot reconcile.

    Every subclass is fatal for the whole run.
    """


class RegistryError(DiagnosticsError):
    """Raised when a step definition registry is used outside of its lifecycle."""


class CompilationError(DiagnosticsError):
    """Exception raised when step definition files can not be compiled.

    Attributes:
        feature_file: feature file whose step definitions were being compiled
        messages: list of CompilerMessage describing every failure
    """

    def __init__(self, messages: List, feature_file: str = None):
        self.messages = messages
        self.feature_file = feature_file
        target = f" of {feature_file}" if feature_file else ""
        super().__init__(f"Failed to compile step definitions{target} ({len(messages)} error(s))")


class EvaluationError(DiagnosticsError):
    """Exception raised when step definition code throws while it is being harvested.

    Attributes:
        source: step definition file that was executing, if known
        reason: formatted error of the original exception
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to evaluate step definitions in {source}. {reason}")
