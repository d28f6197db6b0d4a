"""
Public API for step definition files.

    from stepdiag.steps import given, when, then

The same names are also available in step definition files without an import.
"""

from stepdiag.registry.decorators import define_parameter_type, given, step, then, when

__all__ = ["given", "when", "then", "step", "define_parameter_type"]
