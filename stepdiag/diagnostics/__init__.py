from stepdiag.diagnostics.diagnose import diagnose

__all__ = ["diagnose"]
