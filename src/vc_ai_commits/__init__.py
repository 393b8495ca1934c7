"""
Top-level package for vc_ai_commits.

This package exposes the main CLI entry point via the
``vc_ai_commits.cli`` module.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
