"""
Top-level package for commit_splitter.

This package exposes the main CLI entry point via the
``commit_splitter.cli`` module and the library pipeline via
``commit_splitter.orchestrator``.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
