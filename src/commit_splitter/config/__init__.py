"""
Configuration loading for commit_splitter.

Provides loaders for the oracle connection settings and the tuning
constants of the splitting engine. See
:mod:`commit_splitter.config.loader` for implementation details.
"""

from .loader import SplitSettings, load_config, load_settings  # noqa: F401
