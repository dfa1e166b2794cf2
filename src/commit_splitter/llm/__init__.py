"""
LLM integration for commit_splitter.

This package provides a minimal Ollama HTTP client, the grouping prompt,
and the grouping oracle built on top of them.
"""

from .grouping_oracle import OllamaGroupingOracle  # noqa: F401
from .ollama_client import OllamaClient  # noqa: F401
