#!/usr/bin/env python
"""
Thin wrapper script to invoke the commit_splitter CLI.

Running ``python aisplit.py`` is equivalent to running the
``aisplit`` console script installed via ``pyproject.toml``.
"""

from commit_splitter.cli import main


if __name__ == "__main__":
    main(prog_name="aisplit")
