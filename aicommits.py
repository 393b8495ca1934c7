#!/usr/bin/env python
"""
Thin wrapper script to invoke the vc_ai_commits CLI.

Running ``python aicommits.py`` is equivalent to running the
``aicommits`` console script installed via ``pyproject.toml``.
"""

from vc_ai_commits.cli import main


if __name__ == "__main__":
    main(prog_name="aicommits")
