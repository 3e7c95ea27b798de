"""repokit - interactive project scaffolding for hosted repositories.

This package provides the `repokit` command-line tool, which generates a new
project from a template and wires it up to git, a hosted remote, CI and
coverage services.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
