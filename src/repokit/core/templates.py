"""Centralized Jinja2 template utilities.

This module provides:
- resolve_template_root: Find the directory holding a project template
- get_template_environment: Cached template environment factory
- render_string: Render a path or inline string with the same variables
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

BUNDLED_TEMPLATES = Path(__file__).resolve().parent.parent / "templates"


def resolve_template_root(template_name: str, custom_root: Path | None = None) -> Path:
    """Resolve the directory for a named template.

    Searches in order:
    1. custom_root/template_name if a custom root is provided
    2. Package templates directory (repokit/templates/template_name)

    Raises:
        FileNotFoundError: If no directory for the template exists.
    """
    candidates: list[Path] = []
    if custom_root is not None:
        candidates.append(custom_root / template_name)
    candidates.append(BUNDLED_TEMPLATES / template_name)

    for candidate in candidates:
        if candidate.is_dir():
            return candidate.resolve()

    searched = ", ".join(str(c) for c in candidates)
    raise FileNotFoundError(f"Template {template_name} not found (searched {searched})")


@lru_cache(maxsize=4)
def get_template_environment(template_root: Path) -> Environment:
    """Create or retrieve a cached Jinja2 Environment for a template directory."""
    return Environment(
        loader=FileSystemLoader(str(template_root)),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_string(env: Environment, source: str, context: dict[str, object]) -> str:
    """Render an inline template string (e.g. a file path) with the given context."""
    return env.from_string(source).render(**context)


__all__ = [
    "BUNDLED_TEMPLATES",
    "get_template_environment",
    "render_string",
    "resolve_template_root",
]
