"""Template generator.

Copies a template directory into a new project directory. File and directory
names may contain Jinja2 expressions (e.g. `src/{{ package }}`); files ending
in `.j2` are rendered and lose the suffix, everything else is copied as-is.

Template variables:
    name: project name
    description: one-line project description
    package: importable package name (name with "-" replaced by "_")
    year: current year
"""

from __future__ import annotations

import shutil
from datetime import date
from pathlib import Path

from jinja2 import TemplateError

from repokit.core.console import get_logger
from repokit.core.result import Err, Ok, Result, ScaffoldError
from repokit.core.templates import get_template_environment, render_string, resolve_template_root

logger = get_logger(__name__)

RENDER_SUFFIX = ".j2"


def template_variables(name: str, description: str) -> dict[str, object]:
    return {
        "name": name,
        "description": description,
        "package": name.replace("-", "_"),
        "year": date.today().year,
    }


def generate(
    template_name: str,
    source_dir: Path | None,
    target_name: str,
    description: str,
    parent_dir: Path,
) -> Result[Path, ScaffoldError]:
    """Write a new project from a template.

    Args:
        template_name: Template directory name, e.g. "github"
        source_dir: Directory holding custom templates, or None for bundled ones
        target_name: Project name; also the name of the new directory
        description: Project description
        parent_dir: Directory the project is created in

    Returns:
        Ok(path of the new project) or Err(ScaffoldError)
    """
    try:
        template_root = resolve_template_root(template_name, source_dir)
    except FileNotFoundError as exc:
        return Err(ScaffoldError(str(exc), context={"template": template_name}))

    target = parent_dir / target_name
    if target.exists():
        return Err(ScaffoldError(f"{target} already exists", context={"template": template_name}))

    env = get_template_environment(template_root)
    variables = template_variables(target_name, description)

    try:
        for source in sorted(template_root.rglob("*")):
            if source.is_dir():
                continue
            relative = source.relative_to(template_root).as_posix()
            rendered_path = render_string(env, relative, variables)
            destination = target / rendered_path
            destination.parent.mkdir(parents=True, exist_ok=True)

            if destination.suffix == RENDER_SUFFIX:
                destination = destination.with_suffix("")
                content = env.get_template(relative).render(**variables)
                destination.write_text(content, encoding="utf-8")
            else:
                shutil.copyfile(source, destination)
            logger.debug("Wrote %s", destination)
    except TemplateError as exc:
        shutil.rmtree(target, ignore_errors=True)
        return Err(
            ScaffoldError(f"Template {template_name} failed to render: {exc}", context={"file": relative})
        )
    except OSError as exc:
        shutil.rmtree(target, ignore_errors=True)
        return Err(ScaffoldError(f"Could not write {target}: {exc}"))

    return Ok(target)


__all__ = ["generate", "template_variables"]
