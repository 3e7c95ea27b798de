"""Shared state threaded through one `create` run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ProjectContext:
    """Fields filled in as the workflow progresses.

    Tasks only ever set fields. Each field is written by the task that owns
    that step and read by the tasks that declare it as a dependency.
    """

    parent_dir: Path
    name: str | None = None
    description: str | None = None
    git_remote: str | None = None
    github_remote: str | None = None
    coverage_enabled: bool | None = None
    dependencies_installed: bool = False
    verified_tools: list[str] = field(default_factory=list)

    @property
    def project_dir(self) -> Path:
        if not self.name:
            raise RuntimeError("Project name has not been gathered yet")
        return self.parent_dir / self.name
