"""External tool diagnostics.

Checks that the executables repokit shells out to are installed:
    - git
    - the hosting CLI (hub)
    - the CI CLI (travisify)
    - the dependency installer
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, Field

from repokit.core.config import AppConfig


class ExternalTool(BaseModel):
    name: str
    binary: str
    version_args: list[str] = Field(default_factory=lambda: ["--version"])
    required: bool = True
    install_hint: str | None = None


@dataclass
class ToolCheck:
    tool: ExternalTool
    status: str
    version: str | None
    message: str | None = None


def tools_for(config: AppConfig) -> list[ExternalTool]:
    """External tools needed by `repokit create` under the given config."""
    return [
        ExternalTool(
            name="Git",
            binary=config.tools.git,
            install_hint="Install via your package manager (brew, apt, etc.)",
        ),
        ExternalTool(
            name="Hosting CLI",
            binary=config.hosting.cli,
            install_hint="Install hub: https://hub.github.com",
        ),
        ExternalTool(
            name="CI CLI",
            binary=config.tools.ci_cli,
            version_args=["--help"],
            install_hint="npm install -g travisify",
        ),
        ExternalTool(
            name="Installer",
            binary=config.tools.install_command[0],
            install_hint="Install the package manager named in tools.install_command",
        ),
    ]


def select_tools(tools: list[ExternalTool], names: Iterable[str] | None) -> list[ExternalTool]:
    if not names:
        return tools

    requested = {name.lower() for name in names}
    selected = [
        tool
        for tool in tools
        if tool.name.lower() in requested or tool.binary.lower() in requested
    ]
    return selected or tools


def missing_tools(tools: Iterable[ExternalTool]) -> list[ExternalTool]:
    """Required tools that are not on PATH."""
    return [tool for tool in tools if tool.required and shutil.which(tool.binary) is None]


async def check_tool(tool: ExternalTool) -> ToolCheck:
    resolved = shutil.which(tool.binary)
    if not resolved:
        return ToolCheck(tool=tool, status="missing", version=None, message=tool.install_hint)

    try:
        process = await asyncio.create_subprocess_exec(
            resolved,
            *tool.version_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return ToolCheck(tool=tool, status="missing", version=None, message=tool.install_hint)

    stdout, stderr = await process.communicate()
    output = (stdout or b"").decode().strip() or (stderr or b"").decode().strip()
    version = output.splitlines()[0] if output else None

    if process.returncode != 0:
        return ToolCheck(
            tool=tool, status="error", version=version, message=output or "version command failed"
        )

    return ToolCheck(tool=tool, status="ok", version=version, message=None)


async def run_doctor(tools: list[ExternalTool]) -> list[ToolCheck]:
    tasks = [asyncio.create_task(check_tool(tool)) for tool in tools]
    return await asyncio.gather(*tasks)
