"""Git and code-hosting adapters used by the workflow steps."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from repokit.core.process import CapturedOutput
from repokit.core.result import ConfigMissingError, Err, Ok, ProcessError, RepokitError, Result

Runner = Callable[[str, Sequence[str], Path], Awaitable[Result[CapturedOutput, ProcessError]]]
ConfigReader = Callable[[str], Awaitable[Result[str, RepokitError]]]

INITIAL_COMMIT_MESSAGE = "initial commit"


@dataclass(frozen=True, slots=True)
class HostedRemote:
    host: str
    user: str
    project: str

    @property
    def slug(self) -> str:
        return f"{self.user}/{self.project}"

    @property
    def ssh_url(self) -> str:
        return f"git@{self.host}:{self.slug}"


async def read_git_config(key: str, *, git: str = "git") -> Result[str, RepokitError]:
    """Read a value from the global git config.

    Returns Err(ConfigMissingError) when the key is unset or empty.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            git,
            "config",
            "--global",
            key,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        return Err(
            ProcessError(f"{git} config could not be started: {exc}", command=git, spawn_failure=True)
        )

    stdout, _ = await process.communicate()
    value = stdout.decode("utf-8", errors="replace").strip()
    if process.returncode != 0 or not value:
        return Err(ConfigMissingError(f"please configure {key} in git", context={"key": key}))
    return Ok(value)


async def run_git(
    runner: Runner, args: Sequence[str], cwd: Path, *, git: str = "git"
) -> Result[CapturedOutput, ProcessError]:
    return await runner(git, list(args), cwd)


async def init_repo(runner: Runner, cwd: Path, *, git: str = "git") -> Result[CapturedOutput, ProcessError]:
    return await run_git(runner, ["init"], cwd, git=git)


async def push_initial_commit(
    runner: Runner, cwd: Path, *, git: str = "git"
) -> Result[None, ProcessError]:
    """Stage everything, commit and push to origin master, stopping at the first failure."""
    steps: list[list[str]] = [
        ["add", "--all"],
        ["commit", "--all", "--message", INITIAL_COMMIT_MESSAGE],
        ["push", "origin", "master"],
    ]
    for args in steps:
        match await run_git(runner, args, cwd, git=git):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass
    return Ok(None)


async def create_hosted_remote(
    runner: Runner,
    read_config: ConfigReader,
    *,
    cli: str,
    host: str,
    user_key: str,
    project: str,
    cwd: Path,
) -> Result[HostedRemote, RepokitError]:
    """Create `<user>/<project>` on the hosting service with its CLI."""
    match await read_config(user_key):
        case Err(err):
            return Err(err)
        case Ok(user):
            remote = HostedRemote(host=host, user=user.strip(), project=project)

    match await runner(cli, ["create", remote.slug], cwd):
        case Err(err):
            return Err(err)
        case Ok(_):
            return Ok(remote)


__all__ = [
    "ConfigReader",
    "HostedRemote",
    "INITIAL_COMMIT_MESSAGE",
    "Runner",
    "create_hosted_remote",
    "init_repo",
    "push_initial_commit",
    "read_git_config",
    "run_git",
]
