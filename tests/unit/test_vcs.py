from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from repokit.core.result import ConfigMissingError, Err, Ok
from repokit.workflow import vcs


@pytest.mark.asyncio
async def test_push_runs_git_commands_in_order(make_runner: Any, tmp_path: Path) -> None:
    runner = make_runner()

    assert await vcs.push_initial_commit(runner, tmp_path) == Ok(None)
    assert runner.command_lines == [
        "git add --all",
        "git commit --all --message initial commit",
        "git push origin master",
    ]
    assert all(cwd == tmp_path for _, _, cwd in runner.calls)


@pytest.mark.asyncio
async def test_push_stops_at_first_failure(make_runner: Any, tmp_path: Path) -> None:
    runner = make_runner({"git commit --all --message initial commit": 1})

    result = await vcs.push_initial_commit(runner, tmp_path)

    assert isinstance(result, Err)
    assert result.error.exit_code == 1
    assert runner.command_lines[-1].startswith("git commit")


@pytest.mark.asyncio
async def test_create_hosted_remote(make_runner: Any, make_config_reader: Any, tmp_path: Path) -> None:
    runner = make_runner()
    result = await vcs.create_hosted_remote(
        runner,
        make_config_reader({"user.name": "alice\n"}),
        cli="hub",
        host="github.com",
        user_key="user.name",
        project="my-app",
        cwd=tmp_path,
    )

    remote = result.unwrap()
    assert remote.ssh_url == "git@github.com:alice/my-app"
    assert remote.slug == "alice/my-app"
    assert runner.command_lines == ["hub create alice/my-app"]


@pytest.mark.asyncio
async def test_create_hosted_remote_needs_user(
    make_runner: Any, make_config_reader: Any, tmp_path: Path
) -> None:
    runner = make_runner()
    result = await vcs.create_hosted_remote(
        runner,
        make_config_reader({}),
        cli="hub",
        host="github.com",
        user_key="user.name",
        project="my-app",
        cwd=tmp_path,
    )

    assert isinstance(result, Err)
    assert isinstance(result.error, ConfigMissingError)
    assert result.error.message == "please configure user.name in git"
    assert runner.calls == []


@pytest.mark.asyncio
async def test_read_git_config_returns_value() -> None:
    mock_process = AsyncMock()
    mock_process.communicate = AsyncMock(return_value=(b"alice\n", b""))
    mock_process.returncode = 0

    with patch(
        "repokit.workflow.vcs.asyncio.create_subprocess_exec", return_value=mock_process
    ) as mock_subproc:
        result = await vcs.read_git_config("user.name")

    assert result == Ok("alice")
    assert mock_subproc.await_args.args == ("git", "config", "--global", "user.name")


@pytest.mark.asyncio
async def test_read_git_config_missing_key() -> None:
    mock_process = AsyncMock()
    mock_process.communicate = AsyncMock(return_value=(b"", b""))
    mock_process.returncode = 1

    with patch("repokit.workflow.vcs.asyncio.create_subprocess_exec", return_value=mock_process):
        result = await vcs.read_git_config("user.name")

    assert isinstance(result, Err)
    assert isinstance(result.error, ConfigMissingError)
    assert str(result.error).startswith("please configure user.name in git")
