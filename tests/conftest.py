from __future__ import annotations

import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from repokit.core.config import AppConfig, ToolsConfig  # noqa: E402
from repokit.core.process import CapturedOutput  # noqa: E402
from repokit.core.result import (  # noqa: E402
    ConfigMissingError,
    Err,
    Ok,
    ProcessError,
    RepokitError,
    Result,
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("REPOKIT_CONFIG", str(cfg_path))
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200)
    import repokit.core.console as core_console
    import repokit.main as repokit_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(core_console, "stderr_console", test_console)
    monkeypatch.setattr(repokit_main, "console", test_console)
    return test_console


class FakeRunner:
    """Records commands and answers them from a table of failures."""

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.calls: list[tuple[str, list[str], Path]] = []
        self.failures = failures or {}

    async def __call__(
        self, command: str, args: Sequence[str], cwd: Path
    ) -> Result[CapturedOutput, ProcessError]:
        self.calls.append((command, list(args), cwd))
        line = " ".join([command, *args])
        code = self.failures.get(line)
        if code is not None:
            return Err(ProcessError(f"{line} returned with code {code}", command=command, exit_code=code))
        return Ok(CapturedOutput())

    @property
    def command_lines(self) -> list[str]:
        return [" ".join([command, *args]) for command, args, _ in self.calls]


class FakeAsk:
    """Answers prompts from a queue and records the questions."""

    def __init__(self, answers: list[str]) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, message: str) -> str:
        self.questions.append(message)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.pop(0)


ConfigReader = Callable[[str], Awaitable[Result[str, RepokitError]]]


def config_reader(values: dict[str, str]) -> ConfigReader:
    async def _read(key: str) -> Result[str, RepokitError]:
        if key in values:
            return Ok(values[key])
        return Err(ConfigMissingError(f"please configure {key} in git"))

    return _read


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def offline_config() -> AppConfig:
    """Default config without the PATH check for external tools."""
    return AppConfig(tools=ToolsConfig(check_tools=False))


@pytest.fixture
def make_ask() -> Callable[[list[str]], FakeAsk]:
    return FakeAsk


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_config_reader() -> Callable[[dict[str, str]], ConfigReader]:
    return config_reader
