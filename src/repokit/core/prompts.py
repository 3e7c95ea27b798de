"""Interactive prompt sessions.

A PromptSession is an ordered list of items: informational text, free-text
questions, validated questions and fixed-choice questions. Running the session
asks each question in order and returns the answers verbatim.

Usage:
    session = PromptSession()
    session.add_text("")
    session.add_input("What is your project called?", validate_project_name)
    session.add_choice("Did you turn on coveralls?", ["y", "n"])
    name, answer = await session.run()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from repokit.core import console as console_module
from repokit.core.console import get_logger
from repokit.core.result import ValidationError

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one answer."""

    success: bool
    error: str = ""


Validator = Callable[[str], ValidationResult]
AskFn = Callable[[str], str]


@dataclass(frozen=True, slots=True)
class PromptItem:
    kind: Literal["text", "input", "choice"]
    message: str
    validator: Validator | None = None
    choices: tuple[str, ...] = ()

    @property
    def expects_answer(self) -> bool:
        return self.kind != "text"


def _choices_validator(choices: Sequence[str]) -> Validator:
    allowed = tuple(choices)

    def _validate(answer: str) -> ValidationResult:
        if answer in allowed:
            return ValidationResult(success=True)
        return ValidationResult(success=False, error=f"Please answer one of: {', '.join(allowed)}")

    return _validate


@dataclass
class PromptSession:
    """Ordered question/answer exchange with re-prompting on invalid input.

    Args:
        ask: Blocking function reading one answer for a message. Defaults to
            rich's Prompt.ask on the shared console.
        console: Console used for text items and validation errors.
        lock: Optional lock shared between sessions so two running sessions
            never interleave their questions.
    """

    ask: AskFn | None = None
    console: Console | None = None
    lock: asyncio.Lock | None = None
    items: list[PromptItem] = field(default_factory=list)

    def add_text(self, message: str) -> PromptSession:
        self.items.append(PromptItem(kind="text", message=message))
        return self

    def add_input(self, message: str, validator: Validator | None = None) -> PromptSession:
        self.items.append(PromptItem(kind="input", message=message, validator=validator))
        return self

    def add_choice(self, message: str, choices: Sequence[str]) -> PromptSession:
        if not choices:
            raise ValueError("A choice prompt needs at least one option")
        self.items.append(
            PromptItem(
                kind="choice",
                message=message,
                validator=_choices_validator(choices),
                choices=tuple(choices),
            )
        )
        return self

    def _console(self) -> Console:
        return self.console or console_module.console

    def _ask(self, message: str) -> str:
        if self.ask is not None:
            return self.ask(message)
        return Prompt.ask(message, console=self._console(), default="", show_default=False)

    def _ask_item(self, item: PromptItem) -> str:
        message = item.message
        if item.choices:
            message = f"{message} {escape('[' + '/'.join(item.choices) + ']')}"
        while True:
            answer = self._ask(message)
            if item.validator is None:
                return answer
            try:
                verdict = item.validator(answer)
            except ValidationError as exc:
                verdict = ValidationResult(success=False, error=exc.message)
            if verdict.success:
                return answer
            logger.debug("Rejected answer for %r: %s", item.message, verdict.error)
            self._console().print(f"[red]{verdict.error}[/red]")

    def _run_blocking(self) -> list[str]:
        answers: list[str] = []
        for item in self.items:
            if not item.expects_answer:
                self._console().print(item.message)
                continue
            answers.append(self._ask_item(item))
        return answers

    async def run(self) -> list[str]:
        """Ask every question in order and return the answers.

        Input is read in a worker thread so other tasks keep running on the
        event loop while the user types.
        """
        if self.lock is None:
            return await asyncio.to_thread(self._run_blocking)
        async with self.lock:
            return await asyncio.to_thread(self._run_blocking)


__all__ = ["AskFn", "PromptItem", "PromptSession", "ValidationResult", "Validator"]
