"""Task bodies for the `create` workflow.

Each step takes the collaborators it needs (`Services`) and the shared
`ProjectContext`, performs one piece of work and returns a Result. Steps only
set the context fields they own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

from rich.console import Console

from repokit.core import console as console_module
from repokit.core.config import AppConfig
from repokit.core.console import get_logger
from repokit.core.diagnostics import missing_tools, tools_for
from repokit.core.process import run_command
from repokit.core.prompts import AskFn, PromptSession
from repokit.core.result import ConfigMissingError, Err, Ok, RepokitError, Result
from repokit.workflow import scaffold, vcs
from repokit.workflow.context import ProjectContext
from repokit.workflow.validation import validate_project_name

logger = get_logger(__name__)

StepResult = Result[None, RepokitError]

COVERALLS_NEW_REPO_URL = "https://coveralls.io/repos/new"


@dataclass
class Services:
    """Collaborators shared by all steps of one run.

    Tests replace `runner`, `read_config` and `ask` with fakes.
    """

    config: AppConfig
    runner: vcs.Runner
    read_config: vcs.ConfigReader
    ask: AskFn | None = None
    console: Console | None = None
    prompt_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @classmethod
    def default(cls, config: AppConfig) -> Services:
        return cls(
            config=config,
            runner=partial(run_command, timeout=config.tools.command_timeout),
            read_config=partial(vcs.read_git_config, git=config.tools.git),
        )

    def session(self) -> PromptSession:
        return PromptSession(ask=self.ask, console=self.console, lock=self.prompt_lock)

    def out(self) -> Console:
        return self.console or console_module.console


Step = Callable[[Services, ProjectContext], Awaitable[StepResult]]


async def check_preconditions(services: Services, ctx: ProjectContext) -> StepResult:
    if not services.config.tools.check_tools:
        return Ok(None)

    tools = tools_for(services.config)
    missing = missing_tools(tools)
    if missing:
        tool = missing[0]
        hint = f" ({tool.install_hint})" if tool.install_hint else ""
        return Err(
            ConfigMissingError(
                f"please install {tool.binary}{hint}",
                context={"missing": [t.binary for t in missing]},
            )
        )
    ctx.verified_tools = [tool.binary for tool in tools]
    return Ok(None)


async def gather_project_info(services: Services, ctx: ProjectContext) -> StepResult:
    """Ask for the project name (unless preset) and description.

    An empty description falls back to the name. The questions repeat until
    both values are present.
    """
    preset_name = ctx.name
    while True:
        session = services.session()
        session.add_text("")
        if not preset_name:
            session.add_input(
                " [green]*[/green] What is your project called?", validate_project_name
            )
        session.add_input(" [green]*[/green] What does your project do? (description)")
        answers = await session.run()

        if preset_name:
            name, description = preset_name, answers[0]
        else:
            name, description = answers[0].lower(), answers[1]
        description = description or name

        if name and description:
            ctx.name = name
            ctx.description = description
            return Ok(None)

        services.out().print("[red]Name and description are required![/red]")


async def create_scaffold(services: Services, ctx: ProjectContext) -> StepResult:
    assert ctx.name is not None and ctx.description is not None
    settings = services.config.scaffold
    result = await asyncio.to_thread(
        scaffold.generate,
        settings.template_name,
        settings.template_dir,
        ctx.name,
        ctx.description,
        ctx.parent_dir,
    )
    match result:
        case Err(err):
            return Err(err)
        case Ok(path):
            logger.info("Scaffolded %s", path)
            return Ok(None)


async def init_local_repo(services: Services, ctx: ProjectContext) -> StepResult:
    match await vcs.init_repo(services.runner, ctx.project_dir, git=services.config.tools.git):
        case Err(err):
            return Err(err)
        case Ok(_):
            return Ok(None)


async def create_hosted_remote(services: Services, ctx: ProjectContext) -> StepResult:
    assert ctx.name is not None
    hosting = services.config.hosting
    result = await vcs.create_hosted_remote(
        services.runner,
        services.read_config,
        cli=hosting.cli,
        host=hosting.host,
        user_key=hosting.user_config_key,
        project=ctx.name,
        cwd=ctx.project_dir,
    )
    match result:
        case Err(err):
            return Err(err)
        case Ok(remote):
            ctx.git_remote = remote.ssh_url
            ctx.github_remote = remote.slug
            return Ok(None)


async def configure_coverage(services: Services, ctx: ProjectContext) -> StepResult:
    """Walk the user through enabling coverage reporting.

    The answer is recorded but a "n" does not stop the run.
    """
    session = services.session()
    session.add_text(f"Setup coveralls. Go to {COVERALLS_NEW_REPO_URL} and add {ctx.name}")
    session.add_choice("Did you turn on coveralls?", ["y", "n"])
    (answer,) = await session.run()
    ctx.coverage_enabled = answer == "y"
    return Ok(None)


async def configure_ci(services: Services, ctx: ProjectContext) -> StepResult:
    ci_cli = services.config.tools.ci_cli
    for args in ([], ["test"]):
        match await services.runner(ci_cli, args, ctx.project_dir):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass
    return Ok(None)


async def install_dependencies(services: Services, ctx: ProjectContext) -> StepResult:
    command, *args = services.config.tools.install_command
    match await services.runner(command, args, ctx.project_dir):
        case Err(err):
            return Err(err)
        case Ok(_):
            ctx.dependencies_installed = True
            return Ok(None)


async def push_code(services: Services, ctx: ProjectContext) -> StepResult:
    match await vcs.push_initial_commit(
        services.runner, ctx.project_dir, git=services.config.tools.git
    ):
        case Err(err):
            return Err(err)
        case Ok(_):
            return Ok(None)
