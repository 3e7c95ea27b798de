"""The `create` workflow: task graph, run and final report.

Task graph:

    checkPreconditions
    gatherProjectInfo
      └─ createScaffold
           ├─ initLocalRepo
           │    └─ createHostedRemote
           │         └─ configureCoverage
           │              └─ configureCI (also needs createHostedRemote)
           │                   └─ pushCode
           └─ installDependencies
"""

from __future__ import annotations

from functools import partial
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from repokit.core import console as console_module
from repokit.core.config import AppConfig
from repokit.core.console import get_logger
from repokit.core.graph import ExecutionState, Orchestrator, RunReport, TaskSpec
from repokit.core.result import Err, Ok
from repokit.workflow import steps
from repokit.workflow.context import ProjectContext
from repokit.workflow.steps import Services

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_task_map(services: Services) -> dict[str, TaskSpec]:
    def spec(fn: steps.Step, *depends_on: str) -> TaskSpec:
        return TaskSpec(depends_on=depends_on, fn=partial(fn, services))

    return {
        "checkPreconditions": spec(steps.check_preconditions),
        "gatherProjectInfo": spec(steps.gather_project_info),
        "createScaffold": spec(steps.create_scaffold, "gatherProjectInfo"),
        "initLocalRepo": spec(steps.init_local_repo, "createScaffold"),
        "createHostedRemote": spec(steps.create_hosted_remote, "initLocalRepo"),
        "configureCoverage": spec(steps.configure_coverage, "createHostedRemote"),
        "configureCI": spec(steps.configure_ci, "configureCoverage", "createHostedRemote"),
        "installDependencies": spec(steps.install_dependencies, "createScaffold"),
        "pushCode": spec(steps.push_code, "configureCI"),
    }


def print_summary(ctx: ProjectContext, out: Console) -> None:
    slug = ctx.github_remote
    out.print("")
    out.print("Successfully created")
    out.print("")
    out.print(f"  [green]- git remote:[/green] {ctx.git_remote}")
    out.print(f"  [green]- code base:[/green] {ctx.project_dir}")
    out.print(f"  [green]- github:[/green] https://github.com/{slug}")
    out.print(f"  [green]- travis:[/green] https://travis-ci.org/{slug}")
    out.print(f"  [green]- coveralls:[/green] https://coveralls.io/r/{slug}")
    out.print("")


def print_failure(report: RunReport, out: Console) -> None:
    out.print(f"[red]{escape(str(report.error))}[/red]")
    if report.failed_task:
        out.print(f"[red]Step failed:[/red] {report.failed_task}")
    completed = report.completed
    if completed:
        out.print(f"[dim]Completed steps: {', '.join(completed)}[/dim]")
    skipped = report.tasks_in(ExecutionState.PENDING)
    if skipped:
        out.print(f"[dim]Not started: {', '.join(skipped)}[/dim]")


async def run_create(
    config: AppConfig,
    parent_dir: Path,
    *,
    name: str | None = None,
    services: Services | None = None,
) -> int:
    """Run the whole workflow and return the process exit status."""
    services = services or Services.default(config)
    ctx = ProjectContext(parent_dir=parent_dir, name=name)
    orchestrator: Orchestrator[ProjectContext] = Orchestrator()

    result = await orchestrator.run(build_task_map(services), ctx)
    match result:
        case Ok(final):
            print_summary(final, services.out())
            return EXIT_OK
        case Err(err):
            logger.debug("create failed in %s: %s", orchestrator.report.failed_task, err)
            print_failure(orchestrator.report, console_module.stderr_console)
            return EXIT_FAILURE


__all__ = ["EXIT_FAILURE", "EXIT_OK", "build_task_map", "print_summary", "run_create"]
