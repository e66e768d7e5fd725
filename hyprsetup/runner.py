"""
Argument parsing and task orchestration.

Selective mode runs the requested tasks in the order given. Full mode walks
the task table and asks before each task. Either way pre-flight checks run
first, exactly once.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from hyprsetup import LOGGER_NAME
from hyprsetup import tasks as registry
from hyprsetup.context import RunContext
from hyprsetup.errors import UsageError, UserAbort
from hyprsetup.prompt import MandatoryPrompt, Response, ask
from hyprsetup.tasks import PRE_FLIGHT, Task
from hyprsetup.ui import print_docs, print_info, print_step, print_success, print_summary, print_warning

logger = logging.getLogger(LOGGER_NAME)

RUN = "run"
HELP = "help"
DOCS = "docs"
TASK_DOCS = "task-docs"

SUCCESS = "success"
SATISFIED = "satisfied"
SKIPPED = "skipped"
NOT_APPLICABLE = "not applicable"
FAILED = "failed"


@dataclass
class Invocation:
    """What the command line asked for."""

    action: str = RUN
    tasks: List[str] = field(default_factory=list)
    debug: bool = False
    docs_task: Optional[str] = None

    @property
    def run_all(self) -> bool:
        return not self.tasks


def parse_arguments(tokens: Sequence[str], tasks: Optional[Iterable[Task]] = None) -> Invocation:
    """
    Parse command-line tokens left to right.

    `--<task> --docs` requests that task's documentation; `--help` and a bare
    `--docs` stop parsing immediately.

    Raises:
        UsageError: On the first token that is not a known flag
    """
    known = {task.flag: task.name for task in (tasks if tasks is not None else registry.TASKS)}
    invocation = Invocation()
    tokens = list(tokens)
    for i, token in enumerate(tokens):
        if token in known:
            if i + 1 < len(tokens) and tokens[i + 1] == "--docs":
                return Invocation(action=TASK_DOCS, docs_task=known[token], debug=invocation.debug)
            invocation.tasks.append(known[token])
        elif token == "--debug":
            invocation.debug = True
        elif token == "--help":
            invocation.action = HELP
            return invocation
        elif token == "--docs":
            invocation.action = DOCS
            return invocation
        else:
            raise UsageError(token)
    return invocation


class TaskRunner:
    def __init__(self, ctx: RunContext, tasks: Optional[Iterable[Task]] = None):
        self.ctx = ctx
        self.tasks = list(tasks) if tasks is not None else list(registry.TASKS)
        self.results: List[Tuple[str, str, Optional[float]]] = []
        self._pre_flight_done = False

    def get_task(self, name: str) -> Task:
        for task in self.tasks:
            if task.name == name:
                return task
        raise KeyError(name)

    def record(self, task: Task, status: str, elapsed: Optional[float] = None) -> None:
        self.results.append((task.title, status, elapsed))

    def run_task(self, task: Task) -> None:
        """Run one task, timing it and recording the outcome for the summary."""
        logger.info(f"Starting: {task.title}...")
        start = time.monotonic()
        try:
            task.action(self.ctx)
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(f"✗ Failed: {task.title} (after {elapsed:.2f}s): {e}")
            logger.debug("Traceback:", exc_info=True)
            self.record(task, FAILED, elapsed)
            raise
        elapsed = time.monotonic() - start
        logger.info(f"✓ Finished: {task.title} (took {elapsed:.2f}s)")
        self.record(task, SUCCESS, elapsed)
        if task.name == PRE_FLIGHT:
            self._pre_flight_done = True

    def run_pre_flight(self) -> None:
        if not self._pre_flight_done:
            self.run_task(self.get_task(PRE_FLIGHT))

    def run_selected(self, names: Sequence[str]) -> None:
        self.run_pre_flight()
        for name in names:
            if name == PRE_FLIGHT:
                continue
            self.run_task(self.get_task(name))

    def _show_docs(self, task: Task) -> None:
        print_step(task.title)
        print_docs(task.docs, indent=2)

    def run_all(self) -> None:
        pre_flight = self.get_task(PRE_FLIGHT)
        self._show_docs(pre_flight)
        if ask(f"Run {pre_flight.title}?", MandatoryPrompt) is Response.ABORT:
            raise UserAbort("Setup aborted by user.")
        self.run_pre_flight()

        print_step("Starting Full Interactive Installation")
        print_info("For each task, press Enter to run it, 's' to skip it or 'a' to abort.")
        for task in self.tasks:
            if task.name == PRE_FLIGHT:
                continue
            if not task.is_applicable(self.ctx):
                print_warning(f"{task.title} does not apply to this system. Skipping.")
                self.record(task, NOT_APPLICABLE)
                continue
            if task.is_satisfied(self.ctx):
                print_success(f"{task.title} is already done. Skipping.")
                self.record(task, SATISFIED)
                continue
            self._show_docs(task)
            response = ask(f"Run {task.title}?")
            if response is Response.ABORT:
                raise UserAbort("Setup aborted by user.")
            if response is Response.SKIP:
                print_info(f"Skipped {task.title}.")
                self.record(task, SKIPPED)
                continue
            self.run_task(task)

    def run(self, invocation: Invocation) -> None:
        """Run the invocation and print the summary, even when a task fails."""
        try:
            if invocation.run_all:
                self.run_all()
            else:
                self.run_selected(invocation.tasks)
        finally:
            if self.results:
                print_summary(self.results)
        print_step("Run Complete!")
        print_success("All requested tasks finished successfully.")
        print_warning("A final reboot is highly recommended to apply all changes.")
