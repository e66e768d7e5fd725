"""
Tests for argument parsing and task orchestration.
"""

import pytest

from hyprsetup import runner
from hyprsetup.errors import TaskError, UsageError, UserAbort
from hyprsetup.prompt import Response
from hyprsetup.runner import (
    DOCS,
    FAILED,
    HELP,
    NOT_APPLICABLE,
    RUN,
    SATISFIED,
    SKIPPED,
    SUCCESS,
    TASK_DOCS,
    TaskRunner,
    parse_arguments,
)
from hyprsetup.tasks import Task


class TestParseArguments:
    """Left-to-right flag parsing."""

    def test_no_flags_is_full_mode(self):
        invocation = parse_arguments([])
        assert invocation.action == RUN
        assert invocation.run_all
        assert not invocation.debug

    def test_tasks_keep_user_order(self):
        invocation = parse_arguments(["--cleanup", "--initial-setup", "--cleanup"])
        assert invocation.tasks == ["cleanup", "initial-setup", "cleanup"]
        assert not invocation.run_all

    def test_debug(self):
        invocation = parse_arguments(["--debug", "--setup-nix"])
        assert invocation.debug
        assert invocation.tasks == ["setup-nix"]

    def test_task_docs(self):
        invocation = parse_arguments(["--setup-editors", "--docs"])
        assert invocation.action == TASK_DOCS
        assert invocation.docs_task == "setup-editors"

    def test_task_docs_stops_parsing(self):
        invocation = parse_arguments(["--setup-editors", "--docs", "--bogus"])
        assert invocation.action == TASK_DOCS

    def test_bare_docs(self):
        assert parse_arguments(["--docs"]).action == DOCS

    def test_docs_before_task_is_full_docs(self):
        assert parse_arguments(["--docs", "--setup-nix"]).action == DOCS

    def test_help_stops_parsing(self):
        assert parse_arguments(["--help", "--bogus"]).action == HELP

    def test_unknown_flag(self):
        with pytest.raises(UsageError) as excinfo:
            parse_arguments(["--setup-nix", "--bogus"])
        assert excinfo.value.flag == "--bogus"
        assert "Unknown flag: --bogus" in str(excinfo.value)

    def test_positional_argument_is_unknown(self):
        with pytest.raises(UsageError):
            parse_arguments(["setup-nix"])


def _make_tasks(calls, satisfied=(), not_applicable=(), failing=()):
    def action_for(name):
        def action(ctx):
            calls.append(name)
            if name in failing:
                raise TaskError(f"{name} broke")
        return action

    names = ["pre-flight-checks", "initial-setup", "setup-editors", "cleanup"]
    return [
        Task(
            name,
            name.replace("-", " ").title(),
            f"Summary of {name}",
            action_for(name),
            satisfied=(lambda ctx: True) if name in satisfied else None,
            applicable=(lambda ctx: False) if name in not_applicable else None,
        )
        for name in names
    ]


@pytest.fixture
def answers(monkeypatch):
    """Script prompt answers for full mode."""
    queue = []
    asked = []

    def fake_ask(question, prompt_cls=None, stream=None):
        asked.append(question)
        return queue.pop(0)

    monkeypatch.setattr(runner, "ask", fake_ask)
    return queue, asked


class TestSelectiveMode:
    """Requested tasks run in order, after pre-flight."""

    def test_pre_flight_runs_first(self, ctx):
        calls = []
        task_runner = TaskRunner(ctx, _make_tasks(calls))
        task_runner.run_selected(["setup-editors", "initial-setup"])
        assert calls == ["pre-flight-checks", "setup-editors", "initial-setup"]

    def test_pre_flight_runs_once(self, ctx):
        calls = []
        task_runner = TaskRunner(ctx, _make_tasks(calls))
        task_runner.run_selected(["cleanup", "pre-flight-checks", "pre-flight-checks"])
        assert calls == ["pre-flight-checks", "cleanup"]

    def test_repeated_tasks_run_again(self, ctx):
        calls = []
        TaskRunner(ctx, _make_tasks(calls)).run_selected(["cleanup", "cleanup"])
        assert calls == ["pre-flight-checks", "cleanup", "cleanup"]

    def test_failure_stops_the_run(self, ctx):
        calls = []
        task_runner = TaskRunner(ctx, _make_tasks(calls, failing={"initial-setup"}))
        with pytest.raises(TaskError):
            task_runner.run_selected(["initial-setup", "cleanup"])
        assert calls == ["pre-flight-checks", "initial-setup"]
        assert task_runner.results[-1][1] == FAILED

    def test_selective_mode_ignores_satisfied(self, ctx):
        calls = []
        tasks = _make_tasks(calls, satisfied={"cleanup"})
        TaskRunner(ctx, tasks).run_selected(["cleanup"])
        assert calls == ["pre-flight-checks", "cleanup"]


class TestFullMode:
    """Walking the task table with a prompt per task."""

    def test_abort_at_first_prompt_runs_nothing(self, ctx, answers):
        queue, asked = answers
        queue.append(Response.ABORT)
        calls = []
        with pytest.raises(UserAbort):
            TaskRunner(ctx, _make_tasks(calls)).run_all()
        assert calls == []
        assert len(asked) == 1

    def test_runs_every_task_in_order(self, ctx, answers):
        queue, _ = answers
        queue.extend([Response.YES] * 4)
        calls = []
        TaskRunner(ctx, _make_tasks(calls)).run_all()
        assert calls == ["pre-flight-checks", "initial-setup", "setup-editors", "cleanup"]

    def test_skip_and_abort_later(self, ctx, answers):
        queue, _ = answers
        queue.extend([Response.YES, Response.SKIP, Response.ABORT])
        calls = []
        task_runner = TaskRunner(ctx, _make_tasks(calls))
        with pytest.raises(UserAbort):
            task_runner.run_all()
        assert calls == ["pre-flight-checks"]
        assert [status for _, status, _ in task_runner.results] == [SUCCESS, SKIPPED]

    def test_satisfied_and_not_applicable_are_not_asked(self, ctx, answers):
        queue, asked = answers
        queue.extend([Response.YES, Response.YES])
        calls = []
        tasks = _make_tasks(calls, satisfied={"initial-setup"}, not_applicable={"setup-editors"})
        task_runner = TaskRunner(ctx, tasks)
        task_runner.run_all()
        assert calls == ["pre-flight-checks", "cleanup"]
        assert len(asked) == 2
        statuses = [status for _, status, _ in task_runner.results]
        assert statuses == [SUCCESS, SATISFIED, NOT_APPLICABLE, SUCCESS]

    def test_run_prints_summary_on_failure(self, ctx, answers, capsys):
        queue, _ = answers
        queue.extend([Response.YES, Response.YES])
        calls = []
        task_runner = TaskRunner(ctx, _make_tasks(calls, failing={"initial-setup"}))
        with pytest.raises(TaskError):
            task_runner.run(parse_arguments([]))
        out = capsys.readouterr().out
        assert "Setup Summary" in out
        assert "FAILED" in out
