"""
Tests for the command-line entry point.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from hyprsetup import system, tasks
from hyprsetup.cli import main
from hyprsetup.tasks import Task


@pytest.fixture
def env(setup_root: Path, current_user: str) -> dict:
    return {"HYPRSETUP_ROOT": str(setup_root), "HYPRSETUP_USER": current_user}


class TestInformational:
    """Help and documentation never start a run."""

    def test_help(self, env, setup_root):
        result = CliRunner().invoke(main, ["--help"], env=env)
        assert result.exit_code == 0
        assert "--setup-editors" in result.output
        assert "--docs" in result.output
        assert not (setup_root / "logs").exists()

    def test_full_docs(self, env, setup_root):
        result = CliRunner().invoke(main, ["--docs"], env=env)
        assert result.exit_code == 0
        assert "Full Documentation" in result.output
        assert "Setting Up Text Editors" in result.output
        assert "Applying System Security Hardening" in result.output
        assert not (setup_root / "logs").exists()

    @pytest.mark.parametrize("task", [task.name for task in tasks.TASKS])
    def test_task_docs(self, env, setup_root, task):
        result = CliRunner().invoke(main, [f"--{task}", "--docs"], env=env)
        assert result.exit_code == 0
        assert result.output.strip()
        assert not (setup_root / "logs").exists()

    def test_task_docs_prints_only_that_block(self, env):
        result = CliRunner().invoke(main, ["--setup-editors", "--docs"], env=env)
        assert result.exit_code == 0
        assert "Setting Up Text Editors" in result.output
        assert "Performing Pre-flight Safety Checks" not in result.output
        assert "Full Documentation" not in result.output


class TestUsageErrors:
    def test_unknown_flag(self, env, setup_root):
        result = CliRunner().invoke(main, ["--bogus"], env=env)
        assert result.exit_code == 1
        assert "Unknown flag: --bogus" in result.output
        assert "Usage:" in result.output
        assert not (setup_root / "logs").exists()

    def test_unknown_flag_after_task(self, env, setup_root):
        result = CliRunner().invoke(main, ["--setup-nix", "-x"], env=env)
        assert result.exit_code == 1
        assert not (setup_root / "logs").exists()


@pytest.fixture
def recorded_tasks(monkeypatch):
    """Replace the task table with tasks that only record that they ran."""
    order = []

    def make(name):
        return Task(name, name.title(), "test task", lambda ctx: order.append(name))

    monkeypatch.setattr(
        tasks, "TASKS", [make("pre-flight-checks"), make("setup-editors"), make("cleanup")]
    )
    return order


class TestRuns:
    def test_full_mode_abort_changes_nothing(self, env, setup_root, commands):
        result = CliRunner().invoke(main, [], env=env, input="a\n")
        assert result.exit_code == 1
        assert "Performing Pre-flight Safety Checks" in result.output
        assert commands.calls == []
        assert len(list((setup_root / "logs").glob("setup-log-*.log"))) == 1

    def test_full_mode_without_input_aborts(self, env, commands):
        result = CliRunner().invoke(main, [], env=env, input="")
        assert result.exit_code == 1
        assert commands.calls == []

    def test_selected_task_runs_after_pre_flight(self, env, setup_root, recorded_tasks):
        result = CliRunner().invoke(main, ["--setup-editors"], env=env)
        assert result.exit_code == 0, result.output
        assert recorded_tasks == ["pre-flight-checks", "setup-editors"]
        assert "reboot" in result.output

        log_file = next((setup_root / "logs").glob("setup-log-*.log"))
        log_text = log_file.read_text()
        assert "Starting: Setup-Editors..." in log_text
        assert "[INFO]" in log_text

    def test_debug_traces_commands(self, env, monkeypatch):
        def action(ctx):
            system.run_command(ctx, ["true"])

        monkeypatch.setattr(
            tasks, "TASKS", [Task("pre-flight-checks", "Pre-flight", "test task", action)]
        )
        result = CliRunner().invoke(main, ["--debug", "--pre-flight-checks"], env=env)
        assert result.exit_code == 0, result.output
        assert "Executing: true" in result.output

    def test_task_failure_exits_one(self, env, monkeypatch):
        def broken(ctx):
            system.run_command(ctx, ["false"])

        monkeypatch.setattr(
            tasks, "TASKS", [Task("pre-flight-checks", "Pre-flight", "test task", broken)]
        )
        result = CliRunner().invoke(main, ["--pre-flight-checks"], env=env)
        assert result.exit_code == 1
        assert "FAILED" in result.output

    def test_unexpected_error_is_reported(self, env, setup_root, monkeypatch):
        def denied(ctx):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(
            tasks, "TASKS", [Task("pre-flight-checks", "Pre-flight", "test task", denied)]
        )
        result = CliRunner().invoke(main, ["--pre-flight-checks"], env=env)
        assert result.exit_code == 1
        assert not isinstance(result.exception, PermissionError)
        assert "✗ Unexpected error:" in result.output
        assert "Permission denied" in result.output

        log_text = next((setup_root / "logs").glob("setup-log-*.log")).read_text()
        assert "[ERROR] Unexpected error:" in log_text
        assert "Traceback" in log_text

    def test_unknown_user(self, setup_root):
        env = {"HYPRSETUP_ROOT": str(setup_root), "HYPRSETUP_USER": "no-such-user-hyprsetup"}
        result = CliRunner().invoke(main, ["--cleanup"], env=env)
        assert result.exit_code == 1
        assert not (setup_root / "logs").exists()
