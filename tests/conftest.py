"""
Shared test fixtures and configuration.
"""

import os
import pwd
import subprocess
from pathlib import Path
from typing import List, Optional

import pytest

from hyprsetup import checks, system
from hyprsetup.config import Config
from hyprsetup.context import RunContext

DEFAULT_COMMANDS = {"sudo", "pacman", "pacman-key", "paru", "systemctl", "git", "ping", "npm"}


class CommandRecorder:
    """Stands in for `system.run_command`, recording every command line."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.available = set(DEFAULT_COMMANDS)
        self._rules = []

    def respond(self, match: str, returncode: int = 0, stdout: str = "", times: Optional[int] = None):
        """Commands containing `match` return this result, `times` times (or always)."""
        self._rules.append({"match": match, "returncode": returncode, "stdout": stdout, "times": times})

    def fail(self, match: str, times: Optional[int] = None):
        self.respond(match, returncode=1, times=times)

    def __call__(self, ctx, cmd, *, check=True, capture_output=False, tty=False, cwd=None, env=None):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        line = " ".join(cmd)
        returncode, stdout = 0, ""
        for rule in self._rules:
            if rule["match"] in line and rule["times"] != 0:
                if rule["times"] is not None:
                    rule["times"] -= 1
                returncode, stdout = rule["returncode"], rule["stdout"]
                break
        if check and returncode != 0:
            raise subprocess.CalledProcessError(returncode, cmd)
        return subprocess.CompletedProcess(cmd, returncode, stdout, "")

    def lines(self) -> List[str]:
        return [" ".join(cmd) for cmd in self.calls]

    def ran(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines())


@pytest.fixture
def current_user() -> str:
    return pwd.getpwuid(os.getuid()).pw_name


@pytest.fixture
def setup_root(tmp_path: Path) -> Path:
    """A setup root holding the required preconfig files."""
    root = tmp_path / "setup"
    preconfig = root / "preconfig"
    preconfig.mkdir(parents=True)
    (preconfig / "packages.txt").write_text("# base\nhyprland\nfoot\n\nwaybar  # bar\n")
    (preconfig / "makepkg.conf.txt").write_text('MAKEFLAGS="-j8"\n')
    (preconfig / "99-custom-env.sh.txt").write_text("export EDITOR=nvim\n")
    return root


@pytest.fixture
def config(setup_root: Path) -> Config:
    return Config(ROOT_DIR=setup_root)


@pytest.fixture
def ctx(config: Config, tmp_path: Path, current_user: str) -> RunContext:
    home = tmp_path / "home"
    home.mkdir()
    context = RunContext(target_user=current_user, user_home=home, config=config)
    yield context
    context.cleanup()


@pytest.fixture
def commands(monkeypatch) -> CommandRecorder:
    """Record external commands instead of running them."""
    recorder = CommandRecorder()
    monkeypatch.setattr(system, "run_command", recorder)
    monkeypatch.setattr(checks, "command_exists", lambda command: command in recorder.available)
    return recorder
