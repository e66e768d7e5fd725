"""
External command execution.

Every command a task runs goes through `run_command`, which traces it at
DEBUG, mirrors its output into the run log and raises on failure.
"""

import datetime
import logging
import os
import pwd
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from rich.text import Text

from hyprsetup import LOGGER_NAME
from hyprsetup.context import RunContext
from hyprsetup.errors import TerminalRequiredError
from hyprsetup.ui import console

logger = logging.getLogger(LOGGER_NAME)


def _format(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in cmd)


def _stream(
    cmd: List[str], check: bool, cwd: Optional[Union[str, Path]], env: Optional[Dict[str, str]]
) -> subprocess.CompletedProcess:
    # Output is echoed line by line so the run log gets a copy of it.
    with subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        cwd=cwd,
        env=env,
    ) as proc:
        for line in proc.stdout:
            line = line.rstrip("\n")
            console.print(Text(line))
            logger.info(line)
        returncode = proc.wait()
    if check and returncode != 0:
        raise subprocess.CalledProcessError(returncode, cmd)
    return subprocess.CompletedProcess(cmd, returncode)


def run_command(
    ctx: RunContext,
    cmd: Sequence[str],
    *,
    check: bool = True,
    capture_output: bool = False,
    tty: bool = False,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external command.

    Args:
        ctx: Run context; consulted for the terminal capability
        cmd: Command as a list of strings
        check: Raise CalledProcessError on a non-zero exit
        capture_output: Capture stdout/stderr instead of streaming them
        tty: The command is interactive and needs the controlling terminal
        cwd: Working directory
        env: Full environment for the command

    Returns:
        CompletedProcess instance with command results
    """
    cmd = [str(part) for part in cmd]
    cmd_str = _format(cmd)
    logger.debug(f"Executing: {cmd_str}" + (f" (in {cwd})" if cwd else ""))

    if tty and not ctx.has_tty:
        raise TerminalRequiredError(
            f"'{cmd_str}' is interactive and needs a terminal. Re-run this task from a terminal."
        )

    try:
        if capture_output:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=check, cwd=cwd, env=env, errors="replace"
            )
            if result.stdout and result.stdout.strip():
                logger.debug(f"Cmd stdout: {result.stdout.strip()}")
            if result.stderr and result.stderr.strip():
                logger.debug(f"Cmd stderr: {result.stderr.strip()}")
        elif tty:
            result = subprocess.run(cmd, check=check, cwd=cwd, env=env)
        else:
            result = _stream(cmd, check, cwd, env)
    except FileNotFoundError:
        logger.error(f"Command not found: {cmd[0]}. Ensure it is installed and in PATH.")
        raise
    except subprocess.CalledProcessError as e:
        logger.error(f"Command '{cmd_str}' failed with code {e.returncode}.")
        raise

    logger.debug(f"Command finished with code {result.returncode}: {cmd_str}")
    return result


# ----------------------------------------------------------------
# Privilege helpers
# ----------------------------------------------------------------
def user_command(ctx: RunContext, cmd: Sequence[str]) -> List[str]:
    """Wrap a command so it runs as the target user with their HOME."""
    current = pwd.getpwuid(os.geteuid()).pw_name
    if current == ctx.target_user:
        return list(cmd)
    return [
        "sudo", "-u", ctx.target_user, "env",
        f"HOME={ctx.user_home}", f"USER={ctx.target_user}", *cmd,
    ]


def run_as_user(ctx: RunContext, cmd: Sequence[str], **kwargs) -> subprocess.CompletedProcess:
    return run_command(ctx, user_command(ctx, cmd), **kwargs)


def run_shell_as_user(ctx: RunContext, script: str, **kwargs) -> subprocess.CompletedProcess:
    """Run a bash snippet as the target user, e.g. after sourcing a profile."""
    return run_as_user(ctx, ["bash", "-c", script], **kwargs)


def sudo(ctx: RunContext, *args: str, **kwargs) -> subprocess.CompletedProcess:
    return run_command(ctx, ["sudo", *args], **kwargs)


# ----------------------------------------------------------------
# Package management
# ----------------------------------------------------------------
def pacman_install(ctx: RunContext, packages: Sequence[str]) -> None:
    sudo(ctx, "pacman", "-S", "--needed", "--noconfirm", *packages)


def install_pkgs(ctx: RunContext, packages: Sequence[str]) -> None:
    # --noconfirm rather than piping 'yes' so real conflicts still stop the run.
    run_command(
        ctx, [ctx.config.AUR_HELPER, "-S", "--needed", "--skipreview", "--noconfirm", *packages]
    )


def remove_pkgs(ctx: RunContext, packages: Sequence[str]) -> None:
    run_command(ctx, [ctx.config.AUR_HELPER, "-Rns", "--noconfirm", *packages])


def sync_and_upgrade(ctx: RunContext) -> None:
    run_command(ctx, [ctx.config.AUR_HELPER, "-Syu", "--skipreview", "--noconfirm"])


def enable_service(
    ctx: RunContext, unit: str, now: bool = True, user: bool = False
) -> subprocess.CompletedProcess:
    args = ["systemctl"]
    if user:
        args.append("--user")
    args.append("enable")
    if now:
        args.append("--now")
    args.append(unit)
    if user:
        return run_as_user(ctx, args)
    return sudo(ctx, *args)


# ----------------------------------------------------------------
# Files
# ----------------------------------------------------------------
def write_system_file(ctx: RunContext, path: str, content: str, mode: str = "644") -> None:
    """Write a root-owned file through a scratch copy and `sudo install`."""
    staged = ctx.mkstemp()
    staged.write_text(content)
    sudo(ctx, "install", "-D", "-m", mode, str(staged), path)


def write_user_file(ctx: RunContext, path: Union[str, Path], content: str) -> None:
    """Write a file owned by the target user."""
    path = Path(path)
    staged = ctx.mkstemp()
    staged.write_text(content)
    os.chmod(str(staged), 0o644)
    run_as_user(ctx, ["mkdir", "-p", str(path.parent)])
    run_as_user(ctx, ["cp", str(staged), str(path)])


def backup_path(ctx: RunContext, path: Union[str, Path]) -> Path:
    """
    Move an existing file or directory aside with a timestamp suffix.

    Args:
        ctx: Run context
        path: Path to back up

    Returns:
        Path to the backup
    """
    path = Path(path)
    timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M")
    backup = path.with_name(f"{path.name}.bak-{timestamp}")
    run_as_user(ctx, ["mv", "-f", str(path), str(backup)])
    return backup


def download_file(ctx: RunContext, url: str, dest_path: Union[str, Path]) -> None:
    """Download a file with wget, falling back to curl."""
    dest_path = Path(dest_path)
    try:
        run_command(ctx, ["wget", "-q", "--show-progress", "-O", str(dest_path), url])
    except (subprocess.CalledProcessError, FileNotFoundError):
        logger.debug(f"wget failed for {url}, retrying with curl.")
        run_command(ctx, ["curl", "-fsSL", "-o", str(dest_path), url])
