"""
Idempotency predicates.

Each check answers "is this already done?" by reading the package database,
a config file or the service manager. None of them change system state.
"""

import filecmp
import grp
import pwd
import re
import shutil
import socket
import subprocess
from pathlib import Path
from typing import List, Sequence, Union

from hyprsetup import system
from hyprsetup.context import RunContext

DMI_VENDOR = Path("/sys/class/dmi/id/sys_vendor")
NIX_STORE = Path("/nix/store")


def _query(ctx: RunContext, cmd: Sequence[str]) -> subprocess.CompletedProcess:
    if not command_exists(cmd[0]):
        return subprocess.CompletedProcess(list(cmd), 127, "", "")
    return system.run_command(ctx, cmd, check=False, capture_output=True)


def command_exists(command: str) -> bool:
    return shutil.which(command) is not None


def has_internet_connection(ctx: RunContext, host: str, port: int = 53, timeout: int = 5) -> bool:
    """Try a TCP connection to a DNS server, then fall back to a single ping."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        pass
    return _query(ctx, ["ping", "-c", "1", "-W", "2", host]).returncode == 0


def is_pkg_installed(ctx: RunContext, package: str) -> bool:
    return _query(ctx, ["pacman", "-Q", package]).returncode == 0


def missing_packages(ctx: RunContext, packages: Sequence[str]) -> List[str]:
    return [pkg for pkg in packages if not is_pkg_installed(ctx, pkg)]


def packages_installed(ctx: RunContext, packages: Sequence[str]) -> bool:
    """True when every package in the list is installed (one pacman query)."""
    if not packages:
        return True
    return _query(ctx, ["pacman", "-Q", *packages]).returncode == 0


def read_text(path: Union[str, Path]) -> str:
    try:
        return Path(path).read_text(errors="replace")
    except OSError:
        return ""


def file_contains(path: Union[str, Path], pattern: str) -> bool:
    """Search a file for a multiline regex. Missing files never match."""
    return re.search(pattern, read_text(path), re.MULTILINE) is not None


def files_match(first: Union[str, Path], second: Union[str, Path]) -> bool:
    try:
        return filecmp.cmp(str(first), str(second), shallow=False)
    except OSError:
        return False


def file_has_content(path: Union[str, Path], content: str) -> bool:
    return Path(path).is_file() and read_text(path) == content


def root_file_contains(ctx: RunContext, path: Union[str, Path], pattern: str) -> bool:
    """Like file_contains, for files only root can read. Pattern is an ERE."""
    return _query(ctx, ["sudo", "grep", "-qE", pattern, str(path)]).returncode == 0


def ufw_configured(ctx: RunContext, port: int) -> bool:
    """True when ufw is active, allows port/tcp and denies 22/tcp."""
    if not command_exists("ufw"):
        return False
    result = _query(ctx, ["sudo", "ufw", "status"])
    if result.returncode != 0:
        return False
    status = result.stdout or ""
    return all(
        re.search(pattern, status, re.MULTILINE)
        for pattern in (r"^Status:\s+active\b", rf"^{port}/tcp\s+ALLOW\b", r"^22/tcp\s+DENY\b")
    )


# Names stow skips by default.
STOW_IGNORED = {".git", ".gitignore", ".gitmodules", ".stow-local-ignore"}
STOW_IGNORED_TOP = re.compile(r"^(README.*|LICENSE.*|COPYING)$")


def stow_linked(source: Union[str, Path], target: Union[str, Path]) -> bool:
    """
    True when every file in a stow package already resolves to itself from target.

    Works for folded directory links as well as per-file links.
    """
    source, target = Path(source), Path(target)
    for path in source.rglob("*"):
        rel = path.relative_to(source)
        if any(part in STOW_IGNORED for part in rel.parts):
            continue
        if STOW_IGNORED_TOP.match(rel.parts[0]):
            continue
        if path.is_dir() and not path.is_symlink():
            continue
        if (target / rel).resolve() != path.resolve():
            return False
    return True


def pacman_repo_configured(pacman_conf: Union[str, Path], repo: str) -> bool:
    return file_contains(pacman_conf, rf"^\s*\[{re.escape(repo)}\]")


def is_service_enabled(ctx: RunContext, unit: str, user: bool = False) -> bool:
    if user:
        cmd = system.user_command(ctx, ["systemctl", "--user", "is-enabled", "--quiet", unit])
    else:
        cmd = ["systemctl", "is-enabled", "--quiet", unit]
    return _query(ctx, cmd).returncode == 0


def is_asus_hardware(ctx: RunContext) -> bool:
    vendor = read_text(DMI_VENDOR)
    if not vendor:
        vendor = _query(ctx, ["sudo", "dmidecode", "-s", "system-manufacturer"]).stdout or ""
    return "asus" in vendor.lower()


def gpg_key_present(ctx: RunContext, key_id: str) -> bool:
    result = _query(ctx, ["sudo", "pacman-key", "--list-keys", key_id])
    return result.returncode == 0


def group_exists(group: str) -> bool:
    try:
        grp.getgrnam(group)
        return True
    except KeyError:
        return False


def group_has_member(group: str, user: str) -> bool:
    try:
        return user in grp.getgrnam(group).gr_mem
    except KeyError:
        return False


def login_shell(user: str) -> str:
    try:
        return pwd.getpwnam(user).pw_shell
    except KeyError:
        return ""


def git_remote_matches(ctx: RunContext, repo_dir: Union[str, Path], url: str) -> bool:
    """True when repo_dir is a git checkout whose origin is url."""
    if not Path(repo_dir, ".git").exists():
        return False
    result = _query(ctx, ["git", "-C", str(repo_dir), "remote", "get-url", "origin"])
    return result.returncode == 0 and (result.stdout or "").strip() == url


def nix_installed() -> bool:
    return NIX_STORE.is_dir()


def orphaned_packages(ctx: RunContext) -> List[str]:
    result = _query(ctx, ["pacman", "-Qtdq"])
    if result.returncode != 0:
        return []
    return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]


def npm_prefix(ctx: RunContext) -> str:
    result = _query(ctx, system.user_command(ctx, ["npm", "config", "get", "prefix"]))
    return (result.stdout or "").strip() if result.returncode == 0 else ""
