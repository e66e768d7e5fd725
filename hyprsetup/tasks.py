"""
Setup tasks.

Each task is a function of the run context. Tasks check before they change
anything so that running one twice leaves the system as the first run did.
"""

import os
import re
import shlex
import shutil
import subprocess
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from rich.prompt import Prompt

from hyprsetup import checks, system
from hyprsetup.config import GREETD_CONFIG, MIMEAPPS_LIST, NIX_CONF, SSHD_HARDENING, SYSCTL_HARDENING
from hyprsetup.context import RunContext
from hyprsetup.docs import describe
from hyprsetup.errors import PreconditionError, TaskError, TerminalRequiredError, UserAbort
from hyprsetup.prompt import Response, ReviewPrompt, ask
from hyprsetup.ui import console, print_error, print_file, print_info, print_step, print_success, print_warning

PRE_FLIGHT = "pre-flight-checks"
PROC_FSTAB_LINE = "proc /proc proc nosuid,nodev,noexec,hidepid=2 0 0"
GREETD_PACKAGES = ["greetd", "greetd-tuigreet"]


@dataclass(frozen=True)
class Task:
    """A named, documented unit of setup work."""

    name: str
    title: str
    summary: str
    action: Callable[[RunContext], None]
    satisfied: Optional[Callable[[RunContext], bool]] = None
    applicable: Optional[Callable[[RunContext], bool]] = None

    @property
    def flag(self) -> str:
        return f"--{self.name}"

    @property
    def docs(self) -> str:
        return describe(self.name)

    def is_satisfied(self, ctx: RunContext) -> bool:
        return self.satisfied is not None and self.satisfied(ctx)

    def is_applicable(self, ctx: RunContext) -> bool:
        return self.applicable is None or self.applicable(ctx)


# ----------------------------------------------------------------
# Pure transforms
# ----------------------------------------------------------------
def tune_pacman_conf(text: str, parallel_downloads: int = 10) -> str:
    """
    Apply the pacman.conf tweaks: colour output with ILoveCandy, verbose package
    lists, no download timeout, parallel downloads and the alpm download user.

    Applying the function to its own output returns the same text.
    """
    for option in ("Color", "VerbosePkgLists", "DisableDownloadTimeout"):
        text = re.sub(rf"^#[ \t]*({option})[ \t]*$", r"\1", text, flags=re.M)
    if not re.search(r"^ILoveCandy[ \t]*$", text, flags=re.M):
        text = re.sub(r"^(Color)[ \t]*$", r"\1\nILoveCandy", text, count=1, flags=re.M)
    text = re.sub(
        r"^#?[ \t]*ParallelDownloads.*$",
        f"ParallelDownloads = {parallel_downloads}",
        text,
        flags=re.M,
    )
    if re.search(r"^DownloadUser", text, flags=re.M):
        text = re.sub(r"^DownloadUser.*$", "DownloadUser = alpm", text, flags=re.M)
    else:
        text = re.sub(
            r"^(\[options\])[ \t]*$", r"\1\nDownloadUser = alpm", text, count=1, flags=re.M
        )
    return text


def harden_fstab(text: str) -> str:
    """Mount /proc with hidepid=2, replacing or appending the proc entry."""
    pattern = re.compile(r"^[ \t]*proc[ \t]+/proc[ \t]+proc[ \t].*$", re.M)
    match = pattern.search(text)
    if match and "hidepid=2" in match.group(0):
        return text
    if match:
        return pattern.sub(PROC_FSTAB_LINE, text, count=1)
    if text and not text.endswith("\n"):
        text += "\n"
    return text + PROC_FSTAB_LINE + "\n"


def read_package_list(path: Union[str, Path]) -> List[str]:
    """Read one package per line, ignoring blank lines and '#' comments."""
    packages = []
    for line in Path(path).read_text().splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            packages.append(line)
    return packages


# ----------------------------------------------------------------
# Shared helpers
# ----------------------------------------------------------------
def _require_terminal(ctx: RunContext, what: str) -> None:
    if not ctx.has_tty:
        raise TerminalRequiredError(f"{what} is interactive and needs a terminal.")


def _install_missing(ctx: RunContext, packages: List[str]) -> None:
    missing = checks.missing_packages(ctx, packages)
    if not missing:
        print_success("All required packages are already installed.")
        return
    print_info(f"Installing: {', '.join(missing)}")
    system.install_pkgs(ctx, missing)


def _build_from_aur(ctx: RunContext, repo: str, name: str) -> None:
    build_dir = ctx.mkdtemp() / name
    system.run_as_user(ctx, ["git", "clone", repo, str(build_dir)])
    system.run_as_user(ctx, ["makepkg", "-si", "--noconfirm"], cwd=build_dir)


def _nix_shell(ctx: RunContext, script: str, **kwargs) -> subprocess.CompletedProcess:
    """Run a shell snippet as the user with the Nix daemon profile sourced."""
    profile = shlex.quote(ctx.config.NIX_DAEMON_PROFILE)
    return system.run_shell_as_user(ctx, f". {profile}; {script}", **kwargs)


# ----------------------------------------------------------------
# Pre-flight
# ----------------------------------------------------------------
def setup_aur_helper(ctx: RunContext) -> None:
    cfg = ctx.config
    if checks.command_exists(cfg.AUR_HELPER):
        print_success(f"AUR helper '{cfg.AUR_HELPER}' is already installed.")
        return
    print_info(f"AUR helper '{cfg.AUR_HELPER}' not found. Building it from the AUR...")
    system.pacman_install(ctx, ["git", "base-devel"])
    _build_from_aur(ctx, cfg.PARU_REPO, f"{cfg.AUR_HELPER}-bin")
    print_success(f"'{cfg.AUR_HELPER}' installed successfully.")


def setup_limine_hook(ctx: RunContext) -> None:
    if checks.is_pkg_installed(ctx, "limine-mkinitcpio-hook"):
        print_success("limine-mkinitcpio-hook is already installed.")
        return
    print_info("Installing limine-mkinitcpio-hook...")
    _build_from_aur(ctx, ctx.config.LIMINE_HOOK_REPO, "limine-mkinitcpio-hook")
    print_success("limine-mkinitcpio-hook installed successfully.")


def pre_flight_checks(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Running Pre-flight Checks")

    if os.geteuid() == 0:
        raise PreconditionError("This script must be run as a regular user, not as root.")
    if not checks.command_exists("sudo"):
        raise PreconditionError("'sudo' command not found. Please install it first.")
    if not checks.has_internet_connection(ctx, cfg.PING_HOST):
        raise PreconditionError("No internet connection. Please connect and try again.")
    print_success("Privileges and connectivity verified.")

    missing_files = [path for path in cfg.required_files() if not path.is_file()]
    if missing_files:
        raise PreconditionError(
            "Required config file(s) not found: " + ", ".join(str(p) for p in missing_files)
        )
    print_success("All required configuration files are present.")

    setup_aur_helper(ctx)
    setup_limine_hook(ctx)

    missing = checks.missing_packages(ctx, cfg.SCRIPT_DEPENDENCIES)
    if missing:
        print_info(f"Installing missing script dependencies: {', '.join(missing)}")
        system.install_pkgs(ctx, missing)
    else:
        print_success("All script dependencies are installed.")

    print_info("Caching sudo credentials...")
    system.sudo(ctx, "-v")
    print_success(f"Checks passed. Configuring system for user: {ctx.target_user}")


# ----------------------------------------------------------------
# Core system files
# ----------------------------------------------------------------
def _pacman_conf_tuned(ctx: RunContext) -> bool:
    current = checks.read_text(ctx.config.PACMAN_CONF)
    return bool(current) and tune_pacman_conf(current, ctx.config.PARALLEL_DOWNLOADS) == current


def _install_preconfig(ctx: RunContext, source: Path, target: str, mode: str) -> None:
    if checks.files_match(source, target):
        print_success(f"{target} is already up to date.")
        return
    print_info(f"Installing {source.name} to {target}...")
    system.sudo(ctx, "install", "-D", "-m", mode, str(source), target)


def review_configuration(ctx: RunContext) -> None:
    """Show pacman.conf and makepkg.conf until the user approves or aborts."""
    cfg = ctx.config
    files = {"p": cfg.PACMAN_CONF, "m": cfg.MAKEPKG_CONF}
    while True:
        for path in files.values():
            print_file(path, checks.read_text(path))
        response = ask("Are these configurations okay?", ReviewPrompt)
        if response is Response.YES:
            print_success("Configuration approved.")
            return
        if response is Response.ABORT:
            raise UserAbort("Configuration review aborted.")
        choice = Prompt.ask(
            "[prompt]Which file to edit? \\[p]acman.conf, \\[m]akepkg.conf[/prompt]",
            choices=list(files),
            console=console,
        )
        system.run_command(ctx, ["sudo", "nvim", files[choice]], tty=True)


def initial_setup(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Performing Initial System Setup")

    _install_preconfig(ctx, cfg.PRECONFIG_DIR / cfg.ENV_FILE, cfg.PROFILE_ENV, "755")

    current = checks.read_text(cfg.PACMAN_CONF)
    tuned = tune_pacman_conf(current, cfg.PARALLEL_DOWNLOADS)
    if tuned == current:
        print_success("pacman.conf is already tuned.")
    else:
        print_info("Tuning pacman.conf...")
        system.write_system_file(ctx, cfg.PACMAN_CONF, tuned)

    _install_preconfig(ctx, cfg.PRECONFIG_DIR / cfg.MAKEPKG_FILE, cfg.MAKEPKG_CONF, "644")

    if not checks.is_pkg_installed(ctx, "reflector"):
        system.pacman_install(ctx, ["reflector"])
    if not checks.is_service_enabled(ctx, "reflector.timer"):
        system.sudo(ctx, "systemctl", "enable", "--now", "reflector.service", "reflector.timer")
    print_info("Updating mirrorlist with reflector...")
    system.sudo(
        ctx, "reflector", "--verbose", "-l", "25", "--country", cfg.REFLECTOR_COUNTRIES,
        "--sort", "rate", "--save", cfg.MIRRORLIST,
    )

    review_configuration(ctx)


# ----------------------------------------------------------------
# Repositories and packages
# ----------------------------------------------------------------
def setup_extra_repos(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Setting Up CachyOS Repository")
    if checks.pacman_repo_configured(cfg.PACMAN_CONF, "cachyos"):
        print_success("CachyOS repository is already configured.")
    else:
        _require_terminal(ctx, "The CachyOS repository installer")
        work_dir = ctx.mkdtemp()
        archive = work_dir / "cachyos-repo.tar.xz"
        system.download_file(ctx, cfg.CACHYOS_URL, archive)
        with tarfile.open(archive) as tar:
            # The archive comes from the network; refuse absolute paths and links out.
            if hasattr(tarfile, "data_filter"):
                tar.extractall(work_dir, filter="data")
            else:
                tar.extractall(work_dir)
        print_warning("The CachyOS setup script is interactive. Please follow its prompts.")
        system.run_command(
            ctx, ["sudo", "./cachyos-repo.sh"], cwd=work_dir / "cachyos-repo", tty=True
        )
    print_info("Synchronizing package databases and upgrading the system...")
    system.sync_and_upgrade(ctx)


def _asus_satisfied(ctx: RunContext) -> bool:
    cfg = ctx.config
    return (
        checks.pacman_repo_configured(cfg.PACMAN_CONF, "g14")
        and checks.packages_installed(ctx, cfg.ASUS_PACKAGES)
        and all(checks.is_service_enabled(ctx, unit) for unit in cfg.ASUS_SERVICES)
    )


def setup_asus(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Setting Up ASUS Laptop Tools")
    if not checks.is_asus_hardware(ctx):
        print_warning("ASUS hardware not detected. Skipping.")
        return

    if checks.gpg_key_present(ctx, cfg.G14_KEY_ID):
        print_success("g14 signing key is already trusted.")
    else:
        print_info("Importing the g14 repository signing key...")
        system.sudo(ctx, "pacman-key", "--recv-keys", cfg.G14_KEY_ID)
        system.sudo(ctx, "pacman-key", "--lsign-key", cfg.G14_KEY_ID)

    if checks.pacman_repo_configured(cfg.PACMAN_CONF, "g14"):
        print_success("g14 repository is already configured.")
    else:
        print_info("Adding the g14 repository to pacman.conf...")
        current = checks.read_text(cfg.PACMAN_CONF).rstrip("\n")
        system.write_system_file(
            ctx, cfg.PACMAN_CONF, f"{current}\n\n[g14]\nServer = {cfg.G14_SERVER}/$repo/$arch\n"
        )
        system.sync_and_upgrade(ctx)

    _install_missing(ctx, cfg.ASUS_PACKAGES)

    pending = [unit for unit in cfg.ASUS_SERVICES if not checks.is_service_enabled(ctx, unit)]
    if pending:
        system.sudo(ctx, "systemctl", "daemon-reload")
        for unit in pending:
            system.enable_service(ctx, unit)
    else:
        print_success("ASUS services are already enabled.")
    print_success("ASUS tools configured.")


def _packages_file(ctx: RunContext) -> Path:
    return ctx.preconfig_dir / ctx.config.PACKAGES_FILE


def _packages_satisfied(ctx: RunContext) -> bool:
    path = _packages_file(ctx)
    return path.is_file() and checks.packages_installed(ctx, read_package_list(path))


def install_packages(ctx: RunContext) -> None:
    print_step("Installing Packages from packages.txt")
    path = _packages_file(ctx)
    if not path.is_file():
        raise PreconditionError(f"Package list '{path}' not found.")
    packages = read_package_list(path)
    if not packages:
        print_warning(f"{path.name} lists no packages. Skipping.")
        return
    print_info(f"Installing {len(packages)} packages with {ctx.config.AUR_HELPER}...")
    system.install_pkgs(ctx, packages)
    print_success("Package installation complete.")


def manual_installs(ctx: RunContext) -> None:
    print_step("Performing Manual Installations")
    if checks.command_exists("pia-client"):
        print_success("Private Internet Access is already installed.")
        return
    _require_terminal(ctx, "The Private Internet Access installer")
    installer = ctx.mkstemp(suffix=".run")
    print_info("Downloading the Private Internet Access installer...")
    system.download_file(ctx, ctx.config.PIA_URL, installer)
    os.chmod(str(installer), 0o755)
    print_warning("The PIA installer is interactive. Please follow its prompts.")
    system.run_command(ctx, ["bash", str(installer)], tty=True)
    print_success("Private Internet Access installed.")


# ----------------------------------------------------------------
# User environment
# ----------------------------------------------------------------
def _dotfiles_satisfied(ctx: RunContext) -> bool:
    return checks.stow_linked(ctx.dotfiles_dir, ctx.user_home)


def setup_dotfiles(ctx: RunContext) -> None:
    print_step("Linking Dotfiles with stow")
    if not ctx.dotfiles_dir.is_dir():
        print_warning(f"Dotfiles directory '{ctx.dotfiles_dir}' not found. Skipping.")
        return
    if _dotfiles_satisfied(ctx):
        print_success("Dotfiles are already linked.")
        return
    if not checks.command_exists("stow"):
        system.install_pkgs(ctx, ["stow"])
    system.run_as_user(ctx, ["stow", ".", "-t", str(ctx.user_home)], cwd=ctx.dotfiles_dir)
    print_success("Dotfiles linked.")


def _nix_conf_path(ctx: RunContext) -> Path:
    return ctx.user_home / ".config" / "nix" / "nix.conf"


def _home_manager_ready(ctx: RunContext) -> bool:
    if not (ctx.user_home / ".config" / "home-manager").is_dir():
        return False
    return _nix_shell(
        ctx, "command -v home-manager", check=False, capture_output=True
    ).returncode == 0


def _nix_satisfied(ctx: RunContext) -> bool:
    return (
        checks.nix_installed()
        and checks.file_has_content(_nix_conf_path(ctx), NIX_CONF)
        and _home_manager_ready(ctx)
    )


def setup_nix(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Setting Up Nix and Home Manager")

    if checks.nix_installed():
        print_success("Nix is already installed.")
    else:
        _require_terminal(ctx, "The Nix installer")
        installer = ctx.mkstemp(suffix=".sh")
        print_info("Downloading the Determinate Nix installer...")
        system.download_file(ctx, cfg.NIX_INSTALLER_URL, installer)
        os.chmod(str(installer), 0o755)
        system.run_as_user(ctx, ["sh", str(installer), "install", "--determinate"], tty=True)

    if not Path(cfg.NIX_DAEMON_PROFILE).is_file():
        raise TaskError(f"Nix daemon profile '{cfg.NIX_DAEMON_PROFILE}' not found.")
    if _nix_shell(ctx, "command -v nix", check=False, capture_output=True).returncode != 0:
        raise TaskError("'nix' is not available even after sourcing the daemon profile.")

    nix_conf = _nix_conf_path(ctx)
    if checks.file_has_content(nix_conf, NIX_CONF):
        print_success("nix.conf is already configured.")
    else:
        system.write_user_file(ctx, nix_conf, NIX_CONF)
        print_success(f"Wrote {nix_conf}")

    if _home_manager_ready(ctx):
        print_success("Home Manager is already initialized.")
    else:
        print_info("Initializing Home Manager...")
        _nix_shell(ctx, "nix run home-manager/master -- init --switch")

    try:
        _nix_shell(ctx, "home-manager switch")
    except subprocess.CalledProcessError:
        print_warning("home-manager switch failed. Retrying with backups of clashing files...")
        _nix_shell(ctx, "home-manager switch -b backup")
        _nix_shell(ctx, "home-manager switch")
    print_success("Home Manager configuration applied.")


def _user_dirs_file(ctx: RunContext) -> Path:
    return ctx.user_home / ".config" / "user-dirs.dirs"


def _xdg_satisfied(ctx: RunContext) -> bool:
    return _user_dirs_file(ctx).is_file() and checks.file_has_content(
        ctx.user_home / ".config" / "mimeapps.list", MIMEAPPS_LIST
    )


def setup_xdg(ctx: RunContext) -> None:
    if _user_dirs_file(ctx).is_file():
        print_success("XDG user directories already exist.")
    else:
        system.run_as_user(ctx, ["xdg-user-dirs-update"])
    mimeapps = ctx.user_home / ".config" / "mimeapps.list"
    if checks.file_has_content(mimeapps, MIMEAPPS_LIST):
        print_success("Default applications are already set.")
        return
    system.write_user_file(ctx, mimeapps, MIMEAPPS_LIST)
    print_success("Default applications set.")


def _user_satisfied(ctx: RunContext) -> bool:
    cfg = ctx.config
    shell = shutil.which(cfg.LOGIN_SHELL)
    return (
        shell is not None
        and checks.login_shell(ctx.target_user) == shell
        and checks.npm_prefix(ctx) == str(ctx.user_home / ".npm-global")
        and _xdg_satisfied(ctx)
        and all(checks.is_service_enabled(ctx, unit, user=True) for unit in cfg.USER_SERVICES)
    )


def configure_user(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Configuring User Environment")

    shell = shutil.which(cfg.LOGIN_SHELL)
    if shell is None:
        print_warning(f"'{cfg.LOGIN_SHELL}' is not installed. Keeping the current login shell.")
    elif checks.login_shell(ctx.target_user) == shell:
        print_success(f"Login shell is already {shell}.")
    else:
        try:
            system.run_command(ctx, ["chsh", "-s", shell, ctx.target_user], tty=True)
            print_success(f"Login shell changed to {shell}.")
        except (subprocess.CalledProcessError, TerminalRequiredError) as e:
            print_error(f"Could not change the login shell: {e}")

    npm_global = ctx.user_home / ".npm-global"
    if not checks.command_exists("npm"):
        print_warning("npm is not installed. Skipping npm prefix setup.")
    elif checks.npm_prefix(ctx) == str(npm_global):
        print_success("npm global prefix is already set.")
    else:
        system.run_as_user(ctx, ["mkdir", "-p", str(npm_global)])
        system.run_as_user(ctx, ["npm", "config", "set", "prefix", str(npm_global)])
        print_success(f"npm global prefix set to {npm_global}.")

    setup_xdg(ctx)

    for unit in cfg.USER_SERVICES:
        if checks.is_service_enabled(ctx, unit, user=True):
            print_success(f"User service {unit} is already enabled.")
            continue
        try:
            system.enable_service(ctx, unit, user=True)
        except subprocess.CalledProcessError:
            print_warning(f"Could not enable user service {unit}.")


# ----------------------------------------------------------------
# Editors
# ----------------------------------------------------------------
def _nvim_dir(ctx: RunContext) -> Path:
    return ctx.user_home / ".config" / "nvim"


def _emacs_dir(ctx: RunContext) -> Path:
    return ctx.user_home / ".config" / "emacs"


def _doom_dir(ctx: RunContext) -> Path:
    return ctx.user_home / ".config" / "doom"


def _editors_applicable(ctx: RunContext) -> bool:
    return checks.command_exists("nvim") or checks.command_exists("emacs")


def _editors_satisfied(ctx: RunContext) -> bool:
    cfg = ctx.config
    if checks.command_exists("nvim") and not checks.git_remote_matches(
        ctx, _nvim_dir(ctx), cfg.NVIM_CONFIG_REPO
    ):
        return False
    if checks.command_exists("emacs") and not (
        checks.git_remote_matches(ctx, _emacs_dir(ctx), cfg.DOOM_EMACS_REPO)
        and checks.git_remote_matches(ctx, _doom_dir(ctx), cfg.DOOM_CONFIG_REPO)
    ):
        return False
    return True


def _clone_config(ctx: RunContext, repo: str, target: Path, *extra: str) -> bool:
    """Clone repo into target unless it is already that checkout. Returns True if cloned."""
    if checks.git_remote_matches(ctx, target, repo):
        print_success(f"{target} is already a checkout of {repo}.")
        return False
    if target.exists():
        backup = system.backup_path(ctx, target)
        print_warning(f"Moved existing {target} to {backup}")
    system.run_as_user(ctx, ["git", "clone", *extra, repo, str(target)])
    return True


def setup_neovim(ctx: RunContext) -> None:
    if not _clone_config(ctx, ctx.config.NVIM_CONFIG_REPO, _nvim_dir(ctx)):
        return
    print_info("Installing Neovim plugins headlessly...")
    system.run_as_user(
        ctx,
        [
            "nvim", "--headless", "+Lazy! sync", "+TSUpdateSync",
            "+autocmd User MasonToolsUpdateCompleted quitall", "+MasonToolsInstall",
        ],
    )
    print_success("Neovim configured.")


def setup_doom_emacs(ctx: RunContext) -> None:
    cfg = ctx.config
    _clone_config(ctx, cfg.DOOM_CONFIG_REPO, _doom_dir(ctx), "-b", cfg.DOOM_CONFIG_BRANCH)
    if _clone_config(ctx, cfg.DOOM_EMACS_REPO, _emacs_dir(ctx), "--depth", "1"):
        print_info("Installing Doom Emacs...")
        system.run_as_user(ctx, [str(_emacs_dir(ctx) / "bin" / "doom"), "install", "--force"])
    print_success("Doom Emacs configured.")


def setup_editors(ctx: RunContext) -> None:
    print_step("Setting Up Editors")
    if checks.command_exists("nvim"):
        setup_neovim(ctx)
    else:
        print_warning("Neovim is not installed. Skipping its configuration.")
    if checks.command_exists("emacs"):
        setup_doom_emacs(ctx)
    else:
        print_warning("Emacs is not installed. Skipping Doom Emacs.")


# ----------------------------------------------------------------
# Maintenance
# ----------------------------------------------------------------
def cleanup(ctx: RunContext) -> None:
    print_step("Cleaning Up the System")
    orphans = checks.orphaned_packages(ctx)
    if orphans:
        print_warning(f"Removing {len(orphans)} orphaned packages: {', '.join(orphans)}")
        system.remove_pkgs(ctx, orphans)
    else:
        print_success("No orphaned packages found.")

    if checks.nix_installed() and Path(ctx.config.NIX_DAEMON_PROFILE).is_file():
        print_info("Collecting Nix garbage...")
        _nix_shell(ctx, "nix-collect-garbage -d")
    print_success("Cleanup complete.")


def _greetd_satisfied(ctx: RunContext) -> bool:
    return (
        checks.packages_installed(ctx, GREETD_PACKAGES)
        and checks.file_has_content(ctx.config.GREETD_CONFIG_FILE, GREETD_CONFIG)
        and not checks.is_pkg_installed(ctx, "sddm")
        and checks.is_service_enabled(ctx, "greetd.service")
    )


def setup_greetd(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Setting Up greetd with tuigreet")
    _install_missing(ctx, GREETD_PACKAGES)

    if checks.file_has_content(cfg.GREETD_CONFIG_FILE, GREETD_CONFIG):
        print_success("greetd is already configured.")
    else:
        system.write_system_file(ctx, cfg.GREETD_CONFIG_FILE, GREETD_CONFIG)
        print_success(f"Wrote {cfg.GREETD_CONFIG_FILE}")

    if checks.is_pkg_installed(ctx, "sddm"):
        print_info("Removing SDDM...")
        if checks.is_service_enabled(ctx, "sddm.service"):
            system.sudo(ctx, "systemctl", "disable", "sddm.service")
        system.remove_pkgs(ctx, ["sddm"])

    # Not started now; that would end the current graphical session.
    if checks.is_service_enabled(ctx, "greetd.service"):
        print_success("greetd.service is already enabled.")
    else:
        system.enable_service(ctx, "greetd.service", now=False)
        print_success("greetd.service enabled. It takes over at the next boot.")


# ----------------------------------------------------------------
# Hardening
# ----------------------------------------------------------------
AUDIT_LOG_GROUP = r"^\s*log_group\s*=\s*audit"


def _sshd_hardening(ctx: RunContext) -> str:
    return SSHD_HARDENING.format(port=ctx.config.SSH_PORT)


def _hardening_satisfied(ctx: RunContext) -> bool:
    cfg = ctx.config
    return (
        checks.packages_installed(ctx, cfg.SECURITY_PACKAGES)
        and all(checks.is_service_enabled(ctx, unit) for unit in cfg.SECURITY_SERVICES)
        and checks.group_has_member("audit", ctx.target_user)
        and checks.file_has_content(cfg.SSHD_DROPIN, _sshd_hardening(ctx))
        and checks.file_has_content(cfg.SYSCTL_FILE, SYSCTL_HARDENING)
        and harden_fstab(checks.read_text(cfg.FSTAB)) == checks.read_text(cfg.FSTAB)
        and checks.root_file_contains(ctx, cfg.AUDITD_CONF, AUDIT_LOG_GROUP)
        and checks.ufw_configured(ctx, cfg.SSH_PORT)
    )


def _configure_audit(ctx: RunContext) -> None:
    cfg = ctx.config
    if not checks.group_exists("audit"):
        system.sudo(ctx, "groupadd", "-r", "audit")
    if checks.group_has_member("audit", ctx.target_user):
        print_success(f"{ctx.target_user} is already in the audit group.")
    else:
        system.sudo(ctx, "gpasswd", "-a", ctx.target_user, "audit")

    if checks.root_file_contains(ctx, cfg.AUDITD_CONF, AUDIT_LOG_GROUP):
        print_success("auditd already logs to the audit group.")
        return
    # auditd.conf is not world-readable, so append in place.
    staged = ctx.mkstemp()
    staged.write_text("log_group = audit\n")
    system.sudo(
        ctx, "bash", "-c", f"cat {shlex.quote(str(staged))} >> {shlex.quote(cfg.AUDITD_CONF)}"
    )
    system.sudo(ctx, "systemctl", "restart", "auditd.service")
    print_success("auditd configured to log to the audit group.")


def _configure_sshd(ctx: RunContext) -> None:
    cfg = ctx.config
    content = _sshd_hardening(ctx)
    if checks.file_has_content(cfg.SSHD_DROPIN, content):
        print_success("sshd hardening is already in place.")
    else:
        system.write_system_file(ctx, cfg.SSHD_DROPIN, content)
        system.sudo(ctx, "systemctl", "reload", "sshd.service")
        print_success(f"sshd hardened, now listening on port {cfg.SSH_PORT}.")

    if not checks.command_exists("ufw"):
        print_warning("ufw is not installed. Firewall rules were not changed.")
    elif checks.ufw_configured(ctx, cfg.SSH_PORT):
        print_success(f"ufw already allows port {cfg.SSH_PORT} and blocks port 22.")
    else:
        system.sudo(ctx, "ufw", "allow", f"{cfg.SSH_PORT}/tcp", "comment", "Custom SSH Port")
        system.sudo(ctx, "ufw", "deny", "22/tcp")
        system.sudo(ctx, "ufw", "--force", "enable")
        print_success(f"ufw enabled, allowing port {cfg.SSH_PORT} and blocking port 22.")


def harden_system(ctx: RunContext) -> None:
    cfg = ctx.config
    print_step("Hardening the System")
    _install_missing(ctx, cfg.SECURITY_PACKAGES)

    for unit in cfg.SECURITY_SERVICES:
        if checks.is_service_enabled(ctx, unit):
            print_success(f"{unit} is already enabled.")
            continue
        try:
            system.enable_service(ctx, unit)
        except subprocess.CalledProcessError:
            print_error(f"Failed to enable {unit}.")

    _configure_audit(ctx)
    _configure_sshd(ctx)

    if checks.file_has_content(cfg.SYSCTL_FILE, SYSCTL_HARDENING):
        print_success("Kernel hardening parameters are already set.")
    else:
        system.write_system_file(ctx, cfg.SYSCTL_FILE, SYSCTL_HARDENING)
        system.sudo(ctx, "sysctl", "-p", cfg.SYSCTL_FILE)
        print_success("Kernel hardening parameters applied.")

    current = checks.read_text(cfg.FSTAB)
    hardened = harden_fstab(current)
    if hardened == current:
        print_success("/proc is already mounted with hidepid=2.")
    else:
        system.write_system_file(ctx, cfg.FSTAB, hardened)
        system.sudo(ctx, "mount", "-o", "remount", "/proc")
        print_success("/proc remounted with hidepid=2.")


# ----------------------------------------------------------------
# Task table, in canonical order
# ----------------------------------------------------------------
TASKS: List[Task] = [
    Task(
        PRE_FLIGHT,
        "Pre-flight Checks",
        "Run safety checks, install the AUR helper and script dependencies.",
        pre_flight_checks,
    ),
    Task(
        "initial-setup",
        "Initial Setup",
        "Configure pacman, makepkg, environment variables and mirrors.",
        initial_setup,
        satisfied=lambda ctx: (
            _pacman_conf_tuned(ctx)
            and checks.files_match(ctx.preconfig_dir / ctx.config.ENV_FILE, ctx.config.PROFILE_ENV)
            and checks.files_match(ctx.preconfig_dir / ctx.config.MAKEPKG_FILE, ctx.config.MAKEPKG_CONF)
            and checks.is_service_enabled(ctx, "reflector.timer")
        ),
    ),
    Task(
        "setup-extra-repos",
        "CachyOS Repository",
        "Add the CachyOS repository and upgrade the system.",
        setup_extra_repos,
        satisfied=lambda ctx: checks.pacman_repo_configured(ctx.config.PACMAN_CONF, "cachyos"),
    ),
    Task(
        "setup-asus",
        "ASUS Tools",
        "Add the g14 repository and install asusctl and friends.",
        setup_asus,
        satisfied=_asus_satisfied,
        applicable=checks.is_asus_hardware,
    ),
    Task(
        "install-packages",
        "Install Packages",
        "Install every package listed in preconfig/packages.txt.",
        install_packages,
        satisfied=_packages_satisfied,
    ),
    Task(
        "manual-installs",
        "Manual Installs",
        "Install software that is not packaged (Private Internet Access).",
        manual_installs,
        satisfied=lambda ctx: checks.command_exists("pia-client"),
    ),
    Task(
        "setup-dotfiles",
        "Dotfiles",
        "Link the dotfiles directory into your home with stow.",
        setup_dotfiles,
        satisfied=_dotfiles_satisfied,
        applicable=lambda ctx: ctx.dotfiles_dir.is_dir(),
    ),
    Task(
        "setup-nix",
        "Nix and Home Manager",
        "Install Nix and apply the Home Manager configuration.",
        setup_nix,
        satisfied=_nix_satisfied,
    ),
    Task(
        "configure-user",
        "User Environment",
        "Set the login shell, npm prefix, XDG defaults and user services.",
        configure_user,
        satisfied=_user_satisfied,
    ),
    Task(
        "setup-editors",
        "Editors",
        "Clone the Neovim and Doom Emacs configurations.",
        setup_editors,
        satisfied=_editors_satisfied,
        applicable=_editors_applicable,
    ),
    Task(
        "cleanup",
        "Cleanup",
        "Remove orphaned packages and collect Nix garbage.",
        cleanup,
    ),
    Task(
        "setup-greetd",
        "greetd Login Manager",
        "Replace SDDM with greetd and tuigreet.",
        setup_greetd,
        satisfied=_greetd_satisfied,
    ),
    Task(
        "harden-system",
        "System Hardening",
        "Apply security packages, sshd, sysctl, audit and /proc hardening.",
        harden_system,
        satisfied=_hardening_satisfied,
    ),
]


def task_names() -> List[str]:
    return [task.name for task in TASKS]
