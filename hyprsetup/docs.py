"""
Embedded documentation, one block per task.

Blocks are rich markup using the theme names from `hyprsetup.ui`. Paths are
written relative to the setup root or the user's home so the text can be
rendered without resolving a run context.
"""

from typing import Dict, Iterable, Optional

from hyprsetup.config import Config

RULE = "[step]" + "─" * 66 + "[/step]"
BANNER = "[step]" + "=" * 80 + "[/step]"
SSH_PORT = Config.SSH_PORT

INTRO = f"""\
{BANNER}
[label]Hyprland Arch Linux Setup - Full Documentation[/label]
{BANNER}

[text]This tool provides an automated and idempotent method for setting up a
feature-rich Hyprland desktop environment on a fresh Arch Linux installation.
It is modular, allowing you to run the entire setup at once or execute
specific tasks individually using flags.[/text]
"""

DOCS: Dict[str, str] = {
    "pre-flight-checks": f"""\
[title]Performing Pre-flight Safety Checks[/title]
{RULE}

[desc]This initial step performs critical safety and environment checks to ensure the
setup can run successfully.[/desc]

[label]Actions:[/label]
- [label]Privilege Verification:[/label] [text]Ensures the setup is [error]NOT[/error] run as the root user
  and that [pkg]sudo[/pkg] is available.[/text]
- [label]Connectivity Check:[/label] [text]Pings [path]8.8.8.8[/path] to confirm internet access.[/text]
- [label]AUR Helper Setup:[/label] [text]If [pkg]paru[/pkg] is missing, installs [pkg]git[/pkg] and [pkg]base-devel[/pkg],
  clones [path]paru-bin.git[/path] and builds it with [path]makepkg -si[/path].[/text]
- [label]Bootloader Hook:[/label] [text]Ensures [pkg]limine-mkinitcpio-hook[/pkg] is installed so the bootloader
  is updated when new kernels are installed.[/text]
- [label]Dependency Installation:[/label] [text]Installs missing setup dependencies: [pkg]neovim[/pkg], [pkg]wl-clipboard[/pkg],
  [pkg]curl[/pkg], [pkg]wget[/pkg], [pkg]pciutils[/pkg], [pkg]dmidecode[/pkg], [pkg]xdg-user-dirs[/pkg].[/text]
- [label]Configuration File Check:[/label] [text]Verifies that these files exist:[/text]
  - [path]preconfig/packages.txt[/path]
  - [path]preconfig/makepkg.conf.txt[/path]
  - [path]preconfig/99-custom-env.sh.txt[/path]
- [label]Sudo Priming:[/label] [text]Runs [path]sudo -v[/path] to cache credentials, preventing most
  password prompts during the run.[/text]
""",
    "initial-setup": f"""\
[title]Configuring Core System Files[/title]
{RULE}

[desc]Configures core system files for better performance and user experience.[/desc]

[label]Actions:[/label]
- [label]Environment Variables:[/label] [text]Copies [path]preconfig/99-custom-env.sh.txt[/path] to
  [path]/etc/profile.d/99-custom-env.sh[/path].[/text]
- [label]Pacman Configuration:[/label] [text]Edits [path]/etc/pacman.conf[/path] to:[/text]
  - [text]Enable [path]Color[/path] and add [path]ILoveCandy[/path].[/text]
  - [text]Enable [path]VerbosePkgLists[/path] and [path]DisableDownloadTimeout[/path].[/text]
  - [text]Set [path]ParallelDownloads = 10[/path] and [path]DownloadUser = alpm[/path].[/text]
- [label]Makepkg Configuration:[/label] [text]Overwrites [path]/etc/makepkg.conf[/path] with
  [path]preconfig/makepkg.conf.txt[/path].[/text]
- [label]Mirrorlist Management:[/label] [text]Installs [pkg]reflector[/pkg], enables [path]reflector.service[/path]
  and [path]reflector.timer[/path], and ranks mirrors for Bangladesh, India and Singapore
  into [path]/etc/pacman.d/mirrorlist[/path].[/text]
- [label]User Verification:[/label] [text]Shows both files and asks you to approve them or edit
  them with [pkg]nvim[/pkg] before continuing.[/text]
""",
    "setup-extra-repos": f"""\
[title]Setting Up the CachyOS Repository[/title]
{RULE}

[desc]Adds the CachyOS pacman repository for performance-optimized packages.[/desc]

[label]Actions:[/label]
- [label]CachyOS Repository:[/label] [text]If [path]\\[cachyos][/path] is not yet in [path]/etc/pacman.conf[/path],
  downloads [path]cachyos-repo.tar.xz[/path], extracts it and runs [path]./cachyos-repo.sh[/path].[/text]
  - [prompt]This part of the setup is interactive and requires user input.[/prompt]
- [label]System Upgrade:[/label] [text]Synchronizes and upgrades the system with [path]paru -Syu[/path].[/text]
""",
    "setup-asus": f"""\
[title]Configuring ASUS Laptop Support[/title]
{RULE}

[desc]Performs hardware-specific setup for ASUS laptops.[/desc]

[label]Condition:[/label]
- [text]Skipped automatically if [path]dmidecode -s system-manufacturer[/path] does not report "ASUS".[/text]

[label]Actions:[/label]
- [label]Add GPG Key:[/label] [text]Imports and locally signs the ASUS Linux repository key.[/text]
- [label]Add Repository:[/label] [text]Adds [path]\\[g14][/path] from [path]https://arch.asus-linux.org[/path] to
  [path]/etc/pacman.conf[/path] and runs [path]paru -Syu[/path].[/text]
- [label]Install Packages:[/label] [text][pkg]asusctl[/pkg], [pkg]power-profiles-daemon[/pkg], [pkg]supergfxctl[/pkg],
  [pkg]switcheroo-control[/pkg] and [pkg]rog-control-center[/pkg].[/text]
- [label]Enable Services:[/label] [path]power-profiles-daemon.service[/path], [path]supergfxd.service[/path],
  [path]switcheroo-control.service[/path]
""",
    "install-packages": f"""\
[title]Installing System Packages[/title]
{RULE}

[desc]The main package installation task. It reads package names line by line from
the configuration file and installs them.[/desc]

[label]Actions:[/label]
- [text]Reads [path]preconfig/packages.txt[/path], ignoring empty lines and lines starting with [path]#[/path].[/text]
- [text]Passes the remaining names to a single [path]paru -S --needed[/path] command, installing from
  both the official repositories and the AUR.[/text]
""",
    "manual-installs": f"""\
[title]Handling Manual Installations[/title]
{RULE}

[desc]Handles software that cannot be installed through a standard package manager.[/desc]

[label]Actions:[/label]
- [label]Private Internet Access VPN:[/label]
  - [text]Skipped when the [pkg]pia-client[/pkg] command already exists.[/text]
  - [text]Otherwise downloads [path]pia-linux-3.6.2-08398.run[/path], makes it executable and runs it.[/text]
  - [prompt]The PIA installer has its own user interface and requires interaction.[/prompt]
""",
    "setup-dotfiles": f"""\
[title]Linking User Dotfiles with Stow[/title]
{RULE}

[desc]Symlinks configuration files from the local 'dotfiles' directory into the user's
home directory using the 'stow' utility.[/desc]

[label]Condition:[/label]
- [text]Requires a [path]dotfiles/[/path] directory next to [path]preconfig/[/path]. Skipped otherwise.[/text]

[label]Actions:[/label]
- [label]Install Stow:[/label] [text]Installs [pkg]stow[/pkg] if it is missing.[/text]
- [label]Execute Stow:[/label] [text]Runs [path]stow . -t ~[/path] inside [path]dotfiles/[/path] as the target user.[/text]
""",
    "setup-nix": f"""\
[title]Setting up Nix & Home-Manager[/title]
{RULE}

[desc]Installs and configures the Nix package manager with Home-Manager and Flakes.[/desc]

[label]Actions:[/label]
- [label]Nix Installation:[/label] [text]If [path]/nix/store[/path] does not exist, downloads and runs the
  Determinate Systems installer.[/text]
  - [prompt]The Nix installer is interactive and will require user confirmation.[/prompt]
- [label]Environment Setup:[/label] [text]Loads the Nix environment from
  [path]/nix/var/nix/profiles/default/etc/profile.d/nix-daemon.sh[/path].[/text]
- [label]Nix Configuration:[/label] [text]Writes [path]~/.config/nix/nix.conf[/path] enabling [path]nix-command[/path]
  and [path]flakes[/path].[/text]
- [label]Home-Manager Initialization:[/label]
  - [text]Runs [path]nix run home-manager/master -- init --switch[/path] the first time.[/text]
  - [text]Runs [path]home-manager switch[/path]. If this fails, it retries once with a backup
    flag before the final attempt.[/text]
""",
    "configure-user": f"""\
[title]Configuring User Environment[/title]
{RULE}

[desc]Performs user-specific setup for the target user's environment.[/desc]

[label]Actions:[/label]
- [label]Default Shell:[/label] [text]Changes the login shell to [pkg]fish[/pkg] with [path]chsh[/path].[/text]
- [label]NPM Configuration:[/label] [text]Sets the global [pkg]npm[/pkg] prefix to [path]~/.npm-global[/path].[/text]
- [label]XDG Configuration:[/label]
  - [text]Runs [path]xdg-user-dirs-update[/path] to create the standard user directories.[/text]
  - [text]Writes [path]~/.config/mimeapps.list[/path] with default applications for images,
    videos, text files and web links.[/text]
- [label]User Services:[/label] [path]pipewire[/path], [path]pipewire-pulse[/path], [path]wireplumber[/path], [path]foot[/path]
""",
    "setup-editors": f"""\
[title]Setting Up Text Editors[/title]
{RULE}

[desc]Clones and sets up custom configurations for Neovim and Doom Emacs.[/desc]

[label]Note:[/label]
- [text]An editor whose configuration is already cloned from the expected repository is left alone.[/text]
- [text]Any other existing configuration is backed up with a timestamp
  (e.g. [path]~/.config/nvim.bak-YYYY-MM-DD_HH-MM[/path]).[/text]
- [text]Editors that are not installed are skipped.[/text]

[label]Neovim Actions:[/label]
- [text]Clones [path]https://github.com/aahsnr-configs/nvim-config.git[/path] into [path]~/.config/nvim[/path].[/text]
- [text]Runs a headless [path]nvim[/path] to sync plugins with Lazy.nvim, update treesitter parsers
  and install Mason tools.[/text]

[label]Doom Emacs Actions:[/label]
- [text]Clones [path]https://github.com/doomemacs/doomemacs[/path] into [path]~/.config/emacs[/path].[/text]
- [text]Clones [path]https://github.com/aahsnr-configs/doom-config.git[/path] into [path]~/.config/doom[/path].[/text]
- [text]Runs [path]~/.config/emacs/bin/doom install[/path]. [prompt]This can take a very long time.[/prompt][/text]
""",
    "cleanup": f"""\
[title]Performing System Cleanup[/title]
{RULE}

[desc]Performs system maintenance tasks to free up disk space.[/desc]

[label]Actions:[/label]
- [label]Remove Orphaned Packages:[/label] [text]Finds packages no longer required by anything with
  [path]paru -Qtdq[/path] and removes them with [path]paru -Rns[/path].[/text]
- [label]Clean Nix Store:[/label] [text]When Nix is installed, runs [path]nix-collect-garbage -d[/path].[/text]
""",
    "setup-greetd": f"""\
[title]Setting Up the Login Manager[/title]
{RULE}

[desc]Configures a lightweight, terminal-based display manager (login screen).[/desc]

[label]Actions:[/label]
- [label]Installation:[/label] [text]Installs [pkg]greetd[/pkg] and [pkg]greetd-tuigreet[/pkg].[/text]
- [label]Configuration:[/label] [text]Writes [path]/etc/greetd/config.toml[/path] to launch Hyprland via
  [path]tuigreet --cmd Hyprland[/path].[/text]
- [label]Conflict Resolution:[/label] [text]Disables and removes [pkg]sddm[/pkg] if it is installed.[/text]
- [label]Service Management:[/label] [text]Enables [path]greetd.service[/path] at boot.[/text]
""",
    "harden-system": f"""\
[title]Applying System Security Hardening[/title]
{RULE}

[desc]Applies a variety of security enhancements to the system.[/desc]

[label]Actions:[/label]
- [label]Install Packages:[/label] [text][pkg]apparmor[/pkg], [pkg]audit[/pkg], [pkg]ufw[/pkg], [pkg]haveged[/pkg], [pkg]lynis-git[/pkg] and more.[/text]
- [label]Enable Services:[/label] [path]auditd[/path], [path]apparmor[/path], [path]haveged[/path], [path]rngd[/path], [path]sshd[/path]
- [label]Audit Framework:[/label] [text]Creates the [path]audit[/path] group, adds the user to it and sets
  [path]log_group = audit[/path].[/text]
- [label]Harden SSH:[/label] [text]Writes [path]/etc/ssh/sshd_config.d/99-hardening.conf[/path] to move SSH to port
  [path]{SSH_PORT}[/path] (the configured SSH port), disable root login and allow public keys only.[/text]
- [label]Configure Firewall:[/label] [text]Allows [path]{SSH_PORT}/tcp[/path], denies [path]22/tcp[/path] and enables [pkg]UFW[/pkg].[/text]
- [label]Kernel Parameters:[/label] [text]Writes [path]/etc/sysctl.d/99-custom-hardening.conf[/path] and applies it.[/text]
- [label]Proc Filesystem:[/label] [text]Mounts [path]/proc[/path] with [path]hidepid=2[/path] via [path]/etc/fstab[/path].[/text]
""",
}


def describe(task_name: str) -> str:
    """Return the documentation block for a task. Raises KeyError if unknown."""
    return DOCS[task_name]


def render_documentation(task_names: Optional[Iterable[str]] = None) -> str:
    """Concatenate the intro and every task block, in canonical order."""
    names = list(task_names) if task_names is not None else list(DOCS)
    return "\n\n".join([INTRO] + [describe(name) for name in names])
