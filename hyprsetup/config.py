"""Static configuration for the Hyprland setup tasks."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

ENV_ROOT = "HYPRSETUP_ROOT"
ENV_USER = "HYPRSETUP_USER"

GREETD_CONFIG = """\
[terminal]
vt = 1

[default_session]
command = "tuigreet --cmd Hyprland"
user = "greeter"
"""

MIMEAPPS_LIST = """\
[Default Applications]
image/png=imv.desktop
image/jpeg=imv.desktop
video/mp4=mpv.desktop
text/html=zen-browser.desktop
x-scheme-handler/http=zen-browser.desktop
x-scheme-handler/https=zen-browser.desktop
text/plain=codium.desktop
application/pdf=org.gnome.Papers.desktop
inode/directory=thunar.desktop
"""

SSHD_HARDENING = """\
# Port and Logging
Port {port}
LogLevel VERBOSE

# Authentication
PermitRootLogin no
PasswordAuthentication no
ChallengeResponseAuthentication no
PubkeyAuthentication yes
AuthenticationMethods publickey
PermitEmptyPasswords no
MaxAuthTries 3

# Security & Forwarding
AllowAgentForwarding no
AllowTcpForwarding no
X11Forwarding no
TCPKeepAlive no

# Performance and Session Management
UseDNS no
PrintMotd no
MaxSessions 2
ClientAliveInterval 300
ClientAliveCountMax 2

# Cryptographic algorithms
KexAlgorithms curve25519-sha256@libssh.org,diffie-hellman-group-exchange-sha256
Ciphers chacha20-poly1305@openssh.com,aes256-gcm@openssh.com,aes128-gcm@openssh.com
MACs hmac-sha2-512-etm@openssh.com,hmac-sha2-256-etm@openssh.com,umac-128-etm@openssh.com
"""

SYSCTL_HARDENING = """\
kernel.kptr_restrict = 2
kernel.sysrq = 0
kernel.unprivileged_bpf_disabled = 1
kernel.yama.ptrace_scope = 2
net.ipv4.conf.all.rp_filter = 1
"""

NIX_CONF = """\
experimental-features = nix-command flakes
max-jobs = 4
"""


@dataclass
class Config:
    """Configuration settings for the Hyprland setup tasks."""

    # Connectivity
    PING_HOST: str = "8.8.8.8"

    # Package manager helpers
    AUR_HELPER: str = "paru"
    PARU_REPO: str = "https://aur.archlinux.org/paru-bin.git"
    LIMINE_HOOK_REPO: str = "https://aur.archlinux.org/limine-mkinitcpio-hook.git"
    SCRIPT_DEPENDENCIES: List[str] = field(
        default_factory=lambda: [
            "neovim", "wl-clipboard", "curl", "wget", "pciutils", "dmidecode", "xdg-user-dirs",
        ]
    )

    # Required preconfig files
    PACKAGES_FILE: str = "packages.txt"
    MAKEPKG_FILE: str = "makepkg.conf.txt"
    ENV_FILE: str = "99-custom-env.sh.txt"

    # System files
    PACMAN_CONF: str = "/etc/pacman.conf"
    MAKEPKG_CONF: str = "/etc/makepkg.conf"
    PROFILE_ENV: str = "/etc/profile.d/99-custom-env.sh"
    MIRRORLIST: str = "/etc/pacman.d/mirrorlist"
    PARALLEL_DOWNLOADS: int = 10
    REFLECTOR_COUNTRIES: str = "BD,IN,SG"

    # Extra repositories
    CACHYOS_URL: str = "https://mirror.cachyos.org/cachyos-repo.tar.xz"
    G14_KEY_ID: str = "8F654886F17D497FEFE3DB448B15A6B0E9A3FA35"
    G14_SERVER: str = "https://arch.asus-linux.org"
    ASUS_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "asusctl", "power-profiles-daemon", "supergfxctl", "switcheroo-control",
            "rog-control-center",
        ]
    )
    ASUS_SERVICES: List[str] = field(
        default_factory=lambda: [
            "power-profiles-daemon.service", "supergfxd.service", "switcheroo-control.service",
        ]
    )

    # Manual installs
    PIA_URL: str = (
        "https://installers.privateinternetaccess.com/download/pia-linux-3.6.2-08398.run"
    )

    # Nix
    NIX_INSTALLER_URL: str = "https://install.determinate.systems/nix"
    NIX_DAEMON_PROFILE: str = "/nix/var/nix/profiles/default/etc/profile.d/nix-daemon.sh"

    # User environment
    LOGIN_SHELL: str = "fish"
    USER_SERVICES: List[str] = field(
        default_factory=lambda: ["pipewire", "pipewire-pulse", "wireplumber", "foot"]
    )

    # Editors
    NVIM_CONFIG_REPO: str = "https://github.com/aahsnr-configs/nvim-config.git"
    DOOM_EMACS_REPO: str = "https://github.com/doomemacs/doomemacs"
    DOOM_CONFIG_REPO: str = "https://github.com/aahsnr-configs/doom-config.git"
    DOOM_CONFIG_BRANCH: str = "lsp-mode"

    # Login manager
    GREETD_CONFIG_FILE: str = "/etc/greetd/config.toml"

    # Hardening
    SECURITY_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "apparmor", "audit", "arch-audit", "openssh", "procps-ng", "rng-tools", "sysstat",
            "haveged", "lynis-git", "libpwquality", "bleachbit", "ufw",
        ]
    )
    SECURITY_SERVICES: List[str] = field(
        default_factory=lambda: ["auditd", "apparmor", "haveged", "rngd", "sshd"]
    )
    SSH_PORT: int = 47
    SSHD_DROPIN: str = "/etc/ssh/sshd_config.d/99-hardening.conf"
    SYSCTL_FILE: str = "/etc/sysctl.d/99-custom-hardening.conf"
    AUDITD_CONF: str = "/etc/audit/auditd.conf"
    FSTAB: str = "/etc/fstab"

    # Base directory holding preconfig/, dotfiles/ and logs/
    ROOT_DIR: Optional[Path] = None

    def __post_init__(self):
        """Resolve the base directory from the environment when not given."""
        if self.ROOT_DIR is None:
            self.ROOT_DIR = Path(os.environ.get(ENV_ROOT) or Path.cwd())
        self.ROOT_DIR = Path(self.ROOT_DIR).resolve()
        self.PRECONFIG_DIR = self.ROOT_DIR / "preconfig"
        self.DOTFILES_DIR = self.ROOT_DIR / "dotfiles"
        self.LOGS_DIR = self.ROOT_DIR / "logs"

    def required_files(self) -> List[Path]:
        return [
            self.PRECONFIG_DIR / self.PACKAGES_FILE,
            self.PRECONFIG_DIR / self.MAKEPKG_FILE,
            self.PRECONFIG_DIR / self.ENV_FILE,
        ]
