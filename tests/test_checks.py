"""
Tests for the idempotency predicates.
"""

import pytest

from hyprsetup import checks


class TestPackages:
    def test_installed(self, ctx, commands):
        assert checks.is_pkg_installed(ctx, "foot")
        assert commands.calls == [["pacman", "-Q", "foot"]]

    def test_not_installed(self, ctx, commands):
        commands.fail("pacman -Q sddm")
        assert not checks.is_pkg_installed(ctx, "sddm")

    def test_missing_packages(self, ctx, commands):
        commands.fail("pacman -Q waybar")
        assert checks.missing_packages(ctx, ["foot", "waybar"]) == ["waybar"]

    def test_packages_installed_single_query(self, ctx, commands):
        assert checks.packages_installed(ctx, ["foot", "waybar"])
        assert commands.calls == [["pacman", "-Q", "foot", "waybar"]]

    def test_empty_list_is_installed(self, ctx, commands):
        assert checks.packages_installed(ctx, [])
        assert commands.calls == []

    def test_missing_tool_is_not_run(self, ctx, commands):
        commands.available.discard("pacman")
        assert not checks.is_pkg_installed(ctx, "foot")
        assert commands.calls == []

    def test_orphans(self, ctx, commands):
        commands.respond("pacman -Qtdq", stdout="libfoo\nlibbar\n\n")
        assert checks.orphaned_packages(ctx) == ["libfoo", "libbar"]

    def test_no_orphans(self, ctx, commands):
        commands.fail("pacman -Qtdq")
        assert checks.orphaned_packages(ctx) == []


class TestFiles:
    def test_file_contains(self, tmp_path):
        conf = tmp_path / "pacman.conf"
        conf.write_text("[options]\nColor\n\n[cachyos]\nInclude = x\n")
        assert checks.file_contains(conf, r"^Color$")
        assert checks.pacman_repo_configured(conf, "cachyos")
        assert not checks.pacman_repo_configured(conf, "g14")

    def test_commented_repo_is_not_configured(self, tmp_path):
        conf = tmp_path / "pacman.conf"
        conf.write_text("#[g14]\n#Server = x\n")
        assert not checks.pacman_repo_configured(conf, "g14")

    def test_missing_file(self, tmp_path):
        assert not checks.file_contains(tmp_path / "missing", ".")
        assert not checks.file_has_content(tmp_path / "missing", "")
        assert not checks.files_match(tmp_path / "missing", tmp_path / "also-missing")

    def test_files_match(self, tmp_path):
        first, second = tmp_path / "a", tmp_path / "b"
        first.write_text("same")
        second.write_text("same")
        assert checks.files_match(first, second)
        second.write_text("different")
        assert not checks.files_match(first, second)

    def test_file_has_content(self, tmp_path):
        target = tmp_path / "nix.conf"
        target.write_text("max-jobs = 4\n")
        assert checks.file_has_content(target, "max-jobs = 4\n")
        assert not checks.file_has_content(target, "max-jobs = 8\n")


class TestServicesAndRepos:
    def test_system_service(self, ctx, commands):
        assert checks.is_service_enabled(ctx, "greetd.service")
        assert commands.calls == [["systemctl", "is-enabled", "--quiet", "greetd.service"]]

    def test_user_service(self, ctx, commands):
        commands.fail("--user is-enabled")
        assert not checks.is_service_enabled(ctx, "foot", user=True)

    def test_git_remote_matches(self, ctx, commands, tmp_path):
        repo = tmp_path / "nvim"
        (repo / ".git").mkdir(parents=True)
        commands.respond("remote get-url origin", stdout="https://example.com/nvim.git\n")
        assert checks.git_remote_matches(ctx, repo, "https://example.com/nvim.git")
        assert not checks.git_remote_matches(ctx, repo, "https://example.com/other.git")

    def test_git_remote_without_checkout(self, ctx, commands, tmp_path):
        assert not checks.git_remote_matches(ctx, tmp_path / "nvim", "https://example.com/x.git")
        assert commands.calls == []


def test_group_helpers_for_missing_group():
    assert not checks.group_exists("no-such-group-hyprsetup")
    assert not checks.group_has_member("no-such-group-hyprsetup", "root")


def test_login_shell_unknown_user():
    assert checks.login_shell("no-such-user-hyprsetup") == ""


UFW_ACTIVE = """\
Status: active

To                         Action      From
--                         ------      ----
47/tcp                     ALLOW       Anywhere                   # Custom SSH Port
22/tcp                     DENY        Anywhere
47/tcp (v6)                ALLOW       Anywhere (v6)              # Custom SSH Port
22/tcp (v6)                DENY        Anywhere (v6)
"""


class TestFirewall:
    def test_configured(self, ctx, commands):
        commands.available.add("ufw")
        commands.respond("ufw status", stdout=UFW_ACTIVE)
        assert checks.ufw_configured(ctx, 47)
        assert commands.calls == [["sudo", "ufw", "status"]]

    def test_other_port(self, ctx, commands):
        commands.available.add("ufw")
        commands.respond("ufw status", stdout=UFW_ACTIVE)
        assert not checks.ufw_configured(ctx, 2222)

    def test_inactive(self, ctx, commands):
        commands.available.add("ufw")
        commands.respond("ufw status", stdout="Status: inactive\n")
        assert not checks.ufw_configured(ctx, 47)

    def test_ssh_still_open(self, ctx, commands):
        commands.available.add("ufw")
        status = "Status: active\n\n47/tcp                     ALLOW       Anywhere\n"
        commands.respond("ufw status", stdout=status)
        assert not checks.ufw_configured(ctx, 47)

    def test_not_installed(self, ctx, commands):
        assert not checks.ufw_configured(ctx, 47)
        assert commands.calls == []


class TestStowLinked:
    @pytest.fixture
    def package(self, tmp_path):
        source = tmp_path / "dotfiles"
        (source / ".config" / "foot").mkdir(parents=True)
        (source / ".config" / "foot" / "foot.ini").write_text("font=monospace\n")
        (source / ".zshrc").write_text("export EDITOR=nvim\n")
        (source / ".git").mkdir()
        (source / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        (source / "README.md").write_text("dotfiles\n")
        target = tmp_path / "home"
        (target / ".config").mkdir(parents=True)
        return source, target

    def test_nothing_linked(self, package):
        source, target = package
        assert not checks.stow_linked(source, target)

    def test_folded_directory(self, package):
        source, target = package
        (target / ".zshrc").symlink_to(source / ".zshrc")
        (target / ".config" / "foot").symlink_to(source / ".config" / "foot")
        assert checks.stow_linked(source, target)

    def test_per_file_links(self, package):
        source, target = package
        (target / ".zshrc").symlink_to(source / ".zshrc")
        (target / ".config" / "foot").mkdir()
        (target / ".config" / "foot" / "foot.ini").symlink_to(source / ".config" / "foot" / "foot.ini")
        assert checks.stow_linked(source, target)

    def test_plain_copy_is_not_linked(self, package):
        source, target = package
        (target / ".zshrc").write_text("export EDITOR=nvim\n")
        (target / ".config" / "foot").symlink_to(source / ".config" / "foot")
        assert not checks.stow_linked(source, target)
