"""
Run context: who the setup is for, where its files live, and the scratch
paths that must be removed however the run ends.
"""

import atexit
import logging
import os
import pwd
import shutil
import signal
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from hyprsetup import LOGGER_NAME
from hyprsetup.config import ENV_USER, Config
from hyprsetup.errors import PreconditionError
from hyprsetup.ui import print_error

TEMP_PREFIX = "hyprsetup_"
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class RunContext:
    """Process-wide state for a single invocation, passed to every task."""

    target_user: str
    user_home: Path
    config: Config
    debug: bool = False
    has_tty: bool = False
    log_file: Optional[Path] = None
    temp_paths: List[Path] = field(default_factory=list)

    _cleaned: bool = field(default=False, init=False, repr=False)
    _previous_handlers: Dict[int, Any] = field(default_factory=dict, init=False, repr=False)

    @property
    def root_dir(self) -> Path:
        return self.config.ROOT_DIR

    @property
    def preconfig_dir(self) -> Path:
        return self.config.PRECONFIG_DIR

    @property
    def dotfiles_dir(self) -> Path:
        return self.config.DOTFILES_DIR

    @property
    def logs_dir(self) -> Path:
        return self.config.LOGS_DIR

    # --- Scratch space ---
    def register_temp(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        self.temp_paths.append(path)
        logger.debug(f"Registered temporary path {path}")
        return path

    def mkdtemp(self) -> Path:
        """Create a scratch directory that is removed when the run ends."""
        return self.register_temp(tempfile.mkdtemp(prefix=TEMP_PREFIX))

    def mkstemp(self, suffix: str = "") -> Path:
        """Create a scratch file that is removed when the run ends."""
        fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix)
        os.close(fd)
        return self.register_temp(name)

    def cleanup(self) -> None:
        """Remove every registered scratch path. Runs at most once."""
        if self._cleaned:
            return
        self._cleaned = True
        removed = 0
        for path in self.temp_paths:
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                elif path.exists() or path.is_symlink():
                    path.unlink()
                else:
                    continue
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to remove temporary path {path}: {e}")
        if self.temp_paths:
            logger.debug(f"Removed {removed} of {len(self.temp_paths)} temporary paths.")

    # --- Guaranteed cleanup ---
    def _handle_signal(self, signum, frame) -> None:
        sig_name = signal.Signals(signum).name
        print_error(f"Script interrupted by {sig_name}. Cleaning up...")
        raise SystemExit(128 + signum)

    def __enter__(self) -> "RunContext":
        atexit.register(self.cleanup)
        for sig in HANDLED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.cleanup()
        finally:
            atexit.unregister(self.cleanup)
            for sig, handler in self._previous_handlers.items():
                signal.signal(sig, handler)
            self._previous_handlers.clear()


def resolve_user() -> str:
    """Determine the invoking non-root user."""
    user = os.environ.get(ENV_USER)
    if user:
        return user
    try:
        return os.getlogin()
    except OSError as e:
        raise PreconditionError(
            f"Could not determine the current user (set {ENV_USER} to override)."
        ) from e


def resolve_home(user: str) -> Path:
    try:
        return Path(pwd.getpwnam(user).pw_dir)
    except KeyError as e:
        raise PreconditionError(f"Could not determine home directory for user '{user}'.") from e


def resolve_context(config: Optional[Config] = None, debug: bool = False) -> RunContext:
    """
    Build the run context, failing fast when the user or home is unknown.

    Args:
        config: Configuration to use, defaults to a fresh Config
        debug: Whether command tracing is enabled

    Returns:
        A RunContext that is not yet entered
    """
    config = config or Config()
    user = resolve_user()
    return RunContext(
        target_user=user,
        user_home=resolve_home(user),
        config=config,
        debug=debug,
        has_tty=sys.stdin.isatty(),
    )
