"""Exceptions raised by the setup runner."""


class SetupError(Exception):
    """Base class for every error the runner reports to the user."""


class UsageError(SetupError):
    """An unrecognised command-line flag."""

    def __init__(self, flag: str):
        super().__init__(f"Unknown flag: {flag}")
        self.flag = flag


class PreconditionError(SetupError):
    """The system is not in a state where any task may run."""


class TaskError(SetupError):
    """A task could not complete."""


class TerminalRequiredError(TaskError):
    """An interactive installer was requested without a controlling terminal."""


class UserAbort(SetupError):
    """The user chose to abort the run."""
