"""
Confirmation prompts.

Every prompt uses the same answers: Enter or 'y' runs, 's' skips, 'a' aborts
the whole run. Anything else is rejected and the question is asked again.
"""

from enum import Enum
from typing import Dict, Optional, TextIO, Type

from rich.console import Console
from rich.markup import escape
from rich.prompt import InvalidResponse, PromptBase

from hyprsetup.ui import console, print_warning


class Response(Enum):
    YES = "yes"
    SKIP = "skip"
    ABORT = "abort"
    EDIT = "edit"


class TaskPrompt(PromptBase[Response]):
    """Run (Enter) / Skip / Abort."""

    answers: Dict[str, Response] = {
        "y": Response.YES,
        "s": Response.SKIP,
        "a": Response.ABORT,
    }
    hint = "Run (Enter), \\[S]kip, \\[A]bort? \\[Y/s/a]"
    validate_error_message = "[prompt.invalid]⚠ Invalid input. Please choose 's' or 'a', or press Enter to run."
    prompt_suffix = ": "

    @classmethod
    def get_input(
        cls, console: Console, prompt, password: bool, stream: Optional[TextIO] = None
    ) -> str:
        value = super().get_input(console, prompt, password, stream=stream)
        if stream is not None and not value:
            raise EOFError
        return value

    def process_response(self, value: str) -> Response:
        answer = value.strip().lower()
        if not answer:
            return Response.YES
        response = self.answers.get(answer[0])
        if response is None:
            raise InvalidResponse(self.validate_error_message)
        return response


class MandatoryPrompt(TaskPrompt):
    """Run (Enter) / Abort, for steps that cannot be skipped."""

    answers = {"y": Response.YES, "a": Response.ABORT}
    hint = "Run (Enter), \\[A]bort? \\[Y/a]"
    validate_error_message = "[prompt.invalid]⚠ This step cannot be skipped. Press Enter to run or 'a' to abort."


class ReviewPrompt(TaskPrompt):
    """Approve (Enter) / Edit / Abort."""

    answers = {"y": Response.YES, "e": Response.EDIT, "a": Response.ABORT}
    hint = "Approve (Enter), \\[E]dit, \\[A]bort? \\[Y/e/a]"
    validate_error_message = "[prompt.invalid]⚠ Invalid input. Please choose 'e' or 'a', or press Enter to approve."


def ask(
    question: str,
    prompt_cls: Type[TaskPrompt] = TaskPrompt,
    stream: Optional[TextIO] = None,
) -> Response:
    """
    Ask a question and block until a valid answer is given.

    End of input counts as Abort so an unattended run never proceeds on its own.

    Args:
        question: Question text (plain, not markup)
        prompt_cls: Which set of answers to accept
        stream: Optional stream to read from instead of stdin

    Returns:
        The chosen Response
    """
    text = f"[prompt]❓ {escape(question)} {prompt_cls.hint}[/prompt]"
    try:
        return prompt_cls.ask(text, console=console, stream=stream)
    except EOFError:
        console.print()
        print_warning("No input available. Aborting.")
        return Response.ABORT
