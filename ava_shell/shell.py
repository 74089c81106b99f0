"""Interactive front end: prompt_toolkit read-eval loop and interactive prompts."""

from __future__ import annotations

from typing import Callable, List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console

from .completion import CompletionProvider, ContextCompleter
from .dispatcher import CommandDispatcher
from .logger import get_logger
from .output import DIM, SUCCESS, WARN, print_result, print_usage
from .pending import OperationState
from .session import PromptQuestion

_log = get_logger(__name__)


class ShellPrompter:
    """Asks multi-step questions inside a running command.

    Ctrl-C or Ctrl-D cancels the remaining questions of this prompt only; the
    command that asked decides what a cancelled prompt means.
    """

    def __init__(self, console: Console, prompt_fn: Optional[Callable[..., str]] = None):
        self.console = console
        self._prompt_fn = prompt_fn
        self.is_prompting = False

    def _prompt(self, message: str, secret: bool) -> str:
        if self._prompt_fn is None:
            self._prompt_fn = PromptSession(history=InMemoryHistory()).prompt
        return self._prompt_fn(message, is_password=secret)

    def ask(self, questions: List[PromptQuestion]) -> bool:
        self.is_prompting = True
        try:
            for q in questions:
                try:
                    q.answer = self._prompt(f"{q.question}: ", q.secret)
                except (KeyboardInterrupt, EOFError):
                    self.console.print(f"[{DIM}]Prompt cancelled[/{DIM}]")
                    return False
            return True
        finally:
            self.is_prompting = False


def make_settled_notifier(console: Console) -> Callable[[str, OperationState], None]:
    """Callback for the pending tracker; prints above the live prompt."""

    def on_operation_settled(op_id: str, state: OperationState) -> None:
        if state is OperationState.ACCEPTED:
            console.print(f"\n[{SUCCESS}]Transaction {op_id} accepted[/{SUCCESS}]")
        else:
            console.print(f"\n[{WARN}]Transaction {op_id} failed[/{WARN}]")

    return on_operation_settled


def run_repl(dispatcher: CommandDispatcher, console: Console, history_file=None) -> None:
    """Read lines until ``exit`` outside a context, or Ctrl-C / double Ctrl-D."""
    provider = CompletionProvider(
        dispatcher.registry,
        dispatcher.session,
        usage_sink=lambda usage: print_usage(console, "\n" + usage),
    )
    history = FileHistory(str(history_file)) if history_file else InMemoryHistory()
    prompt_session = PromptSession(
        history=history,
        completer=ContextCompleter(provider),
        complete_while_typing=False,
    )
    dispatcher.session.prompter = ShellPrompter(console)
    pending_ctrl_d_exit = False

    with patch_stdout():
        while True:
            try:
                line = prompt_session.prompt(dispatcher.prompt_text()).strip()
                pending_ctrl_d_exit = False
            except EOFError:
                if pending_ctrl_d_exit:
                    console.print(f"\n[{DIM}]Goodbye![/{DIM}]")
                    break
                pending_ctrl_d_exit = True
                console.print(f"\n[{DIM}]Press Ctrl-D again to exit.[/{DIM}]")
                continue
            except KeyboardInterrupt:
                console.print(f"\n[{DIM}]Goodbye![/{DIM}]")
                break

            if not line:
                continue

            try:
                result = dispatcher.handle(line)
            except KeyboardInterrupt:
                console.print(f"\n[{WARN}]  Interrupted.[/{WARN}]")
                continue

            if result.quit:
                console.print(f"[{DIM}]Exiting...[/{DIM}]")
                break
            print_result(console, result.output)
