"""Command dispatch: tokenize a line, resolve context + method, validate, invoke."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Any, List, Optional

from rich.console import Console

from .errors import (
    HandlerInvocationError,
    ShellError,
    UnknownContextError,
    UnknownMethodError,
    ValidationError,
)
from .logger import get_logger
from .output import print_usage, render_error
from .pending import OperationReceipt
from .registry import CommandRegistry
from .sanitizer import validate
from .session import ShellSession

_log = get_logger(__name__)

EXIT_WORD = "exit"
HELP_WORD = "help"
RESERVED_WORDS = [HELP_WORD, EXIT_WORD]

BASIC_HELP = "Invalid command. Type help to see all supported commands"


class TokenizeError(ShellError):
    pass


def split_tokens(line: str) -> List[str]:
    """Split on whitespace, honouring shell-style quotes."""
    try:
        return shlex.split(line)
    except ValueError as e:
        raise TokenizeError(f"Cannot parse input: {e}")


@dataclass
class CommandResult:
    output: Any = None
    error: Optional[ShellError] = None
    quit: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class CommandDispatcher:
    def __init__(self, registry: CommandRegistry, session: ShellSession, console: Console):
        self.registry = registry
        self.session = session
        self.console = console

    @property
    def active_context(self) -> Optional[str]:
        return self.session.active_context

    def handle(self, line: str) -> CommandResult:
        """Run one input line. Per-command errors are reported, never raised."""
        try:
            tokens = split_tokens(line)
        except TokenizeError as e:
            return self._fail(e)

        if not tokens:
            return CommandResult()

        if tokens == [EXIT_WORD]:
            if self.session.active_context is not None:
                _log.info("Leaving context %s", self.session.active_context)
                self.session.active_context = None
                return CommandResult()
            return CommandResult(quit=True)

        if tokens == [HELP_WORD]:
            self.print_help(self.session.active_context)
            return CommandResult()
        if len(tokens) == 2 and tokens[1] == HELP_WORD and self.registry.is_context(tokens[0]):
            self.print_help(tokens[0])
            return CommandResult()

        if (len(tokens) == 1 and self.registry.is_context(tokens[0])
                and tokens[0] != self.session.active_context):
            _log.info("Entering context %s", tokens[0])
            self.session.active_context = tokens[0]
            return CommandResult()

        if self.session.active_context is None and len(tokens) < 2:
            self.console.print(f"[red]{BASIC_HELP}[/red]")
            return CommandResult()

        try:
            return CommandResult(output=self._dispatch(tokens))
        except ShellError as e:
            return self._fail(e)

    def _dispatch(self, tokens: List[str]) -> Any:
        params = list(tokens)
        context = self.session.active_context
        if context is None:
            context = params.pop(0)
        if not self.registry.is_context(context):
            raise UnknownContextError(context)

        method = params.pop(0)
        entry = self.registry.resolve(context, method)
        if entry is None:
            raise UnknownMethodError(context, method)

        definition = entry.definition
        if definition is not None:
            try:
                args = validate(definition, params, credential=self.session.credential)
            except ValidationError as e:
                render_error(self.console, str(e))
                print_usage(self.console, definition.usage("Usage: "))
                _log.warning("%s %s: %s", context, method, e)
                raise
        else:
            args = params

        _log.info("Invoking %s %s", context, method)
        try:
            result = entry.handler(*args)
        except Exception as e:
            raise HandlerInvocationError(context, method, e) from e

        if isinstance(result, OperationReceipt):
            self.session.pending.add(result.id)
        return result

    def _fail(self, error: ShellError) -> CommandResult:
        # Validation errors were already printed alongside the usage block.
        if not isinstance(error, ValidationError):
            _log.error("%s", error)
            render_error(self.console, str(error))
        return CommandResult(error=error)

    # ── Help & prompt ──

    def print_help(self, context: Optional[str] = None) -> None:
        lines = ["-------------------", "SUPPORTED COMMANDS:", "-------------------"]
        for ctx in self.registry.list_contexts():
            if context and ctx != context:
                continue
            lines.append(ctx)
            for name in self.registry.list_commands(ctx):
                definition = self.registry.lookup(ctx, name)
                if definition is not None:
                    lines.append(definition.usage("    "))
                else:
                    lines.append(f"    {name}\n")
            lines.append("")
        self.console.print("\n".join(lines), markup=False, highlight=False)

    def prompt_text(self) -> str:
        prompt = "ava"
        username = self.session.keystore.active_username
        if username:
            prompt = f"{username}@ava"
        if self.session.active_context:
            prompt = f"{prompt} {self.session.active_context}"
        return prompt + "> "
