"""Tab completion over contexts and their commands."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from prompt_toolkit.completion import Completer, Completion

from .dispatcher import RESERVED_WORDS, TokenizeError, split_tokens
from .registry import CommandRegistry
from .session import ShellSession

UsageSink = Callable[[str], None]


def _matches(needle: str, haystack: Sequence[str]) -> List[str]:
    return sorted(c for c in haystack if c.startswith(needle))


def _with_separator(items: Sequence[str]) -> List[str]:
    return [f"{item} " for item in items]


class CompletionProvider:
    """Candidate lists for a partial line, given the session's active context.

    A fully typed ``<context> <command>`` (no active context) completes to
    nothing and sends the command's usage block to ``usage_sink`` instead.
    """

    def __init__(self, registry: CommandRegistry, session: ShellSession,
                 usage_sink: Optional[UsageSink] = None):
        self.registry = registry
        self.session = session
        self.usage_sink = usage_sink

    def top_level_commands(self) -> List[str]:
        return list(RESERVED_WORDS) + self.registry.list_contexts()

    def context_commands(self, context: str) -> List[str]:
        return self.registry.list_commands(context) + list(RESERVED_WORDS)

    def complete(self, line: str) -> Tuple[List[str], str]:
        try:
            tokens = split_tokens(line)
        except TokenizeError:
            return [], ""
        if tokens and line[-1:].isspace():
            tokens.append("")

        if not tokens:
            return self.top_level_commands(), ""

        context = self.session.active_context
        if context is not None:
            if len(tokens) == 1:
                return _with_separator(_matches(tokens[0], self.context_commands(context))), tokens[0]
            return [], ""

        if len(tokens) == 1:
            if self.registry.is_context(tokens[0]):
                return self.context_commands(tokens[0]), tokens[0]
            return _with_separator(_matches(tokens[0], self.top_level_commands())), tokens[0]

        definition = self.registry.lookup(tokens[0], tokens[1])
        if definition is not None:
            if self.usage_sink is not None:
                self.usage_sink(definition.usage())
            return [], tokens[-1]

        if len(tokens) == 2:
            commands = self.context_commands(tokens[0]) if self.registry.is_context(tokens[0]) else []
            return _with_separator(_matches(tokens[1], commands)), tokens[1]
        return [], tokens[-1]


class ContextCompleter(Completer):
    """prompt_toolkit adapter around :class:`CompletionProvider`."""

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    def get_completions(self, document, complete_event):
        candidates, fragment = self.provider.complete(document.text_before_cursor)
        for candidate in candidates:
            if candidate.startswith(fragment):
                yield Completion(text=candidate, start_position=-len(fragment),
                                 display=candidate.strip())
            else:
                # An exact context name lists its children after a separator.
                yield Completion(text=" " + candidate, start_position=0, display=candidate)
