"""Command registry: one lookup table fed by handler tables and spec directories."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .command_spec import CommandDefinition
from .errors import DefinitionError, DuplicateCommandError
from .logger import get_logger
from .sanitizer import build_params

_log = get_logger(__name__)

PACKAGED_SPECS_DIR = Path(__file__).resolve().parent / "specs"

SOURCE_TABLE = "table"
SOURCE_SPECS = "specs"
SOURCE_USER_SPECS = "user-specs"


class CommandEntry:
    """One registered, invokable command."""
    __slots__ = ("context", "name", "handler", "definition", "source")

    def __init__(self, context: str, name: str, handler: Callable,
                 definition: Optional[CommandDefinition] = None, source: str = SOURCE_TABLE):
        self.context = context
        self.name = name
        self.handler = handler
        self.definition = definition
        self.source = source

    @property
    def key(self) -> Tuple[str, str]:
        return (self.context, self.name)


class CommandRegistry:
    """Maps ``(context, name)`` to a command entry.

    Sources are loaded in priority order. A key seen twice from the same source
    is a startup error; a key already supplied by an earlier source keeps the
    earlier entry, so the in-process handler tables win over files on disk.
    """

    def __init__(self):
        self._entries: Dict[Tuple[str, str], CommandEntry] = {}
        self._contexts: Dict[str, List[str]] = {}

    def register(self, context: str, name: str, handler: Callable,
                 definition: Optional[CommandDefinition] = None,
                 source: str = SOURCE_TABLE) -> CommandEntry:
        key = (context, name)
        existing = self._entries.get(key)
        if existing is not None:
            if existing.source == source:
                raise DuplicateCommandError(context, name)
            _log.warning(
                "Command %s %s from %s shadowed by earlier %s definition",
                context, name, source, existing.source,
            )
            return existing

        entry = CommandEntry(context, name, handler, definition, source)
        self._entries[key] = entry
        self._contexts.setdefault(context, []).append(name)
        return entry

    def load(self, *sources) -> "CommandRegistry":
        """Register every entry each source yields, in argument order."""
        for source in sources:
            for entry in source.entries():
                self.register(entry.context, entry.name, entry.handler,
                              entry.definition, entry.source)
        return self

    def resolve(self, context: str, name: str) -> Optional[CommandEntry]:
        return self._entries.get((context, name))

    def lookup(self, context: str, name: str) -> Optional[CommandDefinition]:
        entry = self._entries.get((context, name))
        return entry.definition if entry else None

    def is_context(self, name: str) -> bool:
        return name in self._contexts

    def list_contexts(self) -> List[str]:
        return list(self._contexts)

    def list_commands(self, context: str) -> List[str]:
        return list(self._contexts.get(context, []))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._entries


# ── Source adapters ──────────────────────────────────────────


class HandlerTable:
    """Adapter over an object exposing an explicit ``commands()`` table.

    Each row is ``(name, handler, definition_or_None)``. Definitions built
    without a context are rebound to this table's context.
    """

    def __init__(self, context: str, handlers):
        self.context = context
        self.handlers = handlers

    def entries(self) -> Iterator[CommandEntry]:
        for name, handler, definition in self.handlers.commands():
            if definition is not None and definition.context != self.context:
                definition = CommandDefinition(
                    context=self.context,
                    name=definition.name,
                    description=definition.description,
                    fields=definition.fields,
                    output_type=definition.output_type,
                )
            yield CommandEntry(self.context, name, handler, definition, SOURCE_TABLE)


class RemoteCommand:
    """Handler for a file-defined command: forwards the call to the node."""

    def __init__(self, definition: CommandDefinition, invoker):
        self.definition = definition
        self.invoker = invoker

    def __call__(self, *values: Any) -> Any:
        d = self.definition
        params = build_params(d, values)
        _log.info("Remote call %s.%s params=%s", d.context, d.name, sorted(params))
        result = self.invoker.call(d.context, d.name, params)
        return d.format_output(result)

    def __repr__(self) -> str:
        return f"RemoteCommand({self.definition.context}.{self.definition.name})"


class SpecDirectory:
    """Adapter over ``root/<context>/*.json`` definition records."""

    def __init__(self, root, invoker, source: str = SOURCE_SPECS):
        self.root = Path(root).expanduser()
        self.invoker = invoker
        self.source = source

    def _context_dirs(self) -> List[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_dir() and not p.name.startswith("."))

    def records(self) -> Iterator[Tuple[str, Path, Any]]:
        for context_dir in self._context_dirs():
            for path in sorted(context_dir.glob("*.json")):
                try:
                    with open(path, encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise DefinitionError(str(path), f"cannot read record: {e}")
                yield context_dir.name, path, data

    def entries(self) -> Iterator[CommandEntry]:
        for context, path, data in self.records():
            definition = CommandDefinition.from_record(context, data, source=str(path))
            yield CommandEntry(
                context, definition.name, RemoteCommand(definition, self.invoker),
                definition, self.source,
            )


def build_default_registry(client, session, console, specs_dir=None,
                           extra_sources: Sequence = ()) -> CommandRegistry:
    """Built-in handler tables first, then packaged specs, then the user's specs."""
    from .handlers import build_handler_tables

    sources: List[Any] = list(build_handler_tables(client, session, console))
    sources.append(SpecDirectory(PACKAGED_SPECS_DIR, client))
    if specs_dir:
        sources.append(SpecDirectory(specs_dir, client, source=SOURCE_USER_SPECS))
    sources.extend(extra_sources)

    registry = CommandRegistry().load(*sources)
    _log.info("Registry loaded: %d commands in %d contexts",
              len(registry), len(registry.list_contexts()))
    return registry
