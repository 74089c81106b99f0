"""Shared fixtures for ava-shell tests."""

import json
import os

import pytest

from ava_shell.dispatcher import CommandDispatcher
from ava_shell.handlers import build_handler_tables
from ava_shell.registry import CommandRegistry
from ava_shell.session import KeystoreUser, ShellSession


class DummyConsole:
    def __init__(self):
        self.messages = []

    def print(self, *args, **kwargs):
        self.messages.append((args, kwargs))

    def text(self) -> str:
        return "\n".join(" ".join(str(a) for a in args) for args, _ in self.messages)


class FakeClient:
    """Records every node call and answers from a canned table."""

    def __init__(self, responses=None):
        self.calls = []
        self.responses = dict(responses or {})
        self.node_id = "NodeID-test"
        self.statuses = {}

    def call(self, context, method, params=None):
        self.calls.append((context, method, params))
        response = self.responses.get(f"{context}.{method}")
        if isinstance(response, Exception):
            raise response
        return response

    def connect(self):
        return True

    def get_tx_status(self, tx_id):
        status = self.statuses.get(tx_id, "Processing")
        if isinstance(status, Exception):
            raise status
        return status

    def list_users(self):
        return self.call("keystore", "listUsers") or []

    def create_user(self, username, password):
        self.call("keystore", "createUser", {"username": username, "password": password})
        return True


class RecordingHandlers:
    """Handler table whose commands only record their arguments."""

    def __init__(self, rows):
        self.rows = rows
        self.invocations = []

    def _recorder(self, name, result=None):
        def handler(*args):
            self.invocations.append((name, args))
            return result
        return handler

    def commands(self):
        return [(name, self._recorder(name, result), definition)
                for name, definition, result in self.rows]


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def console():
    return DummyConsole()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def session():
    return ShellSession()


@pytest.fixture
def logged_in_session():
    s = ShellSession()
    s.keystore.add_user(KeystoreUser("alice", "s3cret"), set_active=True)
    return s


@pytest.fixture
def write_spec(tmp_path):
    """Write one definition record under tmp_path/specs/<context>/<name>.json."""
    root = tmp_path / "specs"

    def _write(context, record, filename=None):
        context_dir = root / context
        context_dir.mkdir(parents=True, exist_ok=True)
        path = context_dir / (filename or f"{record['name']}.json")
        path.write_text(json.dumps(record), encoding="utf-8")
        return path

    _write.root = root
    return _write


@pytest.fixture
def builtin_registry(client, session, console):
    return CommandRegistry().load(*build_handler_tables(client, session, console))


@pytest.fixture
def make_dispatcher(console):
    def _make(registry, session):
        return CommandDispatcher(registry, session, console)
    return _make
