"""Tests for the click entry point in one-shot mode."""

import logging

import pytest
import yaml
from click.testing import CliRunner

from ava_shell import config as config_module
from ava_shell import main as main_module
from ava_shell.main import cli


class StubNodeClient:
    connected = True
    instances = []

    def __init__(self, host, port, protocol, timeout):
        self.base_url = f"{protocol}://{host}:{port}"
        self.node_id = "NodeID-stub"
        self.calls = []
        StubNodeClient.instances.append(self)

    def connect(self):
        return self.connected

    def call(self, context, method, params=None):
        self.calls.append((context, method, params))
        return {"networkID": "12345"}

    def close(self):
        pass


@pytest.fixture
def runner(tmp_dir, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_dir / "home")
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_dir / "home" / "config.yml")
    with open(tmp_dir / ".avash.conf.yml", "w") as f:
        yaml.dump({"log-file": False}, f)
    monkeypatch.setattr(main_module, "NodeClient", StubNodeClient)
    StubNodeClient.connected = True
    StubNodeClient.instances = []
    yield CliRunner()

    logger = logging.getLogger("ava_shell")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_exec_runs_one_command(runner):
    result = runner.invoke(cli, ["exec", "info", "getNetworkID"])
    assert result.exit_code == 0
    assert StubNodeClient.instances[0].calls == [("info", "getNetworkID", {})]


def test_exec_reports_errors_with_exit_code(runner):
    result = runner.invoke(cli, ["exec", "nowhere", "thing"])
    assert result.exit_code == 1
    assert "Unknown context" in result.output


def test_exec_without_node(runner):
    StubNodeClient.connected = False
    result = runner.invoke(cli, ["exec", "info", "getNetworkID"])
    assert result.exit_code == 2
    assert StubNodeClient.instances[0].calls == []


def test_exec_passes_node_options(runner):
    runner.invoke(cli, ["exec", "--host", "node.example", "--port", "9651", "info", "getNetworkID"])
    assert StubNodeClient.instances[0].base_url == "http://node.example:9651"


def test_malformed_user_specs_abort_startup(runner, tmp_dir):
    bad = tmp_dir / "myspecs" / "avm"
    bad.mkdir(parents=True)
    (bad / "broken.json").write_text("{nope")
    result = runner.invoke(cli, ["exec", "--specs-dir", str(tmp_dir / "myspecs"), "info", "getNetworkID"])
    assert result.exit_code == 1
    assert "Cannot load command definitions" in result.output


def test_config_shows_node_from_project_file(runner, tmp_dir, monkeypatch):
    for var in ("AVA_NODE_HOST", "AVA_NODE_PORT", "AVA_NODE_PROTOCOL"):
        monkeypatch.delenv(var, raising=False)
    with open(tmp_dir / ".avash.conf.yml", "w") as f:
        yaml.dump({"node-host": "node.example", "node-port": 9651, "log-file": False}, f)
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    assert "http://node.example:9651" in result.output
