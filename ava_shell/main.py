"""
ava-shell: interactive command shell for an AVA node.

Commands: ava-shell run | ava-shell exec <context> <method> [args...]
"""

import shlex
import sys

import click
from rich.console import Console

from . import __version__
from .config import CONFIG_DIR, HISTORY_FILE, Config
from .dispatcher import CommandDispatcher
from .errors import DefinitionError, DuplicateCommandError
from .logger import current_log_file, setup_logger
from .output import print_result, render_error
from .pending import StatusPoller
from .registry import build_default_registry
from .rpc import NodeClient
from .session import ShellSession

console = Console()
BANNER = (
    f"[bold #7FA6D9]ava-shell[/bold #7FA6D9] "
    f"[dim]v{__version__} · AVA node command shell[/dim]"
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_CONNECTED = 2


def _build(host, port, protocol, specs_dir, verbose):
    config = Config.load()
    if host:
        config.node_host = host
    if port:
        config.node_port = port
    if protocol:
        config.node_protocol = protocol
    if specs_dir:
        config.specs_dir = specs_dir
    if verbose:
        config.verbose = True

    setup_logger("ava_shell", verbose=config.verbose, log_file=config.log_target())
    if config.verbose and current_log_file() is not None:
        console.print(f"[dim]Logging to {current_log_file()}[/dim]")

    client = NodeClient(
        host=config.node_host,
        port=config.node_port,
        protocol=config.node_protocol,
        timeout=config.request_timeout,
    )
    session = ShellSession()
    try:
        registry = build_default_registry(client, session, console, specs_dir=config.specs_dir)
    except (DefinitionError, DuplicateCommandError) as e:
        render_error(console, f"Cannot load command definitions: {e}")
        sys.exit(EXIT_ERROR)

    return config, client, CommandDispatcher(registry, session, console)


_node_options = [
    click.option("--host", default=None, help="Node host"),
    click.option("--port", type=int, default=None, help="Node port"),
    click.option("--protocol", type=click.Choice(["http", "https"]), default=None),
    click.option("--specs-dir", default=None, help="Extra command definition directory"),
    click.option("--verbose", "-v", is_flag=True, help="Verbose output"),
]


def node_options(func):
    for option in reversed(_node_options):
        func = option(func)
    return func


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """ava-shell: interactive command shell for an AVA node."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@node_options
def run(host=None, port=None, protocol=None, specs_dir=None, verbose=False):
    """Start an interactive session."""
    console.print(BANNER)
    config, client, dispatcher = _build(host, port, protocol, specs_dir, verbose)

    if client.connect():
        console.print(f"[dim]Connected to {client.base_url} · node {client.node_id}[/dim]")
    else:
        console.print(f"[yellow]⚠ AVA node at {client.base_url} is not connected[/yellow]")

    from .shell import make_settled_notifier, run_repl

    pending = dispatcher.session.pending
    pending.set_callback(make_settled_notifier(console))
    poller = StatusPoller(pending, client, interval=config.poll_interval)
    poller.start()

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    try:
        run_repl(dispatcher, console, history_file=HISTORY_FILE)
    finally:
        poller.stop()
        client.close()


@cli.command("exec")
@click.argument("tokens", nargs=-1, required=True)
@node_options
def exec_cmd(tokens, host, port, protocol, specs_dir, verbose):
    """Run a single command and exit."""
    _, client, dispatcher = _build(host, port, protocol, specs_dir, verbose)
    if not client.connect():
        render_error(console, "AVA node is not connected")
        sys.exit(EXIT_NOT_CONNECTED)

    result = dispatcher.handle(" ".join(shlex.quote(t) for t in tokens))
    print_result(console, result.output)
    client.close()
    sys.exit(EXIT_OK if result.ok else EXIT_ERROR)


@cli.command("config")
def config_cmd():
    """Show configuration."""
    cfg = Config.load()
    for key, value in cfg.summary().items():
        console.print(f"  [bold #7FA6D9]{key:<16}[/bold #7FA6D9] {value}")


if __name__ == "__main__":
    cli()
