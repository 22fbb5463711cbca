"""Command-line interface for remote-shell."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from rich.console import Console

from .config import AppConfig, load_config
from .decorators import Safe, Verbose
from .errors import HostResolutionError, NonZeroExitError, SSHError
from .escape import escape
from .shell import Shell, SshShell
from .ssh.credentials import PrivateKey
from .utils.logging import bridge_transport_logging, get_logger
from .utils.streams import dead_input

_console = Console(stderr=True)


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remote-shell",
        description="Run a single command on a remote host over SSH.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Log session and polling details"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    exec_parser = subparsers.add_parser(
        "exec", help="Execute a command and exit with its exit code"
    )
    exec_parser.add_argument("--host", help="Target server host")
    exec_parser.add_argument("--port", type=int, default=None, help="SSH port")
    exec_parser.add_argument("--user", help="SSH login")
    exec_parser.add_argument(
        "--key-file", help="Path to SSH private key", default=None
    )
    exec_parser.add_argument(
        "--passphrase-env", metavar="VAR", default=None,
        help="Environment variable holding the private key passphrase",
    )
    exec_parser.add_argument(
        "--password-env", metavar="VAR", default=None,
        help="Environment variable holding the SSH password",
    )
    exec_parser.add_argument(
        "--safe", action="store_true",
        help="Fail with an error message when the command exits with nonzero"
    )
    exec_parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Also copy the command's output into the log"
    )
    exec_parser.add_argument(
        "--no-stdin", "-n", action="store_true",
        help="Do not forward local stdin to the command"
    )
    exec_parser.add_argument(
        "remote_command", nargs=argparse.REMAINDER,
        help="Command to run (put it after --)"
    )

    escape_parser = subparsers.add_parser(
        "escape", help="Print arguments quoted for a remote shell"
    )
    escape_parser.add_argument("args", nargs="+", help="Arguments to quote")

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    return CLIContext(config=load_config(args.config))


def _secret_from_env(name: str, flag: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ValueError(f"{flag}: environment variable {name} is not set")
    return value


def build_shell(args: argparse.Namespace, config: AppConfig) -> Shell:
    target = config.target
    host = args.host or target.host
    port = args.port or target.port
    user = args.user or target.user
    key_path = args.key_file if args.key_file is not None else target.key_path
    if args.password_env is not None:
        password = _secret_from_env(args.password_env, "--password-env")
    else:
        password = target.password
    missing = []
    if not host:
        missing.append("host")
    if not user:
        missing.append("user")
    if not key_path and not password:
        missing.append("key-file or password")
    if missing:
        raise ValueError("Missing SSH connection values: " + ", ".join(missing))
    assert host is not None
    assert user is not None

    shell: Shell
    if key_path:
        passphrase = None
        if args.passphrase_env is not None:
            passphrase = _secret_from_env(args.passphrase_env, "--passphrase-env")
        key = PrivateKey.from_file(key_path, passphrase)
        shell = SshShell.by_key(host, user, key, port=port, settings=config.shell)
    else:
        assert password is not None
        shell = SshShell.by_password(host, user, password, port=port, settings=config.shell)
    if args.verbose:
        shell = Verbose(shell)
    if args.safe:
        shell = Safe(shell)
    return shell


def handle_exec_command(args: argparse.Namespace, context: CLIContext) -> int:
    words = list(args.remote_command)
    if words and words[0] == "--":
        words = words[1:]
    if not words:
        raise ValueError("No command given to execute")
    command = " ".join(words)

    shell = build_shell(args, context.config)
    # a terminal read cannot be interrupted once the command is done
    if args.no_stdin or sys.stdin is None or sys.stdin.isatty():
        stdin = dead_input()
    else:
        stdin = sys.stdin.buffer
    return shell.execute(command, stdin, sys.stdout.buffer, sys.stderr.buffer)


def handle_escape_command(args: argparse.Namespace) -> int:
    for arg in args.args:
        print(escape(arg))
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    if args.command == "escape":
        return handle_escape_command(args)

    context = _build_context(args)
    if args.command == "exec":
        try:
            return handle_exec_command(args, context)
        except NonZeroExitError as exc:
            _console.print(f"[red]✗[/red] {exc}")
            return exc.code
        except (SSHError, HostResolutionError) as exc:
            _console.print(f"[red]✗ {type(exc).__name__}:[/red] {exc}")
            return 255

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger(level=logging.DEBUG if args.debug else logging.INFO)
    bridge_transport_logging()
    return dispatch_command(args)


def app_main() -> None:
    sys.exit(run_cli())
