import asyncio
import json
import os
import signal
from pathlib import Path

import click

from heats.ipc.protocol import IpcFormat


@click.group("heats")
def main():
    """
    Heats launcher.
    """
    pass


@main.command("daemon")
@click.option(
    "--config",
    "-c",
    "config_path",
    help="Path to the config file. Overrides the HEATS_CONFIG env var.",
    type=click.Path(dir_okay=False, file_okay=True, path_type=Path),
    default=None,
)
@click.option(
    "--socket",
    "-s",
    "socket_path",
    help="Path of the IPC socket. Overrides the HEATS_SOCKET env var.",
    type=click.Path(dir_okay=False, file_okay=True, path_type=Path),
    default=None,
)
@click.option("--watch", is_flag=True, help="Reload the config file when it changes.")
@click.option(
    "--log-level",
    help="Log level. Overrides the HEATS_LOG_LEVEL env var.",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
)
@click.option(
    "--log-file",
    help="Also write logs to this file.",
    type=click.Path(dir_okay=False, file_okay=True, path_type=Path),
    default=None,
)
def daemon_cmd(
    config_path: Path | None,
    socket_path: Path | None,
    watch: bool,
    log_level: str | None,
    log_file: Path | None,
):
    """
    Run the launcher daemon.
    """
    from heats.config import config_path as resolve_config_path
    from heats.config import load_config
    from heats.daemon import DaemonOptions, run_daemon
    from heats.logger import setup_logging
    from heats.runtime import socket_path as default_socket_path

    if log_level is not None or log_file is not None:
        setup_logging(log_level, log_file)

    resolved_config_path = resolve_config_path(config_path)
    run_daemon(
        DaemonOptions(
            config=load_config(resolved_config_path),
            socket_path=socket_path if socket_path is not None else default_socket_path(),
            config_path=resolved_config_path,
            watch_config=watch,
        )
    )


@main.command("dmenu")
@click.option(
    "--format",
    "-f",
    "format_name",
    help="How stdin lines are interpreted: plain text, or MenuItem JSON objects.",
    type=click.Choice([f.value for f in IpcFormat]),
    default=IpcFormat.TEXT.value,
)
@click.option(
    "--socket",
    "-s",
    "socket_path",
    help="Path of the IPC socket. Overrides the HEATS_SOCKET env var.",
    type=click.Path(dir_okay=False, file_okay=True, path_type=Path),
    default=None,
)
@click.pass_context
def dmenu_cmd(ctx: click.Context, format_name: str, socket_path: Path | None):
    """
    Pick one of the lines on stdin using the daemon.

    Prints the selection and exits 0, exits 1 if the user cancelled, and
    exits 2 on errors.
    """
    from heats.errors import ClientError
    from heats.ipc.client import read_stdin_items, send_and_receive

    items = read_stdin_items(click.get_text_stream("stdin"))
    if not items:
        click.echo("heats: no items received from stdin", err=True)
        ctx.exit(2)

    try:
        selected = asyncio.run(send_and_receive(items, IpcFormat(format_name), socket_path))
    except ClientError as e:
        click.echo(f"heats: {e}", err=True)
        ctx.exit(2)

    if selected is None:
        ctx.exit(1)
    click.echo(selected)


@main.command("stop")
@click.pass_context
def stop_cmd(ctx: click.Context):
    """
    Stop the running daemon.
    """
    from heats.runtime import read_pid

    pid = read_pid()
    if pid is None:
        click.echo("heats: daemon is not running", err=True)
        ctx.exit(1)
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        click.echo(f"heats: no process with PID {pid}", err=True)
        ctx.exit(1)
    click.echo(f"Stopped heats daemon (PID {pid})")


@main.command("list-apps")
def list_apps_cmd():
    """
    Print installed applications as MenuItem JSON lines.
    """
    from heats.source.apps import scan_apps

    for app in scan_apps():
        click.echo(app.to_menu_item().model_dump_json(exclude_none=True))


@main.command("eval-calc")
def eval_calc_cmd():
    """
    Evaluate the arithmetic expression on stdin as a MenuItem JSON line.
    """
    from heats.source.calc import calc_item

    line = click.get_text_stream("stdin").readline()
    item = calc_item(line)
    if item is not None:
        click.echo(json.dumps(item))


if __name__ == "__main__":
    main()
