"""Click CLI command definitions for usage-pulse."""

from __future__ import annotations

import signal

import click

from usage_pulse import __version__, constants


@click.group()
@click.version_option(version=__version__, prog_name="usage-pulse")
def main() -> None:
    """usage-pulse: Watch Claude usage limits and alert before they run out."""


# --- Config commands ---

def _existing_config_file():
    from usage_pulse.config import CONFIG_FILE
    if not CONFIG_FILE.exists():
        click.echo(f"{CONFIG_FILE} does not exist; create it with 'usage-pulse config init'", err=True)
        raise SystemExit(1)
    return CONFIG_FILE


@main.group()
def config() -> None:
    """Inspect or change the TOML configuration."""


@config.command("init")
@click.option("--force", is_flag=True, help="Replace an existing config file")
def config_init(force: bool) -> None:
    """Write the default config file."""
    from usage_pulse.config import init_config
    try:
        path = init_config(force=force)
    except FileExistsError as e:
        click.echo(f"{e} (use --force to overwrite)", err=True)
        raise SystemExit(1)
    click.echo(f"Config created: {path}")


@config.command("show")
def config_show() -> None:
    """Print the config file."""
    click.echo(_existing_config_file().read_text())


@config.command("edit")
def config_edit() -> None:
    """Open the config file in $EDITOR."""
    click.edit(filename=str(_existing_config_file()))


@config.command("interval")
@click.argument(
    "seconds",
    type=click.IntRange(constants.MIN_REFRESH_INTERVAL, constants.MAX_REFRESH_INTERVAL),
)
def config_interval(seconds: int) -> None:
    """Set the refresh interval in seconds.

    A running daemon picks up the change on 'usage-pulse reload'.
    """
    from usage_pulse.config import set_value
    set_value("monitor", "refresh_interval", seconds)
    click.echo(f"Refresh interval set to {seconds}s")


# --- Usage commands ---

@main.command()
def fetch() -> None:
    """Fetch current usage once and print every limit."""
    from usage_pulse.daemon.runner import fetch_once, print_report
    report = fetch_once()
    print_report(report)
    if report.state.last_error is not None:
        raise SystemExit(1)


# --- Daemon commands ---

@main.command()
@click.option("--foreground", is_flag=True, help="Run in foreground instead of daemonizing")
def start(foreground: bool) -> None:
    """Start the usage-pulse daemon."""
    from usage_pulse.daemon.runner import start_daemon
    start_daemon(foreground)


@main.command()
def stop() -> None:
    """Stop the usage-pulse daemon."""
    from usage_pulse.daemon.runner import stop_daemon
    stop_daemon()


@main.command()
def refresh() -> None:
    """Ask the running daemon for an immediate refresh."""
    from usage_pulse.daemon.runner import signal_daemon
    signal_daemon(signal.SIGUSR1, "refresh")


@main.command()
def pause() -> None:
    """Toggle the running daemon between paused and active."""
    from usage_pulse.daemon.runner import signal_daemon
    signal_daemon(signal.SIGUSR2, "pause/resume")


@main.command()
def reload() -> None:
    """Make the running daemon re-read its config file."""
    from usage_pulse.daemon.runner import signal_daemon
    signal_daemon(signal.SIGHUP, "config reload")


@main.command()
def status() -> None:
    """Show daemon state and current usage."""
    from usage_pulse.daemon.runner import show_status
    show_status()
