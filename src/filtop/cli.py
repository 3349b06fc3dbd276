"""Command line entry point for filtop."""

import logging
import signal
from pathlib import Path
from typing import Optional

import typer

from filtop.app import FiltopApp
from filtop.settings import DEFAULT_HOST, DEFAULT_INTERVAL, DEFAULT_PORT, MonitorConfig, setup_logging

LOGGER = logging.getLogger(__name__)

cli = typer.Typer(help="filtop - terminal dashboard for a Filebeat monitoring endpoint", add_completion=False)


def _install_signal_handlers(app: FiltopApp) -> None:
    def _handle(signum, frame) -> None:
        LOGGER.info("Shutting down (signal %s)", signum)
        app.exit()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


@cli.command()
def run(
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Host of the agent's monitoring endpoint."),
    port: int = typer.Option(DEFAULT_PORT, "--port", help="Port of the agent's monitoring endpoint."),
    interval: float = typer.Option(DEFAULT_INTERVAL, "--interval", help="Refresh interval in seconds."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Log file path."),
) -> None:
    """Poll the agent and show a live dashboard."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"unknown log level: {log_level}", param_hint="--log-level")

    try:
        config = MonitorConfig(host=host, port=port, interval=interval)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    setup_logging(level, log_file)
    LOGGER.info("Monitoring %s", config.base_url)

    app = FiltopApp(config)
    _install_signal_handlers(app)
    try:
        app.run()
    except Exception as exc:
        LOGGER.critical("Error running the application: %s", exc, exc_info=True)
        raise typer.Exit(code=1) from exc
    finally:
        app.stop_monitor()
    LOGGER.info("Exited")


def main() -> None:
    """Entry point for the filtop console script."""
    cli()


if __name__ == "__main__":
    main()
