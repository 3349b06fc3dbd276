"""Runtime settings and logging setup for filtop."""

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5066
DEFAULT_INTERVAL = 5.0  # Seconds
HISTORY_SIZE = 30
REQUEST_TIMEOUT_S = 10.0

LOG_FILE = Path(
    os.environ.get("FILTOP_LOG_FILE", Path.home() / ".cache" / "filtop" / "filtop.log")
)
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Where and how often to poll the agent's monitoring endpoint."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    interval: float = DEFAULT_INTERVAL
    timeout_s: float = REQUEST_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout_s}")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def stats_url(self) -> str:
        return f"{self.base_url}/stats"

    @property
    def inputs_url(self) -> str:
        return f"{self.base_url}/inputs"


def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> Path:
    """
    Configure a rotating file logger.

    The terminal belongs to the dashboard while it runs, so nothing is echoed
    to the console.

    Returns:
        The path of the log file in use.
    """
    path = Path(log_file) if log_file is not None else LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        path,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )
    return path
