"""HTTP client for the agent's local monitoring endpoint."""

import logging
from typing import Any

import requests

from filtop.errors import DecodeError, FetchError
from filtop.models import Input, Snapshot, decode_inputs, decode_stats
from filtop.settings import MonitorConfig

LOGGER = logging.getLogger(__name__)


class AgentClient:
    """
    Read-only client for the ``/stats`` and ``/inputs`` endpoints.

    Every failure mode (connection error, timeout, non-2xx status, invalid
    JSON, unexpected payload shape) is raised as FetchError.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or MonitorConfig()
        self.session = session or requests.Session()

    def __enter__(self) -> "AgentClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch_stats(self) -> Snapshot:
        """Fetch and decode ``/stats``. The snapshot is not timestamped."""
        url = self.config.stats_url
        payload = self._get_json(url)
        try:
            return decode_stats(payload)
        except DecodeError as exc:
            raise FetchError(url, f"unexpected payload: {exc}") from exc

    def fetch_inputs(self) -> tuple[Input, ...]:
        """Fetch and decode ``/inputs``."""
        url = self.config.inputs_url
        payload = self._get_json(url)
        try:
            return decode_inputs(payload)
        except DecodeError as exc:
            raise FetchError(url, f"unexpected payload: {exc}") from exc

    def _get_json(self, url: str) -> Any:
        try:
            response = self.session.get(url, timeout=self.config.timeout_s)
        except requests.RequestException as exc:
            raise FetchError(url, f"request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise FetchError(url, f"status code {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(url, f"invalid JSON: {exc}") from exc

        LOGGER.debug("Fetched %s", url)
        return payload
