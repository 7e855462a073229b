"""Clients for the remote build coordinator.

The coordinator tells the agent which projects to watch (HTTP API) and is
told, through its command line tool, when a project has settled changes to
build.
"""

import logging
import subprocess
from typing import List, Optional

import httpx

from .descriptor import FullDescriptor, parse_watched_project
from .exceptions import CoordinatorError, DescriptorError

logger = logging.getLogger(__name__)

WATCHLIST_ENDPOINT = "/api/v1/projects/watchlist"


class CoordinatorClient:
    """HTTP client for the coordinator's project watch list."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def get_watchlist(self) -> List[FullDescriptor]:
        """
        Fetch the projects the coordinator wants watched.

        Records that fail validation are logged and skipped so one bad
        project does not stop the others being watched.

        Returns:
            Validated descriptors, in the order the server listed them

        Raises:
            CoordinatorError: If the request fails or returns non-200
        """
        url = f"{self.base_url}{WATCHLIST_ENDPOINT}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.get(url)
        except httpx.HTTPError as exc:
            raise CoordinatorError(f"Failed to reach coordinator at {url}: {exc}") from exc

        if resp.status_code != 200:
            raise CoordinatorError(
                f"Watchlist request failed: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise CoordinatorError(f"Watchlist response is not JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise CoordinatorError(f"Watchlist response is not an object: {data!r}")
        records = data.get("projects") or []
        if not isinstance(records, list):
            raise CoordinatorError(f"Watchlist 'projects' is not a list: {records!r}")

        descriptors = []
        for record in records:
            try:
                descriptors.append(parse_watched_project(record))
            except DescriptorError as e:
                project_id = record.get("projectID") if isinstance(record, dict) else None
                logger.error(f"Skipping invalid watched project {project_id}: {e}")
        return descriptors


class CliSyncNotifier:
    """Asks the coordinator to sync a project by running its command line tool."""

    def __init__(self, installer_path: str, timeout: float = 60.0):
        self.installer_path = installer_path
        self.timeout = timeout

    def build_command(self, project_id: str, path_to_monitor: str, last_sync_ms: int) -> List[str]:
        return [
            self.installer_path,
            "project",
            "sync",
            "-p", path_to_monitor,
            "-i", project_id,
            "-t", str(last_sync_ms),
        ]

    def notify_changes(self, project_id: str, path_to_monitor: str, last_sync_ms: int) -> None:
        """
        Run the sync command for a project.

        Args:
            project_id: Project with settled changes
            path_to_monitor: Root of the project
            last_sync_ms: Timestamp of the previous successful sync (0 if none)

        Raises:
            CoordinatorError: If the command cannot be run or exits non-zero
        """
        cmd = self.build_command(project_id, path_to_monitor, last_sync_ms)
        logger.debug(f"Running sync command: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise CoordinatorError(f"Sync command failed for {project_id}: {exc}") from exc

        if result.returncode != 0:
            raise CoordinatorError(
                f"Sync command for {project_id} exited with {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        logger.info(f"Sync command completed for {project_id}")
