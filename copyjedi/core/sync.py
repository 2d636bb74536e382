"""
Leaderboard client: submits local paste totals and reads the leaderboard.
Submissions made while the server is unreachable are queued and the latest
one is replayed once the connection comes back.
"""

import platform
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from . import heartbeat
from .config import Settings, VERSION, DEFAULT_API_URL
from .exceptions import StatsStoreError
from .stats import PasteStats
from ..util.logging import logger, sanitize_payload

CONNECTION_RETRY_INTERVAL_SEC = 30 * 60
HEALTH_TIMEOUT_SEC = 5
SUBMIT_TIMEOUT_SEC = 10


def _log_notifier(level: str, message: str):
    getattr(logger, level, logger.info)(message)


class LeaderboardClient:
    """HTTP client for the leaderboard service."""

    def __init__(self, settings: Settings = None,
                 notify: Callable[[str, str], None] = _log_notifier,
                 session: requests.Session = None,
                 clock: Callable[[], float] = time.time):
        self.settings = settings or Settings()
        self.notify = notify
        self.session = session or requests.Session()
        self._clock = clock
        self.api_url = self.settings.api_url.rstrip("/")
        self.enabled = self.settings.leaderboard_enabled
        self.offline_mode = False
        self.last_connection_attempt = 0.0
        self.connection_retry_interval = CONNECTION_RETRY_INTERVAL_SEC
        self.pending_submissions: List[Dict[str, Any]] = []

    def _retry_due(self) -> bool:
        return self._clock() - self.last_connection_attempt >= self.connection_retry_interval

    def _payload(self, stats: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "userId": stats.get("userId"),
            "totalPastes": stats.get("totalPastes"),
            "totalLinesPasted": stats.get("totalLinesPasted"),
            "date": stats.get("date"),
            "os": platform.system().lower(),
            "vsCodeVersion": f"copyjedi-py/{VERSION}",
        }

    def check_server_availability(self) -> Optional[bool]:
        """Probe the server. Returns None when submissions are disabled."""
        if not self.enabled:
            return None

        if self.offline_mode and not self._retry_due():
            return False

        self.last_connection_attempt = self._clock()
        endpoints = [f"{self.api_url}/api/health", f"{self.api_url}/health", self.api_url]

        connected = False
        for endpoint in endpoints:
            try:
                response = self.session.get(endpoint, timeout=HEALTH_TIMEOUT_SEC)
                if response.ok:
                    connected = True
                    logger.log_sync_attempt(endpoint, "connected")
                    break
                logger.log_sync_attempt(endpoint, "failed", {"status": response.status_code})
            except requests.RequestException as e:
                logger.log_sync_attempt(endpoint, "unreachable", {"error": str(e)})

        if connected:
            if self.offline_mode:
                self.offline_mode = False
                self.notify("info", "CopyJedi: Leaderboard connection restored!")
                if self.pending_submissions:
                    self.submit_pending_data()
        else:
            self.offline_mode = True

        return not self.offline_mode

    def submit_pending_data(self) -> bool:
        """Send the most recent queued submission; totals are cumulative."""
        if not self.pending_submissions:
            return False

        self.notify("info", f"CopyJedi: Submitting {len(self.pending_submissions)} pending updates to leaderboard...")
        latest = self.pending_submissions[-1]
        if self.submit_stats_to_server(latest):
            self.pending_submissions = []
            return True
        return False

    def submit_stats(self, stats) -> bool:
        """Submit a stats record, queueing it when the server is down."""
        if isinstance(stats, PasteStats):
            stats = stats.to_dict()

        if not self.enabled:
            self.notify("info", "CopyJedi: Leaderboard submissions are disabled in settings")
            return False

        if not stats.get("userId"):
            self.notify("error", "CopyJedi: Missing user ID for leaderboard submission")
            return False

        if self.offline_mode or self._retry_due():
            self.check_server_availability()

        if self.offline_mode:
            self.pending_submissions.append(dict(stats))
            logger.log_offline_queue(len(self.pending_submissions), "server unavailable")
            self.notify("info", "CopyJedi: Leaderboard server is unavailable. Your stats will be submitted when connection is restored.")
            return False

        return self.submit_stats_to_server(stats)

    def submit_stats_to_server(self, stats: Dict[str, Any]) -> bool:
        endpoint = f"{self.api_url}/api/submit"
        body = self._payload(stats)
        logger.debug(f"Request body: {sanitize_payload(body)}")

        try:
            response = self.session.post(endpoint, json=body, timeout=SUBMIT_TIMEOUT_SEC)
        except requests.RequestException as e:
            self.offline_mode = True
            logger.log_sync_attempt(endpoint, "unreachable", {"error": str(e)})
            self.notify("error", f"CopyJedi: Error submitting to leaderboard - {e}")
            return False

        if response.ok:
            logger.log_sync_attempt(endpoint, "success", {"status": response.status_code})
            self.notify("info", "CopyJedi: Stats submitted to leaderboard successfully!")
            return True

        logger.log_sync_attempt(endpoint, "rejected", {"status": response.status_code})
        self.notify("error", f"CopyJedi: Failed to submit stats - server returned {response.status_code} - {response.text}")
        return False

    def _get_json(self, path: str, params: Dict[str, Any] = None, description: str = "data"):
        if self.offline_mode:
            self.check_server_availability()
            if self.offline_mode:
                self.notify("error", f"CopyJedi: Cannot fetch {description} - server is unavailable")
                return None

        try:
            response = self.session.get(f"{self.api_url}{path}", params=params, timeout=SUBMIT_TIMEOUT_SEC)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            self.notify("error", f"CopyJedi: Error fetching {description} - {e}")
            return None
        except (requests.RequestException, ValueError) as e:
            self.offline_mode = True
            self.notify("error", f"CopyJedi: Error fetching {description} - {e}")
            return None

    def get_leaderboard(self, user_id: str = None, limit: int = None, sort: str = None) -> Optional[List[Dict[str, Any]]]:
        params = {k: v for k, v in {"userId": user_id, "limit": limit, "sort": sort}.items() if v is not None}
        return self._get_json("/api/leaderboard", params, "leaderboard")

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get_json(f"/api/user/{user_id}", description="user stats")

    def get_global_stats(self) -> Optional[Dict[str, Any]]:
        return self._get_json("/api/stats", description="global stats")

    def set_username(self, user_id: str, username: str) -> bool:
        try:
            response = self.session.post(
                f"{self.api_url}/api/user/{user_id}/username",
                json={"username": username},
                timeout=SUBMIT_TIMEOUT_SEC,
            )
        except requests.RequestException as e:
            self.offline_mode = True
            self.notify("error", f"CopyJedi: Error setting username - {e}")
            return False

        if not response.ok:
            self.notify("error", f"CopyJedi: Failed to set username - server returned {response.status_code}")
            return False
        return True

    def configure_server(self, server_url: str) -> bool:
        """Point the client at a new server. An empty URL disables submissions."""
        if not server_url:
            self.enabled = False
            self.notify("info", "CopyJedi: Leaderboard server disabled")
            return False

        self.api_url = server_url.rstrip("/") or DEFAULT_API_URL
        self.enabled = True
        self.offline_mode = False
        self.last_connection_attempt = 0.0

        if self.check_server_availability():
            self.notify("info", "CopyJedi: Leaderboard server configured successfully!")
            return True

        self.notify("warning", f"CopyJedi: Could not connect to {server_url}")
        return False


AUTO_SYNC_TASK = "leaderboard_sync"
AUTO_SYNC_INITIAL_DELAY_SEC = 30


def schedule_auto_sync(client: LeaderboardClient, store, settings: Settings = None) -> bool:
    """Register the periodic leaderboard push with the heartbeat loop."""
    settings = settings or client.settings
    if not settings.auto_sync:
        logger.info("Auto sync disabled")
        return False

    def sync_task():
        if store.roll_over_if_new_day():
            try:
                store.save()
            except StatsStoreError as e:
                logger.error(str(e))
        client.submit_stats(store.stats)

    heartbeat.register_task(
        AUTO_SYNC_TASK,
        settings.sync_interval_min * 60,
        sync_task,
        initial_delay_sec=AUTO_SYNC_INITIAL_DELAY_SEC,
    )
    return True
