"""
Leaderboard client - availability probing, offline queue and submissions.
"""

import pytest
import requests
from unittest.mock import MagicMock

from copyjedi.core import heartbeat
from copyjedi.core.config import Settings
from copyjedi.core.exceptions import StatsStoreError
from copyjedi.core.stats import PasteStats
from copyjedi.core.sync import (
    AUTO_SYNC_TASK,
    CONNECTION_RETRY_INTERVAL_SEC,
    LeaderboardClient,
    schedule_auto_sync,
)


STATS = PasteStats(3, 12, "Sat Oct 17 2026", "user_abc123xyz")


def response(status=200, payload=None):
    resp = MagicMock()
    resp.ok = 200 <= status < 400
    resp.status_code = status
    resp.text = ""
    resp.json.return_value = payload
    if resp.ok:
        resp.raise_for_status.return_value = None
    else:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


class Clock:
    def __init__(self, now=10_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def session():
    session = MagicMock()
    session.get.return_value = response(200)
    session.post.return_value = response(201)
    return session


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def client(session, clock, notify):
    settings = Settings(leaderboard_enabled=True, leaderboard_api_url="http://board.test/")
    return LeaderboardClient(settings, notify=notify, session=session, clock=clock)


class TestConfiguration:

    def test_api_url_trailing_slash_stripped(self, client):
        assert client.api_url == "http://board.test"

    def test_server_url_used_when_api_url_empty(self):
        settings = Settings(leaderboard_server_url="http://localhost:4000")
        assert LeaderboardClient(settings, session=MagicMock()).api_url == "http://localhost:4000"

    def test_configure_server(self, client, session, notify):
        assert client.configure_server("http://new.test/") is True
        assert client.api_url == "http://new.test"
        session.get.assert_called_with("http://new.test/api/health", timeout=5)
        notify.assert_called_with("info", "CopyJedi: Leaderboard server configured successfully!")

    def test_configure_server_empty_disables(self, client):
        assert client.configure_server("") is False
        assert client.enabled is False

    def test_configure_server_unreachable(self, client, session, notify):
        session.get.side_effect = requests.ConnectionError("refused")
        assert client.configure_server("http://down.test") is False
        assert client.offline_mode is True
        assert notify.call_args[0][0] == "warning"


class TestAvailability:
    """Health probing across the fallback endpoints."""

    def test_disabled_client_returns_none(self, session):
        client = LeaderboardClient(Settings(leaderboard_enabled=False), session=session)
        assert client.check_server_availability() is None
        session.get.assert_not_called()

    def test_first_endpoint_ok(self, client, session):
        assert client.check_server_availability() is True
        session.get.assert_called_once_with("http://board.test/api/health", timeout=5)

    def test_falls_back_through_endpoints(self, client, session):
        session.get.side_effect = [response(404), requests.ConnectionError("nope"), response(200)]
        assert client.check_server_availability() is True
        urls = [c.args[0] for c in session.get.call_args_list]
        assert urls == ["http://board.test/api/health", "http://board.test/health", "http://board.test"]

    def test_all_endpoints_fail(self, client, session):
        session.get.return_value = response(503)
        assert client.check_server_availability() is False
        assert client.offline_mode is True
        assert session.get.call_count == 3

    def test_offline_skips_probe_until_retry_due(self, client, session, clock):
        session.get.return_value = response(503)
        client.check_server_availability()
        session.get.reset_mock()

        clock.now += 60
        assert client.check_server_availability() is False
        session.get.assert_not_called()

        clock.now += CONNECTION_RETRY_INTERVAL_SEC
        session.get.return_value = response(200)
        assert client.check_server_availability() is True
        assert client.offline_mode is False


class TestSubmit:
    """Submitting stats and queueing while offline."""

    def test_submit_success(self, client, session, notify):
        assert client.submit_stats(STATS) is True

        session.post.assert_called_once()
        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        assert url == "http://board.test/api/submit"
        assert body["userId"] == "user_abc123xyz"
        assert body["totalPastes"] == 3
        assert body["totalLinesPasted"] == 12
        assert body["date"] == "Sat Oct 17 2026"
        assert "os" in body
        assert body["vsCodeVersion"].startswith("copyjedi-py/")
        notify.assert_called_with("info", "CopyJedi: Stats submitted to leaderboard successfully!")

    def test_submit_accepts_dict(self, client, session):
        assert client.submit_stats(STATS.to_dict()) is True

    def test_disabled_client_does_not_submit(self, session, notify):
        client = LeaderboardClient(Settings(leaderboard_enabled=False), notify=notify, session=session)
        assert client.submit_stats(STATS) is False
        session.post.assert_not_called()
        notify.assert_called_once_with("info", "CopyJedi: Leaderboard submissions are disabled in settings")

    def test_missing_user_id(self, client, session, notify):
        assert client.submit_stats(PasteStats(1, 1, "Sat Oct 17 2026", None)) is False
        session.post.assert_not_called()
        notify.assert_called_once_with("error", "CopyJedi: Missing user ID for leaderboard submission")

    def test_server_rejection(self, client, session, notify):
        session.post.return_value = response(400)
        assert client.submit_stats(STATS) is False
        assert client.offline_mode is False
        assert notify.call_args[0][0] == "error"

    def test_network_error_sets_offline(self, client, session):
        session.post.side_effect = requests.ConnectionError("reset")
        assert client.submit_stats(STATS) is False
        assert client.offline_mode is True

    def test_offline_submission_is_queued(self, client, session):
        session.get.return_value = response(503)

        assert client.submit_stats(STATS) is False
        assert client.submit_stats(PasteStats(4, 13, "Sat Oct 17 2026", "user_abc123xyz")) is False

        assert len(client.pending_submissions) == 2
        session.post.assert_not_called()

    def test_queue_replays_latest_on_reconnect(self, client, session, clock, notify):
        session.get.return_value = response(503)
        client.submit_stats(STATS)
        client.submit_stats(PasteStats(4, 13, "Sat Oct 17 2026", "user_abc123xyz"))

        clock.now += CONNECTION_RETRY_INTERVAL_SEC
        session.get.return_value = response(200)
        assert client.check_server_availability() is True

        session.post.assert_called_once()
        assert session.post.call_args.kwargs["json"]["totalPastes"] == 4
        assert client.pending_submissions == []
        messages = [c.args[1] for c in notify.call_args_list]
        assert "CopyJedi: Leaderboard connection restored!" in messages

    def test_failed_replay_keeps_queue(self, client, session):
        client.pending_submissions = [STATS.to_dict()]
        session.post.return_value = response(500)
        assert client.submit_pending_data() is False
        assert len(client.pending_submissions) == 1

    def test_empty_queue(self, client):
        assert client.submit_pending_data() is False


class TestReads:
    """Leaderboard, user and global stats reads."""

    def test_get_leaderboard(self, client, session):
        session.get.return_value = response(200, [{"userId": "user_abc123xyz", "totalPastes": 3}])
        data = client.get_leaderboard(user_id="user_abc123xyz", limit=5)

        assert data[0]["totalPastes"] == 3
        session.get.assert_called_with(
            "http://board.test/api/leaderboard",
            params={"userId": "user_abc123xyz", "limit": 5},
            timeout=10,
        )

    def test_get_user_not_found(self, client, session, notify):
        session.get.return_value = response(404)
        assert client.get_user("user_missing") is None
        assert client.offline_mode is False
        assert notify.call_args[0][0] == "error"

    def test_get_global_stats(self, client, session):
        session.get.return_value = response(200, {"totalUsers": 1})
        assert client.get_global_stats() == {"totalUsers": 1}

    def test_read_while_offline(self, client, session, notify):
        client.offline_mode = True
        client.last_connection_attempt = 10_000.0
        assert client.get_global_stats() is None
        session.get.assert_not_called()

    def test_set_username(self, client, session):
        assert client.set_username("user_abc123xyz", "obiwan") is True
        session.post.assert_called_once_with(
            "http://board.test/api/user/user_abc123xyz/username",
            json={"username": "obiwan"},
            timeout=10,
        )

    def test_set_username_rejected(self, client, session):
        session.post.return_value = response(404)
        assert client.set_username("user_abc123xyz", "obiwan") is False


class TestAutoSync:
    """Periodic push registered with the heartbeat loop."""

    @pytest.fixture(autouse=True)
    def clean_tasks(self):
        heartbeat.tasks.clear()
        yield
        heartbeat.tasks.clear()

    def test_schedule_registers_task(self, client):
        store = MagicMock()
        store.stats = STATS
        assert schedule_auto_sync(client, store) is True

        task = heartbeat.tasks[AUTO_SYNC_TASK]
        assert task["interval"] == 5 * 60

    def test_task_rolls_over_and_submits(self, client, session):
        store = MagicMock()
        store.stats = STATS
        schedule_auto_sync(client, store)

        heartbeat.tasks[AUTO_SYNC_TASK]["func"]()

        store.roll_over_if_new_day.assert_called_once()
        session.post.assert_called_once()

    def test_task_saves_new_day(self, client):
        store = MagicMock()
        store.stats = STATS
        store.roll_over_if_new_day.return_value = True
        schedule_auto_sync(client, store)

        heartbeat.tasks[AUTO_SYNC_TASK]["func"]()

        store.save.assert_called_once()

    def test_task_same_day_does_not_save(self, client):
        store = MagicMock()
        store.stats = STATS
        store.roll_over_if_new_day.return_value = False
        schedule_auto_sync(client, store)

        heartbeat.tasks[AUTO_SYNC_TASK]["func"]()

        store.save.assert_not_called()

    def test_task_submits_when_save_fails(self, client, session):
        store = MagicMock()
        store.stats = STATS
        store.roll_over_if_new_day.return_value = True
        store.save.side_effect = StatsStoreError("read-only")
        schedule_auto_sync(client, store)

        heartbeat.tasks[AUTO_SYNC_TASK]["func"]()

        session.post.assert_called_once()

    def test_auto_sync_disabled(self, client):
        settings = Settings(leaderboard_enabled=True, auto_sync=False)
        assert schedule_auto_sync(client, MagicMock(), settings) is False
        assert AUTO_SYNC_TASK not in heartbeat.tasks
