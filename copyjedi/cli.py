"""
Command line tools: replay editor change events through the paste tracker,
inspect or reset local stats, talk to the leaderboard, run the service.
"""

import argparse
import json
import sys
from typing import Optional

import pyperclip

from .core import heartbeat
from .core.config import Settings, PORT, validate_settings
from .core.exceptions import ConfigurationError
from .core.stats import StatsStore
from .core.sync import LeaderboardClient, schedule_auto_sync
from .core.tracker import EditorHost, PasteTracker, event_from_dict
from .util.logging import logger


class ReplayHost(EditorHost):
    """Host backed by recorded events. Clipboard snapshots ride along in the
    records under "clipboard"; the system clipboard is used only on request."""

    def __init__(self, use_system_clipboard: bool = False):
        self.use_system_clipboard = use_system_clipboard
        self.clipboard = ""
        self.active_uri: Optional[str] = None

    def update(self, record: dict):
        if "clipboard" in record:
            self.clipboard = record["clipboard"] or ""
        if "activeUri" in record:
            self.active_uri = record["activeUri"]

    def read_clipboard(self) -> str:
        if self.use_system_clipboard:
            return pyperclip.paste() or ""
        return self.clipboard

    def active_document_uri(self) -> Optional[str]:
        return self.active_uri


def print_notifier(level: str, message: str):
    icon = {"info": "✅", "warning": "⚠️ ", "error": "❌"}.get(level, "")
    print(f"{icon} {message}")


def _load_store(settings: Settings) -> StatsStore:
    store = StatsStore(settings.stats_path, auto_reset_daily=settings.auto_reset_daily)
    store.load()
    return store


def replay_command(args, settings: Settings) -> int:
    store = _load_store(settings)
    host = ReplayHost(use_system_clipboard=args.system_clipboard)
    tracker = PasteTracker(store, settings, host=host, notify=print_notifier)

    client = None
    sync_thread = None
    if args.sync:
        client = LeaderboardClient(settings, notify=print_notifier)
        if schedule_auto_sync(client, store, settings):
            sync_thread = heartbeat.start_in_background()

    stream = sys.stdin if args.events == "-" else open(args.events, encoding="utf-8")
    pastes = 0
    try:
        for line_no, line in enumerate(stream, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                event = event_from_dict(record)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed event on line {line_no}: {e}")
                continue
            host.update(record)
            result = tracker.handle_event(event)
            if result is not None and result.is_paste:
                pastes += 1
    finally:
        if stream is not sys.stdin:
            stream.close()
        if client is not None:
            # the final submit shares the store and session with the sync task;
            # stop again until the loop has actually started and exited
            while sync_thread is not None and sync_thread.is_alive():
                heartbeat.stop()
                sync_thread.join(timeout=0.1)
            client.submit_stats(store.stats)

    print(f"📋 Replay finished: {pastes} paste(s) detected")
    print(f"📊 {tracker.status_text()}")
    return 0


def stats_command(args, settings: Settings) -> int:
    store = _load_store(settings)
    if args.json:
        print(json.dumps(store.stats.to_dict()))
    else:
        stats = store.stats
        print(f"👤 User: {stats.userId}")
        print(f"📅 Date: {stats.date}")
        print(f"📋 Pastes: {stats.totalPastes} | Lines: {stats.totalLinesPasted}")
    return 0


def reset_command(args, settings: Settings) -> int:
    store = _load_store(settings)
    store.reset()
    print_notifier("info", "CopyJedi: Statistics reset")
    return 0


def submit_command(args, settings: Settings) -> int:
    settings.leaderboard_enabled = True
    store = _load_store(settings)
    client = LeaderboardClient(settings, notify=print_notifier)
    return 0 if client.submit_stats(store.stats) else 1


def check_server_command(args, settings: Settings) -> int:
    settings.leaderboard_enabled = True
    client = LeaderboardClient(settings, notify=print_notifier)
    print(f"🔗 Server URL: {client.api_url}")
    if client.check_server_availability():
        print_notifier("info", "CopyJedi server is responding!")
        return 0
    print_notifier("error", "Server check failed. See log output for details.")
    return 1


def leaderboard_command(args, settings: Settings) -> int:
    store = _load_store(settings)
    client = LeaderboardClient(settings, notify=print_notifier)
    data = client.get_leaderboard(user_id=store.stats.userId, limit=args.limit, sort=args.sort)
    if data is None:
        return 1

    print(f"{'Rank':<6}{'User':<28}{'Pastes':>10}{'Lines':>10}")
    for index, entry in enumerate(data, 1):
        name = entry.get("username") or f"Anonymous Jedi {entry['userId'][-4:]}"
        marker = " ⭐" if entry.get("isCurrentUser") else ""
        rank = entry.get("rank", index)
        print(f"{rank:<6}{name:<28}{entry['totalPastes']:>10}{entry['totalLinesPasted']:>10}{marker}")
    return 0


def username_command(args, settings: Settings) -> int:
    store = _load_store(settings)
    client = LeaderboardClient(settings, notify=print_notifier)
    if client.set_username(store.stats.userId, args.username):
        print_notifier("info", f"CopyJedi: Username set to {args.username}")
        return 0
    return 1


def serve_command(args, settings: Settings) -> int:
    import uvicorn

    print("🧠 CopyJedi Leaderboard API")
    print(f"🌐 Listening on http://{args.host}:{args.port}")
    uvicorn.run("copyjedi.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="copyjedi", description="Track copy-paste habits and sync them to a leaderboard")
    parser.add_argument("--server-url", help="Leaderboard server URL (overrides COPYJEDI_LEADERBOARD_API_URL)")
    parser.add_argument("--stats-path", help="Stats file (overrides COPYJEDI_STATS_PATH)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Feed JSON-lines change events through the paste tracker")
    replay.add_argument("events", help="Events file, or - for stdin")
    replay.add_argument("--system-clipboard", action="store_true", help="Read the real clipboard instead of recorded snapshots")
    replay.add_argument("--sync", action="store_true", help="Sync to the leaderboard while replaying")
    replay.set_defaults(func=replay_command)

    stats = sub.add_parser("stats", help="Show today's paste statistics")
    stats.add_argument("--json", action="store_true", help="Print the raw stats record")
    stats.set_defaults(func=stats_command)

    sub.add_parser("reset-stats", help="Reset paste statistics").set_defaults(func=reset_command)
    sub.add_parser("submit", help="Submit stats to the leaderboard").set_defaults(func=submit_command)
    sub.add_parser("check-server", help="Check leaderboard server status").set_defaults(func=check_server_command)

    board = sub.add_parser("leaderboard", help="Show the global leaderboard")
    board.add_argument("--limit", type=int, default=None)
    board.add_argument("--sort", choices=["totalPastes", "totalLinesPasted", "lastActive"], default=None)
    board.set_defaults(func=leaderboard_command)

    name = sub.add_parser("set-username", help="Set your leaderboard display name")
    name.add_argument("username")
    name.set_defaults(func=username_command)

    serve = sub.add_parser("serve", help="Run the leaderboard API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=PORT)
    serve.set_defaults(func=serve_command)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 2

    if args.server_url is not None:
        settings.leaderboard_api_url = args.server_url
    if args.stats_path:
        settings.stats_path = args.stats_path
    settings.debug_mode = settings.debug_mode or args.debug
    logger.set_debug(settings.debug_mode)

    issues = validate_settings(settings)
    if issues:
        for issue in issues:
            print(f"❌ {issue}")
        return 2

    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
