"""
Periodic task loop. Used to push paste totals to the leaderboard on a timer.
"""

import time
import threading
from typing import Callable, Dict

from ..util.logging import logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run, not_before}
running = False
shutdown_event = None


def register_task(name: str, interval_sec: int, func: Callable, initial_delay_sec: float = 0):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call (should be fast and not block)
        initial_delay_sec: Wait this long before the first run
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    if initial_delay_sec < 0:
        raise ValueError(f"Initial delay must be >= 0: {initial_delay_sec}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None,
        "not_before": time.monotonic() + initial_delay_sec
    }

    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def start(poll_interval: float = 0.1):
    """
    Start the heartbeat loop. Blocks until stop() is called.

    Uses time.monotonic() for timing; a failing task is logged and the loop
    keeps going.
    """
    global running, shutdown_event

    if running:
        raise RuntimeError("Heartbeat already running")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting heartbeat loop with tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            for name, task_info in list(tasks.items()):
                if should_run_task(name, task_info):
                    try:
                        run_task(name, task_info)
                    except Exception as e:
                        logger.error(f"Heartbeat task '{name}' failed: {e}")

            shutdown_event.wait(poll_interval)
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def start_in_background(poll_interval: float = 0.1) -> threading.Thread:
    """Run start() on a daemon thread."""
    thread = threading.Thread(target=start, args=(poll_interval,), daemon=True, name="copyjedi-heartbeat")
    thread.start()
    return thread


def stop():
    """Stop the heartbeat loop gracefully."""
    global running

    if not running:
        logger.info("Heartbeat not running")
        return

    running = False

    if shutdown_event:
        shutdown_event.set()


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    now = time.monotonic()
    if task_info["last_run"] is None:
        return now >= task_info.get("not_before", 0)

    elapsed = now - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing. A failed run still counts as a run."""
    start_time = time.monotonic()

    try:
        task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        task_info["last_run"] = end_time
        logger.log_heartbeat_task(name, start_time, end_time, "failed")
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}")

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    logger.log_heartbeat_task(name, start_time, end_time)


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None
        tasks[name]["not_before"] = 0
        logger.info(f"Reset heartbeat task '{name}' (will run immediately)")


def get_status():
    """Return current heartbeat status for monitoring."""
    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else info.get("not_before")
            }
            for name, info in tasks.items()
        }
    }
