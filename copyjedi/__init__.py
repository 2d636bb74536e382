"""CopyJedi: paste tracking and leaderboard."""

__version__ = "0.1.0"
