"""Centralized constants for renshu.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Session ----------
ACTIVE_QUEUE_CAPACITY = 10
KEY_SEPARATOR = ":"

# ---------- FSRS ----------
DEFAULT_DESIRED_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500  # days

# ---------- Progress HTTP ----------
REQUEST_TIMEOUT = 10.0

# ---------- Server ----------
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8787
