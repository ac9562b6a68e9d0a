"""Global pytest configuration."""

import os

# Point settings at a local backend before any imports
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")
os.environ.setdefault("POLL_INTERVAL_MS", "0")
