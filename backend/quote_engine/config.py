"""Runtime configuration for the quote engine.

Values are read from environment variables with defaults, once at import time.
"""

import os

# Draft defaults when building a new version
DEFAULT_DURATION_SECONDS = int(os.environ.get("QUOTE_DEFAULT_DURATION", "60"))
DEFAULT_HOURLY_RATE = float(os.environ.get("QUOTE_DEFAULT_HOURLY_RATE", "125"))

# Budget suggestions shown to the user
MAX_SUGGESTIONS = int(os.environ.get("QUOTE_MAX_SUGGESTIONS", "5"))

# Version store backend: "memory" or "mongo"
VERSION_STORE_BACKEND = os.getenv("VERSION_STORE_BACKEND", "memory").lower()

# Interface preferences file (unset = keep preferences in memory)
PREFERENCES_PATH = os.environ.get("QUOTE_PREFERENCES_PATH")

# MongoDB connection for the durable version store
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "quote_engine")
MONGODB_TIMEOUT_MS = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))
