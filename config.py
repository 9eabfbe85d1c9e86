"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# gRPC server (the UI client connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "127.0.0.1")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server. Calls are serialised by the session
# lock, so extra workers only queue.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "4"))

# ---------------------------------------------------------------------------
# Catalogue and persisted state
# ---------------------------------------------------------------------------

# JSON document holding the item catalogue.
CATALOGUE_PATH: str = os.getenv(
    "FOODPICK_CATALOGUE_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "catalogue.json"),
)

# Directory holding preference.json, history.json and user_stats.json.
STATE_DIR: str = os.getenv(
    "FOODPICK_STATE_DIR",
    os.path.join(os.path.expanduser("~"), ".foodpick"),
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
