"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from foodpick.achievements import AchievementEngine
from foodpick.catalogue import ItemCatalogue
from foodpick.engine import RecommendationEngine
from foodpick.history import HistoryStore
from foodpick.preferences import PreferenceStore
from foodpick.service import FoodPickServicer, add_servicer_to_server
from foodpick.session import FoodieSession
from foodpick.storage import JsonFileStorage, StateStorage

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_session(catalogue: ItemCatalogue, storage: StateStorage) -> FoodieSession:
    """Construct the engines over *storage* and wire them into a session.

    Args:
        catalogue: The loaded :class:`~foodpick.catalogue.ItemCatalogue`.
        storage: Backend for the preference, history and stats documents.

    Returns:
        A ready :class:`~foodpick.session.FoodieSession`.
    """
    preference_store = PreferenceStore(storage)
    history_store = HistoryStore(storage)
    return FoodieSession(
        catalogue=catalogue,
        engine=RecommendationEngine(catalogue, preference_store),
        history_store=history_store,
        achievements=AchievementEngine(storage, history_store, preference_store),
    )


def build_server(session: FoodieSession) -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    add_servicer_to_server(FoodPickServicer(session), server)
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Load the item catalogue (fails fast if missing or malformed).
    2. Open the state directory.
    3. Build and start the gRPC server.
    4. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    """
    logger.info("Loading item catalogue from %s", config.CATALOGUE_PATH)
    catalogue = ItemCatalogue.from_json_file(config.CATALOGUE_PATH)
    if not len(catalogue):
        logger.error("Catalogue %s is empty; refusing to start.", config.CATALOGUE_PATH)
        sys.exit(1)

    storage = JsonFileStorage(config.STATE_DIR)
    logger.info("Persisting user state under %s", storage.directory)

    server = build_server(build_session(catalogue, storage))

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down.", sig_name)
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "foodpick gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
