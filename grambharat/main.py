"""GramBharat server entry point."""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from grambharat.chats.controller import ChatController
from grambharat.chats.store import ChatStore
from grambharat.config import Settings, settings
from grambharat.finance.profiles import ProfileStore
from grambharat.llm.client import OllamaClient
from grambharat.memory.context import ContextStore
from grambharat.memory.store import MemoryStore
from grambharat.web.server import ChatServer

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(config: Settings) -> None:
    """Log to stderr and to a per-day file under ``log_dir``."""
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, config.log_level.upper()))
    config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(
        config.log_dir / f"{date.today().isoformat()}.log", encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)


def build_controller(config: Settings, client: OllamaClient) -> ChatController:
    """Wire the stores and inference client from *config*."""
    return ChatController(
        chats=ChatStore(config.chats_dir),
        memories=MemoryStore(config.memory_path),
        contexts=ContextStore(config.context_path),
        profiles=ProfileStore(config.profiles_dir),
        client=client,
        default_model=config.default_model,
    )


async def serve(config: Settings) -> None:
    """Run the HTTP server until cancelled."""
    client = OllamaClient(config.ollama_base_url, config.ollama_connect_timeout)
    server = ChatServer(
        build_controller(config, client),
        host=config.host,
        port=config.port,
        cors_allow_origin=config.cors_allow_origin,
    )
    await server.start()
    logger.info(
        "Using model %s at %s (data in %s)",
        config.default_model,
        config.ollama_base_url,
        config.data_dir,
    )
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await client.aclose()


def main() -> None:
    """Start the server with settings from the environment."""
    configure_logging(settings)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
