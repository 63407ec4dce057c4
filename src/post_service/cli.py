import asyncio
import sys

import typer
import uvicorn
from loguru import logger

from post_service.bootstrap import Bootstrap
from post_service.config import Settings, get_settings
from post_service.errors import StartupError
from post_service.service.app import create_app

app = typer.Typer(help="Post service CLI (serve, schema)")

STARTED_POLL_INTERVAL = 0.05


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


async def _serve(settings: Settings) -> None:
    service = await Bootstrap(settings).start()
    api = create_app(service)
    server = uvicorn.Server(
        uvicorn.Config(
            api, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower()
        )
    )
    serving = asyncio.ensure_future(server.serve())
    # uvicorn sets started only once the socket is bound
    while not server.started and not serving.done():
        await asyncio.sleep(STARTED_POLL_INTERVAL)
    if server.started:
        logger.success(f"Post service listening at {settings.APP_URL}:{settings.PORT}")
    await serving


async def _init_db(settings: Settings) -> None:
    store = await Bootstrap(settings).connect_store()
    await store.aclose()


@app.command()
def serve():
    """Connect to the store and broker, then serve HTTP on PORT."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(_serve(settings))
    except StartupError as e:
        logger.error(f"Failed to start the server: {e}")
        sys.exit(1)


@app.command("init-db")
def init_db():
    """Connect to the store with retries and create the posts table if missing."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(_init_db(settings))
    except StartupError as e:
        logger.error(f"Failed to initialize the database: {e}")
        sys.exit(1)
    logger.success("Database schema is ready")


if __name__ == "__main__":
    app()
