"""
Bootstrap sequencing: store first, then (announcing variant) broker.

Broker failure is fatal only when BROKER_REQUIRED is set. Otherwise the
service starts with a publisher in the "publishing unavailable" state and
serves CRUD without announcements.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from .broker import Publisher, connect_broker
from .config import Settings
from .errors import BrokerUnavailable
from .posts import PostService
from .store import StoreHandle, connect_store


@dataclass
class RunningService:
    """Dependencies that came up, owned for the lifetime of the process."""

    settings: Settings
    store: StoreHandle
    publisher: Optional[Publisher]
    posts: PostService = field(init=False)

    def __post_init__(self) -> None:
        self.posts = PostService(
            self.store, self.publisher, announcing=self.settings.MESSAGING_ENABLED
        )

    async def aclose(self) -> None:
        if self.publisher is not None:
            await self.publisher.close()
        await self.store.aclose()


class Bootstrap:
    def __init__(self, settings: Settings, *, pool_factory=None, broker_connect=None):
        self.settings = settings
        self._pool_factory = pool_factory
        self._broker_connect = broker_connect

    async def connect_store(self) -> StoreHandle:
        s = self.settings
        return await connect_store(
            s.database_url,
            s.DB_CONNECT_ATTEMPTS,
            s.DB_CONNECT_DELAY,
            announcing=s.MESSAGING_ENABLED,
            connect_timeout=s.DB_CONNECT_TIMEOUT,
            pool_max=s.DB_POOL_MAX,
            statement_timeout_ms=s.DB_STATEMENT_TIMEOUT_MS,
            pool_factory=self._pool_factory,
        )

    async def connect_publisher(self) -> Publisher:
        s = self.settings
        try:
            return await connect_broker(
                s.RABBITMQ_URL,
                s.BROKER_CONNECT_TIMEOUT,
                queue_name=s.QUEUE_NAME,
                publish_timeout=s.BROKER_PUBLISH_TIMEOUT,
                connect=self._broker_connect,
            )
        except BrokerUnavailable as e:
            if s.BROKER_REQUIRED:
                logger.error(f"Failed to connect to RabbitMQ: {e}")
                raise
            logger.warning(f"Failed to connect to RabbitMQ, publishing unavailable: {e}")
            return Publisher.unavailable(s.QUEUE_NAME)

    async def start(self) -> RunningService:
        """
        Bring up the store and, in the announcing variant, the broker.

        Raises:
            StoreUnavailable: store unreachable after all attempts.
            BrokerUnavailable: broker unreachable and BROKER_REQUIRED is set.
        """
        store = await self.connect_store()

        publisher: Optional[Publisher] = None
        if self.settings.MESSAGING_ENABLED:
            try:
                publisher = await self.connect_publisher()
            except BrokerUnavailable:
                await store.aclose()
                raise

        return RunningService(self.settings, store, publisher)
